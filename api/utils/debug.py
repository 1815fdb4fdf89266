# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Constants
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]


# ==============================================================================
# DEBUG FUNCTIONS
# ==============================================================================
def _emit(env_name: str, tag: str, msg: str) -> None:
    if os.environ.get(env_name, "0") == "1":
        print(f"[{tag}] {msg}")
        sys.stdout.flush()


def print__debug(msg: str) -> None:
    """Print DEBUG messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    _emit("DEBUG", "DEBUG", msg)


def print__token_debug(msg: str) -> None:
    """Print print__token_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    _emit("print__token_debug", "print__token_debug", msg)


def print__startup_debug(msg: str) -> None:
    """Print startup debug messages when debug mode is enabled."""
    _emit("DEBUG", "STARTUP-DEBUG", msg)


def print__memory_monitoring(msg: str) -> None:
    """Print MEMORY-MONITORING messages when debug mode is enabled."""
    _emit("DEBUG", "MEMORY-MONITORING", msg)


def print__persistence_debug(msg: str) -> None:
    """Print print__persistence_debug messages (store, pool, tables, retries).

    Args:
        msg: The message to print
    """
    _emit("print__persistence_debug", "print__persistence_debug", msg)


def print__session_debug(msg: str) -> None:
    """Print print__session_debug messages when debug mode is enabled."""
    _emit("print__session_debug", "print__session_debug", msg)


def print__ai_router_debug(msg: str) -> None:
    """Print print__ai_router_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    _emit("print__ai_router_debug", "print__ai_router_debug", msg)


def print__youtube_debug(msg: str) -> None:
    """Print print__youtube_debug messages when debug mode is enabled."""
    _emit("print__youtube_debug", "print__youtube_debug", msg)


def print__chromadb_debug(msg: str) -> None:
    """Print print__chromadb_debug messages when debug mode is enabled."""
    _emit("print__chromadb_debug", "print__chromadb_debug", msg)


def print__realtime_debug(msg: str) -> None:
    """Print print__realtime_debug messages when debug mode is enabled.

    Args:
        msg: The message to print
    """
    _emit("print__realtime_debug", "print__realtime_debug", msg)


def print__roadmap_debug(msg: str) -> None:
    """Print print__roadmap_debug messages when debug mode is enabled."""
    _emit("print__roadmap_debug", "print__roadmap_debug", msg)


def print__progress_debug(msg: str) -> None:
    """Print print__progress_debug messages when debug mode is enabled."""
    _emit("print__progress_debug", "print__progress_debug", msg)
