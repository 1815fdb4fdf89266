"""Request counting and memory logging around heavy endpoints."""

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

from fastapi import FastAPI, Request

from api.config import settings
from api.utils.memory import log_memory_usage

# roadmap generation and improvement hold full LLM answers in memory
HEAVY_PATHS = ["/ai/generate-roadmap", "/ai/improve-roadmap"]


async def simplified_memory_monitoring_middleware(request: Request, call_next):
    """Count every request and log RSS before/after heavy AI operations."""
    settings._REQUEST_COUNT += 1

    request_path = request.url.path
    is_heavy_operation = request_path in HEAVY_PATHS

    if is_heavy_operation:
        log_memory_usage(f"before_{request_path.replace('/', '_')}")

    response = await call_next(request)

    if is_heavy_operation:
        log_memory_usage(f"after_{request_path.replace('/', '_')}")

    return response


def setup_memory_monitoring_middleware(app: FastAPI):
    app.middleware("http")(simplified_memory_monitoring_middleware)
