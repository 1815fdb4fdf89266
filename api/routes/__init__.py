"""
Routes package for the API server.

This package contains FastAPI route handlers for health checks,
authentication, users, AI generation, roadmaps, progress and realtime
sync for the AI Roadmap API.
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import sys
import os

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Routes module initialization
from .root import router as root_router
from .health import router as health_router
from .auth import router as auth_router
from .users import router as users_router
from .ai import router as ai_router
from .roadmaps import router as roadmaps_router
from .progress import router as progress_router
from .realtime import router as realtime_router

# Export all routers for easy import
__all__ = [
    "root_router",
    "health_router",
    "auth_router",
    "users_router",
    "ai_router",
    "roadmaps_router",
    "progress_router",
    "realtime_router",
]
