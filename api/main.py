"""AI Learning Roadmap FastAPI Backend Application

This module is the entry point of the FastAPI backend. It wires the
middleware stack, the global exception handlers and the route routers, and
owns the application lifespan.

Key Features:
-------------
1. AI Roadmap Generation:
   - Keyword router over OpenAI, Google Gemini and Perplexity
   - One fallback to OpenAI when the routed provider fails
   - YouTube video enrichment of generated roadmaps
   - ChromaDB vector store for similar-roadmap search

2. Persistence:
   - PostgreSQL (psycopg3 pool) with an in-memory fallback store
   - Users, stats, roadmaps, per-task progress, achievements and sessions

3. Realtime Sync:
   - Change hub fed by the store (memory) or LISTEN/NOTIFY (PostgreSQL)
   - WebSocket endpoint with per-user subscriptions and rooms
   - Session monitor that expires 24h session tokens

4. Infrastructure:
   - CORS and Brotli compression middleware
   - Per-IP rate limiting with wait-instead-of-reject throttling
   - Memory monitoring of heavy AI requests
   - Consistent {"detail": ...} error bodies

Startup Sequence:
----------------
1. Windows event loop policy, .env loading, BASE_DIR on sys.path
2. Middleware, exception handlers and routers are registered at import
3. Lifespan startup:
   - initialize_store() (PostgreSQL, or MemoryStore when allowed)
   - ChromaDB collection (in a worker thread; failures are logged only)
   - start_realtime(store) (LISTEN task for PostgreSQL)
   - session monitor background task
   - memory baseline

Shutdown Sequence:
-----------------
1. Stop the session monitor
2. Stop realtime (listener task and hub subscriptions)
3. Close the store
4. Report memory growth against the baseline

Usage:
------
uvicorn api.main:app --host 0.0.0.0 --port 8000 --reload
"""

# ==============================================================================
# CRITICAL WINDOWS COMPATIBILITY SETUP
# ==============================================================================
# MUST BE FIRST: Set Windows event loop policy before ANY other imports
# This fixes psycopg[binary] async compatibility issues on Windows platforms
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# ==============================================================================
# ENVIRONMENT VARIABLES LOADING
# ==============================================================================
from dotenv import load_dotenv

load_dotenv()

# ==============================================================================
# PROJECT ROOT DIRECTORY CONFIGURATION
# ==============================================================================
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[1]  # Go up one level from api/main.py
except NameError:
    BASE_DIR = Path(os.getcwd())

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# ==============================================================================
# STANDARD LIBRARY AND THIRD-PARTY IMPORTS
# ==============================================================================
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime

import psutil
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import middleware setup functions
from api.middleware.cors import setup_brotli_middleware, setup_cors_middleware
from api.middleware.memory_monitoring import setup_memory_monitoring_middleware
from api.middleware.rate_limiting import setup_throttling_middleware

# Import exception handlers
from api.exceptions.handlers import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    value_error_handler,
)

# ==============================================================================
# DEBUG AND MEMORY UTILITIES
# ==============================================================================
from api.utils.debug import print__memory_monitoring, print__startup_debug
from api.utils.memory import GC_MEMORY_THRESHOLD, log_memory_usage
from api.utils.session_monitor import start_session_monitor, stop_session_monitor

# ==============================================================================
# ROUTE ROUTERS, STORE, VECTOR STORE AND REALTIME
# ==============================================================================
from api.routes import (
    ai_router,
    auth_router,
    health_router,
    progress_router,
    realtime_router,
    roadmaps_router,
    root_router,
    users_router,
)
from persistence.store.factory import cleanup_store, initialize_store
from realtime.listener import start_realtime, stop_realtime
from roadmap_ai.vector_store import initialize_collection

_APP_STARTUP_TIME = None
_MEMORY_BASELINE = None


# ==============================================================================
# APPLICATION LIFESPAN MANAGEMENT
# ==============================================================================
@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Initialize the store, vector store, realtime and session monitor; tear them down."""
    # pylint: disable=global-statement
    global _APP_STARTUP_TIME, _MEMORY_BASELINE
    _APP_STARTUP_TIME = datetime.now()

    print__startup_debug("🚀 FastAPI application starting up...")
    log_memory_usage("app_startup")

    store = await initialize_store()
    print__startup_debug(f"✅ Store ready (mode: {store.mode})")

    loop = asyncio.get_event_loop()
    if await loop.run_in_executor(None, initialize_collection):
        print__startup_debug("✅ Vector store ready")
    else:
        print__startup_debug("⚠️ Vector store unavailable - similar-roadmap search disabled")

    start_realtime(store)
    start_session_monitor()

    if _MEMORY_BASELINE is None:
        try:
            _MEMORY_BASELINE = psutil.Process().memory_info().rss / 1024 / 1024
            print__memory_monitoring(f"Memory baseline established: {_MEMORY_BASELINE:.1f}MB RSS")
        except Exception:  # pylint: disable=broad-except
            pass

    log_memory_usage("app_ready")
    print__startup_debug("✅ FastAPI application ready to serve requests")

    yield

    # ==========================================================================
    # SHUTDOWN SEQUENCE
    # ==========================================================================
    print__startup_debug("🛑 FastAPI application shutting down...")
    print__memory_monitoring(f"Application ran for {datetime.now() - _APP_STARTUP_TIME}")

    try:
        await stop_session_monitor()
    except Exception as monitor_error:  # pylint: disable=broad-except
        print__startup_debug(f"⚠️ Failed to stop session monitor: {monitor_error}")

    await stop_realtime()
    await cleanup_store()

    if _MEMORY_BASELINE:
        try:
            final_memory = psutil.Process().memory_info().rss / 1024 / 1024
            total_growth = final_memory - _MEMORY_BASELINE
            print__memory_monitoring(
                f"Final memory stats: Started={_MEMORY_BASELINE:.1f}MB, "
                f"Final={final_memory:.1f}MB, Growth={total_growth:.1f}MB"
            )
            if total_growth > GC_MEMORY_THRESHOLD:
                print__memory_monitoring(
                    "🚨 SIGNIFICANT MEMORY GROWTH DETECTED - investigate for leaks!"
                )
        except Exception:  # pylint: disable=broad-except
            pass


# ==============================================================================
# FASTAPI APPLICATION INITIALIZATION
# ==============================================================================
app = FastAPI(
    title="AI Learning Roadmap API",
    description="""Backend for generating personalized learning roadmaps with AI and tracking progress.

## Features
- 🤖 Roadmap generation routed to OpenAI, Gemini or Perplexity by topic
- 🎬 YouTube video recommendations per roadmap
- 🔍 Similar roadmap search (ChromaDB)
- 📈 Task progress, XP, levels, streaks and achievements
- ⚡ Realtime progress sync over WebSocket

## Authentication
Protected endpoints accept `Authorization: Bearer <JWT>` or the `auth_token` cookie.
    """,
    version="1.0.0",
    lifespan=lifespan,
    responses={
        401: {
            "description": "Unauthorized - Invalid or missing authentication token",
            "content": {"application/json": {"example": {"detail": "Invalid token"}}},
        },
        422: {
            "description": "Validation Error - Invalid request parameters",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Validation error",
                        "errors": [
                            {
                                "loc": ["body", "topic"],
                                "msg": "Field required",
                                "type": "missing",
                            }
                        ],
                    }
                }
            },
        },
        429: {
            "description": "Rate Limit Exceeded - Too many requests",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Rate limit exceeded. Please wait 5.0s before retrying.",
                        "retry_after": 5,
                    }
                }
            },
        },
        500: {
            "description": "Internal Server Error",
            "content": {"application/json": {"example": {"detail": "Internal server error"}}},
        },
    },
)

# ==============================================================================
# MIDDLEWARE REGISTRATION
# ==============================================================================
setup_cors_middleware(app)
setup_brotli_middleware(app)
setup_throttling_middleware(app)
setup_memory_monitoring_middleware(app)

# ==============================================================================
# EXCEPTION HANDLERS
# ==============================================================================
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(ValueError, value_error_handler)
app.add_exception_handler(Exception, general_exception_handler)

# ==============================================================================
# ROUTE REGISTRATION
# ==============================================================================
print__memory_monitoring("[ROUTES] Registering route routers...")

app.include_router(root_router, tags=["Root"])  # GET /
app.include_router(health_router, tags=["Health & Monitoring"])  # GET /health, /health/*
app.include_router(auth_router, tags=["Authentication"])  # /auth/*
app.include_router(users_router, tags=["Users"])  # /user/*
app.include_router(ai_router, tags=["AI"])  # /ai/*
app.include_router(roadmaps_router, tags=["Roadmaps"])  # /roadmap/*
app.include_router(progress_router, tags=["Progress"])  # /progress/*
app.include_router(realtime_router, tags=["Realtime"])  # /realtime/status, WS /realtime/ws

print__memory_monitoring("[SUCCESS] All route routers registered successfully")
