"""
MODULE_DESCRIPTION: CORS and Compression Middleware

Registers two middleware components for the AI Roadmap API:

1. CORS Middleware: lets the browser frontend on another origin call the API
   with the auth_token cookie and Authorization header.
2. Brotli Compression Middleware: compresses JSON responses of 1KB or more
   (generated roadmaps are large documents).

Configuration:
    CORS_ALLOWED_ORIGINS: comma-separated list of origins
        (default: http://localhost:3000,http://localhost:5173,http://localhost:8000)
"""

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

from brotli_asgi import BrotliMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.utils.debug import print__memory_monitoring

DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,http://localhost:5173,http://localhost:8000"


def get_allowed_origins() -> list:
    allowed_origins_str = os.getenv("CORS_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]


def setup_cors_middleware(app: FastAPI):
    """Setup CORS middleware for the FastAPI application.

    Configuration:
        - allow_origins: From CORS_ALLOWED_ORIGINS env var
        - allow_credentials: True (auth_token cookie)
        - allow_methods: GET, POST, PUT, DELETE, OPTIONS
        - allow_headers: all (Authorization, X-Session-Token, ...)
    """
    print__memory_monitoring("📋 Registering CORS middleware...")

    allowed_origins = get_allowed_origins()
    print__memory_monitoring(f"📋 CORS allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )


def setup_brotli_middleware(app: FastAPI):
    """Setup Brotli compression for responses of at least 1000 bytes.

    Clients that do not send Accept-Encoding: br get uncompressed responses.
    """
    print__memory_monitoring("📋 Registering Brotli compression middleware...")
    app.add_middleware(BrotliMiddleware, minimum_size=1000)
