"""
MODULE_DESCRIPTION: Rate Limiting Middleware - Per-IP Throttling

Requests over the limit wait for capacity instead of being rejected at once.
Only when waiting would exceed RATE_LIMIT_MAX_WAIT does the client get a 429
with a Retry-After header.

    - Sliding window: RATE_LIMIT_REQUESTS per RATE_LIMIT_WINDOW seconds
    - Burst: RATE_LIMIT_BURST requests per 10 seconds
    - Concurrency: at most 8 in-flight requests per IP (semaphore)

Exempted paths: /health, /docs, /openapi.json and the realtime WebSocket.
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

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.config.settings import throttle_semaphores
from api.utils.debug import print__memory_monitoring
from api.utils.memory import log_comprehensive_error
from api.utils.rate_limiting import (
    check_rate_limit_with_throttling,
    wait_for_rate_limit,
)

EXEMPT_PATHS = ["/health", "/docs", "/openapi.json", "/realtime/ws"]


async def throttling_middleware(request: Request, call_next):
    """Throttling middleware that makes requests wait instead of rejecting them.

    Rate Limit Response (429):
        {
            "detail": "Rate limit exceeded. Please wait Xs before retrying.",
            "retry_after": X,
            "burst_usage": "Y/Z",
            "window_usage": "A/B"
        }
    """
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    semaphore = throttle_semaphores[client_ip]

    async with semaphore:
        if not await wait_for_rate_limit(client_ip):
            rate_info = check_rate_limit_with_throttling(client_ip)
            error_msg = (
                f"Rate limit exceeded for IP: {client_ip} after waiting. "
                f"Burst: {rate_info['burst_count']}/{rate_info['burst_limit']}, "
                f"Window: {rate_info['window_count']}/{rate_info['window_limit']}"
            )
            log_comprehensive_error(
                "rate_limit_exceeded_after_wait", Exception(error_msg), request
            )

            retry_after = max(int(rate_info["suggested_wait"]), 1)
            return JSONResponse(
                status_code=429,
                content={
                    "detail": (
                        f"Rate limit exceeded. Please wait "
                        f"{rate_info['suggested_wait']:.1f}s before retrying."
                    ),
                    "retry_after": retry_after,
                    "burst_usage": f"{rate_info['burst_count']}/{rate_info['burst_limit']}",
                    "window_usage": f"{rate_info['window_count']}/{rate_info['window_limit']}",
                },
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)


def setup_throttling_middleware(app: FastAPI):
    """Register throttling_middleware as an HTTP middleware of ``app``."""
    print__memory_monitoring("📋 Registering rate limiting middleware...")
    app.middleware("http")(throttling_middleware)
    print__memory_monitoring("✅ Rate limiting middleware registered successfully")
