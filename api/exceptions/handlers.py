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

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.utils.debug import print__debug, print__token_debug
from api.utils.memory import log_comprehensive_error


# ============================================================
# EXCEPTION HANDLERS
# ============================================================
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with proper 422 status code.

    Response Format:
        {
            "detail": "Validation error",
            "errors": [{"loc": ["body", "email"], "msg": "...", "type": "..."}]
        }
    """
    print__debug(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions; 401s get extra tracing of the request."""
    if exc.status_code == 401:
        client_ip = request.client.host if request.client else "unknown"
        print__token_debug(f"🚨 HTTP 401 UNAUTHORIZED: {exc.detail}")
        print__token_debug(f"🚨 HTTP 401 TRACE: {request.method} {request.url} from {client_ip}")
    elif exc.status_code >= 400:
        print__debug(f"🚨 HTTP {exc.status_code} ERROR: {exc.detail} ({request.method} {request.url})")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def value_error_handler(_request: Request, exc: ValueError):
    """Handle ValueError exceptions (business rule violations) as 400 Bad Request."""
    print__debug(f"ValueError: {str(exc)}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the error and return a generic 500 without internals."""
    log_comprehensive_error("unhandled_exception", exc, request)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
