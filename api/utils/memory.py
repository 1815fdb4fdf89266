MODULE_DESCRIPTION = r"""Memory Logging and Error Reporting Helpers

Small process-level helpers shared by the API server:

    - log_memory_usage(context)
        Logs the current RSS of the process (psutil) with an optional context
        label, and runs a garbage collection pass when RSS exceeds
        GC_MEMORY_THRESHOLD.

    - log_comprehensive_error(context, error, request=None)
        Emits a structured JSON record describing an exception, enriched with
        the request method, URL and client IP when a request is available.

Usage:
    from api.utils.memory import log_memory_usage, log_comprehensive_error

    log_memory_usage("startup")
    log_comprehensive_error("generate_roadmap", exc, request)

Environment:
    GC_MEMORY_THRESHOLD   RSS in MB above which gc.collect() is forced (default 1900)
"""

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

# Standard imports
import gc
import json
from datetime import datetime

# Third-party imports
import psutil
from fastapi import Request

from api.utils.debug import print__debug, print__memory_monitoring

# ============================================================
# CONFIGURATION
# ============================================================
GC_MEMORY_THRESHOLD = int(os.environ.get("GC_MEMORY_THRESHOLD", "1900"))


# ============================================================
# MEMORY MONITORING
# ============================================================
def check_memory_and_gc() -> float:
    """Force a garbage collection pass and return RSS in MB after it.

    Returns 0 if memory cannot be read.
    """
    try:
        process = psutil.Process()
        before_mb = process.memory_info().rss / 1024 / 1024
        collected = gc.collect()
        after_mb = process.memory_info().rss / 1024 / 1024
        print__memory_monitoring(
            f"🧹 GC collected {collected} objects, RSS {before_mb:.1f}MB -> {after_mb:.1f}MB"
        )
        if after_mb > GC_MEMORY_THRESHOLD * 0.9:
            print__memory_monitoring(
                f"⚠ HIGH MEMORY WARNING: {after_mb:.1f}MB after cleanup"
            )
        return after_mb
    except Exception as e:
        print__memory_monitoring(f"❌ Could not check memory: {e}")
        return 0


def log_memory_usage(context: str = ""):
    """Log current RSS with optional context, collecting garbage above threshold."""
    try:
        rss_mb = psutil.Process().memory_info().rss / 1024 / 1024

        print__memory_monitoring(
            f"📊 Memory usage{f' [{context}]' if context else ''}: {rss_mb:.1f}MB RSS"
        )

        if rss_mb > GC_MEMORY_THRESHOLD:
            check_memory_and_gc()

    except Exception as e:
        print__memory_monitoring(f"❌ Could not check memory usage: {e}")


# ============================================================
# ERROR REPORTING
# ============================================================
def log_comprehensive_error(context: str, error: Exception, request: Request = None):
    """Log comprehensive error information with context.

    Args:
        context (str): Description of where/when the error occurred
        error (Exception): The exception that was raised
        request (Request, optional): FastAPI request object for additional context

    Note:
        - Does not raise exceptions
        - Format: JSON for structured logging
    """
    error_details = {
        "context": context,
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": datetime.now().isoformat(),
    }

    if request:
        error_details.update(
            {
                "method": request.method,
                "url": str(request.url),
                "client_ip": request.client.host if request.client else "unknown",
            }
        )

    print__debug(f"🚨 ERROR: {json.dumps(error_details, indent=2)}")
