"""
MODULE_DESCRIPTION: Health Check Endpoints - Service Status and Diagnostics

Endpoints:
    GET /health                 overall status (memory, store, realtime); 503 if degraded
    GET /health/database        store ping latency
    GET /health/memory          RSS against GC_MEMORY_THRESHOLD
    GET /health/rate-limits     tracked clients and limits
    GET /health/vector-store    roadmap embedding collection info

All endpoints are public and exempt from throttling (/health only).
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

import asyncio
import gc
import time
from datetime import datetime

import psutil
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.config import settings
from api.config.settings import (
    RATE_LIMIT_BURST,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    rate_limit_storage,
    start_time,
)
from api.helpers import traceback_json_response
from api.utils.memory import GC_MEMORY_THRESHOLD
from persistence.store.factory import get_global_store
from realtime.hub import get_realtime_hub
from realtime.rooms import get_connection_manager
from roadmap_ai.vector_store import get_collection_info

# Create router for health endpoints
router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check with memory monitoring, store ping and realtime status."""
    try:
        process = psutil.Process()
        memory_info = process.memory_info()
        memory_percent = process.memory_percent()

        database_healthy = True
        database_error = None
        store_mode = None
        try:
            store = await get_global_store()
            store_mode = store.mode
            database_healthy = await store.ping()
        except Exception as e:
            database_healthy = False
            database_error = str(e)

        hub = get_realtime_hub()
        status = "healthy" if database_healthy else "degraded"

        health_data = {
            "status": status,
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": time.time() - start_time,
            "requests_processed": settings._REQUEST_COUNT,
            "memory": {
                "rss_mb": round(memory_info.rss / 1024 / 1024, 2),
                "vms_mb": round(memory_info.vms / 1024 / 1024, 2),
                "percent": round(memory_percent, 2),
            },
            "database": {
                "healthy": database_healthy,
                "store_mode": store_mode,
                "error": database_error,
            },
            "realtime": {
                "available": hub.available,
                "mode": hub.mode,
                "reason": hub.unavailable_reason,
            },
            "version": "1.0.0",
        }

        collected = gc.collect()
        health_data["garbage_collector"] = {
            "objects_collected": collected,
            "gc_run": True,
        }

        if not database_healthy:
            return JSONResponse(status_code=503, content=health_data)

        return health_data

    except Exception as e:
        resp = traceback_json_response(e)
        if resp:
            return resp
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": str(e),
                "timestamp": datetime.now().isoformat(),
            },
        )


@router.get("/health/database")
async def database_health_check():
    """Detailed store health check with ping latency."""
    try:
        store = await get_global_store()
        health_status = {
            "timestamp": datetime.now().isoformat(),
            "store_mode": store.mode,
        }

        start_time_local = time.time()
        try:
            healthy = await store.ping()
        except Exception as e:
            health_status.update({"database_connection": "error", "error": str(e)})
            return JSONResponse(status_code=503, content=health_status)

        health_status.update(
            {
                "database_connection": "healthy" if healthy else "error",
                "ping_latency_ms": round((time.time() - start_time_local) * 1000, 2),
            }
        )
        if store.mode == "memory":
            health_status["note"] = "PostgreSQL not available, using in-memory store"
        if not healthy:
            return JSONResponse(status_code=503, content=health_status)
        return health_status

    except Exception as e:
        resp = traceback_json_response(e)
        if resp:
            return resp
        return JSONResponse(
            status_code=500,
            content={
                "timestamp": datetime.now().isoformat(),
                "database_connection": "error",
                "error": str(e),
            },
        )


@router.get("/health/memory")
async def memory_health_check():
    try:
        rss_mb = psutil.Process().memory_info().rss / 1024 / 1024

        status = "healthy"
        if rss_mb > GC_MEMORY_THRESHOLD:
            status = "high_memory"
        elif rss_mb > (GC_MEMORY_THRESHOLD * 0.8):
            status = "warning"

        return {
            "status": status,
            "memory_rss_mb": round(rss_mb, 1),
            "memory_threshold_mb": GC_MEMORY_THRESHOLD,
            "memory_usage_percent": round((rss_mb / GC_MEMORY_THRESHOLD) * 100, 1),
            "over_threshold": rss_mb > GC_MEMORY_THRESHOLD,
            "realtime_connections": get_connection_manager().connection_count(),
            "timestamp": datetime.now().isoformat(),
        }
    except Exception as e:
        resp = traceback_json_response(e)
        if resp:
            return resp
        return {
            "status": "error",
            "error": str(e),
            "timestamp": datetime.now().isoformat(),
        }


@router.get("/health/rate-limits")
async def rate_limit_health_check():
    try:
        total_clients = len(rate_limit_storage)
        active_clients = sum(1 for requests in rate_limit_storage.values() if requests)

        return {
            "status": "healthy",
            "total_tracked_clients": total_clients,
            "active_clients": active_clients,
            "rate_limit_window": RATE_LIMIT_WINDOW,
            "rate_limit_requests": RATE_LIMIT_REQUESTS,
            "rate_limit_burst": RATE_LIMIT_BURST,
            "timestamp": datetime.now().isoformat(),
        }
    except Exception as e:
        resp = traceback_json_response(e)
        if resp:
            return resp
        return {
            "status": "error",
            "error": str(e),
            "timestamp": datetime.now().isoformat(),
        }


@router.get("/health/vector-store")
async def vector_store_health_check():
    loop = asyncio.get_event_loop()
    info = await loop.run_in_executor(None, get_collection_info)
    if info is None:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unavailable",
                "timestamp": datetime.now().isoformat(),
            },
        )
    return {"status": "healthy", "collection": info, "timestamp": datetime.now().isoformat()}
