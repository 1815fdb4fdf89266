"""PostgreSQL Connection Pool Management

Creates the AsyncConnectionPool used by PostgresStore and closes it on
shutdown or when the retry decorators need a fresh pool.

Usage:
    pool = await create_connection_pool()
    async with pool.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("SELECT 1")
    await close_connection_pool(pool)
"""

from __future__ import annotations

import gc

from psycopg_pool import AsyncConnectionPool

from api.utils.debug import print__persistence_debug
from persistence import globals as globals_module
from persistence.config import (
    DEFAULT_MAX_IDLE,
    DEFAULT_MAX_LIFETIME,
    DEFAULT_POOL_MAX_SIZE,
    DEFAULT_POOL_MIN_SIZE,
    DEFAULT_POOL_TIMEOUT,
)
from persistence.database.connection import (
    check_connection_health,
    get_connection_kwargs,
    get_connection_string,
)


async def create_connection_pool() -> AsyncConnectionPool:
    """Create and open the async connection pool with health checking."""
    print__persistence_debug(
        f"POOL CREATE: min={DEFAULT_POOL_MIN_SIZE}, max={DEFAULT_POOL_MAX_SIZE}, "
        f"timeout={DEFAULT_POOL_TIMEOUT}s"
    )
    pool = AsyncConnectionPool(
        conninfo=get_connection_string(),
        min_size=DEFAULT_POOL_MIN_SIZE,
        max_size=DEFAULT_POOL_MAX_SIZE,
        timeout=DEFAULT_POOL_TIMEOUT,
        max_idle=DEFAULT_MAX_IDLE,
        max_lifetime=DEFAULT_MAX_LIFETIME,
        kwargs=get_connection_kwargs(),
        check=check_connection_health,
        open=False,
    )
    await pool.open()
    print__persistence_debug("POOL OPENED: Connection pool opened successfully")
    return pool


async def close_connection_pool(pool) -> None:
    """Close a pool, logging instead of raising on errors."""
    if pool is None:
        return
    try:
        await pool.close()
        print__persistence_debug("POOL CLOSED: Connection pool closed")
    except Exception as exc:
        print__persistence_debug(f"POOL CLOSE ERROR: {exc}")


async def force_close_pools() -> None:
    """Close the active store's pool and reset cached connection state.

    Used by the retry decorators after a connection failure so the next
    attempt starts from a fresh pool and connection string.
    """
    store = globals_module._GLOBAL_STORE
    pool = getattr(store, "pool", None)
    if pool is not None:
        await close_connection_pool(pool)
        store.pool = None

    globals_module._CONNECTION_STRING_CACHE = None
    gc.collect()
    print__persistence_debug("FORCE CLOSE COMPLETE: Pools closed and caches cleared")
