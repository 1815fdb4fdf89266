"""Store Factory and Lifecycle Management

Creates the global store at application startup and tears it down at
shutdown.

Processing Flow:
---------------
1. Application Startup:
   - initialize_store() is called from the FastAPI lifespan
   - If a store already exists, it is kept (idempotent)
   - If PostgreSQL env vars are set, create_postgres_store() creates the tables
     and triggers, opens the pool and pings the database
   - On any failure, and when InMemoryStore_fallback=1, MemoryStore is used
     instead; with the fallback disabled the error propagates

2. Request Handling:
   - get_global_store() returns the active store, initializing lazily with
     double-checked locking

3. Application Shutdown:
   - cleanup_store() closes the pool and resets the global state

The in-memory store has no triggers, so its change callback is wired to the
realtime hub here.
"""

from __future__ import annotations

import asyncio

from api.utils.debug import print__persistence_debug
from persistence import globals as globals_module
from persistence.config import (
    IN_MEMORY_FALLBACK,
    STORE_CREATION_MAX_RETRIES,
    check_postgres_env_vars,
)
from persistence.error_handling.retry_decorators import retry_on_ssl_connection_error
from persistence.store.memory_store import MemoryStore
from persistence.store.postgres_store import PostgresStore


@retry_on_ssl_connection_error(max_retries=STORE_CREATION_MAX_RETRIES)
async def create_postgres_store() -> PostgresStore:
    """Create, set up and test a PostgresStore."""
    if not check_postgres_env_vars():
        raise Exception("Missing required PostgreSQL environment variables")

    store = PostgresStore()
    try:
        await store.open()
        if not await store.ping():
            raise Exception("PostgreSQL store failed its health check")
    except Exception:
        await store.close()
        raise

    print__persistence_debug("✅ PostgresStore created and tested successfully")
    return store


def create_memory_store() -> MemoryStore:
    from realtime.hub import get_realtime_hub

    def publish(table, event_type, user_id, new, old):
        get_realtime_hub().publish_change(table, event_type, user_id, new, old)

    store = MemoryStore()
    store.change_callback = publish
    print__persistence_debug("⚠ Using MemoryStore (data is kept in-process only)")
    return store


async def initialize_store():
    """Initialize the global store, falling back to MemoryStore if allowed."""
    if globals_module._GLOBAL_STORE is not None:
        print__persistence_debug("STORE EXISTS: Global store already initialized")
        return globals_module._GLOBAL_STORE

    try:
        globals_module._GLOBAL_STORE = await create_postgres_store()
    except Exception as exc:
        print__persistence_debug(f"❌ Failed to initialize PostgreSQL store: {exc}")
        if not IN_MEMORY_FALLBACK:
            raise
        globals_module._GLOBAL_STORE = create_memory_store()

    return globals_module._GLOBAL_STORE


async def get_global_store():
    """Return the active store, creating it on first use."""
    if globals_module._STORE_INIT_LOCK is None:
        globals_module._STORE_INIT_LOCK = asyncio.Lock()

    if globals_module._GLOBAL_STORE is None:
        async with globals_module._STORE_INIT_LOCK:
            if globals_module._GLOBAL_STORE is None:
                await initialize_store()

    return globals_module._GLOBAL_STORE


def set_global_store(store):
    """Install a specific store instance (used by tests and tooling)."""
    globals_module._GLOBAL_STORE = store
    return store


async def cleanup_store():
    """Close the active store and reset global state."""
    store = globals_module._GLOBAL_STORE
    if store is None:
        print__persistence_debug("NO STORE: Nothing to clean up")
        return

    try:
        await store.close()
    except Exception as exc:
        print__persistence_debug(f"⚠ Error during store cleanup: {exc}")
    finally:
        globals_module._GLOBAL_STORE = None
        globals_module._CONNECTION_STRING_CACHE = None
        print__persistence_debug("🧹 Store cleanup completed")
