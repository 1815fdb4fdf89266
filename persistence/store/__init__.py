"""Store implementations and lifecycle.

Public API:
    initialize_store()   - create the global store (Postgres or in-memory fallback)
    get_global_store()   - access the active store
    cleanup_store()      - close the store on shutdown
"""

from persistence.store.base import BaseStore
from persistence.store.factory import (
    cleanup_store,
    get_global_store,
    initialize_store,
    set_global_store,
)
from persistence.store.memory_store import MemoryStore
from persistence.store.postgres_store import PostgresStore
