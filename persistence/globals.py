"""Global State for the Persistence Package

Module-level singletons shared by the store factory and the connection
helpers. They are only written by the designated modules:

- _GLOBAL_STORE: active store instance (PostgresStore or MemoryStore), set by
  persistence.store.factory
- _CONNECTION_STRING_CACHE: connection string built once per process by
  persistence.database.connection.get_connection_string()
- _STORE_INIT_LOCK: asyncio.Lock created lazily by the factory so that only
  one store is initialized under concurrent access

Use get_global_store() and get_connection_string() instead of reading these
directly. cleanup_store() resets them to None.
"""

from __future__ import annotations

_GLOBAL_STORE = None
_CONNECTION_STRING_CACHE = None
_STORE_INIT_LOCK = None
