"""PostgreSQL Connection Management

Connection string generation (cached per process), standard connection
kwargs, a SELECT 1 health check used by the pool, and a direct-connection
context manager for DDL and LISTEN operations.
"""

from __future__ import annotations

import os
import threading
import time
import uuid
from contextlib import asynccontextmanager

import psycopg

from api.utils.debug import print__persistence_debug
from persistence import globals as globals_module
from persistence.config import (
    APPLICATION_NAME_PREFIX,
    CONNECT_TIMEOUT,
    KEEPALIVES_COUNT,
    KEEPALIVES_IDLE,
    KEEPALIVES_INTERVAL,
    TCP_USER_TIMEOUT,
    get_db_config,
)


def get_connection_string():
    """Build the PostgreSQL connection string, caching it for the process.

    The application name is unique per process so connections can be told
    apart in pg_stat_activity.

    Returns:
        str: postgresql:// URL with SSL, timeout and keepalive settings
    """
    if globals_module._CONNECTION_STRING_CACHE is not None:
        return globals_module._CONNECTION_STRING_CACHE

    config = get_db_config()

    process_id = os.getpid()
    thread_id = threading.get_ident()
    startup_time = int(time.time())
    random_id = uuid.uuid4().hex[:8]
    app_name = (
        f"{APPLICATION_NAME_PREFIX}_{process_id}_{thread_id}_{startup_time}_{random_id}"
    )
    print__persistence_debug(
        f"CONNECTION STRING APP NAME: Generated unique application name: {app_name}"
    )

    globals_module._CONNECTION_STRING_CACHE = (
        f"postgresql://{config['user']}:{config['password']}@"
        f"{config['host']}:{config['port']}/{config['dbname']}?"
        f"sslmode=require"
        f"&application_name={app_name}"
        f"&connect_timeout={CONNECT_TIMEOUT}"
        f"&keepalives_idle={KEEPALIVES_IDLE}"
        f"&keepalives_interval={KEEPALIVES_INTERVAL}"
        f"&keepalives_count={KEEPALIVES_COUNT}"
        f"&tcp_user_timeout={TCP_USER_TIMEOUT}"
    )
    return globals_module._CONNECTION_STRING_CACHE


def get_connection_kwargs():
    """Connection kwargs shared by the pool and direct connections.

    autocommit stays off so store operations commit explicitly, and prepared
    statements are disabled for compatibility with poolers in front of cloud
    databases.
    """
    return {
        "autocommit": False,
        "prepare_threshold": None,
    }


async def check_connection_health(connection):
    """Return True if the connection answers SELECT 1, False otherwise.

    Used as the ``check`` callback of the connection pool; never raises.
    """
    try:
        async with connection.cursor() as cur:
            await cur.execute("SELECT 1")
            result = await cur.fetchone()
            return result is not None and result[0] == 1
    except Exception as exc:
        print__persistence_debug(f"Connection health check failed: {exc}")
        return False


@asynccontextmanager
async def get_direct_connection(autocommit: bool = False):
    """Open a dedicated connection outside the pool.

    Used for table setup (autocommit DDL) and for the LISTEN connection of
    the realtime listener.

    Usage:
        async with get_direct_connection(autocommit=True) as conn:
            await conn.execute("SELECT 1")
    """
    connection_string = get_connection_string()
    connection_kwargs = get_connection_kwargs()
    connection_kwargs["autocommit"] = autocommit

    async with await psycopg.AsyncConnection.connect(
        connection_string, **connection_kwargs
    ) as conn:
        yield conn
