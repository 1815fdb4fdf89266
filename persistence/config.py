"""PostgreSQL Persistence Configuration Management

This module provides centralized configuration for the persistence layer,
including connection parameters, retry settings, timeout and pool settings,
and environment variable validation.
"""

from __future__ import annotations

MODULE_DESCRIPTION = r"""PostgreSQL Persistence Configuration Management

Central configuration hub for the persistence package: connection parameters,
retry settings, timeout settings, connection pool sizing, store fallback
behaviour and environment variable validation.

Configuration Constants:
-----------------------
Connection and Retry Settings:
- DEFAULT_MAX_RETRIES: 2 - Retry attempts for database operations
- STORE_CREATION_MAX_RETRIES: 2 - Retry attempts for store initialization
- CONNECT_TIMEOUT: 90 seconds - Initial connection timeout for cloud databases
- TCP_USER_TIMEOUT: 240000 ms - TCP-level timeout for network interruptions

Connection Keepalive Settings:
- KEEPALIVES_IDLE: 300 seconds before the first keepalive probe
- KEEPALIVES_INTERVAL: 30 seconds between probes
- KEEPALIVES_COUNT: 3 failed probes before the connection is considered dead

Connection Pool Configuration:
- DEFAULT_POOL_MIN_SIZE: 2
- DEFAULT_POOL_MAX_SIZE: 10
- DEFAULT_POOL_TIMEOUT: 60 seconds to acquire a connection
- DEFAULT_MAX_IDLE: 600 seconds before an idle connection is closed
- DEFAULT_MAX_LIFETIME: 3600 seconds before a connection is renewed

Store Selection:
- IN_MEMORY_FALLBACK: InMemoryStore_fallback env var ("1" by default); when
  enabled, any failure to create the Postgres store falls back to MemoryStore.

Realtime:
- REALTIME_CHANNEL: "realtime_changes" - pg_notify channel used by the
  change triggers on user_progress and user_stats.

Core Functions:
--------------
get_db_config():
    Returns {user, password, host, port, dbname} read from the environment.

check_postgres_env_vars():
    Returns True when host, port, dbname, user and password are all set.

Required Environment Variables:
------------------------------
- host: PostgreSQL server hostname
- port: PostgreSQL server port (default: 5432)
- dbname: Target database name
- user: Database username
- password: Database password
"""

import os
from typing import TypeVar

from api.utils.debug import print__persistence_debug

# ==============================================================================
# RETRY CONFIGURATION CONSTANTS
# ==============================================================================
DEFAULT_MAX_RETRIES = 2  # Standard retry attempts for queries and updates
STORE_CREATION_MAX_RETRIES = 2  # Retry attempts for store initialization
RETRY_MAX_DELAY = 30  # Cap (seconds) of the exponential backoff

# ==============================================================================
# CONNECTION TIMEOUT CONFIGURATION
# ==============================================================================
CONNECT_TIMEOUT = 90  # Initial connection timeout (seconds) for cloud databases
TCP_USER_TIMEOUT = 240000  # TCP-level timeout in milliseconds

KEEPALIVES_IDLE = 300  # Time (seconds) before first keepalive probe
KEEPALIVES_INTERVAL = 30  # Interval (seconds) between keepalive probes
KEEPALIVES_COUNT = 3  # Failed probes before declaring the connection dead

# ==============================================================================
# CONNECTION POOL CONFIGURATION
# ==============================================================================
DEFAULT_POOL_MIN_SIZE = 2
DEFAULT_POOL_MAX_SIZE = 10
DEFAULT_POOL_TIMEOUT = 60  # Max wait (seconds) for a pooled connection
DEFAULT_MAX_IDLE = 600  # Idle timeout (seconds) before closure
DEFAULT_MAX_LIFETIME = 3600  # Max connection lifetime (seconds)

# ==============================================================================
# STORE SELECTION AND REALTIME
# ==============================================================================
IN_MEMORY_FALLBACK = os.environ.get("InMemoryStore_fallback", "1") == "1"
REALTIME_CHANNEL = "realtime_changes"
APPLICATION_NAME_PREFIX = "ai_roadmap"

# ==============================================================================
# TYPE VARIABLES
# ==============================================================================
T = TypeVar("T")


# ==============================================================================
# UTILITY FUNCTIONS
# ==============================================================================
def get_db_config():
    """Extract PostgreSQL connection parameters from environment variables.

    Returns:
        dict: {user, password, host, port, dbname}. Port falls back to 5432.
    """
    print__persistence_debug(
        "DB CONFIG START: Reading PostgreSQL configuration from environment"
    )
    config = {
        "user": os.environ.get("user"),
        "password": os.environ.get("password"),
        "host": os.environ.get("host"),
        "port": int(os.environ.get("port", 5432)),
        "dbname": os.environ.get("dbname"),
    }
    # Password is not logged
    print__persistence_debug(
        f"DB CONFIG RESULT: host: {config['host']}, port: {config['port']}, "
        f"dbname: {config['dbname']}, user: {config['user']}"
    )
    return config


def check_postgres_env_vars():
    """Validate that all required PostgreSQL environment variables are set.

    Returns:
        bool: True if host, port, dbname, user and password are all non-empty.
    """
    required_vars = ["host", "port", "dbname", "user", "password"]

    missing_vars = [var for var in required_vars if not os.environ.get(var)]

    if missing_vars:
        print__persistence_debug(
            f"ENV VARS MISSING: Missing required environment variables: {missing_vars}"
        )
        return False

    print__persistence_debug(
        "ENV VARS COMPLETE: All required PostgreSQL environment variables are set"
    )
    return True
