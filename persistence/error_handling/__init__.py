"""Error handling for the persistence package.

Retry decorators for transient connection failures against PostgreSQL.
"""

from persistence.error_handling.retry_decorators import (
    is_ssl_connection_error,
    retry_on_ssl_connection_error,
)
