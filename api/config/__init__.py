"""
Configuration package for the API server.

This package contains settings, constants, and configuration management
for the AI Roadmap API.
"""

# Import key configuration items for easier access
from .settings import (  # Application constants; Rate limiting; JWT settings; Sessions; Realtime
    AUTH_COOKIE_NAME,
    BASE_DIR,
    JWT_ALGORITHM,
    JWT_EXPIRES_DAYS,
    JWT_SECRET,
    PASSWORD_MIN_LENGTH,
    RATE_LIMIT_BURST,
    RATE_LIMIT_MAX_WAIT,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    REALTIME_ENABLED,
    ROADMAP_GENERATION_XP,
    SESSION_CHECK_INTERVAL,
    SESSION_DURATION_HOURS,
    _REQUEST_COUNT,
    rate_limit_storage,
    start_time,
    throttle_semaphores,
)

__all__ = [
    "AUTH_COOKIE_NAME",
    "BASE_DIR",
    "JWT_ALGORITHM",
    "JWT_EXPIRES_DAYS",
    "JWT_SECRET",
    "PASSWORD_MIN_LENGTH",
    "RATE_LIMIT_BURST",
    "RATE_LIMIT_MAX_WAIT",
    "RATE_LIMIT_REQUESTS",
    "RATE_LIMIT_WINDOW",
    "REALTIME_ENABLED",
    "ROADMAP_GENERATION_XP",
    "SESSION_CHECK_INTERVAL",
    "SESSION_DURATION_HOURS",
    "_REQUEST_COUNT",
    "rate_limit_storage",
    "start_time",
    "throttle_semaphores",
]
