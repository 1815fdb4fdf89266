"""
Utility functions package for the API server.

This package contains debug utilities, memory monitoring, rate limiting,
and the session monitor used by the AI Roadmap API.
"""

# Debug utilities
from .debug import (
    print__ai_router_debug,
    print__chromadb_debug,
    print__debug,
    print__memory_monitoring,
    print__persistence_debug,
    print__progress_debug,
    print__realtime_debug,
    print__roadmap_debug,
    print__session_debug,
    print__startup_debug,
    print__token_debug,
    print__youtube_debug,
)

# Memory utilities
from .memory import log_comprehensive_error, log_memory_usage

# Session monitor
from .session_monitor import expire_sessions, start_session_monitor, stop_session_monitor

# Rate limiting utilities
from .rate_limiting import (
    check_rate_limit,
    check_rate_limit_with_throttling,
    wait_for_rate_limit,
)

__all__ = [
    "print__ai_router_debug",
    "print__chromadb_debug",
    "print__debug",
    "print__memory_monitoring",
    "print__persistence_debug",
    "print__progress_debug",
    "print__realtime_debug",
    "print__roadmap_debug",
    "print__session_debug",
    "print__startup_debug",
    "print__token_debug",
    "print__youtube_debug",
    "log_comprehensive_error",
    "log_memory_usage",
    "check_rate_limit",
    "check_rate_limit_with_throttling",
    "wait_for_rate_limit",
    "expire_sessions",
    "start_session_monitor",
    "stop_session_monitor",
]
