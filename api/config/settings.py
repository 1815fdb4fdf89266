"""
MODULE_DESCRIPTION: API Configuration Settings - Global State and Application Constants

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

This module is the central configuration hub for the AI Roadmap API. It
defines global constants, shared state and configuration parameters that are
read throughout the application.

The module manages:
    - Application startup tracking (uptime)
    - Rate limiting configuration and storage
    - Per-IP throttling semaphores
    - JWT authentication settings (app-issued tokens and auth cookie)
    - Session token lifetime and the interval of the session monitor
    - Realtime sync toggle

===================================================================================
GLOBAL VARIABLES
===================================================================================

Application Lifecycle:
    start_time (float)
        - Unix timestamp when the application module was imported
        - Used for uptime calculations in /health

Rate Limiting:
    rate_limit_storage (defaultdict[str, list])
        - Request timestamps per client IP (sliding window)
    RATE_LIMIT_REQUESTS / RATE_LIMIT_WINDOW / RATE_LIMIT_BURST / RATE_LIMIT_MAX_WAIT
        - 100 requests per 60s window, 20 burst, wait at most 5 seconds

Throttling:
    throttle_semaphores (defaultdict[str, asyncio.Semaphore])
        - Max 8 concurrent requests per IP

Authentication:
    JWT_SECRET (str)
        - HMAC secret for app-issued JWTs (HS256)
    JWT_ALGORITHM (str)
    JWT_EXPIRES_DAYS (int)
        - Lifetime of the access token and of the auth_token cookie (7 days)
    AUTH_COOKIE_NAME (str)
    PASSWORD_MIN_LENGTH (int)

Sessions:
    SESSION_DURATION_HOURS (int)
        - Fixed 24h lifetime of the session token
    SESSION_CHECK_INTERVAL (int)
        - Seconds between session monitor sweeps

Realtime:
    REALTIME_ENABLED (bool)
        - "0" disables subscriptions; clients keep their snapshot

===================================================================================
CONFIGURATION PATTERNS
===================================================================================

Environment Variable Loading:
    - Load .env file early (before other imports)
    - Use os.environ.get() with defaults
    - Type casting for numeric values
    - Boolean parsing ("1" = True, "0" = False)

===================================================================================
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

# Standard imports
import time
from collections import defaultdict

# ============================================================
# CONFIGURATION AND CONSTANTS
# ============================================================

# Application startup time for uptime tracking
start_time = time.time()

# Track total requests processed
_REQUEST_COUNT = 0

# RATE LIMITING: Global rate limiting storage
rate_limit_storage = defaultdict(list)
RATE_LIMIT_REQUESTS = 100  # requests per window
RATE_LIMIT_WINDOW = 60  # 60 seconds window
RATE_LIMIT_BURST = 20  # burst limit for rapid requests
RATE_LIMIT_MAX_WAIT = 5  # maximum seconds to wait before giving up

# Throttling semaphores per IP to limit concurrent requests
throttle_semaphores = defaultdict(
    lambda: asyncio.Semaphore(8)
)  # Max 8 concurrent requests per IP

# ============================================================
# AUTHENTICATION
# ============================================================
JWT_SECRET = os.environ.get("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_DAYS = int(os.environ.get("JWT_EXPIRES_DAYS", "7"))
AUTH_COOKIE_NAME = "auth_token"
AUTH_COOKIE_SECURE = os.environ.get("AUTH_COOKIE_SECURE", "0") == "1"
PASSWORD_MIN_LENGTH = 6

# ============================================================
# SESSIONS
# ============================================================
SESSION_DURATION_HOURS = 24  # fixed lifetime of a session token
SESSION_CHECK_INTERVAL = int(
    os.environ.get("SESSION_CHECK_INTERVAL", "300")
)  # seconds between session sweeps
SESSION_MONITOR_ENABLED = os.environ.get("SESSION_MONITOR_ENABLED", "1") == "1"

# ============================================================
# REALTIME
# ============================================================
REALTIME_ENABLED = os.environ.get("REALTIME_ENABLED", "1") == "1"

# ============================================================
# GAMIFICATION
# ============================================================
ROADMAP_GENERATION_XP = 50  # XP granted when a signed-in user generates a roadmap
