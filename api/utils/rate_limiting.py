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

# Standard imports
import asyncio
import time

# Import rate limiting globals from api.config.settings
from api.config.settings import (
    RATE_LIMIT_BURST,
    RATE_LIMIT_MAX_WAIT,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    rate_limit_storage,
)
from api.utils.debug import print__debug

BURST_WINDOW_SECONDS = 10

_last_sweep = 0.0


def cleanup_rate_limit_storage(now: float = None) -> int:
    """Drop clients with no request inside the window. Returns how many were dropped."""
    global _last_sweep
    now = now or time.time()
    _last_sweep = now

    idle_clients = [
        client_ip
        for client_ip, timestamps in rate_limit_storage.items()
        if not any(now - timestamp < RATE_LIMIT_WINDOW for timestamp in timestamps)
    ]
    for client_ip in idle_clients:
        del rate_limit_storage[client_ip]

    if idle_clients:
        print__debug(f"🧹 Dropped {len(idle_clients)} idle rate limit entries")
    return len(idle_clients)


def _prune(client_ip: str, now: float) -> list:
    if now - _last_sweep >= RATE_LIMIT_WINDOW:
        cleanup_rate_limit_storage(now)

    window = [
        timestamp
        for timestamp in rate_limit_storage.get(client_ip, ())
        if now - timestamp < RATE_LIMIT_WINDOW
    ]
    if window:
        rate_limit_storage[client_ip] = window
    else:
        rate_limit_storage.pop(client_ip, None)
    return window


def check_rate_limit_with_throttling(client_ip: str) -> dict:
    """Check rate limits and return throttling information instead of boolean."""
    now = time.time()
    window = _prune(client_ip, now)

    recent_requests = [
        timestamp for timestamp in window if now - timestamp < BURST_WINDOW_SECONDS
    ]
    window_requests = len(window)

    suggested_wait = 0
    if len(recent_requests) >= RATE_LIMIT_BURST:
        # Wait until the oldest burst request leaves the burst window
        oldest_burst = min(recent_requests)
        suggested_wait = max(0, BURST_WINDOW_SECONDS - (now - oldest_burst))
    elif window_requests >= RATE_LIMIT_REQUESTS:
        oldest_window = min(window)
        suggested_wait = max(0, RATE_LIMIT_WINDOW - (now - oldest_window))

    return {
        "allowed": len(recent_requests) < RATE_LIMIT_BURST
        and window_requests < RATE_LIMIT_REQUESTS,
        "suggested_wait": min(suggested_wait, RATE_LIMIT_MAX_WAIT),
        "burst_count": len(recent_requests),
        "window_count": window_requests,
        "burst_limit": RATE_LIMIT_BURST,
        "window_limit": RATE_LIMIT_REQUESTS,
    }


async def wait_for_rate_limit(client_ip: str) -> bool:
    """Wait for rate limit to allow request, with maximum wait time."""
    max_attempts = 3

    for attempt in range(max_attempts):
        rate_info = check_rate_limit_with_throttling(client_ip)

        if rate_info["allowed"]:
            rate_limit_storage[client_ip].append(time.time())
            return True

        if rate_info["suggested_wait"] <= 0:
            await asyncio.sleep(0.1)
            continue

        print__debug(
            f"⏳ Throttling request from {client_ip}: waiting {rate_info['suggested_wait']:.1f}s "
            f"(burst: {rate_info['burst_count']}/{rate_info['burst_limit']}, "
            f"window: {rate_info['window_count']}/{rate_info['window_limit']}, attempt {attempt + 1})"
        )
        await asyncio.sleep(rate_info["suggested_wait"])

    print__debug(f"❌ Rate limit exceeded after {max_attempts} attempts for {client_ip}")
    return False


def check_rate_limit(client_ip: str) -> bool:
    """Check if client IP is within rate limits and record the request."""
    now = time.time()
    window = _prune(client_ip, now)

    recent_requests = [
        timestamp for timestamp in window if now - timestamp < BURST_WINDOW_SECONDS
    ]
    if len(recent_requests) >= RATE_LIMIT_BURST:
        return False
    if len(window) >= RATE_LIMIT_REQUESTS:
        return False

    rate_limit_storage[client_ip].append(now)
    return True
