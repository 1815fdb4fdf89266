"""
Tests for the sliding-window rate limiter and its per-client bookkeeping.
"""

import os
import sys
import time
from pathlib import Path

# CRITICAL: Set Windows event loop policy FIRST, before other imports
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

try:
    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd())

sys.path.insert(0, str(BASE_DIR))

import pytest

import api.utils.rate_limiting as rate_limiting
from api.config.settings import RATE_LIMIT_WINDOW, rate_limit_storage
from api.utils.rate_limiting import (
    check_rate_limit,
    check_rate_limit_with_throttling,
    cleanup_rate_limit_storage,
    wait_for_rate_limit,
)


def stale(now: float) -> float:
    return now - RATE_LIMIT_WINDOW - 5


def test_check_rate_limit_records_request():
    assert check_rate_limit("10.0.0.1") is True
    assert len(rate_limit_storage["10.0.0.1"]) == 1


def test_client_with_expired_window_is_dropped():
    now = time.time()
    rate_limit_storage["10.0.0.2"] = [stale(now), stale(now) - 1]

    info = check_rate_limit_with_throttling("10.0.0.2")

    assert info["allowed"] is True
    assert info["window_count"] == 0
    assert "10.0.0.2" not in rate_limit_storage


def test_cleanup_drops_only_idle_clients():
    now = time.time()
    rate_limit_storage["idle-a"] = [stale(now)]
    rate_limit_storage["idle-b"] = []
    rate_limit_storage["active"] = [stale(now), now - 1]

    dropped = cleanup_rate_limit_storage(now)

    assert dropped == 2
    assert set(rate_limit_storage) == {"active"}


def test_other_clients_are_swept_on_the_next_window(monkeypatch):
    now = time.time()
    rate_limit_storage["gone-away"] = [stale(now)]
    monkeypatch.setattr(rate_limiting, "_last_sweep", now - RATE_LIMIT_WINDOW)

    assert check_rate_limit("10.0.0.3") is True

    assert "gone-away" not in rate_limit_storage
    assert "10.0.0.3" in rate_limit_storage


def test_sweep_waits_for_a_full_window(monkeypatch):
    now = time.time()
    rate_limit_storage["gone-away"] = [stale(now)]
    monkeypatch.setattr(rate_limiting, "_last_sweep", now)

    check_rate_limit("10.0.0.4")

    assert "gone-away" in rate_limit_storage


@pytest.mark.asyncio
async def test_wait_for_rate_limit_recreates_pruned_entry():
    now = time.time()
    rate_limit_storage["10.0.0.5"] = [stale(now)]

    assert await wait_for_rate_limit("10.0.0.5") is True
    assert len(rate_limit_storage["10.0.0.5"]) == 1


def test_burst_limit_rejects(monkeypatch):
    monkeypatch.setattr(rate_limiting, "RATE_LIMIT_BURST", 2)
    assert check_rate_limit("10.0.0.6") is True
    assert check_rate_limit("10.0.0.6") is True
    assert check_rate_limit("10.0.0.6") is False

    info = check_rate_limit_with_throttling("10.0.0.6")
    assert info["allowed"] is False
    assert 0 < info["suggested_wait"] <= rate_limiting.BURST_WINDOW_SECONDS
