"""
Tests for session tokens, expiry, validation and the session monitor pass.
"""

import os
import re
import sys
from datetime import datetime, timedelta, timezone
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

import api.utils.session_monitor as session_monitor
from api.utils.session_monitor import expire_sessions, notify_session_expired
from persistence.sessions import (
    create_user_session,
    generate_session_token,
    get_session_expiry,
    is_session_expired,
    random_base36,
    validate_session,
)
from realtime.rooms import ConnectionManager

TOKEN_PATTERN = re.compile(r"^session_\d{13}_[0-9a-z]{9}$")
NOW = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def test_generate_session_token_format():
    tokens = {generate_session_token() for _ in range(20)}
    assert len(tokens) == 20
    for token in tokens:
        assert TOKEN_PATTERN.match(token), token


def test_random_base36():
    value = random_base36(12)
    assert len(value) == 12
    assert re.fullmatch(r"[0-9a-z]+", value)


def test_session_expiry_is_24_hours():
    assert get_session_expiry(NOW) == NOW + timedelta(hours=24)


EXPIRY_CASES = [
    {"test_id": "EXP-001", "session": None, "expected": True},
    {"test_id": "EXP-002", "session": {"userId": "u"}, "expected": True},
    {"test_id": "EXP-003", "session": {"userId": "u", "expiresAt": (NOW - timedelta(seconds=1)).isoformat()}, "expected": True},
    {"test_id": "EXP-004", "session": {"userId": "u", "expiresAt": NOW.isoformat()}, "expected": True},
    {"test_id": "EXP-005", "session": {"userId": "u", "expiresAt": (NOW + timedelta(hours=1)).isoformat()}, "expected": False},
    {"test_id": "EXP-006", "session": {"userId": "u", "expiresAt": "2024-05-01T09:00:00Z"}, "expected": False},
    {"test_id": "EXP-007", "session": {"userId": "u", "expiresAt": datetime(2024, 5, 1, 7, 0)}, "expected": True},
]


@pytest.mark.parametrize("case", EXPIRY_CASES, ids=[c["test_id"] for c in EXPIRY_CASES])
def test_is_session_expired(case):
    assert is_session_expired(case["session"], NOW) is case["expected"]


@pytest.mark.asyncio
async def test_create_and_validate_session(store):
    user = await store.create_user("s@example.com", "S", "hash")

    session = await create_user_session(store, user["id"])

    assert TOKEN_PATTERN.match(session["token"])
    assert session["userId"] == user["id"]
    valid, reason = await validate_session(store, session["token"])
    assert reason is None
    assert valid["token"] == session["token"]


@pytest.mark.asyncio
async def test_validate_session_unknown_token(store):
    session, reason = await validate_session(store, "session_0_missing00")
    assert session is None
    assert reason == "Session not found"


@pytest.mark.asyncio
async def test_validate_session_deletes_expired(store):
    await store.create_session("u1", "session_1_expired00", NOW - timedelta(hours=1))

    session, reason = await validate_session(store, "session_1_expired00")

    assert session is None
    assert reason == "Session expired"
    assert await store.get_session("session_1_expired00") is None


class FakeSocket:
    pass


def test_notify_session_expired_targets_owner():
    manager = ConnectionManager()
    owner = manager.register(FakeSocket(), "u1")
    other = manager.register(FakeSocket(), "u2")

    notified = notify_session_expired(
        manager, {"userId": "u1", "expiresAt": "2024-05-01T08:00:00+00:00"}
    )

    assert notified == 1
    assert owner.queue.get_nowait() == {
        "event": "session-expired",
        "reason": "Session expired",
        "expiresAt": "2024-05-01T08:00:00+00:00",
    }
    assert other.queue.empty()


NOTIFY_CASES = [
    {"test_id": "NOT-001", "bound_to": "session_1_a", "live_left": False, "notified": True},
    {"test_id": "NOT-002", "bound_to": "session_1_a", "live_left": True, "notified": True},
    {"test_id": "NOT-003", "bound_to": "session_1_b", "live_left": False, "notified": False},
    {"test_id": "NOT-004", "bound_to": "session_1_b", "live_left": True, "notified": False},
    {"test_id": "NOT-005", "bound_to": None, "live_left": False, "notified": True},
    {"test_id": "NOT-006", "bound_to": None, "live_left": True, "notified": False},
]


@pytest.mark.parametrize("case", NOTIFY_CASES, ids=[c["test_id"] for c in NOTIFY_CASES])
def test_notify_session_expired_respects_session_binding(case):
    manager = ConnectionManager()
    connection = manager.register(FakeSocket(), "u1", case["bound_to"])

    notified = notify_session_expired(
        manager, {"userId": "u1", "token": "session_1_a"}, case["live_left"]
    )

    assert notified == (1 if case["notified"] else 0)
    assert connection.queue.empty() is not case["notified"]


@pytest.mark.asyncio
async def test_expire_sessions_leaves_other_session_sockets_alone(store):
    manager = ConnectionManager()
    old_tab = manager.register(FakeSocket(), "u1", "session_1_old000000")
    new_tab = manager.register(FakeSocket(), "u1", "session_1_new000000")
    unbound = manager.register(FakeSocket(), "u1")
    await store.create_session("u1", "session_1_old000000", NOW - timedelta(minutes=5))
    await store.create_session("u1", "session_1_new000000", NOW + timedelta(hours=3))

    expired = await expire_sessions(store, manager, NOW)

    assert [s["token"] for s in expired] == ["session_1_old000000"]
    assert old_tab.queue.get_nowait()["event"] == "session-expired"
    assert new_tab.queue.empty()
    assert unbound.queue.empty()


@pytest.mark.asyncio
async def test_list_user_sessions_skips_expired(store):
    await store.create_session("u1", "session_1_old000000", NOW - timedelta(minutes=5))
    await store.create_session("u1", "session_1_new000000", NOW + timedelta(hours=3))
    await store.create_session("u2", "session_2_new000000", NOW + timedelta(hours=3))

    sessions = await store.list_user_sessions("u1", NOW)

    assert [s["token"] for s in sessions] == ["session_1_new000000"]


@pytest.mark.asyncio
async def test_expire_sessions_pass(store):
    manager = ConnectionManager()
    connection = manager.register(FakeSocket(), "u1")
    await store.create_session("u1", "session_1_old000000", NOW - timedelta(minutes=5))
    await store.create_session("u2", "session_2_fresh00000", NOW + timedelta(hours=3))

    expired = await expire_sessions(store, manager, NOW)

    assert [s["token"] for s in expired] == ["session_1_old000000"]
    assert await store.get_session("session_1_old000000") is None
    assert await store.get_session("session_2_fresh00000") is not None
    assert connection.queue.get_nowait()["event"] == "session-expired"


@pytest.mark.asyncio
async def test_expire_sessions_nothing_to_do(store):
    manager = ConnectionManager()
    assert await expire_sessions(store, manager, NOW) == []


@pytest.mark.asyncio
async def test_session_monitor_start_and_stop(monkeypatch):
    monkeypatch.setattr(session_monitor, "SESSION_MONITOR_ENABLED", False)
    assert session_monitor.start_session_monitor() is None

    monkeypatch.setattr(session_monitor, "SESSION_MONITOR_ENABLED", True)
    task = session_monitor.start_session_monitor()
    assert task is not None
    assert session_monitor.start_session_monitor() is task

    await session_monitor.stop_session_monitor()
    assert task.cancelled()
    assert session_monitor._session_monitor_task is None
