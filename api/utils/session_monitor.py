"""Background session monitor.

Every SESSION_CHECK_INTERVAL seconds expired user_sessions rows are deleted
and the realtime connections signed in with them receive a ``session-expired``
event. A connection opened without a session token is only told when its
user has no live session left. This is the only scheduled background task the
application runs.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from api.config.settings import SESSION_CHECK_INTERVAL, SESSION_MONITOR_ENABLED
from api.utils.debug import print__session_debug

_session_monitor_task: Optional[asyncio.Task] = None


def _get_uvicorn_logger() -> logging.Logger:
    return logging.getLogger("uvicorn.error")


def notify_session_expired(manager, session: dict, user_has_live_session: bool = False) -> int:
    """Send session-expired to the connections the expired session belongs to.

    Connections bound to another session token are left alone. Unbound
    connections of the owner are notified only when ``user_has_live_session``
    is False.
    """
    notified = 0
    for connection in list(manager.connections.values()):
        if str(connection.user_id) != str(session["userId"]):
            continue
        if connection.session_token is not None:
            if connection.session_token != session.get("token"):
                continue
        elif user_has_live_session:
            continue
        connection.send(
            "session-expired",
            {"reason": "Session expired", "expiresAt": session.get("expiresAt")},
        )
        notified += 1
    return notified


async def expire_sessions(store, manager, now: Optional[datetime] = None) -> list:
    """Run one monitor pass. Returns the expired sessions."""
    now = now or datetime.now(timezone.utc)
    expired = await store.delete_expired_sessions(now)
    for session in expired:
        live_sessions = await store.list_user_sessions(session["userId"], now)
        notified = notify_session_expired(manager, session, bool(live_sessions))
        print__session_debug(
            f"⌛ Session for user {session['userId']} expired ({notified} connection(s) notified)"
        )
    return expired


async def _session_monitor_loop() -> None:
    from persistence.store.factory import get_global_store
    from realtime.rooms import get_connection_manager

    print__session_debug(f"🕐 Session monitor running every {SESSION_CHECK_INTERVAL}s")
    while True:
        await asyncio.sleep(SESSION_CHECK_INTERVAL)
        try:
            store = await get_global_store()
            await expire_sessions(store, get_connection_manager())
        except Exception as e:
            # a failed pass is retried on the next interval
            print__session_debug(f"❌ Session monitor pass failed: {e}")


def start_session_monitor() -> Optional[asyncio.Task]:
    """Start the monitor task if enabled; returns the running task or None."""
    global _session_monitor_task

    if not SESSION_MONITOR_ENABLED:
        print__session_debug("🕐 Session monitor disabled (SESSION_MONITOR_ENABLED=0)")
        return None

    if _session_monitor_task and not _session_monitor_task.done():
        return _session_monitor_task

    try:
        loop = asyncio.get_running_loop()
        _session_monitor_task = loop.create_task(_session_monitor_loop())
        return _session_monitor_task
    except RuntimeError as e:
        print__session_debug(f"❌ Cannot start session monitor - no event loop: {e}")
        return None


async def stop_session_monitor() -> None:
    global _session_monitor_task
    if not _session_monitor_task:
        return

    _session_monitor_task.cancel()
    try:
        await _session_monitor_task
    except asyncio.CancelledError:
        pass
    finally:
        _session_monitor_task = None
        _get_uvicorn_logger().info("[session-monitor] Background task stopped")
        print__session_debug("[session-monitor] Background task stopped")
