"""PostgreSQL LISTEN/NOTIFY bridge into the realtime hub.

The change triggers on user_progress and user_stats send JSON payloads on the
``realtime_changes`` channel. PostgresChangeListener holds one dedicated
autocommit connection, LISTENs on that channel and republishes every payload
through RealtimeHub.publish_change with rows mapped to API records.

If the connection cannot be opened or drops, realtime is marked unavailable
and the listener stops without raising; clients keep their snapshots.
"""

from __future__ import annotations

import asyncio
import json
from typing import Optional

from api.config.settings import REALTIME_ENABLED
from api.utils.debug import print__realtime_debug
from persistence.config import REALTIME_CHANNEL
from persistence.database.connection import get_direct_connection
from persistence.records import merge_stats
from persistence.store.postgres_store import progress_row_to_record
from realtime.hub import RealtimeHub, get_realtime_hub


def _row_to_payload(table: str, row: Optional[dict]):
    if row is None:
        return None
    if table == "user_stats":
        return merge_stats(row.get("stats"))
    if table == "user_progress":
        return progress_row_to_record(row)
    return row


def handle_notification(hub: RealtimeHub, raw_payload: str) -> int:
    """Decode one NOTIFY payload and publish it. Returns callbacks invoked."""
    try:
        change = json.loads(raw_payload)
    except json.JSONDecodeError as exc:
        print__realtime_debug(f"❌ Malformed notification payload: {exc}")
        return 0

    table = change.get("table")
    return hub.publish_change(
        table,
        change.get("type"),
        change.get("user_id"),
        _row_to_payload(table, change.get("new")),
        _row_to_payload(table, change.get("old")),
    )


class PostgresChangeListener:
    def __init__(self, hub: Optional[RealtimeHub] = None):
        self.hub = hub or get_realtime_hub()
        self._task: Optional[asyncio.Task] = None

    async def _listen_loop(self) -> None:
        print__realtime_debug(f"👂 [listener] LISTEN {REALTIME_CHANNEL}")
        try:
            async with get_direct_connection(autocommit=True) as conn:
                await conn.execute(f"LISTEN {REALTIME_CHANNEL}")
                self.hub.mark_available("postgres")
                async for notify in conn.notifies():
                    handle_notification(self.hub, notify.payload)
        except asyncio.CancelledError:
            print__realtime_debug("🛑 [listener] Task cancelled")
            raise
        except Exception as exc:
            self.hub.mark_unavailable(f"listener failed: {exc}")

    def start(self) -> asyncio.Task:
        if self._task and not self._task.done():
            return self._task
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._listen_loop())
        return self._task

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None


_LISTENER: Optional[PostgresChangeListener] = None


def start_realtime(store) -> Optional[asyncio.Task]:
    """Configure realtime delivery for the active store.

    Postgres stores get a LISTEN task; the in-memory store already publishes
    into the hub, so nothing is started for it.
    """
    global _LISTENER
    hub = get_realtime_hub()

    if not REALTIME_ENABLED:
        hub.mark_unavailable("REALTIME_ENABLED=0")
        return None

    if getattr(store, "mode", None) != "postgres":
        hub.mark_available("memory")
        print__realtime_debug("✅ Realtime running in-process (memory store)")
        return None

    if _LISTENER is None:
        _LISTENER = PostgresChangeListener(hub)
    return _LISTENER.start()


async def stop_realtime() -> None:
    global _LISTENER
    if _LISTENER is not None:
        await _LISTENER.stop()
        _LISTENER = None
    get_realtime_hub().cleanup()
