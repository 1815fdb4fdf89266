"""In-process publish/subscribe hub for table change events.

Channels are named ``<table>_<user_id>`` (for example ``user_progress_42``).
Change events come either from the in-memory store directly or from the
PostgreSQL LISTEN connection, and always have the shape
``{table, type, user_id, new, old}``.

Callbacks are plain functions called on the event loop thread; they must not
block. WebSocket connections push events onto their own queue.
"""

from __future__ import annotations

import itertools
from collections import defaultdict
from typing import Callable, Optional

from api.config.settings import REALTIME_ENABLED
from api.utils.debug import print__realtime_debug


class Subscription:
    __slots__ = ("id", "channel", "callback")

    def __init__(self, subscription_id: int, channel: str, callback: Callable):
        self.id = subscription_id
        self.channel = channel
        self.callback = callback

    def __repr__(self):
        return f"Subscription(id={self.id}, channel={self.channel!r})"


class RealtimeHub:
    def __init__(self, enabled: bool = REALTIME_ENABLED):
        self._channels = defaultdict(dict)
        self._ids = itertools.count(1)
        self.available = enabled
        self.mode = "memory" if enabled else "disabled"
        self.unavailable_reason = None if enabled else "REALTIME_ENABLED=0"

    @staticmethod
    def channel_name(table: str, user_id) -> str:
        return f"{table}_{user_id}"

    def subscribe(self, channel: str, callback: Callable) -> Optional[Subscription]:
        """Register a callback, or return None when realtime is unavailable."""
        if not self.available:
            print__realtime_debug(
                f"⚠ Realtime unavailable ({self.unavailable_reason}), not subscribing to {channel}"
            )
            return None
        subscription = Subscription(next(self._ids), channel, callback)
        self._channels[channel][subscription.id] = subscription
        print__realtime_debug(f"📡 Subscribed to {channel} (#{subscription.id})")
        return subscription

    def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        if subscription is None:
            return
        subscribers = self._channels.get(subscription.channel)
        if not subscribers:
            return
        subscribers.pop(subscription.id, None)
        if not subscribers:
            del self._channels[subscription.channel]
        print__realtime_debug(f"🔌 Unsubscribed from {subscription.channel} (#{subscription.id})")

    def publish_change(
        self,
        table: str,
        event_type: str,
        user_id,
        new: Optional[dict],
        old: Optional[dict],
    ) -> int:
        """Dispatch a change to the subscribers of ``<table>_<user_id>``.

        Returns the number of callbacks invoked. A failing callback is logged
        and does not stop delivery to the others.
        """
        channel = self.channel_name(table, user_id)
        subscribers = list(self._channels.get(channel, {}).values())
        if not subscribers:
            return 0

        change = {
            "table": table,
            "type": event_type,
            "user_id": user_id,
            "new": new,
            "old": old,
        }
        delivered = 0
        for subscription in subscribers:
            try:
                subscription.callback(change)
                delivered += 1
            except Exception as exc:
                print__realtime_debug(
                    f"❌ Subscriber #{subscription.id} on {channel} failed: {exc}"
                )
        print__realtime_debug(f"📣 {event_type} on {channel} delivered to {delivered}")
        return delivered

    def mark_unavailable(self, reason: str) -> None:
        self.available = False
        self.mode = "disabled"
        self.unavailable_reason = reason
        print__realtime_debug(f"⚠ Realtime marked unavailable: {reason}")

    def mark_available(self, mode: str) -> None:
        self.available = True
        self.mode = mode
        self.unavailable_reason = None

    def cleanup(self) -> None:
        self._channels.clear()

    def channel_count(self) -> int:
        return len(self._channels)


_REALTIME_HUB: Optional[RealtimeHub] = None


def get_realtime_hub() -> RealtimeHub:
    global _REALTIME_HUB
    if _REALTIME_HUB is None:
        _REALTIME_HUB = RealtimeHub()
    return _REALTIME_HUB


def reset_realtime_hub() -> RealtimeHub:
    """Replace the global hub with a fresh one."""
    global _REALTIME_HUB
    if _REALTIME_HUB is not None:
        _REALTIME_HUB.cleanup()
    _REALTIME_HUB = RealtimeHub()
    return _REALTIME_HUB
