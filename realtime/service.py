"""Per-client realtime subscriptions.

One RealtimeService is created per WebSocket connection. It translates raw
table changes into client events:

    user_progress change -> ("progress-updated", {type, progress})
    user_stats change    -> ("stats-updated", {type, stats})

When realtime is unavailable every subscribe call returns None and the client
keeps working from the snapshot it received on connect.
"""

from __future__ import annotations

from typing import Callable, Optional

from api.utils.debug import print__realtime_debug
from realtime.hub import RealtimeHub, Subscription, get_realtime_hub

EventCallback = Callable[[str, dict], None]


class RealtimeService:
    def __init__(self, hub: Optional[RealtimeHub] = None):
        self.hub = hub or get_realtime_hub()
        self._subscriptions = []

    def _subscribe(self, table: str, user_id, handler) -> Optional[Subscription]:
        channel = RealtimeHub.channel_name(table, user_id)
        subscription = self.hub.subscribe(channel, handler)
        if subscription is not None:
            self._subscriptions.append(subscription)
        return subscription

    def subscribe_to_user_progress(self, user_id, callback: EventCallback):
        def handler(change):
            callback(
                "progress-updated",
                {"type": change["type"], "progress": change["new"] or change["old"]},
            )

        return self._subscribe("user_progress", user_id, handler)

    def subscribe_to_user_stats(self, user_id, callback: EventCallback):
        def handler(change):
            callback(
                "stats-updated",
                {"type": change["type"], "stats": change["new"] or change["old"]},
            )

        return self._subscribe("user_stats", user_id, handler)

    def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        if subscription is None:
            return
        self.hub.unsubscribe(subscription)
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def cleanup(self) -> None:
        for subscription in list(self._subscriptions):
            self.hub.unsubscribe(subscription)
        print__realtime_debug(f"🧹 Cleaned up {len(self._subscriptions)} subscriptions")
        self._subscriptions.clear()
