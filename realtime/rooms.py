"""WebSocket connection tracking and rooms.

Each accepted WebSocket is wrapped in a RealtimeConnection that owns an
outbound queue; hub callbacks and room relays only enqueue, and the endpoint's
sender task drains the queue onto the socket.

Rooms carry the socket events of the web client:
    join-room        -> the connection joins ``room``
    progress-update  -> relayed to the other members of ``room`` as progress-updated
    roadmap-shared   -> broadcast to every connection as new-roadmap-shared
"""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict
from typing import Optional

from api.utils.debug import print__realtime_debug


class RealtimeConnection:
    def __init__(
        self, connection_id: int, websocket, user_id: str, session_token: Optional[str] = None
    ):
        self.id = connection_id
        self.websocket = websocket
        self.user_id = user_id
        # session the socket was opened with, if the client sent one
        self.session_token = session_token
        self.queue: asyncio.Queue = asyncio.Queue()
        self.rooms = set()

    def send(self, event: str, payload: Optional[dict] = None) -> None:
        message = {"event": event}
        message.update(payload or {})
        self.queue.put_nowait(message)


class ConnectionManager:
    """In-memory registry of active realtime WebSocket connections and rooms."""

    def __init__(self):
        self.connections = {}
        self.rooms = defaultdict(set)
        self._ids = itertools.count(1)

    def register(
        self, websocket, user_id: str, session_token: Optional[str] = None
    ) -> RealtimeConnection:
        connection = RealtimeConnection(next(self._ids), websocket, user_id, session_token)
        self.connections[connection.id] = connection
        print__realtime_debug(f"✅ Connection #{connection.id} registered for user {user_id}")
        return connection

    def disconnect(self, connection: RealtimeConnection) -> None:
        for room in list(connection.rooms):
            members = self.rooms.get(room)
            if members is not None:
                members.discard(connection.id)
                if not members:
                    del self.rooms[room]
        connection.rooms.clear()
        self.connections.pop(connection.id, None)
        print__realtime_debug(f"🔌 Connection #{connection.id} disconnected")

    def join_room(self, room: str, connection: RealtimeConnection) -> None:
        self.rooms[room].add(connection.id)
        connection.rooms.add(room)
        print__realtime_debug(f"👤 Connection #{connection.id} joined room {room}")

    def relay_to_room(
        self, room: str, event: str, data, sender: Optional[RealtimeConnection] = None
    ) -> int:
        """Send to every member of ``room`` except the sender."""
        delivered = 0
        for connection_id in list(self.rooms.get(room, ())):
            if sender is not None and connection_id == sender.id:
                continue
            connection = self.connections.get(connection_id)
            if connection is None:
                continue
            connection.send(event, {"room": room, "data": data})
            delivered += 1
        return delivered

    def broadcast(self, event: str, data) -> int:
        for connection in list(self.connections.values()):
            connection.send(event, {"data": data})
        return len(self.connections)

    def connection_count(self) -> int:
        return len(self.connections)


_CONNECTION_MANAGER: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    global _CONNECTION_MANAGER
    if _CONNECTION_MANAGER is None:
        _CONNECTION_MANAGER = ConnectionManager()
    return _CONNECTION_MANAGER


def reset_connection_manager() -> ConnectionManager:
    global _CONNECTION_MANAGER
    _CONNECTION_MANAGER = ConnectionManager()
    return _CONNECTION_MANAGER
