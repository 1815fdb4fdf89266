"""
MODULE_DESCRIPTION: Realtime Endpoints - WebSocket Sync and Status

WS /realtime/ws?token=<JWT>[&session=<session token>]
    The connection is accepted and then closed with code 4401 when the token
    is missing, invalid or belongs to an unknown user, or when a session token
    is sent that is not a live session of that user. Otherwise the client
    receives a snapshot of its progress rows and stats, followed by
    progress-updated / stats-updated events as its data changes.

    A socket opened with a session token receives session-expired when that
    session expires. Sockets opened without one receive it only once the
    user has no live session left.

    Client messages (JSON with an "event" key):
        join-room        {"room"}            join a room
        progress-update  {"room", "data"}    relayed to the room as progress-updated
        roadmap-shared   {"data"}            broadcast as new-roadmap-shared
        ping                                 answered with pong

GET /realtime/status
    Whether subscriptions are currently available, plus counters.
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
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from api.dependencies.auth import authenticate_token
from api.models.responses import RealtimeStatusResponse
from api.utils.debug import print__realtime_debug
from persistence.sessions import validate_session
from persistence.store.factory import get_global_store
from realtime.hub import get_realtime_hub
from realtime.rooms import ConnectionManager, RealtimeConnection, get_connection_manager
from realtime.service import RealtimeService

WS_UNAUTHORIZED_CODE = 4401

router = APIRouter(prefix="/realtime", tags=["realtime"])


@router.get("/status", response_model=RealtimeStatusResponse)
async def realtime_status():
    hub = get_realtime_hub()
    return {
        "available": hub.available,
        "mode": hub.mode,
        "reason": hub.unavailable_reason,
        "channels": hub.channel_count(),
        "connections": get_connection_manager().connection_count(),
    }


# ==============================================================================
# CLIENT MESSAGES
# ==============================================================================
def handle_client_message(
    manager: ConnectionManager, connection: RealtimeConnection, message
) -> None:
    if not isinstance(message, dict):
        connection.send("error", {"message": "Messages must be JSON objects"})
        return

    event = message.get("event")
    room = message.get("room")

    if event == "ping":
        connection.send("pong")
    elif event == "join-room":
        if not room:
            connection.send("error", {"message": "room is required"})
            return
        manager.join_room(str(room), connection)
    elif event == "progress-update":
        if not room:
            connection.send("error", {"message": "room is required"})
            return
        manager.relay_to_room(str(room), "progress-updated", message.get("data"), connection)
    elif event == "roadmap-shared":
        manager.broadcast("new-roadmap-shared", message.get("data"))
    else:
        connection.send("error", {"message": f"Unknown event: {event}"})


async def _authenticate(token: Optional[str]) -> Optional[dict]:
    if not token:
        return None
    try:
        return await authenticate_token(token)
    except HTTPException as e:
        print__realtime_debug(f"❌ WebSocket auth rejected: {e.detail}")
        return None


async def _authenticate_session(user: dict, session_token: Optional[str]) -> bool:
    if session_token is None:
        return True
    store = await get_global_store()
    session, error = await validate_session(store, session_token)
    if error:
        print__realtime_debug(f"❌ WebSocket session rejected: {error}")
        return False
    return str(session["userId"]) == str(user["id"])


async def _drain_queue(connection: RealtimeConnection) -> None:
    while True:
        message = await connection.queue.get()
        try:
            await connection.websocket.send_json(jsonable_encoder(message))
        except Exception as e:
            print__realtime_debug(f"⚠ Connection #{connection.id} send failed: {e}")
            return


# ==============================================================================
# WEBSOCKET ENDPOINT
# ==============================================================================
@router.websocket("/ws")
async def realtime_ws(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session: Optional[str] = Query(None),
):
    await websocket.accept()

    user = await _authenticate(token)
    if user is None or not await _authenticate_session(user, session):
        await websocket.close(code=WS_UNAUTHORIZED_CODE)
        return

    user_id = user["id"]
    manager = get_connection_manager()
    connection = manager.register(websocket, user_id, session)
    service = RealtimeService()
    sender = None

    try:
        store = await get_global_store()
        await websocket.send_json(
            jsonable_encoder(
                {
                    "event": "snapshot",
                    "progress": await store.list_progress(user_id),
                    "stats": await store.get_stats(user_id),
                }
            )
        )

        service.subscribe_to_user_progress(user_id, connection.send)
        service.subscribe_to_user_stats(user_id, connection.send)
        sender = asyncio.create_task(_drain_queue(connection))

        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                connection.send("error", {"message": "Invalid JSON"})
                continue
            handle_client_message(manager, connection, message)
    except WebSocketDisconnect:
        print__realtime_debug(f"👋 User {user_id} disconnected")
    finally:
        if sender is not None:
            sender.cancel()
        service.cleanup()
        manager.disconnect(connection)
