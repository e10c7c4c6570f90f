import asyncio
import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from friendmap.core.config import settings
from friendmap.services.socket_service import SocketService, encode_event, get_socket_service
from friendmap.utils.realtime_bus import get_bus, user_channel
from friendmap.utils.security import decode_login_token


logger = logging.getLogger(__name__)

router = APIRouter(tags=["socket"])


async def handle_client_message(user_id: str, websocket: WebSocket, msg: Dict[str, Any], sockets: SocketService) -> None:
    # {"type": "join-room", "room": "<id>"} | {"type": "leave-room"} | {"type": "room-changed", "data": ...}
    msg_type = msg.get("type")
    manager = sockets.manager
    if msg_type == "join-room":
        room = msg.get("room")
        if not room:
            await websocket.send_text(encode_event("error", "room is required"))
            return
        manager.join_room(user_id, websocket, str(room))
    elif msg_type == "leave-room":
        manager.leave_room(websocket)
    elif msg_type == "room-changed":
        room = manager.room_of(websocket)
        if room:
            logger.info("Room changed, emitting to room %s", room)
            await sockets.emit_to_room(room, "room-changed", msg.get("data"), exclude=websocket)
    else:
        await websocket.send_text(encode_event("error", f"Unknown message type: {msg_type}"))


@router.websocket("/ws")
async def socket_endpoint(websocket: WebSocket):
    # token via ?token=... or the login cookie
    token = websocket.query_params.get("token") or websocket.cookies.get(settings.TOKEN_COOKIE_NAME)
    user = decode_login_token(token)
    if not user:
        await websocket.close(code=4401)
        return

    user_id = user["_id"]
    sockets = get_socket_service()
    await sockets.manager.connect(user_id, websocket)

    bus = await get_bus()
    subscriber = None
    sub_task = None
    if bus.enabled:
        # events for this user published by any worker
        subscriber = await bus.subscribe(user_channel(user_id), websocket.send_text)
        sub_task = asyncio.create_task(subscriber.run())

    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except ValueError:
                msg = None
            if not isinstance(msg, dict):
                await websocket.send_text(encode_event("error", "Invalid message payload"))
                continue
            await handle_client_message(user_id, websocket, msg, sockets)
    except WebSocketDisconnect:
        pass
    finally:
        sockets.manager.disconnect(user_id, websocket)
        if subscriber is not None:
            await subscriber.cancel()
        if sub_task is not None:
            sub_task.cancel()
