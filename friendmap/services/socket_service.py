import json
import logging
import uuid
from typing import Any, Optional

from fastapi import WebSocket

from friendmap.utils.realtime_bus import FANOUT_CHANNEL, get_bus, user_channel
from friendmap.utils.websocket_manager import ConnectionManager


logger = logging.getLogger(__name__)


def encode_event(event_type: str, data: Any) -> str:
    return json.dumps({"type": event_type, "data": data}, default=str)


class SocketService:
    """
    Server-side emit API over the connection manager.

    With the redis bus enabled every emit is published instead of sent
    locally: user events on ``user:<id>``, broadcasts and room relays on the
    shared fanout channel that each worker consumes with ``deliver_fanout``.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager
        self.worker_id = uuid.uuid4().hex

    async def emit_to_user(self, user_id: str, event_type: str, data: Any) -> None:
        message = encode_event(event_type, data)
        bus = await get_bus()
        if bus.enabled:
            await bus.publish(user_channel(user_id), message)
            return
        sent = await self.manager.send_personal_message(user_id, message)
        if sent:
            logger.info("Emitting event: %s to user: %s", event_type, user_id)
        else:
            logger.info("No active socket for user: %s", user_id)

    async def emit_to_room(self, room: str, event_type: str, data: Any, exclude: Optional[WebSocket] = None) -> None:
        logger.info("Emit %s to room: %s", event_type, room)
        message = encode_event(event_type, data)
        bus = await get_bus()
        if bus.enabled:
            # the excluded socket only exists on this worker
            await bus.publish(FANOUT_CHANNEL, json.dumps({
                "kind": "room",
                "room": room,
                "message": message,
                "origin": self.worker_id,
                "excludeSocket": id(exclude) if exclude is not None else None,
            }))
            return
        await self.manager.send_to_room(room, message, exclude=exclude)

    async def broadcast(self, event_type: str, data: Any, exclude_user_id: Optional[str] = None) -> None:
        logger.info("Broadcasting event: %s", event_type)
        message = encode_event(event_type, data)
        bus = await get_bus()
        if bus.enabled:
            await bus.publish(FANOUT_CHANNEL, json.dumps({
                "kind": "broadcast",
                "message": message,
                "excludeUserId": exclude_user_id,
            }))
            return
        await self.manager.broadcast(message, exclude_user_id=exclude_user_id)

    async def deliver_fanout(self, raw: str) -> None:
        """Deliver a fanout envelope published by any worker to this worker's sockets."""
        try:
            envelope = json.loads(raw)
        except ValueError:
            logger.warning("Dropping malformed fanout message")
            return
        kind = envelope.get("kind")
        if kind == "broadcast":
            await self.manager.broadcast(envelope["message"], exclude_user_id=envelope.get("excludeUserId"))
        elif kind == "room":
            room = envelope["room"]
            exclude = None
            if envelope.get("origin") == self.worker_id and envelope.get("excludeSocket") is not None:
                exclude = self.manager.room_socket(room, envelope["excludeSocket"])
            await self.manager.send_to_room(room, envelope["message"], exclude=exclude)
        else:
            logger.warning("Unknown fanout kind: %s", kind)


manager = ConnectionManager()
_socket_service = SocketService(manager)


def get_socket_service() -> SocketService:
    return _socket_service
