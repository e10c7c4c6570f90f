import logging
from typing import Dict, List, Optional, Tuple

from fastapi import WebSocket


logger = logging.getLogger(__name__)


class ConnectionManager:
    """Live sockets per user, plus one room per socket (map area being watched)."""

    def __init__(self) -> None:
        self.active_connections: Dict[str, List[WebSocket]] = {}
        # room -> [(user_id, websocket)]
        self.rooms: Dict[str, List[Tuple[str, WebSocket]]] = {}
        # id(websocket) -> room; WebSocket is not hashable
        self._socket_rooms: Dict[int, str] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        if user_id not in self.active_connections:
            self.active_connections[user_id] = []
        self.active_connections[user_id].append(websocket)
        logger.info("New connected socket for user %s", user_id)

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        self.leave_room(websocket)
        if user_id in self.active_connections:
            try:
                self.active_connections[user_id].remove(websocket)
            except ValueError:
                pass
            if not self.active_connections[user_id]:
                del self.active_connections[user_id]
        logger.info("Socket disconnected for user %s", user_id)

    def is_connected(self, user_id: str) -> bool:
        return bool(self.active_connections.get(user_id))

    def room_of(self, websocket: WebSocket) -> Optional[str]:
        return self._socket_rooms.get(id(websocket))

    def room_socket(self, room: str, socket_id: int) -> Optional[WebSocket]:
        for _, conn in self.rooms.get(room, []):
            if id(conn) == socket_id:
                return conn
        return None

    def join_room(self, user_id: str, websocket: WebSocket, room: str) -> None:
        if self.room_of(websocket) == room:
            return
        self.leave_room(websocket)
        self.rooms.setdefault(room, []).append((user_id, websocket))
        self._socket_rooms[id(websocket)] = room
        logger.info("Socket of user %s joined room %s", user_id, room)

    def leave_room(self, websocket: WebSocket) -> None:
        room = self._socket_rooms.pop(id(websocket), None)
        if room is None:
            return
        members = [m for m in self.rooms.get(room, []) if m[1] is not websocket]
        if members:
            self.rooms[room] = members
        else:
            self.rooms.pop(room, None)
        logger.info("Socket is leaving room %s", room)

    async def send_personal_message(self, receiver_id: str, message: str) -> int:
        sent = 0
        for conn in list(self.active_connections.get(receiver_id, [])):
            if await self._send(receiver_id, conn, message):
                sent += 1
        return sent

    async def send_to_room(self, room: str, message: str, exclude: Optional[WebSocket] = None) -> int:
        sent = 0
        for user_id, conn in list(self.rooms.get(room, [])):
            if conn is exclude:
                continue
            if await self._send(user_id, conn, message):
                sent += 1
        return sent

    async def broadcast(self, message: str, exclude_user_id: Optional[str] = None) -> int:
        sent = 0
        for user_id, conns in list(self.active_connections.items()):
            if user_id == exclude_user_id:
                continue
            for conn in list(conns):
                if await self._send(user_id, conn, message):
                    sent += 1
        return sent

    async def _send(self, user_id: str, websocket: WebSocket, message: str) -> bool:
        try:
            await websocket.send_text(message)
            return True
        except Exception:
            # closed underneath us; drop it so later sends skip it
            logger.warning("Dropping dead socket of user %s", user_id, exc_info=True)
            self.disconnect(user_id, websocket)
            return False
