import logging
from typing import Any, Dict, Optional

from friendmap.repositories.user_repository import UserRepository
from friendmap.services.socket_service import SocketService
from friendmap.utils.notifications import get_push


logger = logging.getLogger(__name__)


class NotificationService:
    """Best-effort user notifications: socket event plus FCM push. Never raises."""

    def __init__(self, user_repo: UserRepository, sockets: SocketService) -> None:
        self._user_repo = user_repo
        self._sockets = sockets

    async def notify_user(
        self,
        user_id: str,
        event_type: str,
        data: Dict[str, Any],
        title: str,
        body: str,
        push_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            await self._sockets.emit_to_user(user_id, event_type, data)
        except Exception:
            logger.exception("Socket emit %s to user %s failed", event_type, user_id)
        try:
            await self.send_push(user_id, title, body, push_data or {"type": event_type})
        except Exception:
            logger.exception("Push %s to user %s failed", event_type, user_id)

    async def send_push(self, user_id: str, title: str, body: str, data: Dict[str, Any]) -> None:
        push = await get_push()
        if not push.enabled:
            return
        tokens = await self._user_repo.get_fcm_tokens(user_id)
        if not tokens:
            logger.info("No FCM tokens for user %s", user_id)
            return
        invalid = await push.send_fcm(tokens, title, body, data)
        if invalid:
            pruned = await self._user_repo.remove_fcm_tokens(user_id, invalid)
            logger.info("Pruned %d invalid FCM tokens for user %s", pruned, user_id)
