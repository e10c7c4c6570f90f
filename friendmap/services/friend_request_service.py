import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from friendmap.core.errors import (
    AlreadyFriends,
    DuplicateRequest,
    Forbidden,
    InvalidRequest,
    InvalidState,
    NotFound,
    NotFriends,
    UserNotFound,
)
from friendmap.models.friend_request import DECISION_STATUS
from friendmap.repositories.friend_request_repository import FriendRequestRepository
from friendmap.repositories.user_repository import UserRepository


logger = logging.getLogger(__name__)


class FriendRequestService:
    """
    Friend request lifecycle and the two-sided friends-list updates.

    A request is created ``pending`` and resolved exactly once into
    ``accepted``, ``declined`` or ``cancelled``. Resolved records are deleted
    unless ``retain_resolved`` is set, in which case they keep their final
    status. Accepting writes both friends lists before the record is resolved.
    The two writes are separate documents, so a crash between them can leave
    an asymmetric friendship; both are ``$addToSet`` and safe to re-run.
    """

    def __init__(self, request_repo: FriendRequestRepository, user_repo: UserRepository, retain_resolved: bool = False) -> None:
        self.request_repo = request_repo
        self.user_repo = user_repo
        self.retain_resolved = retain_resolved

    async def send_request(self, from_user_id: str, to_user_id: str) -> Dict[str, Any]:
        if not await self.user_repo.exists(from_user_id) or not await self.user_repo.exists(to_user_id):
            raise UserNotFound("One or both users not found")
        if from_user_id == to_user_id:
            raise InvalidRequest("Cannot send friend request to yourself")
        if to_user_id in await self.user_repo.get_friends(from_user_id):
            raise AlreadyFriends()
        if await self.request_repo.find_pending_between(from_user_id, to_user_id):
            raise DuplicateRequest()

        request = await self.request_repo.insert(from_user_id, to_user_id)
        if request is None:
            # a concurrent send for the same pair won
            raise DuplicateRequest()
        logger.info("Friend request %s sent from %s to %s", request["_id"], from_user_id, to_user_id)
        return request

    async def resolve_request(self, request_id: str, caller_id: str, decision: str) -> Dict[str, Any]:
        """Accept/decline (recipient only) or cancel (sender only) a pending request."""
        new_status = DECISION_STATUS.get(decision)
        if new_status is None:
            raise InvalidRequest(f"Unknown decision: {decision}")

        request = await self.request_repo.find_by_id(request_id)
        if not request:
            raise NotFound("Friend request not found")

        allowed_caller = request["fromUserId"] if decision == "cancel" else request["toUserId"]
        if caller_id != allowed_caller:
            raise Forbidden(f"Not authorized to {decision} this request")

        if request.get("status") != "pending":
            raise InvalidState()

        if decision == "accept":
            await self._befriend(request["fromUserId"], request["toUserId"])

        # conditional on status == pending: a concurrent resolver makes this return None
        if self.retain_resolved:
            resolved = await self.request_repo.update_status_if_pending(request_id, new_status)
        else:
            resolved = await self.request_repo.delete_if_pending(request_id)
        if resolved is None:
            raise InvalidState("Friend request was already resolved")

        updated_at = resolved.get("updatedAt") if self.retain_resolved else datetime.now(timezone.utc)
        logger.info("Friend request %s %s by %s", request_id, new_status, caller_id)
        return {**request, "status": new_status, "updatedAt": updated_at}

    async def remove_friend(self, user_id: str, friend_id: str) -> None:
        if not await self.user_repo.exists(user_id):
            raise UserNotFound()
        if friend_id not in await self.user_repo.get_friends(user_id):
            raise NotFriends()
        await self.user_repo.remove_from_friends(user_id, friend_id)
        # peer may have been deleted; then there is nothing to pull
        await self.user_repo.remove_from_friends(friend_id, user_id)
        logger.info("User %s removed friend %s", user_id, friend_id)

    async def pending_received_requests(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.request_repo.list_by_user(user_id, "received")

    async def pending_sent_requests(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.request_repo.list_by_user(user_id, "sent")

    async def all_requests_involving(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.request_repo.list_involving(user_id)

    async def request_between(self, user_id1: str, user_id2: str) -> Optional[Dict[str, Any]]:
        return await self.request_repo.find_between(user_id1, user_id2)

    async def friends_of(self, user_id: str) -> List[str]:
        return await self.user_repo.get_friends(user_id)

    async def _befriend(self, user_id1: str, user_id2: str) -> None:
        if not await self.user_repo.add_to_friends(user_id1, user_id2):
            raise UserNotFound("One or both users not found")
        if not await self.user_repo.add_to_friends(user_id2, user_id1):
            # undo the first side so no one-way friendship is left behind
            await self.user_repo.remove_from_friends(user_id1, user_id2)
            raise UserNotFound("One or both users not found")
