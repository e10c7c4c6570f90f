from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status

from friendmap.core.config import settings
from friendmap.core.errors import Forbidden
from friendmap.database.connection import mongo_db_dependency
from friendmap.repositories.friend_request_repository import FriendRequestRepository
from friendmap.repositories.user_repository import UserRepository
from friendmap.schemas.friend_request import FriendRequestCreate, RemoveFriend
from friendmap.services.friend_request_service import FriendRequestService
from friendmap.services.notification_service import NotificationService
from friendmap.services.socket_service import get_socket_service
from friendmap.utils.dependencies import get_current_user


router = APIRouter(prefix="/api/friend-request", tags=["friend-request"])


def get_user_repository(db = Depends(mongo_db_dependency)) -> UserRepository:
    return UserRepository(db)


def get_friend_request_service(db = Depends(mongo_db_dependency)) -> FriendRequestService:
    return FriendRequestService(
        FriendRequestRepository(db),
        UserRepository(db),
        retain_resolved=settings.RETAIN_RESOLVED_REQUESTS,
    )


def get_notification_service(user_repo: UserRepository = Depends(get_user_repository)) -> NotificationService:
    return NotificationService(user_repo, get_socket_service())


async def _with_peer(requests: List[Dict[str, Any]], id_key: str, out_key: str, user_repo: UserRepository) -> List[Dict[str, Any]]:
    """Attach the mini projection of ``request[id_key]`` as ``request[out_key]``, one batch query."""
    ids = list({r[id_key] for r in requests})
    users = {u["_id"]: u for u in await user_repo.get_mini_by_ids(ids)}
    return [{**r, out_key: users.get(r[id_key])} for r in requests]


# Specific routes first (before parameterized routes)

@router.get("/all")
async def all_friend_requests(current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service), user_repo: UserRepository = Depends(get_user_repository)):
    user_id = current_user["_id"]
    requests = await service.all_requests_involving(user_id)
    sent = [r for r in requests if r["fromUserId"] == user_id]
    received = [r for r in requests if r["toUserId"] == user_id]
    return {
        "sentRequests": await _with_peer(sent, "toUserId", "toUser", user_repo),
        "receivedRequests": await _with_peer(received, "fromUserId", "fromUser", user_repo),
    }


@router.get("/pending")
async def pending_friend_requests(current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service), user_repo: UserRepository = Depends(get_user_repository)):
    requests = await service.pending_received_requests(current_user["_id"])
    return await _with_peer(requests, "fromUserId", "fromUser", user_repo)


@router.get("/sent")
async def sent_friend_requests(current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service), user_repo: UserRepository = Depends(get_user_repository)):
    requests = await service.pending_sent_requests(current_user["_id"])
    return await _with_peer(requests, "toUserId", "toUser", user_repo)


@router.get("/friends")
@router.get("/friends/{user_id}")
async def friends_list(user_id: Optional[str] = None, current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service), user_repo: UserRepository = Depends(get_user_repository)):
    target_user_id = user_id or current_user["_id"]
    # only your own list, unless admin
    if target_user_id != current_user["_id"] and not current_user.get("isAdmin"):
        raise Forbidden()
    friend_ids = await service.friends_of(target_user_id)
    return await user_repo.get_mini_by_ids(friend_ids)


@router.delete("/friends")
async def remove_friend(body: RemoveFriend, current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service)):
    await service.remove_friend(current_user["_id"], body.friendId)
    return {"msg": "Friend removed successfully"}


@router.get("/user/{user_id}")
async def friend_request_with_user(user_id: str, current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service)):
    return await service.request_between(current_user["_id"], user_id)


# Friend request actions

@router.post("", status_code=status.HTTP_201_CREATED)
async def send_friend_request(body: FriendRequestCreate, background_tasks: BackgroundTasks, current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service), notifier: NotificationService = Depends(get_notification_service)):
    request = await service.send_request(current_user["_id"], body.toUserId)
    background_tasks.add_task(
        notifier.notify_user,
        request["toUserId"],
        "friend-request-received",
        request,
        title="New friend request",
        body=f"{current_user.get('fullName') or 'Someone'} sent you a friend request",
        push_data={"type": "friend-request-received", "requestId": request["_id"], "fromUserId": request["fromUserId"]},
    )
    return request


@router.put("/{request_id}/accept")
async def accept_friend_request(request_id: str, background_tasks: BackgroundTasks, current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service), notifier: NotificationService = Depends(get_notification_service)):
    request = await service.resolve_request(request_id, current_user["_id"], "accept")
    background_tasks.add_task(
        notifier.notify_user,
        request["fromUserId"],
        "friend-request-accepted",
        request,
        title="Friend request accepted",
        body=f"{current_user.get('fullName') or 'Someone'} accepted your friend request",
        push_data={"type": "friend-request-accepted", "requestId": request["_id"], "toUserId": request["toUserId"]},
    )
    return request


@router.put("/{request_id}/decline")
async def decline_friend_request(request_id: str, current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service)):
    return await service.resolve_request(request_id, current_user["_id"], "decline")


@router.put("/{request_id}/cancel")
async def cancel_friend_request(request_id: str, current_user: dict = Depends(get_current_user), service: FriendRequestService = Depends(get_friend_request_service)):
    return await service.resolve_request(request_id, current_user["_id"], "cancel")
