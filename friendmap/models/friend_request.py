from datetime import datetime
from typing import Literal, TypedDict


FriendRequestStatus = Literal["pending", "accepted", "declined", "cancelled"]
Decision = Literal["accept", "decline", "cancel"]

# decision -> resulting status
DECISION_STATUS: dict[str, str] = {
    "accept": "accepted",
    "decline": "declined",
    "cancel": "cancelled",
}


class FriendRequestDocument(TypedDict, total=False):
    _id: str
    id: str
    fromUserId: str
    toUserId: str
    # sorted "a:b" of the two user ids
    pairKey: str
    status: FriendRequestStatus
    createdAt: datetime
    updatedAt: datetime
