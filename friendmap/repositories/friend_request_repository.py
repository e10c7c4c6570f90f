from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from friendmap.utils.ids import normalize_id, to_object_id


Direction = Literal["received", "sent"]

NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


def pair_key(user_id1: str, user_id2: str) -> str:
    return ":".join(sorted((user_id1, user_id2)))


def _pair_filter(user_id1: str, user_id2: str) -> Dict[str, Any]:
    # unordered pair: A->B and B->A are the same relationship
    return {
        "$or": [
            {"fromUserId": user_id1, "toUserId": user_id2},
            {"fromUserId": user_id2, "toUserId": user_id1},
        ]
    }


class FriendRequestRepository:
    """Persistence for friend request records. Only FriendRequestService writes here."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("friendRequest")

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("fromUserId", ASCENDING), ("toUserId", ASCENDING), ("status", ASCENDING)])
        await self._collection.create_index([("toUserId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])
        # at most one pending request per unordered pair, enforced by the store
        await self._collection.create_index(
            [("pairKey", ASCENDING)],
            name="pending_pair_unique",
            unique=True,
            partialFilterExpression={"status": "pending", "pairKey": {"$exists": True}},
        )

    async def insert(self, from_user_id: str, to_user_id: str) -> Optional[Dict[str, Any]]:
        """Insert a pending request; None when the pair already has one."""
        now = datetime.now(timezone.utc)
        doc: Dict[str, Any] = {
            "fromUserId": from_user_id,
            "toUserId": to_user_id,
            "pairKey": pair_key(from_user_id, to_user_id),
            "status": "pending",
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = await self._collection.insert_one(doc)
        except DuplicateKeyError:
            return None
        doc["_id"] = result.inserted_id
        return normalize_id(doc)

    async def find_by_id(self, request_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(request_id)
        if oid is None:
            return None
        doc = await self._collection.find_one({"_id": oid})
        return normalize_id(doc) if doc else None

    async def find_between(self, user_id1: str, user_id2: str) -> Optional[Dict[str, Any]]:
        """Newest record of any status between the two users."""
        doc = await self._collection.find_one(_pair_filter(user_id1, user_id2), sort=NEWEST_FIRST)
        return normalize_id(doc) if doc else None

    async def find_pending_between(self, user_id1: str, user_id2: str) -> Optional[Dict[str, Any]]:
        query = _pair_filter(user_id1, user_id2)
        query["status"] = "pending"
        doc = await self._collection.find_one(query)
        return normalize_id(doc) if doc else None

    async def list_by_user(self, user_id: str, direction: Direction, status: str = "pending") -> List[Dict[str, Any]]:
        field = "toUserId" if direction == "received" else "fromUserId"
        cursor = self._collection.find({field: user_id, "status": status}).sort(NEWEST_FIRST)
        return [normalize_id(doc) async for doc in cursor]

    async def list_involving(self, user_id: str, status: str = "pending") -> List[Dict[str, Any]]:
        query = {"$or": [{"fromUserId": user_id}, {"toUserId": user_id}], "status": status}
        cursor = self._collection.find(query).sort(NEWEST_FIRST)
        return [normalize_id(doc) async for doc in cursor]

    async def delete_if_pending(self, request_id: str) -> Optional[Dict[str, Any]]:
        """Atomically delete the record only while it is still pending; None when another caller got there first."""
        oid = to_object_id(request_id)
        if oid is None:
            return None
        doc = await self._collection.find_one_and_delete({"_id": oid, "status": "pending"})
        return normalize_id(doc) if doc else None

    async def update_status_if_pending(self, request_id: str, status: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(request_id)
        if oid is None:
            return None
        doc = await self._collection.find_one_and_update(
            {"_id": oid, "status": "pending"},
            {"$set": {"status": status, "updatedAt": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        return normalize_id(doc) if doc else None
