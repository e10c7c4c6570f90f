import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from friendmap.utils.ids import normalize_id, to_object_id


MINI_PROJECTION = {"username": 1, "fullName": 1, "imgUrl": 1, "userColor": 1}

UPDATABLE_FIELDS = ("fullName", "phoneNumber", "score", "userColor", "imgUrl")


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("user")

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("email", ASCENDING)], unique=True)
        await self._collection.create_index([("username", ASCENDING)])

    async def create_user(self, user: Dict[str, Any]) -> Dict[str, Any]:
        doc = {
            "username": user.get("username"),
            "email": user["email"],
            "password": user.get("password"),
            "fullName": user.get("fullName"),
            "imgUrl": user.get("imgUrl"),
            "authMethod": user.get("authMethod", "email"),
            "userColor": user.get("userColor"),
            "isAdmin": False,
            "score": 0,
            "friends": [],
            "fcmTokens": [],
            "createdAt": datetime.now(timezone.utc),
        }
        result = await self._collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._public(doc)

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        user = await self._collection.find_one({"_id": oid})
        return self._public(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        # keeps the password hash; only the auth flow should call this
        user = await self._collection.find_one({"email": email})
        return normalize_id(user) if user else None

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> List[dict]:
        oids = [oid for oid in (to_object_id(u) for u in user_ids) if oid is not None]
        if not oids:
            return []
        cursor = self._collection.find({"_id": {"$in": oids}}, {"password": 0})
        return [self._public(doc) async for doc in cursor]

    async def get_mini_by_id(self, user_id: str) -> Optional[dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        user = await self._collection.find_one({"_id": oid}, MINI_PROJECTION)
        return normalize_id(user) if user else None

    async def get_mini_by_ids(self, user_ids: Iterable[str]) -> List[dict]:
        oids = [oid for oid in (to_object_id(u) for u in user_ids) if oid is not None]
        if not oids:
            return []
        cursor = self._collection.find({"_id": {"$in": oids}}, MINI_PROJECTION)
        return [normalize_id(doc) async for doc in cursor]

    async def list_users(self) -> List[dict]:
        cursor = self._collection.find({}, {"password": 0})
        return [self._public(doc) async for doc in cursor]

    async def search_by_username(self, txt: str, mini: bool = False, limit: int = 20) -> List[dict]:
        query = {"username": {"$regex": re.escape(txt), "$options": "i"}}
        projection = MINI_PROJECTION if mini else {"password": 0}
        cursor = self._collection.find(query, projection).limit(limit)
        items = await cursor.to_list(length=limit)
        return [normalize_id(doc) if mini else self._public(doc) for doc in items]

    async def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        to_set = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if to_set:
            result = await self._collection.update_one({"_id": oid}, {"$set": to_set})
            if result.matched_count == 0:
                return None
        return await self.get_user_by_id(user_id)

    async def delete_user(self, user_id: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self._collection.delete_one({"_id": oid})
        return result.deleted_count > 0

    async def exists(self, user_id: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        return await self._collection.count_documents({"_id": oid}, limit=1) > 0

    async def get_friends(self, user_id: str) -> List[str]:
        oid = to_object_id(user_id)
        if oid is None:
            return []
        user = await self._collection.find_one({"_id": oid}, {"friends": 1})
        return list(user.get("friends", [])) if user else []

    async def add_to_friends(self, user_id: str, peer_id: str) -> bool:
        """$addToSet, so re-running after a partial failure is harmless. False when the user is missing."""
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self._collection.update_one({"_id": oid}, {"$addToSet": {"friends": peer_id}})
        return result.matched_count > 0

    async def remove_from_friends(self, user_id: str, peer_id: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self._collection.update_one({"_id": oid}, {"$pull": {"friends": peer_id}})
        return result.matched_count > 0

    async def add_fcm_token(self, user_id: str, token: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self._collection.update_one({"_id": oid}, {"$addToSet": {"fcmTokens": token}})
        return result.matched_count > 0

    async def clear_fcm_tokens(self, user_id: str) -> bool:
        oid = to_object_id(user_id)
        if oid is None:
            return False
        result = await self._collection.update_one({"_id": oid}, {"$set": {"fcmTokens": []}})
        return result.matched_count > 0

    async def get_fcm_tokens(self, user_id: str) -> List[str]:
        oid = to_object_id(user_id)
        if oid is None:
            return []
        user = await self._collection.find_one({"_id": oid}, {"fcmTokens": 1})
        return [t for t in (user or {}).get("fcmTokens", []) if t]

    async def remove_fcm_tokens(self, user_id: str, tokens: List[str]) -> int:
        oid = to_object_id(user_id)
        if oid is None or not tokens:
            return 0
        result = await self._collection.update_one({"_id": oid}, {"$pull": {"fcmTokens": {"$in": tokens}}})
        return result.modified_count or 0

    @staticmethod
    def _public(doc: Dict[str, Any]) -> Dict[str, Any]:
        doc.pop("password", None)
        return normalize_id(doc)
