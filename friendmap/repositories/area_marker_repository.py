from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from friendmap.utils.ids import normalize_id, to_object_id


def _serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    position = doc.get("position")
    if position:
        position["latitude"] = position.get("lat")
        position["longitude"] = position.get("lng")
    return normalize_id(doc)


class AreaMarkerRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["areaMarker"]

    async def create(self, marker: Dict[str, Any]) -> Dict[str, Any]:
        doc = dict(marker)
        doc["createdAt"] = datetime.now(timezone.utc)
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _serialize(doc)

    async def get_by_id(self, marker_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(marker_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        return _serialize(doc) if doc else None

    async def list_all(self) -> List[Dict[str, Any]]:
        cursor = self.collection.find({})
        return [_serialize(doc) async for doc in cursor]

    async def update(self, marker_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        oid = to_object_id(marker_id)
        if oid is None:
            return None
        if fields:
            result = await self.collection.update_one({"_id": oid}, {"$set": fields})
            if result.matched_count == 0:
                return None
        return await self.get_by_id(marker_id)

    async def delete(self, marker_id: str) -> bool:
        oid = to_object_id(marker_id)
        if oid is None:
            return False
        result = await self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0
