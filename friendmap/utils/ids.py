from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId


def to_object_id(value: Any) -> Optional[ObjectId]:
    """ObjectId for ``value``, or None when it is not a valid id (treated as "no such document")."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def normalize_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Stringify ``_id`` and mirror it as ``id`` for API clients."""
    oid = doc.get("_id")
    if isinstance(oid, ObjectId) and "createdAt" not in doc:
        doc["createdAt"] = oid.generation_time
    doc["_id"] = str(oid)
    doc["id"] = doc["_id"]
    return doc
