from datetime import datetime
from typing import Optional, TypedDict


class PositionDocument(TypedDict, total=False):
    lat: float
    lng: float
    # mirrored on the way out for map clients
    latitude: float
    longitude: float


class AreaMarkerDocument(TypedDict, total=False):
    _id: str
    id: str
    position: PositionDocument
    title: Optional[str]
    description: Optional[str]
    color: Optional[int]
    icon: Optional[str]
    radius: float
    createdBy: Optional[str]
    createdAt: datetime
