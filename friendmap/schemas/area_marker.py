from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class Position(BaseModel):

    lat: float = Field(ge=-90, le=90, validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(ge=-180, le=180, validation_alias=AliasChoices("lng", "longitude"))


class AreaMarkerCreate(BaseModel):

    position: Position
    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[int] = None
    icon: Optional[str] = None
    radius: Optional[float] = Field(default=None, gt=0)


class AreaMarkerUpdate(BaseModel):

    position: Optional[Position] = None
    title: Optional[str] = None
    description: Optional[str] = None
    color: Optional[int] = None
    icon: Optional[str] = None
    radius: Optional[float] = Field(default=None, gt=0)
