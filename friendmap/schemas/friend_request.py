from pydantic import BaseModel, Field


class FriendRequestCreate(BaseModel):
    """Body of POST /api/friend-request."""

    toUserId: str = Field(min_length=1)


class RemoveFriend(BaseModel):
    """Body of DELETE /api/friend-request/friends."""

    friendId: str = Field(min_length=1)
