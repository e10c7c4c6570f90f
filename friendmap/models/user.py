from datetime import datetime
from typing import List, Literal, Optional, TypedDict


AuthMethod = Literal["email", "google", "both"]


class UserDocument(TypedDict, total=False):

    _id: str
    id: str
    username: str
    email: str
    password: Optional[str]
    fullName: Optional[str]
    phoneNumber: Optional[str]
    imgUrl: Optional[str]
    authMethod: AuthMethod
    isAdmin: bool
    score: int
    userColor: str
    createdAt: datetime
    # peer user ids, set semantics
    friends: List[str]
    fcmTokens: List[str]


class MiniUserDocument(TypedDict, total=False):

    _id: str
    id: str
    username: Optional[str]
    fullName: Optional[str]
    imgUrl: Optional[str]
    userColor: Optional[str]
