from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class LoginCredentials(BaseModel):

    email: EmailStr
    password: str = Field(min_length=1)


class SignupCredentials(LoginCredentials):

    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    fullName: str = Field(min_length=1)
    imgUrl: Optional[str] = None


class UserUpdate(BaseModel):

    fullName: Optional[str] = None
    phoneNumber: Optional[str] = None
    score: Optional[int] = None
    userColor: Optional[str] = None
    imgUrl: Optional[str] = None


class FcmTokenIn(BaseModel):

    token: str = Field(min_length=1)


class UsersBatchRequest(BaseModel):

    ids: List[str] = Field(default_factory=list)
