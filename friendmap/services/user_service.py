import logging
import random
from typing import Any, Dict, List, Optional

from friendmap.core.errors import Forbidden, InvalidRequest, UserNotFound
from friendmap.repositories.user_repository import UserRepository
from friendmap.schemas.user import SignupCredentials
from friendmap.utils.security import hash_password, verify_password


logger = logging.getLogger(__name__)

USER_COLORS = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7",
    "#DDA0DD", "#98D8C8", "#F7DC6F", "#BB8FCE", "#85C1E9",
]


def random_color() -> str:
    return random.choice(USER_COLORS)


class UserService:
    """Business rules for user accounts"""

    def __init__(self, user_repository: UserRepository):
        self.user_repository = user_repository

    async def register_user(self, credentials: SignupCredentials) -> dict:
        """
        Register a new account
        - reject an email that is already taken
        - hash the password
        - assign a random avatar color
        """
        existing = await self.user_repository.get_user_by_email(credentials.email)
        if existing:
            raise InvalidRequest("Email already taken")

        user = await self.user_repository.create_user({
            "email": credentials.email,
            "username": credentials.username,
            "password": hash_password(credentials.password),
            "fullName": credentials.fullName,
            "imgUrl": credentials.imgUrl,
            "authMethod": "email",
            "userColor": random_color(),
        })
        logger.debug("New account created: %s (%s)", user["_id"], credentials.username)
        return user

    async def authenticate_user(self, email: str, password: str) -> Optional[dict]:
        """
        Check login credentials
        - look the user up by email
        - verify the password hash
        Returns the user without its password, or None.
        """
        user = await self.user_repository.get_user_by_email(email)
        if not user:
            return None

        if not verify_password(password, user.get("password") or ""):
            return None

        user.pop("password", None)
        return user

    async def get_user(self, user_id: str, mini: bool = False) -> dict:
        if mini:
            user = await self.user_repository.get_mini_by_id(user_id)
        else:
            user = await self.user_repository.get_user_by_id(user_id)
        if not user:
            raise UserNotFound()
        return user

    async def list_users(self) -> List[dict]:
        return await self.user_repository.list_users()

    async def search_users(self, username: str, mini: bool = False) -> List[dict]:
        username = username.strip()
        if not username:
            raise InvalidRequest("Username query parameter is required")
        return await self.user_repository.search_by_username(username, mini=mini)

    async def get_users_batch(self, user_ids: List[str], mini: bool = True) -> List[dict]:
        ids = [i.strip() for i in user_ids if i and i.strip()]
        if not ids:
            raise InvalidRequest("ids array or comma-separated ids query parameter is required")
        if mini:
            return await self.user_repository.get_mini_by_ids(ids)
        return await self.user_repository.get_users_by_ids(ids)

    async def update_user(self, user_id: str, fields: Dict[str, Any], acting_user: dict) -> dict:
        if acting_user.get("_id") != user_id and not acting_user.get("isAdmin"):
            raise Forbidden("Not authorized to update this user")
        user = await self.user_repository.update_user(user_id, fields)
        if not user:
            raise UserNotFound()
        return user

    async def delete_user(self, user_id: str) -> None:
        if not await self.user_repository.delete_user(user_id):
            raise UserNotFound()
        logger.info("User %s deleted", user_id)

    async def add_fcm_token(self, user_id: str, token: str) -> None:
        if not await self.user_repository.add_fcm_token(user_id, token.strip()):
            raise UserNotFound()

    async def clear_fcm_tokens(self, user_id: str) -> None:
        if not await self.user_repository.clear_fcm_tokens(user_id):
            raise UserNotFound()
