from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from friendmap.core.config import settings
from friendmap.utils.security import decode_login_token


GUEST_USER = {"_id": "", "fullName": "Guest", "isAdmin": False}


def extract_token(request: Request) -> Optional[str]:
    """Login token from the cookie, falling back to ``Authorization: Bearer``."""
    token = request.cookies.get(settings.TOKEN_COOKIE_NAME)
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


async def get_optional_user(request: Request) -> Optional[dict]:
    return decode_login_token(extract_token(request))


async def get_current_user(user: Optional[dict] = Depends(get_optional_user)) -> dict:
    if user:
        return user
    if settings.GUEST_MODE:
        return dict(GUEST_USER)
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")


async def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    if not current_user.get("isAdmin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return current_user
