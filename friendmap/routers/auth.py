import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from friendmap.core.config import settings
from friendmap.schemas.user import LoginCredentials, SignupCredentials
from friendmap.routers.users import get_user_service
from friendmap.services.user_service import UserService
from friendmap.utils.security import create_login_token


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_login_cookie(response: Response, token: str) -> None:
    response.set_cookie(settings.TOKEN_COOKIE_NAME, token, samesite="none", secure=True)


@router.post("/login")
async def login(credentials: LoginCredentials, response: Response, service: UserService = Depends(get_user_service)):
    user = await service.authenticate_user(credentials.email, credentials.password)
    if not user:
        logger.warning("Failed login for %s", credentials.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Failed to Login")
    token = create_login_token(user)
    _set_login_cookie(response, token)
    logger.info("User login: %s", user["_id"])
    return {"success": True, "token": token, "user": user}


@router.post("/signup")
async def signup(credentials: SignupCredentials, response: Response, service: UserService = Depends(get_user_service)):
    user = await service.register_user(credentials)
    token = create_login_token(user)
    _set_login_cookie(response, token)
    logger.info("User signup: %s", user["_id"])
    return {"success": True, "token": token, "user": user}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.TOKEN_COOKIE_NAME, samesite="none", secure=True)
    return {"msg": "Logged out successfully"}
