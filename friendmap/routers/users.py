from fastapi import APIRouter, Body, Depends, Query

from friendmap.database.connection import mongo_db_dependency
from friendmap.repositories.user_repository import UserRepository
from friendmap.schemas.user import FcmTokenIn, UserUpdate, UsersBatchRequest
from friendmap.services.user_service import UserService
from friendmap.utils.dependencies import get_current_user, require_admin


router = APIRouter(prefix="/api/user", tags=["user"])


def get_user_service(db = Depends(mongo_db_dependency)) -> UserService:
    return UserService(UserRepository(db))


@router.get("")
async def list_users(service: UserService = Depends(get_user_service)):
    return await service.list_users()


@router.get("/search")
async def search_users(username: str = Query(""), mini: bool = False, service: UserService = Depends(get_user_service)):
    return await service.search_users(username, mini=mini)


@router.get("/batch")
async def users_batch(ids: str = Query(""), mini: bool = True, service: UserService = Depends(get_user_service)):
    return await service.get_users_batch(ids.split(","), mini=mini)


@router.post("/batch")
async def users_batch_post(body: UsersBatchRequest, mini: bool = True, service: UserService = Depends(get_user_service)):
    return await service.get_users_batch(body.ids, mini=mini)


@router.put("/fcm-token")
async def update_fcm_token(body: FcmTokenIn, current_user: dict = Depends(get_current_user), service: UserService = Depends(get_user_service)):
    await service.add_fcm_token(current_user["_id"], body.token)
    return {"msg": "FCM token updated"}


@router.delete("/fcm-token")
async def delete_fcm_token(current_user: dict = Depends(get_current_user), service: UserService = Depends(get_user_service)):
    await service.clear_fcm_tokens(current_user["_id"])
    return {"msg": "FCM tokens cleared"}


@router.get("/{user_id}")
async def get_user(user_id: str, mini: bool = False, service: UserService = Depends(get_user_service)):
    return await service.get_user(user_id, mini=mini)


@router.put("/{user_id}")
async def update_user(user_id: str, body: UserUpdate = Body(...), current_user: dict = Depends(get_current_user), service: UserService = Depends(get_user_service)):
    return await service.update_user(user_id, body.model_dump(exclude_unset=True), current_user)


@router.delete("/{user_id}")
async def delete_user(user_id: str, current_user: dict = Depends(require_admin), service: UserService = Depends(get_user_service)):
    await service.delete_user(user_id)
    return {"msg": "Deleted successfully"}
