from fastapi import APIRouter, Depends

from friendmap.core.config import settings
from friendmap.database.connection import mongo_db_dependency
from friendmap.repositories.area_marker_repository import AreaMarkerRepository
from friendmap.schemas.area_marker import AreaMarkerCreate, AreaMarkerUpdate
from friendmap.services.area_marker_service import AreaMarkerService
from friendmap.services.socket_service import SocketService, get_socket_service
from friendmap.utils.dependencies import get_current_user


router = APIRouter(prefix="/api/area-marker", tags=["area-marker"])


def get_area_marker_service(db = Depends(mongo_db_dependency)) -> AreaMarkerService:
    return AreaMarkerService(AreaMarkerRepository(db), default_radius=settings.DEFAULT_MARKER_RADIUS)


@router.get("")
async def list_area_markers(service: AreaMarkerService = Depends(get_area_marker_service)):
    return await service.list_markers()


@router.get("/{marker_id}")
async def get_area_marker(marker_id: str, service: AreaMarkerService = Depends(get_area_marker_service)):
    return await service.get_marker(marker_id)


@router.post("")
async def add_area_marker(body: AreaMarkerCreate, current_user: dict = Depends(get_current_user), service: AreaMarkerService = Depends(get_area_marker_service), sockets: SocketService = Depends(get_socket_service)):
    marker = await service.add_marker(body, created_by=current_user["_id"])
    await sockets.broadcast("area-marker-added", marker, exclude_user_id=current_user["_id"])
    return marker


@router.put("/{marker_id}")
async def update_area_marker(marker_id: str, body: AreaMarkerUpdate, current_user: dict = Depends(get_current_user), service: AreaMarkerService = Depends(get_area_marker_service), sockets: SocketService = Depends(get_socket_service)):
    marker = await service.update_marker(marker_id, body, current_user)
    await sockets.broadcast("area-marker-updated", marker, exclude_user_id=current_user["_id"])
    return marker


@router.delete("/{marker_id}")
async def delete_area_marker(marker_id: str, current_user: dict = Depends(get_current_user), service: AreaMarkerService = Depends(get_area_marker_service), sockets: SocketService = Depends(get_socket_service)):
    await service.remove_marker(marker_id, current_user)
    await sockets.broadcast("area-marker-removed", {"_id": marker_id, "id": marker_id}, exclude_user_id=current_user["_id"])
    return {"msg": "Deleted successfully"}
