import logging
from typing import Any, Dict, List

from friendmap.core.errors import Forbidden, NotFound
from friendmap.repositories.area_marker_repository import AreaMarkerRepository
from friendmap.schemas.area_marker import AreaMarkerCreate, AreaMarkerUpdate


logger = logging.getLogger(__name__)


class AreaMarkerService:

    def __init__(self, marker_repo: AreaMarkerRepository, default_radius: float = 500.0) -> None:
        self._marker_repo = marker_repo
        self._default_radius = default_radius

    async def list_markers(self) -> List[Dict[str, Any]]:
        return await self._marker_repo.list_all()

    async def get_marker(self, marker_id: str) -> Dict[str, Any]:
        marker = await self._marker_repo.get_by_id(marker_id)
        if not marker:
            raise NotFound("Area marker not found")
        return marker

    async def add_marker(self, marker: AreaMarkerCreate, created_by: str) -> Dict[str, Any]:
        doc = {
            "position": {"lat": marker.position.lat, "lng": marker.position.lng},
            "title": marker.title,
            "description": marker.description,
            "color": marker.color,
            "icon": marker.icon,
            "radius": marker.radius or self._default_radius,
            "createdBy": created_by,
        }
        saved = await self._marker_repo.create(doc)
        logger.info("Area marker %s added by %s", saved["_id"], created_by)
        return saved

    async def update_marker(self, marker_id: str, changes: AreaMarkerUpdate, acting_user: dict) -> Dict[str, Any]:
        existing = await self.get_marker(marker_id)
        self._check_owner(existing, acting_user)
        fields = changes.model_dump(exclude_unset=True, exclude_none=True)
        if "position" in fields:
            fields["position"] = {"lat": changes.position.lat, "lng": changes.position.lng}
        updated = await self._marker_repo.update(marker_id, fields)
        if not updated:
            raise NotFound("Area marker not found")
        return updated

    async def remove_marker(self, marker_id: str, acting_user: dict) -> None:
        existing = await self.get_marker(marker_id)
        self._check_owner(existing, acting_user)
        await self._marker_repo.delete(marker_id)
        logger.info("Area marker %s removed by %s", marker_id, acting_user.get("_id"))

    @staticmethod
    def _check_owner(marker: Dict[str, Any], acting_user: dict) -> None:
        if acting_user.get("isAdmin"):
            return
        if marker.get("createdBy") != acting_user.get("_id"):
            raise Forbidden("Not authorized to modify this area marker")
