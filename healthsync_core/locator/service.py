"""医疗机构定位服务。

流程：必要时先定位用户，再按筛选条件对每个 place type 调用一次
Nearby Search，合并去重后按距离排序。某个 type 查询失败只记日志并跳过。
"""

from __future__ import annotations

from typing import Dict, List, Optional

from healthsync_core.config.settings import settings
from healthsync_core.domain.events import FacilityFilter, LocationSearchRequest, SearchChannel
from healthsync_core.domain.exceptions import LocationError, PlacesError, ValidationError
from healthsync_core.infrastructure.logging.logger import logger
from healthsync_core.locator.facilities import (
    MAX_RADIUS_M,
    MIN_RADIUS_M,
    Coordinates,
    Facility,
    place_types_for,
    radius_in_range,
)
from healthsync_core.locator.geolocation import Geolocator, LocationStatus, locate_with_timeout
from healthsync_core.locator.places_client import PlacesClient


class FacilityLocator:
    def __init__(
        self,
        places: PlacesClient,
        geolocator: Geolocator,
        search_channel: Optional[SearchChannel] = None,
        cfg=settings,
    ):
        self._places = places
        self._geolocator = geolocator
        self._settings = cfg
        self.user_location: Optional[Coordinates] = None
        self.permission_status: LocationStatus = "idle"
        self.facility_filter: FacilityFilter = "all"
        self.radius_m = 5000
        self.facilities: List[Facility] = []
        self.error: Optional[str] = None
        if search_channel is not None:
            search_channel.subscribe(self.handle_search_request)

    async def handle_search_request(self, request: LocationSearchRequest) -> None:
        await self.search_nearby_healthcare(request.facility_type, request.radius_m)

    async def request_user_location(self) -> Coordinates:
        self.permission_status = "requesting"
        self.error = None
        try:
            coords = await locate_with_timeout(self._geolocator, self._settings.geolocation_timeout)
        except LocationError as e:
            self.permission_status = e.extra.get("status", "unavailable")
            self.error = e.message
            logger.warning("Geolocation failed", extra={"extra": {"status": self.permission_status}})
            raise
        self.permission_status = "granted"
        self.user_location = coords
        return coords

    async def search_nearby_healthcare(
        self,
        facility_type: FacilityFilter = "all",
        radius_m: int = 5000,
    ) -> List[Facility]:
        if not radius_in_range(radius_m):
            raise ValidationError(
                code="INVALID_RADIUS",
                message=f"radius must be between {MIN_RADIUS_M} and {MAX_RADIUS_M} metres",
            )
        self.facility_filter = facility_type
        self.radius_m = radius_m
        origin = self.user_location or await self.request_user_location()

        found: Dict[str, Facility] = {}
        anonymous: List[Facility] = []
        for place_type in place_types_for(facility_type):
            try:
                results = await self._places.nearby_search(origin, radius_m, place_type)
            except PlacesError as e:
                logger.warning(
                    "Nearby search failed",
                    extra={"extra": {"type": place_type, "code": e.code, "error": e.message}},
                )
                continue
            for place in results:
                facility = Facility.from_place(place, place_type, origin)
                if facility is None:
                    continue
                if not facility.place_id:
                    anonymous.append(facility)
                elif facility.place_id not in found:
                    found[facility.place_id] = facility

        self.facilities = sorted(
            list(found.values()) + anonymous,
            key=lambda f: f.distance_km if f.distance_km is not None else float("inf"),
        )
        logger.info(
            "Facility search completed",
            extra={"extra": {"filter": facility_type, "radius_m": radius_m, "count": len(self.facilities)}},
        )
        return self.facilities

    def clear(self) -> None:
        self.facilities = []
