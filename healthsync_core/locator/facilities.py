"""医疗机构数据模型与纯函数工具。

- place_types_for: 筛选条件 -> Places API 的 type 列表。
- detect_facility_type: 根据 place types 与名称判断机构类别。
- haversine_km: 两点间球面距离（公里）。
- directions_url: 生成 Google Maps 导航/搜索链接。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Optional
from urllib.parse import quote

from healthsync_core.domain.events import FacilityFilter


FacilityType = Literal["hospital", "clinic", "pharmacy", "health", "unknown"]

EARTH_RADIUS_KM = 6371.0
MIN_RADIUS_M = 500
MAX_RADIUS_M = 50000

_PLACE_TYPES: Dict[str, List[str]] = {
    "hospital": ["hospital"],
    "doctor": ["doctor", "dentist", "physiotherapist"],
    "pharmacy": ["pharmacy", "drugstore"],
    "health": ["health"],
    "all": ["hospital", "doctor", "dentist", "pharmacy", "drugstore", "health"],
}


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass
class Facility:
    place_id: str
    name: str
    address: str
    location: Coordinates
    facility_type: FacilityType
    distance_km: Optional[float] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    is_open: Optional[bool] = None

    @classmethod
    def from_place(cls, place: Dict[str, Any], searched_type: str, origin: Optional[Coordinates] = None) -> Optional["Facility"]:
        """把 Places API 的一条结果转换为 Facility；缺少坐标时返回 None。"""

        loc = ((place.get("geometry") or {}).get("location")) or {}
        if "lat" not in loc or "lng" not in loc:
            return None
        coords = Coordinates(lat=float(loc["lat"]), lng=float(loc["lng"]))
        opening = place.get("opening_hours") or {}
        return cls(
            place_id=place.get("place_id") or "",
            name=place.get("name") or "Unknown Facility",
            address=place.get("vicinity") or place.get("formatted_address") or "Address not available",
            location=coords,
            facility_type=detect_facility_type(place.get("types") or [], place.get("name") or "", searched_type),
            distance_km=haversine_km(origin, coords) if origin else None,
            rating=place.get("rating"),
            user_ratings_total=place.get("user_ratings_total"),
            is_open=opening.get("open_now"),
        )


def place_types_for(facility_filter: FacilityFilter) -> List[str]:
    return list(_PLACE_TYPES.get(facility_filter, _PLACE_TYPES["all"]))


def detect_facility_type(types: Iterable[str], name: str, searched_type: str) -> FacilityType:
    types = set(types)
    name = name.lower()
    if "hospital" in types or "hospital" in name:
        return "hospital"
    if types & {"pharmacy", "drugstore"} or "pharmacy" in name or "chemist" in name:
        return "pharmacy"
    if types & {"doctor", "dentist", "physiotherapist"} or any(
        word in name for word in ("clinic", "doctor", "healthcare", "medical")
    ):
        return "clinic"
    if "health" in types or "health" in name:
        return "health"
    # 回退到搜索时使用的 type
    if searched_type == "hospital":
        return "hospital"
    if searched_type in ("pharmacy", "drugstore"):
        return "pharmacy"
    if searched_type in ("doctor", "dentist", "physiotherapist"):
        return "clinic"
    return "unknown"


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def radius_in_range(radius_m: int) -> bool:
    return MIN_RADIUS_M <= radius_m <= MAX_RADIUS_M


def directions_url(facility: Facility, origin: Optional[Coordinates] = None) -> str:
    if origin is not None and facility.place_id:
        return (
            "https://www.google.com/maps/dir/?api=1"
            f"&origin={origin.lat},{origin.lng}"
            f"&destination=place_id:{facility.place_id}&travelmode=driving"
        )
    return f"https://www.google.com/maps/search/{quote(facility.name, safe='')}"
