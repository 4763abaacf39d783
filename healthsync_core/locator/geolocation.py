"""定位端口。

Geolocator 由宿主环境提供（浏览器定位、IP 定位、固定坐标等）。
locate_with_timeout 统一超时与失败映射：

- PermissionError -> denied
- 超时 -> timeout
- 其他 OSError / LookupError -> unavailable
"""

import asyncio
from typing import Dict, Literal, Protocol

from healthsync_core.domain.exceptions import LocationError
from healthsync_core.locator.facilities import Coordinates


LocationStatus = Literal["idle", "requesting", "granted", "denied", "unavailable", "timeout"]

LOCATION_MESSAGES: Dict[str, str] = {
    "denied": "Location permission denied. Please enable location access in your browser settings.",
    "unavailable": "Location information is unavailable.",
    "timeout": "Location request timed out. Please try again.",
}


class Geolocator(Protocol):
    async def locate(self) -> Coordinates:
        ...


class StaticGeolocator:
    """返回固定坐标，适合服务端或测试环境。"""

    def __init__(self, lat: float, lng: float):
        self._coords = Coordinates(lat=lat, lng=lng)

    async def locate(self) -> Coordinates:
        return self._coords


def location_error(status: str) -> LocationError:
    return LocationError(code="LOCATION_" + status.upper(), message=LOCATION_MESSAGES[status], status=status)


async def locate_with_timeout(geolocator: Geolocator, timeout: float) -> Coordinates:
    try:
        return await asyncio.wait_for(geolocator.locate(), timeout=timeout)
    except asyncio.TimeoutError:
        raise location_error("timeout")
    except PermissionError:
        raise location_error("denied")
    except LocationError:
        raise
    except (OSError, LookupError):
        raise location_error("unavailable")
