"""Google Places Nearby Search 适配器。

- URL: {places_base_url}/nearbysearch/json
- 参数: location=lat,lng / radius / type / key
- 响应: {"status": "OK" | "ZERO_RESULTS" | ..., "results": [...]}

只做直通调用，没有重试或退避。
"""

from typing import Any, Dict, List

import httpx

from healthsync_core.config.settings import settings
from healthsync_core.domain.exceptions import PlacesError
from healthsync_core.locator.facilities import Coordinates


class PlacesClient:
    name = "google-places"

    def __init__(self, cfg=settings):
        self._settings = cfg

    async def nearby_search(self, location: Coordinates, radius_m: int, place_type: str) -> List[Dict[str, Any]]:
        if not getattr(self._settings, "places_api_key", None):
            raise PlacesError(code="MISSING_API_KEY", message="places_api_key not set")
        params = {
            "location": f"{location.lat},{location.lng}",
            "radius": radius_m,
            "type": place_type,
            "key": self._settings.places_api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.get(f"{self._settings.places_base_url}/nearbysearch/json", params=params)
        except httpx.RequestError as e:
            raise PlacesError(code="NETWORK_ERROR", message=str(e), http_status=503)
        if resp.status_code >= 400:
            raise PlacesError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        data = resp.json()
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise PlacesError(
                code="PLACES_STATUS",
                message=data.get("error_message") or str(status),
                places_status=status,
            )
        return list(data.get("results") or [])
