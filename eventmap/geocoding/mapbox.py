"""
Best-effort reverse geocoding through the Mapbox Geocoding API.

Lookups never raise: a missing token, a failed request or an empty answer
all yield None. Answers are cached for an hour keyed on coordinates rounded
to 5 decimal places (~1 m).
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

import httpx
from cachetools import TTLCache

logger = logging.getLogger(__name__)

GEOCODING_BASE = "https://api.mapbox.com/geocoding/v5/mapbox.places"
CACHE_TTL_SEC = 60 * 60


class MapboxReverseGeocoder:
    """Turns a picked map location into a display address."""

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache_size: int = 256,
    ):
        self._token = token
        self.timeout = timeout
        self._transport = transport
        self._cache: TTLCache[Tuple[float, float], Optional[str]] = TTLCache(
            maxsize=cache_size, ttl=CACHE_TTL_SEC
        )

    def _resolve_token(self) -> str:
        return self._token or os.getenv("MAPBOX_TOKEN", "")

    @staticmethod
    def _cache_key(lat: float, lng: float) -> Tuple[float, float]:
        return (round(lat, 5), round(lng, 5))

    async def lookup_address(self, lat: float, lng: float) -> Optional[str]:
        """Place name of the nearest feature, or None."""
        token = self._resolve_token()
        if not token:
            logger.debug("MAPBOX_TOKEN not set; skipping reverse geocoding")
            return None

        key = self._cache_key(lat, lng)
        if key in self._cache:
            return self._cache[key]

        url = f"{GEOCODING_BASE}/{lng},{lat}.json"
        params = {"access_token": token, "limit": 1}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                if response.status_code != 200:
                    logger.warning(f"Reverse geocoding failed with status {response.status_code}")
                    return None
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Reverse geocoding failed: {e}")
            return None

        features = data.get("features") if isinstance(data, dict) else None
        place = None
        if features:
            place = features[0].get("place_name") or None
        self._cache[key] = place
        return place
