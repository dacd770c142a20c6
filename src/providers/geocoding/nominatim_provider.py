"""Nominatim (OpenStreetMap) reverse-geocoding provider.

Turns a coordinate into a short place label for the sighting form, e.g.
``"Ithaca, New York"``.  Preference order for the locality is city, then
town, then village; without a state the bare locality or the full
``display_name`` is used.  Nominatim's usage policy requires an identifying
``User-Agent``.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.observation_provider import IGeocodingProvider

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org"
_DEFAULT_TIMEOUT = 10.0


def format_place_name(payload: dict) -> str | None:
    """Build the display label from a Nominatim ``reverse`` response."""
    address = payload.get("address") or {}
    locality = address.get("city") or address.get("town") or address.get("village")
    state = address.get("state")
    if locality and state:
        return f"{locality}, {state}"
    return locality or payload.get("display_name") or None


class NominatimGeocodingProvider(IGeocodingProvider):
    """Reverse geocoding via Nominatim.  Never raises."""

    def __init__(
        self,
        base_url: str = _DEFAULT_BASE_URL,
        user_agent: str = "BirdPhotoCache/0.1",
        cache: ICacheProvider | None = None,
        cache_ttl: int = 86400,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"User-Agent": user_agent, "Accept-Language": "en"}
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    async def reverse(self, lat: float, lng: float) -> str | None:
        cache_key = f"nominatim:{lat:.3f}:{lng:.3f}"
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            response = await self._client.get(
                f"{self._base_url}/reverse",
                params={"format": "json", "lat": lat, "lon": lng},
                headers=self._headers,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("nominatim_reverse_failed", lat=lat, lng=lng, error=str(exc))
            return None

        if not isinstance(payload, dict):
            return None
        name = format_place_name(payload)
        if name and self._cache is not None:
            await self._cache.set(cache_key, name, ttl=self._cache_ttl)
        return name

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "nominatim"
