"""eBird API v2 observation provider.

Fetches recent and notable observations around a coordinate from the eBird
``data/obs/geo/recent`` endpoints.  Every request carries the
``X-eBirdApiToken`` header.  Results are memoized in the response cache for
a short TTL keyed on rounded coordinates, since the discovery screen asks
for the same area on every visit.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.observation_provider import IObservationProvider
from src.models.sighting import Observation
from src.utils.errors import ConfigurationError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_API_BASE = "https://api.ebird.org/v2"
_DEFAULT_TIMEOUT = 15.0
# eBird caps the search radius at 50 km and the look-back at 30 days.
_MAX_DIST_KM = 50
_MAX_BACK_DAYS = 30


class EBirdObservationProvider(IObservationProvider):
    """Observation feed backed by the eBird API."""

    def __init__(
        self,
        api_key: str,
        api_base: str = _DEFAULT_API_BASE,
        cache: ICacheProvider | None = None,
        cache_ttl: int = 900,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._api_base = api_base.rstrip("/")
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch(
        self,
        path: str,
        lat: float,
        lng: float,
        dist_km: int,
        back_days: int,
    ) -> list[Observation]:
        if not self._api_key:
            raise ConfigurationError(
                message="eBird API key not configured (set EBIRD_API_KEY)",
                provider_name=self.get_provider_name(),
            )

        params = {
            "lat": f"{lat:.4f}",
            "lng": f"{lng:.4f}",
            "dist": str(max(0, min(dist_km, _MAX_DIST_KM))),
            "back": str(max(1, min(back_days, _MAX_BACK_DAYS))),
            "detail": "full",
        }
        cache_key = f"ebird:{path}:{params['lat']}:{params['lng']}:{params['dist']}:{params['back']}"
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            response = await self._client.get(
                f"{self._api_base}/{path}",
                params=params,
                headers={"X-eBirdApiToken": self._api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 429:
                raise RateLimitError(
                    message="eBird request quota exceeded",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise ProviderUnavailableError(
                message=(
                    f"eBird request failed with status {exc.response.status_code}: "
                    f"{exc.response.text[:200]}"
                ),
                provider_name=self.get_provider_name(),
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderUnavailableError(
                message=f"eBird request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        observations = [Observation.model_validate(item) for item in payload or []]
        logger.info(
            "ebird_observations_fetched",
            path=path,
            lat=params["lat"],
            lng=params["lng"],
            count=len(observations),
        )
        if self._cache is not None:
            await self._cache.set(cache_key, observations, ttl=self._cache_ttl)
        return observations

    # ------------------------------------------------------------------
    # IObservationProvider implementation
    # ------------------------------------------------------------------

    async def get_nearby_notable(
        self,
        lat: float,
        lng: float,
        dist_km: int = 10,
        back_days: int = 7,
    ) -> list[Observation]:
        return await self._fetch("data/obs/geo/recent/notable", lat, lng, dist_km, back_days)

    async def get_nearby_recent(
        self,
        lat: float,
        lng: float,
        dist_km: int = 10,
        back_days: int = 7,
    ) -> list[Observation]:
        return await self._fetch("data/obs/geo/recent", lat, lng, dist_km, back_days)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def is_available(self) -> bool:
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "ebird"
