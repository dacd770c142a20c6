"""Unsplash photo-search image provider.

Searches Unsplash for ``"<common name> bird"`` (or ``"bird <species code>"``
when no common name is known) and takes the first hit.  The demo tier
allows 50 requests per hour, so every call first claims one unit from a
shared :class:`~src.interfaces.rate_budget_store.IRateBudgetStore` budget.
When the budget is spent, when the budget check itself fails, or when
Unsplash answers 429, the provider returns a *placeholder* result without
spending quota; the worker treats that as "try again later", not as a miss.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.image_provider import NOT_FOUND, IBirdImageProvider, ImageResult
from src.interfaces.rate_budget_store import IRateBudgetStore
from src.utils.errors import BirdPhotoError

logger = structlog.get_logger(logger_name=__name__)

_SEARCH_URL = "https://api.unsplash.com/search/photos"
_DEFAULT_TIMEOUT = 10.0
BUDGET_NAME = "unsplash_api"


def _first_url(urls: dict, *keys: str) -> str | None:
    for key in keys:
        value = urls.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class UnsplashImageProvider(IBirdImageProvider):
    """Image lookup via the Unsplash search API, gated by a request budget.

    Parameters
    ----------
    access_key:
        Unsplash application access key.
    budget_store:
        Shared store holding the request counter.
    rate_limit:
        Requests allowed per window.
    window_seconds:
        Length of the budget window.
    placeholder_url:
        Stand-in image URL attached to placeholder results (may be empty).
    """

    def __init__(
        self,
        access_key: str,
        budget_store: IRateBudgetStore,
        rate_limit: int = 50,
        window_seconds: int = 3600,
        placeholder_url: str = "",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._access_key = access_key
        self._budget_store = budget_store
        self._rate_limit = rate_limit
        self._window_seconds = window_seconds
        self._placeholder = ImageResult(
            thumbnail=placeholder_url or None,
            original=placeholder_url or None,
            placeholder=True,
        )
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_query(species_code: str, common_name: str) -> str:
        common_name = (common_name or "").strip()
        if common_name:
            return f"{common_name} bird"
        return f"bird {species_code}"

    async def _acquire_budget(self) -> bool:
        try:
            return await self._budget_store.try_acquire(
                BUDGET_NAME, self._rate_limit, self._window_seconds
            )
        except BirdPhotoError as exc:
            # Unknown budget state counts as exhausted.
            logger.error("unsplash_budget_check_failed", error=str(exc))
            return False

    # ------------------------------------------------------------------
    # IBirdImageProvider implementation
    # ------------------------------------------------------------------

    async def resolve_image(
        self,
        species_code: str,
        scientific_name: str,
        common_name: str,
    ) -> ImageResult:
        if not await self._acquire_budget():
            logger.info("unsplash_budget_exhausted", species_code=species_code)
            return self._placeholder

        query = self._build_query(species_code, common_name)
        try:
            response = await self._client.get(
                _SEARCH_URL,
                params={"query": query, "per_page": 1},
                headers={
                    "Authorization": f"Client-ID {self._access_key}",
                    "Accept-Version": "v1",
                },
            )
            if response.status_code == 429:
                logger.warning("unsplash_rate_limited", species_code=species_code)
                return self._placeholder
            if response.status_code != 200:
                logger.warning(
                    "unsplash_api_error",
                    species_code=species_code,
                    status=response.status_code,
                )
                return NOT_FOUND
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("unsplash_request_failed", species_code=species_code, error=str(exc))
            return NOT_FOUND

        results = data.get("results") if isinstance(data, dict) else None
        if not results or not isinstance(results, list):
            logger.info("unsplash_no_results", species_code=species_code, query=query)
            return NOT_FOUND

        urls = results[0].get("urls") if isinstance(results[0], dict) else None
        if not isinstance(urls, dict):
            logger.info("unsplash_malformed_result", species_code=species_code, query=query)
            return NOT_FOUND
        thumbnail = _first_url(urls, "small", "thumb", "regular")
        if not thumbnail:
            return NOT_FOUND
        original = _first_url(urls, "regular", "full") or thumbnail
        logger.info("unsplash_image_found", species_code=species_code, query=query)
        return ImageResult(thumbnail=thumbnail, original=original)

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    def is_available(self) -> bool:
        return bool(self._access_key)

    def get_provider_name(self) -> str:
        return "unsplash"
