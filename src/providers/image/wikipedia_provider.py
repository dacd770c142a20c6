"""Wikipedia page-summary image provider.

Looks up the species' encyclopedia article through the Wikimedia REST
``page/summary`` endpoint and returns the lead image: ``thumbnail.source``
(~320px) as the thumbnail and ``originalimage.source`` as the original.

Lookup order is scientific name first (article titles for birds almost
always redirect from the binomial), then the common name when the first
response has no thumbnail.  Wikimedia's API etiquette requires a
descriptive ``User-Agent`` with contact details; requests without one may
be throttled or blocked.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.image_provider import NOT_FOUND, IBirdImageProvider, ImageResult
from src.utils.species_names import encode_page_title

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_API_BASE = "https://en.wikipedia.org/api/rest_v1"
_DEFAULT_TIMEOUT = 10.0
_DEFAULT_USER_AGENT = "BirdPhotoCache/0.1 (https://github.com/birdphotos/bird-photo-cache)"


def _image_source(image: object) -> str | None:
    """Return ``image["source"]`` when *image* is a summary image object."""
    if not isinstance(image, dict):
        return None
    source = image.get("source")
    return source if isinstance(source, str) and source else None


class WikipediaImageProvider(IBirdImageProvider):
    """Image lookup via the Wikipedia REST page-summary API.

    Never raises: non-2xx responses, transport errors, malformed JSON and
    summaries without a thumbnail all resolve to :data:`NOT_FOUND`.
    """

    def __init__(
        self,
        api_base: str = _DEFAULT_API_BASE,
        user_agent: str = _DEFAULT_USER_AGENT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_base = api_base.rstrip("/")
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            follow_redirects=True,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch_summary(self, title: str) -> ImageResult:
        url = f"{self._api_base}/page/summary/{encode_page_title(title)}"
        try:
            response = await self._client.get(url, headers=self._headers)
            if response.status_code != 200:
                logger.debug("wikipedia_summary_status", title=title, status=response.status_code)
                return NOT_FOUND
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("wikipedia_api_error", title=title, error=str(exc))
            return NOT_FOUND

        if not isinstance(data, dict):
            return NOT_FOUND
        thumbnail = _image_source(data.get("thumbnail"))
        if not thumbnail:
            return NOT_FOUND
        original = _image_source(data.get("originalimage")) or thumbnail
        return ImageResult(thumbnail=thumbnail, original=original)

    # ------------------------------------------------------------------
    # IBirdImageProvider implementation
    # ------------------------------------------------------------------

    async def resolve_image(
        self,
        species_code: str,
        scientific_name: str,
        common_name: str,
    ) -> ImageResult:
        """Try the scientific name, then the common name; first thumbnail wins."""
        tried: list[str] = []
        for title in (scientific_name, common_name):
            title = (title or "").strip()
            if not title or title in tried:
                continue
            tried.append(title)
            result = await self._fetch_summary(title)
            if result.found:
                logger.info(
                    "wikipedia_image_found",
                    species_code=species_code,
                    title=title,
                )
                return result

        logger.info("wikipedia_image_not_found", species_code=species_code, tried=tried)
        return NOT_FOUND

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    def is_available(self) -> bool:
        """Always available - the REST API is public and keyless."""
        return True

    def get_provider_name(self) -> str:
        return "wikipedia"
