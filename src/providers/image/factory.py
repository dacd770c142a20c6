"""Image provider selection.

Shared by the API app (``src/main.py``) and the photo queue CLI so both
pick the same provider for the same settings.
"""

from __future__ import annotations

import httpx
import structlog

from src.config.settings import Settings
from src.interfaces.image_provider import IBirdImageProvider
from src.interfaces.rate_budget_store import IRateBudgetStore
from src.providers.image.unsplash_provider import UnsplashImageProvider
from src.providers.image.wikipedia_provider import WikipediaImageProvider

logger = structlog.get_logger(logger_name=__name__)


def create_image_provider(
    app_settings: Settings,
    budget_store: IRateBudgetStore,
    http_client: httpx.AsyncClient | None = None,
) -> IBirdImageProvider:
    """Build the image provider named by ``IMAGE_PROVIDER``.

    ``unsplash`` without an access key falls back to Wikipedia with a
    warning; unknown names also fall back to Wikipedia.
    """
    requested = app_settings.image_provider.strip().lower()
    name = app_settings.get_image_provider_name()
    if name != requested:
        logger.warning("image_provider_fallback", requested=requested, using=name)

    if name == "unsplash":
        return UnsplashImageProvider(
            access_key=app_settings.unsplash_access_key,
            budget_store=budget_store,
            rate_limit=app_settings.unsplash_rate_limit,
            window_seconds=app_settings.unsplash_rate_window_hours * 3600,
            placeholder_url=app_settings.unsplash_placeholder_url,
            http_client=http_client,
        )
    return WikipediaImageProvider(
        api_base=app_settings.wikipedia_api_base,
        user_agent=app_settings.wikipedia_user_agent,
        http_client=http_client,
    )
