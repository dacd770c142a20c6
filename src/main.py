"""Bird photo service FastAPI application entry point.

Wires together all stores, providers, and services via dependency
injection.  Loads configuration from ``.env`` and ``config/config.yaml``,
configures structured logging, and starts the enrichment scheduler inside
the application lifespan.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import WorkerConfig, load_config
from src.config.settings import Settings
from src.pipeline.scheduler import EnrichmentScheduler
from src.providers.cache.memory_cache import MemoryCacheProvider
from src.providers.geocoding.nominatim_provider import NominatimGeocodingProvider
from src.providers.image.factory import create_image_provider
from src.providers.observation.ebird_provider import EBirdObservationProvider
from src.providers.photo_cache.sqlite_photo_cache_store import SQLitePhotoCacheStore
from src.providers.rate_budget.sqlite_rate_budget_store import SQLiteRateBudgetStore
from src.providers.sightings.sqlite_sightings_provider import SQLiteSightingsProvider
from src.services.enrichment_worker import EnrichmentWorker
from src.services.photo_lookup_service import PhotoLookupService
from src.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every store, provider, and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    worker_config = WorkerConfig.from_config(app_config)

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)
    response_cache = MemoryCacheProvider(ttl=app_settings.observation_cache_ttl)

    # -- Stores --
    photo_cache_store = SQLitePhotoCacheStore(db_path=app_settings.photo_cache_db_path)
    rate_budget_store = SQLiteRateBudgetStore(db_path=app_settings.photo_cache_db_path)
    sightings_provider = SQLiteSightingsProvider(db_path=app_settings.sightings_db_path)

    # -- External providers --
    image_provider = create_image_provider(app_settings, rate_budget_store, http_client=http_client)
    observation_provider = EBirdObservationProvider(
        api_key=app_settings.ebird_api_key,
        api_base=app_settings.ebird_api_base,
        cache=response_cache,
        cache_ttl=app_settings.observation_cache_ttl,
        http_client=http_client,
    )
    geocoding_provider = NominatimGeocodingProvider(
        base_url=app_settings.nominatim_base_url,
        user_agent=app_settings.wikipedia_user_agent,
        cache=response_cache,
        http_client=http_client,
    )

    # -- Services --
    lookup_service = PhotoLookupService(
        store=photo_cache_store,
        max_retries=worker_config.max_retries,
        stale_after=timedelta(minutes=worker_config.stale_processing_minutes),
    )
    worker = EnrichmentWorker(
        store=photo_cache_store,
        image_provider=image_provider,
        batch_size=worker_config.batch_size,
        request_delay=worker_config.request_delay_seconds,
        max_retries=worker_config.max_retries,
        backoff_base_minutes=worker_config.backoff_base_minutes,
    )
    scheduler = EnrichmentScheduler(
        worker=worker,
        interval_minutes=worker_config.interval_minutes,
        run_timeout_seconds=worker_config.run_timeout_seconds,
    )

    provider_registry: dict[str, Any] = {
        "image_provider": image_provider.is_available(),
        "image_provider_name": image_provider.get_provider_name(),
        "observations": observation_provider.is_available(),
        "geocoding": True,
    }

    return {
        "http_client": http_client,
        "photo_cache_store": photo_cache_store,
        "rate_budget_store": rate_budget_store,
        "sightings_provider": sightings_provider,
        "image_provider": image_provider,
        "image_provider_name": image_provider.get_provider_name(),
        "observation_provider": observation_provider,
        "geocoding_provider": geocoding_provider,
        "lookup_service": lookup_service,
        "worker": worker,
        "scheduler": scheduler,
        "worker_config": worker_config,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all stores and start the scheduler on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["photo_cache_store"].initialize()
    await components["rate_budget_store"].initialize()
    await components["sightings_provider"].initialize()

    scheduler: EnrichmentScheduler = components["scheduler"]
    if settings.scheduler_enabled:
        await scheduler.start()

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        image_provider=components["image_provider_name"],
        scheduler_enabled=settings.scheduler_enabled,
    )

    yield

    # -- Shutdown: stop the scheduler, then close the shared httpx client --
    await scheduler.stop()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="Scheduler stopped, HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Bird Photo Cache API",
        version=_VERSION,
        description=(
            "Batch bird photo lookup backed by a persistent cache, with a "
            "background worker that fetches missing photos from an external "
            "image source within its rate budget."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
