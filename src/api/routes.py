"""FastAPI API routes for the bird photo service.

Provides REST endpoints for the batch photo lookup, photo queue inspection
and manual worker runs, user sightings, the nearby-observation feed,
reverse geocoding, and health.  Service dependencies are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/bird-photos                   POST    Batch photo lookup (cache only)
# /api/v1/photo-queue/stats             GET     Cache entry counts by status
# /api/v1/photo-queue/run               POST    Run the enrichment worker now
# /api/v1/users/{uid}/sightings         POST    Log a sighting
# /api/v1/users/{uid}/sightings         GET     List a user's sightings
# /api/v1/sightings/{sighting_id}       DELETE  Delete a sighting
# /api/v1/observations/notable          GET     Nearby notable observations
# /api/v1/observations/recent           GET     Nearby recent observations
# /api/v1/locations/reverse             GET     Coordinate → place name
# /api/v1/health                        GET     Health check + provider status
#
# DEPENDENCY INJECTION PATTERN:
# Each route function declares its dependencies as type-annotated params.
# FastAPI resolves these via Depends() which calls helper functions that
# read from app.state (populated at startup in main.py's _build_all).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request

from src.api.schemas import (
    BirdPhotosRequest,
    BirdPhotosResponse,
    ErrorResponse,
    HealthResponse,
    ObservationsResponse,
    QueueStatsResponse,
    RateBudgetStatus,
    ReverseGeocodeResponse,
    SightingCreatedResponse,
    SightingDeletedResponse,
    SightingsListResponse,
    WorkerRunResponse,
)
from src.models.sighting import SightingCreate
from src.providers.image.unsplash_provider import BUDGET_NAME as UNSPLASH_BUDGET_NAME
from src.utils.errors import InvalidRequestError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers - resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_lookup_service(request: Request) -> Any:
    """Return the photo lookup service from application state."""
    return request.app.state.lookup_service


def _get_photo_cache_store(request: Request) -> Any:
    """Return the photo cache store from application state."""
    return request.app.state.photo_cache_store


def _get_rate_budget_store(request: Request) -> Any:
    """Return the rate budget store from application state, or ``None``."""
    return getattr(request.app.state, "rate_budget_store", None)


def _get_scheduler(request: Request) -> Any:
    """Return the enrichment scheduler from application state, or ``None``."""
    return getattr(request.app.state, "scheduler", None)


def _get_sightings_provider(request: Request) -> Any:
    """Return the sightings provider from application state, or ``None``."""
    return getattr(request.app.state, "sightings_provider", None)


def _get_observation_provider(request: Request) -> Any:
    """Return the observation feed provider from application state, or ``None``."""
    return getattr(request.app.state, "observation_provider", None)


def _get_geocoding_provider(request: Request) -> Any:
    """Return the reverse-geocoding provider from application state, or ``None``."""
    return getattr(request.app.state, "geocoding_provider", None)


LookupDep = Annotated[Any, Depends(_get_lookup_service)]
PhotoCacheDep = Annotated[Any, Depends(_get_photo_cache_store)]
RateBudgetDep = Annotated[Any, Depends(_get_rate_budget_store)]
SchedulerDep = Annotated[Any, Depends(_get_scheduler)]
SightingsDep = Annotated[Any, Depends(_get_sightings_provider)]
ObservationDep = Annotated[Any, Depends(_get_observation_provider)]
GeocodingDep = Annotated[Any, Depends(_get_geocoding_provider)]


# ---------------------------------------------------------------------------
# Photo lookup
# ---------------------------------------------------------------------------


@router.post(
    "/bird-photos",
    response_model=BirdPhotosResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Look up cached bird photos",
)
async def get_bird_photos(
    lookup_service: LookupDep,
    payload: Annotated[Any, Body()] = None,
) -> BirdPhotosResponse:
    """Return cached photos for the requested species; queue the rest.

    A ``null`` value means the photo is not available yet (queued, being
    fetched, or not found); the client shows a placeholder and may ask
    again later.

    The body is taken as raw JSON so that a missing or non-object body
    gets the same ``invalid-argument`` error as a bad ``speciesCodes``.
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("The request body must be a JSON object.")
    body = BirdPhotosRequest.model_validate(payload)
    photos = await lookup_service.get_bird_photos(
        body.species_codes,
        common_names=body.common_names,
        scientific_names=body.scientific_names,
    )
    return BirdPhotosResponse(photos_by_bird=photos)


# ---------------------------------------------------------------------------
# Photo queue
# ---------------------------------------------------------------------------


@router.get(
    "/photo-queue/stats",
    response_model=QueueStatsResponse,
    summary="Photo cache entry counts by status",
)
async def photo_queue_stats(
    request: Request,
    store: PhotoCacheDep,
    scheduler: SchedulerDep,
    budget_store: RateBudgetDep,
) -> QueueStatsResponse:
    counts = await store.status_counts()
    last = scheduler.last_summary if scheduler is not None else None
    provider_name = getattr(request.app.state, "image_provider_name", "unknown")

    rate_budget = None
    if provider_name == "unsplash" and budget_store is not None:
        budget = await budget_store.get(UNSPLASH_BUDGET_NAME)
        if budget is not None:
            now = datetime.now(tz=timezone.utc)  # noqa: UP017
            rate_budget = RateBudgetStatus(
                name=budget.name,
                count=budget.count,
                limit=budget.limit,
                remaining=budget.remaining(now),
                exhausted=budget.is_exhausted(now),
                window_end=budget.window_end,
            )

    return QueueStatsResponse(
        counts=counts,
        total=sum(counts.values()),
        image_provider=provider_name,
        scheduler_running=bool(scheduler is not None and scheduler.is_running),
        last_run=last.to_dict() if last is not None else None,
        rate_budget=rate_budget,
    )


@router.post(
    "/photo-queue/run",
    response_model=WorkerRunResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Run the enrichment worker once",
)
async def run_photo_queue(scheduler: SchedulerDep) -> WorkerRunResponse:
    """Process one batch now.  Waits for a scheduled run already in progress."""
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Enrichment worker unavailable")
    summary = await scheduler.trigger()
    return WorkerRunResponse(summary=summary.to_dict())


# ---------------------------------------------------------------------------
# Sightings
# ---------------------------------------------------------------------------


@router.post(
    "/users/{user_id}/sightings",
    response_model=SightingCreatedResponse,
    status_code=201,
    summary="Log a sighting",
)
async def add_sighting(
    user_id: str,
    body: SightingCreate,
    sightings: SightingsDep,
) -> SightingCreatedResponse:
    if sightings is None:
        raise HTTPException(status_code=503, detail="Sightings service unavailable")
    sighting_id = await sightings.add_sighting(user_id, body)
    return SightingCreatedResponse(id=sighting_id)


@router.get(
    "/users/{user_id}/sightings",
    response_model=SightingsListResponse,
    summary="List a user's sightings, newest observation first",
)
async def list_sightings(user_id: str, sightings: SightingsDep) -> SightingsListResponse:
    if sightings is None:
        raise HTTPException(status_code=503, detail="Sightings service unavailable")
    items = await sightings.get_user_sightings(user_id)
    return SightingsListResponse(user_id=user_id, sightings=items, total=len(items))


@router.delete(
    "/sightings/{sighting_id}",
    response_model=SightingDeletedResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a sighting",
)
async def delete_sighting(sighting_id: str, sightings: SightingsDep) -> SightingDeletedResponse:
    if sightings is None:
        raise HTTPException(status_code=503, detail="Sightings service unavailable")
    deleted = await sightings.delete_sighting(sighting_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Sighting {sighting_id} not found")
    return SightingDeletedResponse(id=sighting_id, deleted=True)


# ---------------------------------------------------------------------------
# Observation feed / geocoding
# ---------------------------------------------------------------------------

LatQuery = Annotated[float, Query(ge=-90.0, le=90.0)]
LngQuery = Annotated[float, Query(ge=-180.0, le=180.0)]
DistQuery = Annotated[int, Query(ge=0, le=50, description="Search radius in km")]
BackQuery = Annotated[int, Query(ge=1, le=30, description="Days to look back")]


@router.get(
    "/observations/notable",
    response_model=ObservationsResponse,
    responses={
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Notable observations near a point",
)
async def nearby_notable(
    lat: LatQuery,
    lng: LngQuery,
    observations: ObservationDep,
    dist: DistQuery = 10,
    back: BackQuery = 7,
) -> ObservationsResponse:
    if observations is None:
        raise HTTPException(status_code=503, detail="Observation feed unavailable")
    items = await observations.get_nearby_notable(lat, lng, dist_km=dist, back_days=back)
    return ObservationsResponse(observations=items, total=len(items))


@router.get(
    "/observations/recent",
    response_model=ObservationsResponse,
    responses={
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Recent observations near a point",
)
async def nearby_recent(
    lat: LatQuery,
    lng: LngQuery,
    observations: ObservationDep,
    dist: DistQuery = 10,
    back: BackQuery = 7,
) -> ObservationsResponse:
    if observations is None:
        raise HTTPException(status_code=503, detail="Observation feed unavailable")
    items = await observations.get_nearby_recent(lat, lng, dist_km=dist, back_days=back)
    return ObservationsResponse(observations=items, total=len(items))


@router.get(
    "/locations/reverse",
    response_model=ReverseGeocodeResponse,
    summary="Reverse geocode a coordinate",
)
async def reverse_geocode(
    lat: LatQuery,
    lng: LngQuery,
    geocoder: GeocodingDep,
) -> ReverseGeocodeResponse:
    """Return a short place name; ``name`` is ``null`` when none is found."""
    name = await geocoder.reverse(lat, lng) if geocoder is not None else None
    return ReverseGeocodeResponse(lat=lat, lng=lng, name=name)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    store = getattr(request.app.state, "photo_cache_store", None)
    store_ok = False
    if store is not None:
        try:
            await store.status_counts()
            store_ok = True
        except Exception as exc:
            _logger.warning("health_store_check_failed", error=str(exc))
    providers["photo_cache"] = store_ok

    if store_ok and providers.get("image_provider", True):
        status = "healthy"
    elif store_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(status=status, version=_VERSION, providers=providers)
