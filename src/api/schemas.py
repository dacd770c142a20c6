"""Pydantic request/response schemas for the bird photo API.

Defines the public contract for all REST endpoints: photo lookup, queue
inspection, sightings, observation feed, reverse geocoding, and health.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# These Pydantic models define the *shape* of every HTTP request body
# and response body in the API.  FastAPI uses them for validation,
# serialization (via response_model=...) and the OpenAPI docs at /docs.
#
# The client speaks camelCase JSON ("speciesCodes", "photosByBird"), so
# the models here declare camelCase aliases and accept either spelling
# on input.  FastAPI serializes responses by alias.
#
# Convention: Request schemas end with "Request", response schemas
# end with "Response".
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.models.photo_cache import BirdImage
from src.models.sighting import Observation, Sighting


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Photo lookup
# ---------------------------------------------------------------------------


class BirdPhotosRequest(_CamelModel):
    """Batch photo lookup request.

    Fields are typed loosely on purpose: shape checks happen in
    :class:`~src.services.photo_lookup_service.PhotoLookupService` so that
    a malformed request gets the same ``invalid-argument`` error whether
    it arrives over HTTP or from the CLI.
    """

    species_codes: Any = None
    common_names: Any = None
    scientific_names: Any = None


class BirdPhotosResponse(_CamelModel):
    """Photo per requested species code; ``null`` means "not yet available"."""

    photos_by_bird: dict[str, BirdImage | None]


# ---------------------------------------------------------------------------
# Photo queue
# ---------------------------------------------------------------------------


class RateBudgetStatus(_CamelModel):
    """Current window of the image provider's request budget."""

    name: str
    count: int
    limit: int
    remaining: int
    exhausted: bool
    window_end: datetime


class QueueStatsResponse(_CamelModel):
    """Cache entry counts by status, plus worker state."""

    counts: dict[str, int]
    total: int
    image_provider: str
    scheduler_running: bool = False
    last_run: dict[str, Any] | None = None
    rate_budget: RateBudgetStatus | None = None


class WorkerRunResponse(_CamelModel):
    """Outcome of a manually triggered worker run."""

    summary: dict[str, Any]


# ---------------------------------------------------------------------------
# Sightings
# ---------------------------------------------------------------------------


class SightingCreatedResponse(_CamelModel):
    id: str


class SightingsListResponse(_CamelModel):
    user_id: str
    sightings: list[Sighting]
    total: int


class SightingDeletedResponse(_CamelModel):
    id: str
    deleted: bool


# ---------------------------------------------------------------------------
# Observation feed / geocoding
# ---------------------------------------------------------------------------


class ObservationsResponse(_CamelModel):
    """Observations near a point, as returned by the feed."""

    observations: list[Observation]
    total: int


class ReverseGeocodeResponse(_CamelModel):
    lat: float
    lng: float
    name: str | None = None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
