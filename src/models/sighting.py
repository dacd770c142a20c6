"""Sighting and observation models.

``Sighting`` is a user's own logged bird sighting (stored by the sightings
provider); ``Observation`` is a record from the public observation feed
shown on the discovery screen.  Neither takes part in the photo pipeline;
they are plain data carried between the API and their providers.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SightingLocation(BaseModel):
    """Where a sighting happened, as captured by the client."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    name: str = ""


class SightingCreate(BaseModel):
    """Input for logging a new sighting."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    species_code: str = Field(..., min_length=1)
    com_name: str
    sci_name: str = ""
    location: SightingLocation
    notes: str = ""
    photo_url: str | None = None
    # Defaults to "now" when the client does not supply an observation time.
    obs_dt: datetime | None = None


class Sighting(BaseModel):
    """A stored sighting belonging to one user."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    species_code: str
    com_name: str
    sci_name: str = ""
    obs_dt: datetime
    lat: float
    lng: float
    loc_name: str = ""
    notes: str = ""
    photo_url: str | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class Observation(BaseModel):
    """One record from the public observation feed (eBird v2 shape)."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    species_code: str
    com_name: str
    sci_name: str = ""
    loc_id: str = ""
    loc_name: str = ""
    obs_dt: str = ""
    how_many: int | None = None
    lat: float | None = None
    lng: float | None = None
    obs_valid: bool = True
    obs_reviewed: bool = False
    location_private: bool = False
    sub_id: str = ""
