"""Domain models for the bird photo service - re-exports the public classes.

Organised by concern:
    - photo_cache.py  - CacheEntry, its status enum, the transition function
                        and the legacy-row normalizer; BirdImage responses
    - rate_budget.py  - Fixed-window request counter for image providers
    - sighting.py     - User sightings and public observation-feed records
"""

from __future__ import annotations

from src.models.photo_cache import (
    HYBRID_SKIP_REASON,
    BirdImage,
    CacheEntry,
    Completed,
    Failed,
    Pending,
    PhotoStatus,
    Processing,
    can_transition,
    normalize_cache_entry,
    transition,
)
from src.models.rate_budget import RateBudget
from src.models.sighting import Observation, Sighting, SightingCreate, SightingLocation

__all__ = [
    "HYBRID_SKIP_REASON",
    "BirdImage",
    "CacheEntry",
    "Completed",
    "Failed",
    "Observation",
    "Pending",
    "PhotoStatus",
    "Processing",
    "RateBudget",
    "Sighting",
    "SightingCreate",
    "SightingLocation",
    "can_transition",
    "normalize_cache_entry",
    "transition",
]
