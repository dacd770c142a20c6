"""Abstract base class for user sighting persistence.

Plain create/list/delete of a user's logged sightings.  There is no
conflict handling beyond last-write-wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.sighting import Sighting, SightingCreate


class ISightingsProvider(ABC):
    """Contract for sighting storage."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def add_sighting(self, user_id: str, data: SightingCreate) -> str:
        """Store a new sighting for *user_id* and return its id."""

    @abstractmethod
    async def get_user_sightings(self, user_id: str) -> list[Sighting]:
        """Return all sightings of *user_id*, most recent observation first."""

    @abstractmethod
    async def delete_sighting(self, sighting_id: str) -> bool:
        """Delete a sighting.  Returns ``False`` if it did not exist."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
