"""Abstract base classes for the observation feed and reverse geocoding.

Both are single-shot, stateless lookups that feed the client's discovery
and sighting screens.  They do not interact with the photo cache.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.sighting import Observation


class IObservationProvider(ABC):
    """Contract for public bird observation feeds."""

    @abstractmethod
    async def get_nearby_notable(
        self,
        lat: float,
        lng: float,
        dist_km: int = 10,
        back_days: int = 7,
    ) -> list[Observation]:
        """Return notable (rare/unusual) observations near a point.

        Raises
        ------
        src.utils.errors.ConfigurationError
            If the provider has no API key.
        src.utils.errors.ProviderUnavailableError
            If the feed API call fails.
        """

    @abstractmethod
    async def get_nearby_recent(
        self,
        lat: float,
        lng: float,
        dist_km: int = 10,
        back_days: int = 7,
    ) -> list[Observation]:
        """Return all recent observations near a point."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""


class IGeocodingProvider(ABC):
    """Contract for reverse geocoding."""

    @abstractmethod
    async def reverse(self, lat: float, lng: float) -> str | None:
        """Return a short place name for a coordinate, or ``None``.

        Never raises; lookup failures return ``None``.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
