"""Public observation feed providers."""

from src.providers.observation.ebird_provider import EBirdObservationProvider

__all__ = ["EBirdObservationProvider"]
