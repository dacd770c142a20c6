"""Sighting persistence providers (users' own logged sightings)."""

from src.providers.sightings.sqlite_sightings_provider import SQLiteSightingsProvider

__all__ = ["SQLiteSightingsProvider"]
