"""Reverse-geocoding providers."""

from src.providers.geocoding.nominatim_provider import NominatimGeocodingProvider

__all__ = ["NominatimGeocodingProvider"]
