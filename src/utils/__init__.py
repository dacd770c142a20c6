"""Utility modules for the bird photo service.

- **errors** -- Exception hierarchy rooted at BirdPhotoError; each class
  carries the HTTP status and error code used by the API middleware.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **species_names** -- Display-name fallback from species codes, hybrid
  detection, and encyclopedia title encoding.
"""

# -- Exception hierarchy ----------------------------------------------------
from src.utils.errors import (
    BirdPhotoError,
    CacheStoreError,
    ConfigurationError,
    InvalidRequestError,
    InvalidTransitionError,
    ProviderUnavailableError,
    RateLimitError,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Species name helpers --------------------------------------------------
from src.utils.species_names import (
    derive_display_name,
    ebird_species_url,
    encode_page_title,
    is_hybrid_species,
)

__all__ = [
    "BirdPhotoError",
    "CacheStoreError",
    "ConfigurationError",
    "InvalidRequestError",
    "InvalidTransitionError",
    "ProviderUnavailableError",
    "RateLimitError",
    "configure_logging",
    "derive_display_name",
    "ebird_species_url",
    "encode_page_title",
    "get_logger",
    "is_hybrid_species",
]
