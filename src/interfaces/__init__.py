"""Public interface definitions for every store and external service.

Business logic (the lookup service and the enrichment worker) talks only to
the abstract base classes in this package.  Concrete adapters live in
``src/providers/`` and are chosen and injected in ``src/main.py`` at
startup, so swapping Wikipedia for Unsplash, or SQLite for a hosted
document store, touches one factory function and nothing else.  Unit tests
inject fakes or mocks through the same seams.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IPhotoCacheStore           →  SQLitePhotoCacheStore
    IRateBudgetStore           →  SQLiteRateBudgetStore
    IBirdImageProvider         →  WikipediaImageProvider, UnsplashImageProvider
    ISightingsProvider         →  SQLiteSightingsProvider
    IObservationProvider       →  EBirdObservationProvider
    IGeocodingProvider         →  NominatimGeocodingProvider
    ICacheProvider             →  MemoryCacheProvider
"""

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.image_provider import NOT_FOUND, IBirdImageProvider, ImageResult
from src.interfaces.observation_provider import IGeocodingProvider, IObservationProvider
from src.interfaces.photo_cache_store import IPhotoCacheStore
from src.interfaces.rate_budget_store import IRateBudgetStore
from src.interfaces.sightings_provider import ISightingsProvider

__all__ = [
    "NOT_FOUND",
    "IBirdImageProvider",
    "ICacheProvider",
    "IGeocodingProvider",
    "IObservationProvider",
    "IPhotoCacheStore",
    "IRateBudgetStore",
    "ISightingsProvider",
    "ImageResult",
]
