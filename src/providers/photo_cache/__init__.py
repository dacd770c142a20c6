"""Photo cache stores.

SQLitePhotoCacheStore keeps one row per species code in data/photo_cache.db.
Both the lookup service and the enrichment worker read and write it through
IPhotoCacheStore; neither knows the backing database.
"""

from src.providers.photo_cache.sqlite_photo_cache_store import SQLitePhotoCacheStore

__all__ = ["SQLitePhotoCacheStore"]
