"""Response cache providers.

MemoryCacheProvider memoizes observation-feed pages and reverse-geocoding
results for a few minutes so repeated screen loads in the same area do not
hit the upstream APIs again.  It is process-local; a multi-worker deployment
would swap in a Redis adapter implementing ICacheProvider.
"""

from src.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
