"""Bird image providers.

Only one is active at a time, chosen at startup by IMAGE_PROVIDER:
    wikipedia  - keyless page-summary API (default)
    unsplash   - photo search, needs UNSPLASH_ACCESS_KEY and a request budget
"""

from src.providers.image.unsplash_provider import UnsplashImageProvider
from src.providers.image.wikipedia_provider import WikipediaImageProvider

__all__ = ["UnsplashImageProvider", "WikipediaImageProvider"]
