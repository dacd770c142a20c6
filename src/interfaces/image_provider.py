"""Abstract base class for bird image providers.

An image provider resolves one best-effort photo (thumbnail + original
resolution) for a species.  The enrichment worker only ever talks to this
interface, so an encyclopedia summary API and a stock-photo search API are
interchangeable; each adapter owns its own rate-limit policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ImageResult:
    """Outcome of a single image lookup.

    Attributes
    ----------
    thumbnail:
        URL of a small (~320px) rendition, or ``None`` when nothing was found.
    original:
        URL of the full-resolution image, if the source exposes one.
    placeholder:
        ``True`` when the adapter declined to call its API (request budget
        spent) and the URLs point at a stand-in image.  The worker defers
        such entries instead of caching the stand-in.
    """

    thumbnail: str | None = None
    original: str | None = None
    placeholder: bool = False

    @property
    def found(self) -> bool:
        return bool(self.thumbnail) and not self.placeholder


NOT_FOUND = ImageResult()


# Concrete implementations: WikipediaImageProvider, UnsplashImageProvider
# (src/providers/image/).  Selected at startup by the IMAGE_PROVIDER setting.
class IBirdImageProvider(ABC):
    """Contract for species image lookup services."""

    @abstractmethod
    async def resolve_image(
        self,
        species_code: str,
        scientific_name: str,
        common_name: str,
    ) -> ImageResult:
        """Find an image for a species.

        Parameters
        ----------
        species_code:
            eBird species code, used for logging and as a last-resort query.
        scientific_name:
            Primary lookup key; may be empty.
        common_name:
            Fallback lookup key; may be empty.

        Returns
        -------
        ImageResult
            :data:`NOT_FOUND` when the source has no image.  Adapters map
            their own transport and parse errors to not-found; anything an
            adapter does raise is treated as transient by the worker.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"wikipedia"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (keys present)."""
