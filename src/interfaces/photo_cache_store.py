"""Abstract base class for the photo cache document store.

The photo cache is the only shared mutable resource between the lookup
service and the enrichment worker: one document per species code, read and
written with per-document read-modify-write and no cross-document
transactions.  Implementations may use SQLite, a hosted document database,
or anything that offers read-your-writes per document.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from src.models.photo_cache import CacheEntry, PhotoStatus


class IPhotoCacheStore(ABC):
    """Contract for photo cache persistence.

    Store-level guarantees every implementation must provide:

    * ``create`` is create-if-absent; it never replaces an existing entry.
    * ``com_name`` / ``sci_name`` are fill-if-empty on every write path.
    * ``priority_delta`` is applied as an atomic increment, not a
      read-modify-write of a previously read value.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def get(self, species_code: str) -> CacheEntry | None:
        """Return the normalized entry for *species_code*, or ``None``."""

    @abstractmethod
    async def create(self, entry: CacheEntry) -> bool:
        """Insert *entry* if no entry exists for its species code.

        Returns
        -------
        bool
            ``True`` if this call created the entry, ``False`` if one
            already existed (the existing entry is left untouched).
        """

    @abstractmethod
    async def update(
        self,
        species_code: str,
        changes: Mapping[str, Any],
        priority_delta: int = 0,
    ) -> None:
        """Apply a partial update to an existing entry.

        Parameters
        ----------
        species_code:
            Key of the entry to update.
        changes:
            CacheEntry field names mapped to new values.  Name fields are
            only written when the stored value is empty.
        priority_delta:
            Amount to add atomically to the stored priority.
        """

    @abstractmethod
    async def select_pending(self, now: datetime, limit: int) -> list[CacheEntry]:
        """Return up to *limit* PENDING entries eligible at *now*.

        Entries whose ``process_after`` lies in the future are excluded by
        the query itself.  Order: ``priority`` descending, then
        ``updated_at`` ascending.
        """

    @abstractmethod
    async def list_entries(
        self,
        status: PhotoStatus | None = None,
        limit: int = 50,
    ) -> list[CacheEntry]:
        """Return entries, optionally filtered by status, newest change first."""

    @abstractmethod
    async def status_counts(self) -> dict[str, int]:
        """Return the number of entries per status (all statuses present)."""

    @abstractmethod
    async def reset(self, species_code: str) -> bool:
        """Put a FAILED entry back into the queue.

        Operator escape hatch for entries that lookups will no longer
        retry (over the retry budget, or skipped).  Clears the error count,
        last error and backoff gate; keeps names and priority.  Entries in
        any other state are left untouched.

        Returns
        -------
        bool
            ``False`` if no FAILED entry exists for *species_code*.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
