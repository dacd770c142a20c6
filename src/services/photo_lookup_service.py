"""Photo lookup service: the client-facing read path of the photo cache.

Answers "which of these species have a photo yet?" for a batch of eBird
species codes.  Cached photos are returned immediately; everything else is
queued for the enrichment worker and answered with ``None`` so the client
shows a placeholder and asks again later.  This service never calls an
image provider, which keeps it fast and immune to provider rate limits.

Per-code handling, by cache status:

    (absent)               create PENDING, priority 1
    COMPLETED              fill empty names, return the photo
    PENDING / PROCESSING   priority += 1; a PROCESSING entry untouched for
                           longer than ``stale_after`` is reset to PENDING
    FAILED (retryable)     reset to PENDING, priority 1, error count kept
    FAILED (terminal)      left alone

Each code is processed independently: a store failure on one code is
logged and yields ``None`` for that code only.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from src.interfaces.photo_cache_store import IPhotoCacheStore
from src.models.photo_cache import (
    BirdImage,
    CacheEntry,
    Completed,
    Failed,
    Pending,
    PhotoStatus,
    Processing,
    transition,
)
from src.utils.errors import InvalidRequestError
from src.utils.logging import get_logger

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_STALE_AFTER = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class PhotoLookupService:
    """Serves cached bird photos and enqueues misses for enrichment.

    Parameters
    ----------
    store:
        The shared photo cache store.
    max_retries:
        FAILED entries with at least this many errors are not re-queued.
    stale_after:
        How long a PROCESSING entry may sit untouched before a lookup
        treats its worker run as dead and re-queues it.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        store: IPhotoCacheStore,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        stale_after: timedelta = _DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._max_retries = max_retries
        self._stale_after = stale_after
        self._clock = clock
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # -- Public API ----------------------------------------------------------

    async def get_bird_photos(
        self,
        species_codes: Any,
        common_names: Mapping[str, str] | None = None,
        scientific_names: Mapping[str, str] | None = None,
    ) -> dict[str, BirdImage | None]:
        """Look up photos for a batch of species codes.

        Args:
            species_codes: Non-empty list of eBird species codes.
            common_names: Optional species code to common name mapping.
            scientific_names: Optional species code to scientific name mapping.

        Returns:
            One key per distinct requested code: the cached photo, or
            ``None`` when no photo is available yet.

        Raises:
            InvalidRequestError: If the input is structurally invalid.  No
                code is processed in that case.
        """
        codes = self._validate(species_codes, common_names, scientific_names)
        common_names = common_names or {}
        scientific_names = scientific_names or {}

        results: dict[str, BirdImage | None] = {}
        for code in codes:
            try:
                results[code] = await self._lookup_one(
                    code,
                    com_name=(common_names.get(code) or "").strip(),
                    sci_name=(scientific_names.get(code) or "").strip(),
                )
            except Exception as exc:
                self._logger.error(
                    "photo_lookup_failed",
                    species_code=code,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                results[code] = None

        self._logger.info(
            "photo_lookup_complete",
            requested=len(codes),
            hits=sum(1 for v in results.values() if v is not None),
        )
        return results

    # -- Validation ----------------------------------------------------------

    @staticmethod
    def _validate(
        species_codes: Any,
        common_names: Any,
        scientific_names: Any,
    ) -> list[str]:
        if not isinstance(species_codes, (list, tuple)) or not species_codes:
            raise InvalidRequestError(
                "The request must include a non-empty 'speciesCodes' array."
            )
        if any(not isinstance(code, str) or not code.strip() for code in species_codes):
            raise InvalidRequestError("Every species code must be a non-empty string.")
        # Response keys are the request codes verbatim.
        if any(code != code.strip() for code in species_codes):
            raise InvalidRequestError("Species codes must not have surrounding whitespace.")
        for label, mapping in (("commonNames", common_names), ("scientificNames", scientific_names)):
            if mapping is not None and not isinstance(mapping, Mapping):
                raise InvalidRequestError(f"'{label}' must be an object keyed by species code.")

        # Duplicates would bump the same entry twice; keep first occurrence.
        return list(dict.fromkeys(species_codes))

    # -- Per-code handling ---------------------------------------------------

    async def _lookup_one(self, code: str, com_name: str, sci_name: str) -> BirdImage | None:
        entry = await self._store.get(code)
        if entry is None:
            return await self._enqueue_new(code, com_name, sci_name)

        fills = self._name_fills(entry, com_name, sci_name)
        state = entry.state

        if isinstance(state, Completed) and state.thumbnail:
            if fills:
                await self._store.update(code, fills)
            return entry.apply(fills).to_bird_image()

        if isinstance(state, (Pending, Processing)):
            await self._bump_queued(entry, state, fills)
            return None

        if isinstance(state, Failed) and entry.is_retryable(self._max_retries):
            changes = transition(
                entry,
                PhotoStatus.PENDING,
                now=self._clock(),
                priority=1,
                process_after=None,
                **fills,
            )
            await self._store.update(code, changes)
            self._logger.info(
                "photo_lookup_requeued_failed",
                species_code=code,
                error_count=state.error_count,
            )
        else:
            self._logger.debug(
                "photo_lookup_not_requeued",
                species_code=code,
                status=entry.status.value,
                error_count=entry.error_count,
                last_error=entry.last_error,
            )
            if fills:
                await self._store.update(code, fills)
        return None

    async def _enqueue_new(self, code: str, com_name: str, sci_name: str) -> None:
        now = self._clock()
        created = await self._store.create(
            CacheEntry(
                species_code=code,
                status=PhotoStatus.PENDING,
                com_name=com_name,
                sci_name=sci_name,
                created_at=now,
                updated_at=now,
                priority=1,
            )
        )
        if created:
            self._logger.info("photo_lookup_created", species_code=code)
        else:
            # Another lookup created it between our read and insert.
            await self._store.update(
                code, {"com_name": com_name, "sci_name": sci_name}, priority_delta=1
            )

    async def _bump_queued(
        self,
        entry: CacheEntry,
        state: Pending | Processing,
        fills: dict[str, str],
    ) -> None:
        now = self._clock()
        stale = isinstance(state, Processing) and now - state.claimed_at > self._stale_after
        if stale:
            changes = transition(entry, PhotoStatus.PENDING, now=now, **fills)
            self._logger.warning(
                "photo_lookup_stale_reset",
                species_code=entry.species_code,
                claimed_at=state.claimed_at.isoformat(),
            )
        else:
            changes = dict(fills)
        await self._store.update(entry.species_code, changes, priority_delta=1)

    @staticmethod
    def _name_fills(entry: CacheEntry, com_name: str, sci_name: str) -> dict[str, str]:
        """Return the supplied names whose stored counterpart is still empty."""
        fills: dict[str, str] = {}
        if com_name and not entry.com_name:
            fills["com_name"] = com_name
        if sci_name and not entry.sci_name:
            fills["sci_name"] = sci_name
        return fills
