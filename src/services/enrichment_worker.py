"""Enrichment worker: drains the photo queue one batch at a time.

Each run selects the highest-priority eligible PENDING entries, then walks
them strictly one at a time:

    1. claim the entry (PENDING -> PROCESSING)
    2. derive a display name from the species code if none is known
    3. skip hybrid species without calling the provider
    4. ask the image provider for a photo
    5. record the outcome:
         photo found        -> COMPLETED
         not found          -> FAILED, error_count + 1 (lookups may retry)
         placeholder        -> PENDING after one backoff step, no error
         provider raised    -> PENDING with exponential backoff, or FAILED
                               once the retry budget is spent
    6. wait ``request_delay`` before the next entry

Entries are never processed concurrently: the provider's request budget is
shared, and a fixed delay between calls is enough at these batch sizes.
A run that dies halfway leaves already-written entries as written; an
entry stranded in PROCESSING is recovered by the lookup service's
staleness check.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from src.interfaces.image_provider import IBirdImageProvider
from src.interfaces.photo_cache_store import IPhotoCacheStore
from src.models.photo_cache import (
    HYBRID_SKIP_REASON,
    CacheEntry,
    PhotoStatus,
    transition,
)
from src.utils.logging import get_logger
from src.utils.species_names import derive_display_name, is_hybrid_species

_DEFAULT_BATCH_SIZE = 10
_DEFAULT_REQUEST_DELAY = 1.0
_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BACKOFF_BASE_MINUTES = 5


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


def compute_backoff(error_count: int, base_minutes: int = _DEFAULT_BACKOFF_BASE_MINUTES) -> timedelta:
    """Return the retry delay after the *error_count*-th consecutive failure.

    ``base * 2^(n-1)`` minutes: 5, 10, 20, ... with the default base.
    """
    exponent = max(error_count, 1) - 1
    return timedelta(minutes=base_minutes * (2**exponent))


@dataclass
class WorkerRunSummary:
    """Counts of what one worker run did."""

    started_at: datetime
    finished_at: datetime | None = None
    selected: int = 0
    completed: int = 0
    not_found: int = 0
    skipped: int = 0
    deferred: int = 0
    retried: int = 0
    failed: int = 0
    aborted: bool = False
    error: str | None = None
    species_codes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "startedAt": self.started_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "selected": self.selected,
            "completed": self.completed,
            "notFound": self.not_found,
            "skipped": self.skipped,
            "deferred": self.deferred,
            "retried": self.retried,
            "failed": self.failed,
            "aborted": self.aborted,
            "error": self.error,
            "speciesCodes": list(self.species_codes),
        }


class EnrichmentWorker:
    """Resolves photos for queued cache entries through an image provider.

    Parameters
    ----------
    store:
        The shared photo cache store.
    image_provider:
        The configured image source.
    batch_size:
        Maximum entries claimed per run.
    request_delay:
        Seconds to wait between provider calls.
    max_retries:
        Transient failures allowed before an entry becomes FAILED.
    backoff_base_minutes:
        First retry delay; doubles with each further failure.
    clock / sleep:
        Injectable time sources for tests.
    """

    def __init__(
        self,
        store: IPhotoCacheStore,
        image_provider: IBirdImageProvider,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        request_delay: float = _DEFAULT_REQUEST_DELAY,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        backoff_base_minutes: int = _DEFAULT_BACKOFF_BASE_MINUTES,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._provider = image_provider
        self._batch_size = batch_size
        self._request_delay = request_delay
        self._max_retries = max_retries
        self._backoff_base = backoff_base_minutes
        self._clock = clock
        self._sleep = sleep
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    # -- Public API ----------------------------------------------------------

    async def run_once(self) -> WorkerRunSummary:
        """Process one batch of eligible PENDING entries.

        Never raises: a failure outside per-entry handling is logged, ends
        the run, and is reported through ``aborted``/``error``.
        """
        summary = WorkerRunSummary(started_at=self._clock())
        try:
            entries = await self._store.select_pending(summary.started_at, self._batch_size)
            summary.selected = len(entries)
            if not entries:
                self._logger.info("worker_queue_empty")
                return summary

            self._logger.info(
                "worker_run_started",
                batch=len(entries),
                provider=self.provider_name,
            )
            for index, entry in enumerate(entries):
                outcome = await self._process_entry(entry)
                summary.species_codes.append(entry.species_code)
                setattr(summary, outcome, getattr(summary, outcome) + 1)
                if index < len(entries) - 1:
                    await self._sleep(self._request_delay)
        except Exception as exc:
            summary.aborted = True
            summary.error = str(exc)
            self._logger.error(
                "worker_run_aborted",
                error=str(exc),
                error_type=type(exc).__name__,
                processed=len(summary.species_codes),
            )
        finally:
            summary.finished_at = self._clock()

        self._logger.info(
            "worker_run_finished",
            selected=summary.selected,
            completed=summary.completed,
            not_found=summary.not_found,
            skipped=summary.skipped,
            deferred=summary.deferred,
            retried=summary.retried,
            failed=summary.failed,
        )
        return summary

    # -- Per-entry handling --------------------------------------------------

    async def _process_entry(self, entry: CacheEntry) -> str:
        """Run one entry through the pipeline and return the summary field to bump."""
        # Store errors while claiming propagate and end the run.
        claimed = await self._write(entry, transition(entry, PhotoStatus.PROCESSING, now=self._clock()))
        try:
            return await self._enrich(claimed)
        except Exception as exc:
            return await self._record_transient_failure(claimed, exc)

    async def _enrich(self, entry: CacheEntry) -> str:
        code = entry.species_code
        derived_name = "" if entry.com_name else derive_display_name(code)
        com_name = entry.com_name or derived_name

        if is_hybrid_species(com_name, entry.sci_name):
            await self._write(
                entry,
                transition(entry, PhotoStatus.FAILED, now=self._clock(), last_error=HYBRID_SKIP_REASON),
            )
            self._logger.info("worker_entry_skipped_hybrid", species_code=code, com_name=com_name)
            return "skipped"

        result = await self._provider.resolve_image(code, entry.sci_name, com_name)
        now = self._clock()

        if result.placeholder:
            await self._write(
                entry,
                transition(
                    entry,
                    PhotoStatus.PENDING,
                    now=now,
                    process_after=now + compute_backoff(1, self._backoff_base),
                ),
            )
            self._logger.info("worker_entry_deferred", species_code=code, provider=self.provider_name)
            return "deferred"

        if result.found:
            fields: dict[str, Any] = {
                "thumbnail_url": result.thumbnail,
                "original_url": result.original or result.thumbnail,
                "image_url": result.thumbnail,
                "process_after": None,
                "last_error": "",
            }
            if derived_name:
                fields["com_name"] = derived_name
            await self._write(entry, transition(entry, PhotoStatus.COMPLETED, now=now, **fields))
            self._logger.info(
                "worker_entry_completed",
                species_code=code,
                provider=self.provider_name,
            )
            return "completed"

        error_count = entry.error_count + 1
        await self._write(
            entry,
            transition(
                entry,
                PhotoStatus.FAILED,
                now=now,
                error_count=error_count,
                last_error=f"No image found via {self.provider_name}",
            ),
        )
        self._logger.info("worker_entry_not_found", species_code=code, error_count=error_count)
        return "not_found"

    async def _record_transient_failure(self, entry: CacheEntry, exc: Exception) -> str:
        error_count = entry.error_count + 1
        now = self._clock()
        if error_count >= self._max_retries:
            await self._write(
                entry,
                transition(
                    entry,
                    PhotoStatus.FAILED,
                    now=now,
                    error_count=error_count,
                    last_error=str(exc),
                    process_after=None,
                ),
            )
            self._logger.error(
                "worker_entry_failed",
                species_code=entry.species_code,
                error_count=error_count,
                error=str(exc),
            )
            return "failed"

        backoff = compute_backoff(error_count, self._backoff_base)
        await self._write(
            entry,
            transition(
                entry,
                PhotoStatus.PENDING,
                now=now,
                error_count=error_count,
                last_error=str(exc),
                process_after=now + backoff,
            ),
        )
        self._logger.warning(
            "worker_entry_retry_scheduled",
            species_code=entry.species_code,
            error_count=error_count,
            backoff_minutes=int(backoff.total_seconds() // 60),
            error=str(exc),
        )
        return "retried"

    async def _write(self, entry: CacheEntry, changes: dict[str, Any]) -> CacheEntry:
        await self._store.update(entry.species_code, changes)
        return entry.apply(changes)
