"""Photo cache models: the per-species cache entry and its state machine.

Defines the Pydantic v2 models shared by the lookup service and the
enrichment worker.  Every species code owns exactly one :class:`CacheEntry`
document in the photo cache store; both components read it, decide what to
do from its status, and write back a small set of changed fields.

State machine::

    PENDING ──► PROCESSING ──► COMPLETED
       ▲            │
       │            ├──► FAILED ──► PENDING   (client retry, within budget)
       └────────────┘
         backoff retry / stale reset

Status changes go through :func:`transition`, the single function that
validates an edge against ``_ALLOWED_TRANSITIONS`` and produces the field
changes to persist.  Priority bumps and name fills are plain field updates
and never change the status.

Stored rows come from several schema generations (early rows have no
thumbnail/original URLs, no scientific name, no backoff timestamp).
:func:`normalize_cache_entry` maps any stored row onto the current shape so
business logic never sees a missing field.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.utils.errors import InvalidTransitionError

# Reason recorded on entries the worker refuses to send to a provider.
# Entries carrying a "skipped:" reason are never retried automatically.
SKIPPED_PREFIX = "skipped:"
HYBRID_SKIP_REASON = f"{SKIPPED_PREFIX} hybrid species"


class PhotoStatus(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Lifecycle status of a cache entry."""

    PENDING = "PENDING"          # Waiting for the worker
    PROCESSING = "PROCESSING"    # Claimed by a worker run
    COMPLETED = "COMPLETED"      # Image URLs resolved
    FAILED = "FAILED"            # Miss, exhausted retries, or skipped


_ALLOWED_TRANSITIONS: dict[PhotoStatus, frozenset[PhotoStatus]] = {
    PhotoStatus.PENDING: frozenset({PhotoStatus.PROCESSING}),
    PhotoStatus.PROCESSING: frozenset(
        {PhotoStatus.PENDING, PhotoStatus.COMPLETED, PhotoStatus.FAILED}
    ),
    PhotoStatus.COMPLETED: frozenset(),
    PhotoStatus.FAILED: frozenset({PhotoStatus.PENDING}),
}


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# Tagged state view
# ---------------------------------------------------------------------------
# The stored document keeps a flat status string; these value objects give
# callers a typed view that carries only the data meaningful in each state.


@dataclass(frozen=True)
class Pending:
    priority: int
    process_after: datetime | None = None


@dataclass(frozen=True)
class Processing:
    claimed_at: datetime


@dataclass(frozen=True)
class Completed:
    thumbnail: str
    original: str | None


@dataclass(frozen=True)
class Failed:
    reason: str
    error_count: int


EntryState = Union[Pending, Processing, Completed, Failed]


# ---------------------------------------------------------------------------
# BirdImage: the shape returned to lookup callers.
# ---------------------------------------------------------------------------
class BirdImage(BaseModel):
    """Resolved photo data for one species, as returned by the lookup.

    Serialized with camelCase keys (``thumbnailUrl``) to match what the
    mobile/web client already consumes; ``image_url`` is the legacy
    single-URL field and mirrors the thumbnail.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    species_code: str
    com_name: str = ""
    image_url: str | None = None
    thumbnail_url: str | None = None
    original_url: str | None = None


# ---------------------------------------------------------------------------
# CacheEntry: one document per species code.
# ---------------------------------------------------------------------------
class CacheEntry(BaseModel):
    """A photo cache document for a single species code.

    Immutable; use :meth:`apply` with the changes produced by
    :func:`transition` (or a plain field dict) to get the updated copy.
    """

    model_config = ConfigDict(frozen=True)

    species_code: str
    status: PhotoStatus = PhotoStatus.PENDING
    # Display metadata, fill-if-empty: once non-empty, never overwritten.
    com_name: str = ""
    sci_name: str = ""
    # Legacy single-URL field; kept in sync with thumbnail_url on writes.
    image_url: str | None = None
    thumbnail_url: str | None = None
    original_url: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    # Last status change; the worker's tie-breaker (oldest first).
    updated_at: datetime = Field(default_factory=_utcnow)
    # Backoff gate: the worker will not select the entry before this time.
    process_after: datetime | None = None
    # Demand counter, bumped on every repeated lookup of a queued entry.
    priority: int = 1
    error_count: int = 0
    last_error: str = ""

    @property
    def best_thumbnail(self) -> str | None:
        return self.thumbnail_url or self.image_url

    @property
    def state(self) -> EntryState:
        """Return the typed view of this entry's current state."""
        if self.status is PhotoStatus.PENDING:
            return Pending(priority=self.priority, process_after=self.process_after)
        if self.status is PhotoStatus.PROCESSING:
            return Processing(claimed_at=self.updated_at)
        if self.status is PhotoStatus.COMPLETED:
            return Completed(
                thumbnail=self.best_thumbnail or "",
                original=self.original_url or self.image_url,
            )
        return Failed(reason=self.last_error, error_count=self.error_count)

    def is_retryable(self, max_retries: int) -> bool:
        """Return ``True`` if a FAILED entry may be sent back to the queue.

        Entries over the retry budget, or skipped by a domain rule, stay
        FAILED until an operator resets them.
        """
        if self.last_error.startswith(SKIPPED_PREFIX):
            return False
        return self.error_count < max_retries

    def apply(self, changes: Mapping[str, Any]) -> CacheEntry:
        """Return a copy with *changes* applied, honouring fill-if-empty names."""
        update = dict(changes)
        for name_field in ("com_name", "sci_name"):
            if name_field in update and getattr(self, name_field):
                update.pop(name_field)
        return self.model_copy(update=update)

    def to_bird_image(self) -> BirdImage:
        thumbnail = self.best_thumbnail
        return BirdImage(
            species_code=self.species_code,
            com_name=self.com_name,
            image_url=self.image_url or thumbnail,
            thumbnail_url=thumbnail,
            original_url=self.original_url or self.image_url,
        )


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------


def can_transition(current: PhotoStatus, target: PhotoStatus) -> bool:
    return target in _ALLOWED_TRANSITIONS[current]


def transition(
    entry: CacheEntry,
    target: PhotoStatus,
    *,
    now: datetime | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Validate a status change and return the field changes to persist.

    Args:
        entry: The entry as last read from the store.
        target: The status to move to.
        now: Timestamp for ``updated_at``; defaults to the current UTC time.
        **fields: Additional CacheEntry fields to write with the change.

    Returns:
        A dict of CacheEntry field names to new values, always including
        ``status`` and ``updated_at``.

    Raises:
        InvalidTransitionError: If the edge is not in the allowed table, or
            a COMPLETED target would carry no image URL.
    """
    if not can_transition(entry.status, target):
        raise InvalidTransitionError(
            f"{entry.species_code}: {entry.status.value} -> {target.value} is not allowed"
        )
    if target is PhotoStatus.COMPLETED and not (
        fields.get("thumbnail_url") or fields.get("image_url")
    ):
        raise InvalidTransitionError(
            f"{entry.species_code}: COMPLETED requires a thumbnail URL"
        )
    changes: dict[str, Any] = {"status": target, "updated_at": now or _utcnow()}
    changes.update(fields)
    return changes


# ---------------------------------------------------------------------------
# Versioned read adapter
# ---------------------------------------------------------------------------


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)  # noqa: UP017
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)  # noqa: UP017
    return parsed


def normalize_cache_entry(raw: Mapping[str, Any], species_code: str) -> CacheEntry:
    """Map a stored row of any schema generation onto :class:`CacheEntry`.

    Defaults: status PENDING, empty names, thumbnail/original falling back
    to the legacy ``image_url``, timestamps falling back to now, priority 1,
    error count 0.  A COMPLETED row with no usable URL is read as FAILED so
    the next lookup sends it back to the queue.
    """
    now = _utcnow()
    image_url = raw.get("image_url") or None
    thumbnail_url = raw.get("thumbnail_url") or image_url
    original_url = raw.get("original_url") or image_url

    try:
        status = PhotoStatus(raw.get("status") or PhotoStatus.PENDING.value)
    except ValueError:
        status = PhotoStatus.PENDING

    last_error = raw.get("last_error") or ""
    if status is PhotoStatus.COMPLETED and not thumbnail_url:
        status = PhotoStatus.FAILED
        last_error = last_error or "completed entry has no image URL"

    return CacheEntry(
        species_code=raw.get("species_code") or species_code,
        status=status,
        com_name=raw.get("com_name") or "",
        sci_name=raw.get("sci_name") or "",
        image_url=image_url,
        thumbnail_url=thumbnail_url,
        original_url=original_url,
        created_at=_parse_timestamp(raw.get("created_at")) or now,
        updated_at=_parse_timestamp(raw.get("updated_at")) or now,
        process_after=_parse_timestamp(raw.get("process_after")),
        priority=raw.get("priority") or 1,
        error_count=raw.get("error_count") or 0,
        last_error=last_error,
    )
