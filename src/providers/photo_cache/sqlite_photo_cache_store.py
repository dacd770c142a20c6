"""SQLite-backed photo cache store.

Persists one row per species code to a local SQLite database at
``data/photo_cache.db``.  Uses ``aiosqlite`` for async I/O.

Columns are nullable on purpose: rows written by earlier releases may lack
the thumbnail/original URLs, the scientific name or the backoff gate, and
every read goes through :func:`normalize_cache_entry` which fills them in.
Writes are partial (only the supplied columns change) so the worker's
status writes never clobber a priority bump or a name fill made by a
concurrent lookup.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.photo_cache_store import IPhotoCacheStore
from src.models.photo_cache import CacheEntry, PhotoStatus, normalize_cache_entry
from src.utils.errors import CacheStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/photo_cache.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS photo_cache (
    species_code   TEXT    PRIMARY KEY,
    status         TEXT    NOT NULL DEFAULT 'PENDING',
    com_name       TEXT,
    sci_name       TEXT,
    image_url      TEXT,
    thumbnail_url  TEXT,
    original_url   TEXT,
    created_at     TEXT,
    updated_at     TEXT,
    process_after  TEXT,
    priority       INTEGER,
    error_count    INTEGER,
    last_error     TEXT
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_photo_cache_queue "
    "ON photo_cache(status, priority DESC, updated_at ASC);",
    "CREATE INDEX IF NOT EXISTS idx_photo_cache_process_after ON photo_cache(process_after);",
]

_COLUMNS = (
    "species_code",
    "status",
    "com_name",
    "sci_name",
    "image_url",
    "thumbnail_url",
    "original_url",
    "created_at",
    "updated_at",
    "process_after",
    "priority",
    "error_count",
    "last_error",
)

_SELECT_COLUMNS = ", ".join(_COLUMNS)

_INSERT_IF_ABSENT_SQL = (
    f"INSERT OR IGNORE INTO photo_cache ({_SELECT_COLUMNS}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)});"
)

_SELECT_ONE_SQL = f"SELECT {_SELECT_COLUMNS} FROM photo_cache WHERE species_code = ?;"

_SELECT_PENDING_SQL = f"""\
SELECT {_SELECT_COLUMNS}
FROM photo_cache
WHERE status = 'PENDING'
  AND (process_after IS NULL OR process_after = '' OR process_after <= ?)
ORDER BY COALESCE(priority, 1) DESC, updated_at ASC
LIMIT ?;
"""

_RESET_SQL = """\
UPDATE photo_cache
SET status = 'PENDING', error_count = 0, last_error = '',
    process_after = NULL, updated_at = ?
WHERE species_code = ? AND status = 'FAILED';
"""

# Columns written with fill-if-empty semantics.
_NAME_COLUMNS = frozenset({"com_name", "sci_name"})
# Columns a partial update may touch.
_UPDATABLE_COLUMNS = frozenset(_COLUMNS) - {"species_code", "created_at"}


def format_timestamp(value: datetime) -> str:
    """Render a datetime as fixed-width UTC ISO-8601 so text ordering is time ordering."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)  # noqa: UP017
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")  # noqa: UP017


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_timestamp(value)
    return value


class SQLitePhotoCacheStore(IPhotoCacheStore):
    """SQLite-backed photo cache persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"Photo cache query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def initialize(self) -> None:
        """Create the photo_cache table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("photo_cache_db_initialized", path=str(self._db_path))

    async def get(self, species_code: str) -> CacheEntry | None:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_ONE_SQL, (species_code,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return normalize_cache_entry(dict(row), species_code)

    async def create(self, entry: CacheEntry) -> bool:
        """Insert *entry* unless a row for its species code already exists."""
        values = tuple(_to_db(getattr(entry, col)) for col in _COLUMNS)
        async with self._connect() as db:
            cursor = await db.execute(_INSERT_IF_ABSENT_SQL, values)
            await db.commit()
            created = cursor.rowcount > 0
        if created:
            logger.debug("photo_cache_entry_created", species_code=entry.species_code)
        return created

    async def update(
        self,
        species_code: str,
        changes: Mapping[str, Any],
        priority_delta: int = 0,
    ) -> None:
        """Apply a partial update; names fill only when empty, priority increments in SQL."""
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            msg = f"Unknown photo cache fields: {sorted(unknown)}"
            raise ValueError(msg)

        assignments: list[str] = []
        params: list[Any] = []
        for column, value in changes.items():
            if column in _NAME_COLUMNS:
                if not value:
                    continue
                assignments.append(
                    f"{column} = CASE WHEN {column} IS NULL OR {column} = '' "
                    f"THEN ? ELSE {column} END"
                )
            else:
                assignments.append(f"{column} = ?")
            params.append(_to_db(value))
        if priority_delta:
            assignments.append("priority = COALESCE(priority, 1) + ?")
            params.append(priority_delta)
        if not assignments:
            return

        sql = f"UPDATE photo_cache SET {', '.join(assignments)} WHERE species_code = ?;"
        params.append(species_code)
        async with self._connect() as db:
            await db.execute(sql, params)
            await db.commit()

    async def select_pending(self, now: datetime, limit: int) -> list[CacheEntry]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_PENDING_SQL, (format_timestamp(now), limit))
            rows = await cursor.fetchall()
        return [normalize_cache_entry(dict(r), r["species_code"]) for r in rows]

    async def list_entries(
        self,
        status: PhotoStatus | None = None,
        limit: int = 50,
    ) -> list[CacheEntry]:
        async with self._connect() as db:
            if status is not None:
                cursor = await db.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM photo_cache WHERE status = ? "
                    "ORDER BY updated_at DESC LIMIT ?",
                    (status.value, limit),
                )
            else:
                cursor = await db.execute(
                    f"SELECT {_SELECT_COLUMNS} FROM photo_cache "
                    "ORDER BY updated_at DESC LIMIT ?",
                    (limit,),
                )
            rows = await cursor.fetchall()
        return [normalize_cache_entry(dict(r), r["species_code"]) for r in rows]

    async def status_counts(self) -> dict[str, int]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT status, COUNT(*) AS total FROM photo_cache GROUP BY status"
            )
            rows = await cursor.fetchall()

        counts = {status.value: 0 for status in PhotoStatus}
        for row in rows:
            counts[row["status"]] = counts.get(row["status"], 0) + row["total"]
        return counts

    async def reset(self, species_code: str) -> bool:
        now = datetime.now(tz=timezone.utc)  # noqa: UP017
        async with self._connect() as db:
            cursor = await db.execute(_RESET_SQL, (format_timestamp(now), species_code))
            await db.commit()
            found = cursor.rowcount > 0
        logger.info("photo_cache_entry_reset", species_code=species_code, found=found)
        return found

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
        return "sqlite_photo_cache"
