"""SQLite-backed request budget store.

Keeps one fixed-window counter per provider in the same database file as
the photo cache.  ``try_acquire`` runs inside ``BEGIN IMMEDIATE`` so two
worker invocations racing on the same counter serialize on SQLite's write
lock instead of both reading the same count.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.rate_budget_store import IRateBudgetStore
from src.models.rate_budget import RateBudget
from src.providers.photo_cache.sqlite_photo_cache_store import format_timestamp
from src.utils.errors import CacheStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/photo_cache.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS rate_budgets (
    name            TEXT    PRIMARY KEY,
    window_start    TEXT    NOT NULL,
    count           INTEGER NOT NULL DEFAULT 0,
    request_limit   INTEGER NOT NULL,
    window_seconds  INTEGER NOT NULL,
    last_request    TEXT
);
"""

_SELECT_SQL = """\
SELECT name, window_start, count, request_limit, window_seconds, last_request
FROM rate_budgets WHERE name = ?;
"""

_UPSERT_SQL = """\
INSERT INTO rate_budgets (name, window_start, count, request_limit, window_seconds, last_request)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(name)
DO UPDATE SET window_start   = excluded.window_start,
              count          = excluded.count,
              request_limit  = excluded.request_limit,
              window_seconds = excluded.window_seconds,
              last_request   = excluded.last_request;
"""


def _row_to_budget(row: aiosqlite.Row) -> RateBudget:
    return RateBudget(
        name=row["name"],
        window_start=datetime.fromisoformat(row["window_start"].replace("Z", "+00:00")),
        count=row["count"],
        limit=row["request_limit"],
        window_seconds=row["window_seconds"],
        last_request=(
            datetime.fromisoformat(row["last_request"].replace("Z", "+00:00"))
            if row["last_request"]
            else None
        ),
    )


class SQLiteRateBudgetStore(IRateBudgetStore):
    """SQLite-backed fixed-window request budgets."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the rate_budgets table if it doesn't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()
        logger.info("rate_budget_db_initialized", path=str(self._db_path))

    async def try_acquire(
        self,
        name: str,
        limit: int,
        window_seconds: int,
        now: datetime | None = None,
    ) -> bool:
        now = now or datetime.now(tz=timezone.utc)  # noqa: UP017
        try:
            # isolation_level=None: transactions are issued explicitly below.
            async with aiosqlite.connect(str(self._db_path), isolation_level=None) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("BEGIN IMMEDIATE")
                try:
                    cursor = await db.execute(_SELECT_SQL, (name,))
                    row = await cursor.fetchone()
                    budget = _row_to_budget(row) if row is not None else None

                    if budget is None or budget.window_expired(now):
                        window_start, count = now, 0
                    else:
                        window_start, count = budget.window_start, budget.count

                    allowed = count < limit
                    if allowed:
                        count += 1
                        await db.execute(
                            _UPSERT_SQL,
                            (
                                name,
                                format_timestamp(window_start),
                                count,
                                limit,
                                window_seconds,
                                format_timestamp(now),
                            ),
                        )
                    await db.execute("COMMIT")
                except BaseException:
                    await db.execute("ROLLBACK")
                    raise
        except aiosqlite.Error as exc:
            raise CacheStoreError(
                message=f"Rate budget update failed: {exc}",
                provider_name="sqlite_rate_budget",
            ) from exc

        if not allowed:
            logger.info(
                "rate_budget_exhausted",
                budget=name,
                limit=limit,
                resets_at=format_timestamp(window_start + timedelta(seconds=window_seconds)),
            )
        return allowed

    async def get(self, name: str) -> RateBudget | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_SQL, (name,))
            row = await cursor.fetchone()
        return _row_to_budget(row) if row is not None else None
