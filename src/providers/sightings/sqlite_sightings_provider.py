"""SQLite-backed sightings provider.

Persists users' logged bird sightings to a local SQLite database at
``data/sightings.db``.  Uses ``aiosqlite`` for async I/O.  Sighting ids are
random UUID4 hex strings, so the API never exposes row order.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.sightings_provider import ISightingsProvider
from src.models.sighting import Sighting, SightingCreate

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/sightings.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS sightings (
    id            TEXT    PRIMARY KEY,
    user_id       TEXT    NOT NULL,
    species_code  TEXT    NOT NULL,
    com_name      TEXT    NOT NULL,
    sci_name      TEXT    NOT NULL DEFAULT '',
    obs_dt        TEXT    NOT NULL,
    lat           REAL    NOT NULL,
    lng           REAL    NOT NULL,
    loc_name      TEXT    NOT NULL DEFAULT '',
    notes         TEXT    NOT NULL DEFAULT '',
    photo_url     TEXT,
    created_at    TEXT    NOT NULL,
    updated_at    TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_sightings_user_obs ON sightings(user_id, obs_dt DESC);",
]

_INSERT_SQL = """\
INSERT INTO sightings (
    id, user_id, species_code, com_name, sci_name, obs_dt,
    lat, lng, loc_name, notes, photo_url, created_at, updated_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_BY_USER_SQL = """\
SELECT id, user_id, species_code, com_name, sci_name, obs_dt,
       lat, lng, loc_name, notes, photo_url, created_at, updated_at
FROM sightings
WHERE user_id = ?
ORDER BY obs_dt DESC;
"""


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)  # noqa: UP017
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")  # noqa: UP017


class SQLiteSightingsProvider(ISightingsProvider):
    """SQLite-backed sighting persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the sightings table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("sightings_db_initialized", path=str(self._db_path))

    async def add_sighting(self, user_id: str, data: SightingCreate) -> str:
        now = datetime.now(tz=timezone.utc)  # noqa: UP017
        sighting_id = uuid.uuid4().hex
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _INSERT_SQL,
                (
                    sighting_id,
                    user_id,
                    data.species_code,
                    data.com_name,
                    data.sci_name,
                    _iso(data.obs_dt or now),
                    data.location.lat,
                    data.location.lng,
                    data.location.name,
                    data.notes,
                    data.photo_url,
                    _iso(now),
                    _iso(now),
                ),
            )
            await db.commit()
        logger.info(
            "sighting_added",
            sighting_id=sighting_id,
            user_id=user_id,
            species_code=data.species_code,
        )
        return sighting_id

    async def get_user_sightings(self, user_id: str) -> list[Sighting]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_BY_USER_SQL, (user_id,))
            rows = await cursor.fetchall()
        return [Sighting.model_validate(dict(r)) for r in rows]

    async def delete_sighting(self, sighting_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM sightings WHERE id = ?", (sighting_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        logger.info("sighting_deleted", sighting_id=sighting_id, found=deleted)
        return deleted

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return "sqlite_sightings"
