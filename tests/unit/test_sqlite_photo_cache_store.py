"""Unit tests for SQLitePhotoCacheStore.

Each test uses a temporary SQLite database to ensure isolation.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import aiosqlite
import pytest

from src.models.photo_cache import PhotoStatus
from src.providers.photo_cache.sqlite_photo_cache_store import (
    SQLitePhotoCacheStore,
    format_timestamp,
)
from src.utils.errors import CacheStoreError
from tests.conftest import FIXED_NOW, make_entry


# ═══════════════════════════════════════════════════════════════════════
# create / get
# ═══════════════════════════════════════════════════════════════════════


class TestCreateAndGet:
    @pytest.mark.asyncio
    async def test_create_then_get(self, photo_store):
        created = await photo_store.create(make_entry("amecro", com_name="American Crow"))
        assert created is True
        entry = await photo_store.get("amecro")
        assert entry is not None
        assert entry.status is PhotoStatus.PENDING
        assert entry.com_name == "American Crow"
        assert entry.created_at == FIXED_NOW

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, photo_store):
        assert await photo_store.get("nosuch") is None

    @pytest.mark.asyncio
    async def test_create_is_insert_if_absent(self, photo_store):
        await photo_store.create(make_entry("amecro", com_name="First"))
        second = await photo_store.create(make_entry("amecro", com_name="Second", priority=9))
        assert second is False
        entry = await photo_store.get("amecro")
        assert entry.com_name == "First"
        assert entry.priority == 1

    @pytest.mark.asyncio
    async def test_reads_legacy_rows(self, tmp_path: Path):
        db_path = tmp_path / "legacy.db"
        store = SQLitePhotoCacheStore(db_path=db_path)
        await store.initialize()
        async with aiosqlite.connect(str(db_path)) as db:
            await db.execute(
                "INSERT INTO photo_cache (species_code, status, image_url) VALUES (?, ?, ?)",
                ("mallar3", "COMPLETED", "https://img/mallard.jpg"),
            )
            await db.commit()

        entry = await store.get("mallar3")
        assert entry.status is PhotoStatus.COMPLETED
        assert entry.thumbnail_url == "https://img/mallard.jpg"
        assert entry.priority == 1
        assert entry.error_count == 0


# ═══════════════════════════════════════════════════════════════════════
# update
# ═══════════════════════════════════════════════════════════════════════


class TestUpdate:
    @pytest.mark.asyncio
    async def test_names_fill_only_when_empty(self, photo_store):
        await photo_store.create(make_entry("amecro", com_name="American Crow"))
        await photo_store.update(
            "amecro", {"com_name": "Crow", "sci_name": "Corvus brachyrhynchos"}
        )
        entry = await photo_store.get("amecro")
        assert entry.com_name == "American Crow"
        assert entry.sci_name == "Corvus brachyrhynchos"

    @pytest.mark.asyncio
    async def test_empty_name_never_clears(self, photo_store):
        await photo_store.create(make_entry("amecro", com_name="American Crow"))
        await photo_store.update("amecro", {"com_name": ""})
        entry = await photo_store.get("amecro")
        assert entry.com_name == "American Crow"

    @pytest.mark.asyncio
    async def test_priority_delta_is_additive(self, photo_store):
        await photo_store.create(make_entry("amecro"))
        await photo_store.update("amecro", {}, priority_delta=1)
        await photo_store.update("amecro", {}, priority_delta=1)
        entry = await photo_store.get("amecro")
        assert entry.priority == 3

    @pytest.mark.asyncio
    async def test_partial_update_leaves_other_columns(self, photo_store):
        await photo_store.create(make_entry("amecro", priority=4))
        later = FIXED_NOW + timedelta(minutes=1)
        await photo_store.update(
            "amecro", {"status": PhotoStatus.PROCESSING, "updated_at": later}
        )
        entry = await photo_store.get("amecro")
        assert entry.status is PhotoStatus.PROCESSING
        assert entry.updated_at == later
        assert entry.priority == 4

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, photo_store):
        await photo_store.create(make_entry("amecro"))
        with pytest.raises(ValueError, match="Unknown"):
            await photo_store.update("amecro", {"species_code": "other"})


# ═══════════════════════════════════════════════════════════════════════
# select_pending
# ═══════════════════════════════════════════════════════════════════════


class TestSelectPending:
    @pytest.mark.asyncio
    async def test_orders_by_priority_then_oldest(self, photo_store):
        await photo_store.create(make_entry("low", priority=1))
        await photo_store.create(
            make_entry("old", priority=2, updated_at=FIXED_NOW - timedelta(hours=1))
        )
        await photo_store.create(make_entry("new", priority=2))
        await photo_store.create(make_entry("high", priority=5))

        entries = await photo_store.select_pending(FIXED_NOW, limit=10)
        assert [e.species_code for e in entries] == ["high", "old", "new", "low"]

    @pytest.mark.asyncio
    async def test_respects_limit(self, photo_store):
        for i in range(5):
            await photo_store.create(make_entry(f"code{i}"))
        assert len(await photo_store.select_pending(FIXED_NOW, limit=3)) == 3

    @pytest.mark.asyncio
    async def test_skips_future_process_after(self, photo_store):
        await photo_store.create(
            make_entry("later", process_after=FIXED_NOW + timedelta(minutes=5))
        )
        await photo_store.create(
            make_entry("due", process_after=FIXED_NOW - timedelta(seconds=1))
        )
        entries = await photo_store.select_pending(FIXED_NOW, limit=10)
        assert [e.species_code for e in entries] == ["due"]

        entries = await photo_store.select_pending(FIXED_NOW + timedelta(minutes=5), limit=10)
        assert {e.species_code for e in entries} == {"later", "due"}

    @pytest.mark.asyncio
    async def test_only_pending_entries(self, photo_store):
        await photo_store.create(make_entry("p"))
        await photo_store.create(make_entry("r", status=PhotoStatus.PROCESSING))
        await photo_store.create(make_entry("f", status=PhotoStatus.FAILED))
        await photo_store.create(
            make_entry("c", status=PhotoStatus.COMPLETED, thumbnail_url="https://img/c.jpg")
        )
        entries = await photo_store.select_pending(FIXED_NOW, limit=10)
        assert [e.species_code for e in entries] == ["p"]


# ═══════════════════════════════════════════════════════════════════════
# list / counts / reset
# ═══════════════════════════════════════════════════════════════════════


class TestInspection:
    @pytest.mark.asyncio
    async def test_status_counts_include_every_status(self, photo_store):
        await photo_store.create(make_entry("a"))
        await photo_store.create(make_entry("b"))
        await photo_store.create(make_entry("c", status=PhotoStatus.FAILED))
        counts = await photo_store.status_counts()
        assert counts == {"PENDING": 2, "PROCESSING": 0, "COMPLETED": 0, "FAILED": 1}

    @pytest.mark.asyncio
    async def test_list_entries_filters_by_status(self, photo_store):
        await photo_store.create(make_entry("a"))
        await photo_store.create(make_entry("b", status=PhotoStatus.FAILED))
        failed = await photo_store.list_entries(status=PhotoStatus.FAILED)
        assert [e.species_code for e in failed] == ["b"]
        assert len(await photo_store.list_entries()) == 2

    @pytest.mark.asyncio
    async def test_reset_requeues_failed_entry(self, photo_store):
        await photo_store.create(
            make_entry(
                "amecro",
                status=PhotoStatus.FAILED,
                error_count=3,
                last_error="boom",
                process_after=FIXED_NOW + timedelta(hours=1),
            )
        )
        assert await photo_store.reset("amecro") is True
        entry = await photo_store.get("amecro")
        assert entry.status is PhotoStatus.PENDING
        assert entry.error_count == 0
        assert entry.last_error == ""
        assert entry.process_after is None

    @pytest.mark.asyncio
    async def test_reset_missing_entry(self, photo_store):
        assert await photo_store.reset("nosuch") is False

    @pytest.mark.asyncio
    async def test_reset_refuses_completed_entry(self, photo_store):
        await photo_store.create(
            make_entry(
                "amecro",
                status=PhotoStatus.COMPLETED,
                thumbnail_url="https://img/t.jpg",
                image_url="https://img/t.jpg",
            )
        )
        assert await photo_store.reset("amecro") is False
        entry = await photo_store.get("amecro")
        assert entry.status is PhotoStatus.COMPLETED
        assert entry.thumbnail_url == "https://img/t.jpg"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [PhotoStatus.PENDING, PhotoStatus.PROCESSING])
    async def test_reset_refuses_queued_entries(self, photo_store, status):
        await photo_store.create(make_entry("amecro", status=status, error_count=2))
        assert await photo_store.reset("amecro") is False
        entry = await photo_store.get("amecro")
        assert entry.status is status
        assert entry.error_count == 2


def test_format_timestamp_is_fixed_width():
    assert format_timestamp(FIXED_NOW) == "2024-05-01T12:00:00.000000Z"


@pytest.mark.asyncio
async def test_database_errors_become_cache_store_errors(tmp_path: Path):
    store = SQLitePhotoCacheStore(db_path=tmp_path / "never_initialized.db")
    with pytest.raises(CacheStoreError):
        await store.get("amecro")
