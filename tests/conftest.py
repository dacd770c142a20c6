"""Shared pytest fixtures for the bird photo test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from src.interfaces.image_provider import NOT_FOUND, IBirdImageProvider, ImageResult
from src.models.photo_cache import CacheEntry, PhotoStatus
from src.providers.photo_cache.sqlite_photo_cache_store import SQLitePhotoCacheStore
from src.providers.rate_budget.sqlite_rate_budget_store import SQLiteRateBudgetStore

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Mutable clock; call to read, ``advance()`` to move forward."""

    def __init__(self, start: datetime = FIXED_NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingSleep:
    """Async stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


# ---------------------------------------------------------------------------
# Image provider
# ---------------------------------------------------------------------------


class FakeImageProvider(IBirdImageProvider):
    """Scripted image provider.

    ``results`` maps species codes to an :class:`ImageResult` or an
    exception instance to raise; unknown codes resolve to NOT_FOUND.
    Every call is recorded in ``calls``.
    """

    def __init__(self, results: dict[str, ImageResult | Exception] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, str, str]] = []

    async def resolve_image(
        self,
        species_code: str,
        scientific_name: str,
        common_name: str,
    ) -> ImageResult:
        self.calls.append((species_code, scientific_name, common_name))
        outcome = self.results.get(species_code, NOT_FOUND)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def fake_provider() -> FakeImageProvider:
    return FakeImageProvider()


# ---------------------------------------------------------------------------
# SQLite stores
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def photo_store(tmp_path: Path) -> SQLitePhotoCacheStore:
    """Create and initialize a photo cache store with a temp DB."""
    store = SQLitePhotoCacheStore(db_path=tmp_path / "photo_cache.db")
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def budget_store(tmp_path: Path) -> SQLiteRateBudgetStore:
    """Create and initialize a rate budget store with a temp DB."""
    store = SQLiteRateBudgetStore(db_path=tmp_path / "photo_cache.db")
    await store.initialize()
    return store


def make_entry(species_code: str = "amecro", **overrides: Any) -> CacheEntry:
    """Build a CacheEntry stamped at FIXED_NOW unless overridden."""
    defaults: dict[str, Any] = {
        "species_code": species_code,
        "status": PhotoStatus.PENDING,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    defaults.update(overrides)
    return CacheEntry(**defaults)
