"""Integration tests for FastAPI API endpoints using TestClient.

The app is assembled the way ``src.main`` does it (router plus error
middleware, components on ``app.state``) but from a temp-file SQLite
database and a scripted image provider.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.middleware import ErrorHandlingMiddleware
from src.api.routes import router as api_router
from src.interfaces.image_provider import ImageResult
from src.models.photo_cache import PhotoStatus
from src.models.sighting import Observation
from src.pipeline.scheduler import EnrichmentScheduler
from src.providers.photo_cache.sqlite_photo_cache_store import SQLitePhotoCacheStore
from src.providers.rate_budget.sqlite_rate_budget_store import SQLiteRateBudgetStore
from src.providers.sightings.sqlite_sightings_provider import SQLiteSightingsProvider
from src.services.enrichment_worker import EnrichmentWorker
from src.services.photo_lookup_service import PhotoLookupService
from src.utils.errors import ConfigurationError
from tests.conftest import FakeImageProvider, make_entry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _no_sleep(_seconds: float) -> None:
    return None


def _create_test_app(tmp_path: Path) -> tuple[FastAPI, dict]:
    """Create a FastAPI app wired to temp stores and fake external providers."""
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    app.include_router(api_router)

    photo_store = SQLitePhotoCacheStore(db_path=tmp_path / "photo_cache.db")
    budget_store = SQLiteRateBudgetStore(db_path=tmp_path / "photo_cache.db")
    sightings = SQLiteSightingsProvider(db_path=tmp_path / "sightings.db")

    async def _init() -> None:
        await photo_store.initialize()
        await budget_store.initialize()
        await sightings.initialize()

    asyncio.run(_init())

    image_provider = FakeImageProvider()
    worker = EnrichmentWorker(store=photo_store, image_provider=image_provider, sleep=_no_sleep)
    scheduler = EnrichmentScheduler(worker)

    observation_provider = MagicMock()
    observation_provider.get_nearby_notable = AsyncMock(return_value=[])
    observation_provider.get_nearby_recent = AsyncMock(return_value=[])
    geocoding_provider = MagicMock()
    geocoding_provider.reverse = AsyncMock(return_value="Ithaca, New York")

    app.state.photo_cache_store = photo_store
    app.state.rate_budget_store = budget_store
    app.state.lookup_service = PhotoLookupService(store=photo_store)
    app.state.scheduler = scheduler
    app.state.sightings_provider = sightings
    app.state.observation_provider = observation_provider
    app.state.geocoding_provider = geocoding_provider
    app.state.image_provider_name = "fake"
    app.state.provider_registry = {"image_provider": True, "image_provider_name": "fake"}

    parts = {
        "photo_store": photo_store,
        "budget_store": budget_store,
        "image_provider": image_provider,
        "observation_provider": observation_provider,
        "geocoding_provider": geocoding_provider,
    }
    return app, parts


@pytest.fixture
def app_and_parts(tmp_path: Path) -> tuple[FastAPI, dict]:
    return _create_test_app(tmp_path)


@pytest.fixture
def client(app_and_parts) -> TestClient:
    app, _ = app_and_parts
    return TestClient(app)


def _seed(store: SQLitePhotoCacheStore, *entries) -> None:
    async def _run() -> None:
        for entry in entries:
            await store.create(entry)

    asyncio.run(_run())


def _get(store: SQLitePhotoCacheStore, code: str):
    return asyncio.run(store.get(code))


# ---------------------------------------------------------------------------
# POST /api/v1/bird-photos
# ---------------------------------------------------------------------------


class TestBirdPhotos:
    def test_miss_returns_null_and_queues(self, client, app_and_parts):
        _, parts = app_and_parts
        response = client.post(
            "/api/v1/bird-photos",
            json={"speciesCodes": ["amecro"], "commonNames": {"amecro": "American Crow"}},
        )
        assert response.status_code == 200
        assert response.json() == {"photosByBird": {"amecro": None}}

        entry = _get(parts["photo_store"], "amecro")
        assert entry.status is PhotoStatus.PENDING
        assert entry.com_name == "American Crow"

    def test_hit_returns_camel_case_image(self, client, app_and_parts):
        _, parts = app_and_parts
        _seed(
            parts["photo_store"],
            make_entry(
                "amecro",
                status=PhotoStatus.COMPLETED,
                com_name="American Crow",
                thumbnail_url="https://img/t.jpg",
                original_url="https://img/o.jpg",
            ),
        )

        response = client.post("/api/v1/bird-photos", json={"speciesCodes": ["amecro"]})

        assert response.status_code == 200
        photo = response.json()["photosByBird"]["amecro"]
        assert photo["thumbnailUrl"] == "https://img/t.jpg"
        assert photo["originalUrl"] == "https://img/o.jpg"
        assert photo["comName"] == "American Crow"

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"speciesCodes": []},
            {"speciesCodes": "amecro"},
            {"speciesCodes": ["amecro", 7]},
            {"speciesCodes": [" amecro"]},
            {"speciesCodes": ["amecro"], "scientificNames": ["Corvus"]},
        ],
    )
    def test_invalid_request_is_400(self, client, body):
        response = client.post("/api/v1/bird-photos", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid-argument"

    def test_missing_body_is_400(self, client):
        response = client.post("/api/v1/bird-photos")
        assert response.status_code == 400
        assert response.json()["error"] == "invalid-argument"

    @pytest.mark.parametrize("body", [["amecro"], "amecro", 7])
    def test_non_object_body_is_400(self, client, body):
        response = client.post("/api/v1/bird-photos", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid-argument"

    def test_full_cycle_through_worker_run(self, client, app_and_parts):
        _, parts = app_and_parts
        parts["image_provider"].results["amecro"] = ImageResult(
            thumbnail="https://img/t.jpg", original="https://img/o.jpg"
        )

        first = client.post("/api/v1/bird-photos", json={"speciesCodes": ["amecro"]})
        assert first.json()["photosByBird"]["amecro"] is None

        run = client.post("/api/v1/photo-queue/run")
        assert run.status_code == 200
        assert run.json()["summary"]["completed"] == 1

        second = client.post("/api/v1/bird-photos", json={"speciesCodes": ["amecro"]})
        assert second.json()["photosByBird"]["amecro"]["thumbnailUrl"] == "https://img/t.jpg"


# ---------------------------------------------------------------------------
# Photo queue
# ---------------------------------------------------------------------------


class TestPhotoQueue:
    def test_stats(self, client, app_and_parts):
        _, parts = app_and_parts
        _seed(parts["photo_store"], make_entry("a"), make_entry("b", status=PhotoStatus.FAILED))

        response = client.get("/api/v1/photo-queue/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["counts"]["PENDING"] == 1
        assert body["counts"]["FAILED"] == 1
        assert body["total"] == 2
        assert body["imageProvider"] == "fake"
        assert body["lastRun"] is None
        assert body["rateBudget"] is None

    def test_stats_reports_unsplash_budget(self, client, app_and_parts):
        app, parts = app_and_parts
        app.state.image_provider_name = "unsplash"
        now = datetime.now(tz=timezone.utc)  # noqa: UP017
        asyncio.run(parts["budget_store"].try_acquire("unsplash_api", 50, 3600, now=now))

        body = client.get("/api/v1/photo-queue/stats").json()

        assert body["rateBudget"]["count"] == 1
        assert body["rateBudget"]["remaining"] == 49
        assert body["rateBudget"]["exhausted"] is False

    def test_run_without_scheduler_is_503(self, client, app_and_parts):
        app, _ = app_and_parts
        app.state.scheduler = None
        response = client.post("/api/v1/photo-queue/run")
        assert response.status_code == 503

    def test_last_run_visible_after_run(self, client):
        client.post("/api/v1/photo-queue/run")
        body = client.get("/api/v1/photo-queue/stats").json()
        assert body["lastRun"]["selected"] == 0


# ---------------------------------------------------------------------------
# Sightings
# ---------------------------------------------------------------------------


class TestSightings:
    def test_create_list_delete(self, client):
        created = client.post(
            "/api/v1/users/user-1/sightings",
            json={
                "speciesCode": "amecro",
                "comName": "American Crow",
                "location": {"lat": 42.48, "lng": -76.45, "name": "Sapsucker Woods"},
                "obsDt": "2024-05-01T07:30:00Z",
            },
        )
        assert created.status_code == 201
        sighting_id = created.json()["id"]

        listed = client.get("/api/v1/users/user-1/sightings").json()
        assert listed["total"] == 1
        assert listed["sightings"][0]["speciesCode"] == "amecro"
        assert listed["sightings"][0]["locName"] == "Sapsucker Woods"

        deleted = client.delete(f"/api/v1/sightings/{sighting_id}")
        assert deleted.status_code == 200
        assert deleted.json() == {"id": sighting_id, "deleted": True}

        assert client.delete(f"/api/v1/sightings/{sighting_id}").status_code == 404

    def test_invalid_location_is_422(self, client):
        response = client.post(
            "/api/v1/users/user-1/sightings",
            json={"speciesCode": "amecro", "comName": "Crow", "location": {"lat": 200, "lng": 0}},
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Observations / geocoding
# ---------------------------------------------------------------------------


class TestObservations:
    def test_notable_passes_query(self, client, app_and_parts):
        _, parts = app_and_parts
        parts["observation_provider"].get_nearby_notable = AsyncMock(
            return_value=[Observation(species_code="snoowl1", com_name="Snowy Owl")]
        )

        response = client.get("/api/v1/observations/notable?lat=42.48&lng=-76.45&dist=25")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["observations"][0]["comName"] == "Snowy Owl"
        parts["observation_provider"].get_nearby_notable.assert_awaited_once_with(
            42.48, -76.45, dist_km=25, back_days=7
        )

    def test_out_of_range_dist_is_422(self, client):
        response = client.get("/api/v1/observations/recent?lat=0&lng=0&dist=51")
        assert response.status_code == 422

    def test_missing_key_maps_to_503(self, client, app_and_parts):
        _, parts = app_and_parts
        parts["observation_provider"].get_nearby_recent = AsyncMock(
            side_effect=ConfigurationError("eBird API key not configured", "ebird")
        )

        response = client.get("/api/v1/observations/recent?lat=0&lng=0")

        assert response.status_code == 503
        assert response.json()["error"] == "failed-precondition"

    def test_reverse_geocode(self, client):
        response = client.get("/api/v1/locations/reverse?lat=42.44&lng=-76.50")
        assert response.status_code == 200
        assert response.json() == {"lat": 42.44, "lng": -76.5, "name": "Ithaca, New York"}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_healthy(self, client):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "healthy"
        assert body["providers"]["photo_cache"] is True

    def test_unhealthy_without_store(self, client, app_and_parts):
        app, _ = app_and_parts
        app.state.photo_cache_store = None
        body = client.get("/api/v1/health").json()
        assert body["status"] == "unhealthy"
