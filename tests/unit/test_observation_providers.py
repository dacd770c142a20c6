"""Unit tests for the eBird observation feed, Nominatim geocoding and the response cache."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.models.sighting import Observation
from src.providers.cache.memory_cache import MemoryCacheProvider
from src.providers.geocoding.nominatim_provider import (
    NominatimGeocodingProvider,
    format_place_name,
)
from src.providers.observation.ebird_provider import EBirdObservationProvider
from src.utils.errors import ConfigurationError, ProviderUnavailableError, RateLimitError

EBIRD_ITEMS = [
    {
        "speciesCode": "snoowl1",
        "comName": "Snowy Owl",
        "sciName": "Bubo scandiacus",
        "locId": "L123",
        "locName": "Sapsucker Woods",
        "obsDt": "2024-01-15 08:30",
        "howMany": 1,
        "lat": 42.48,
        "lng": -76.45,
        "obsValid": True,
        "obsReviewed": False,
        "locationPrivate": False,
        "subId": "S1",
    }
]


def _ok(payload) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


def _http_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.ebird.test/v2/data/obs/geo/recent")
    return httpx.HTTPStatusError(
        "error", request=request, response=httpx.Response(status_code, request=request, text="nope")
    )


# ======================================================================
# eBird
# ======================================================================


class TestEBirdObservationProvider:
    @pytest.mark.asyncio
    async def test_notable_request_shape(self):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=_ok(EBIRD_ITEMS))
        provider = EBirdObservationProvider(
            api_key="ebird-key", api_base="https://api.ebird.test/v2", http_client=mock_client
        )

        observations = await provider.get_nearby_notable(42.4800001, -76.45)

        assert observations == [Observation.model_validate(EBIRD_ITEMS[0])]
        assert observations[0].com_name == "Snowy Owl"
        args, kwargs = mock_client.get.call_args
        assert args[0] == "https://api.ebird.test/v2/data/obs/geo/recent/notable"
        assert kwargs["headers"] == {"X-eBirdApiToken": "ebird-key"}
        assert kwargs["params"] == {
            "lat": "42.4800",
            "lng": "-76.4500",
            "dist": "10",
            "back": "7",
            "detail": "full",
        }

    @pytest.mark.asyncio
    async def test_recent_clamps_dist_and_back(self):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=_ok([]))
        provider = EBirdObservationProvider(api_key="k", http_client=mock_client)

        await provider.get_nearby_recent(0.0, 0.0, dist_km=500, back_days=0)

        args, kwargs = mock_client.get.call_args
        assert args[0].endswith("/data/obs/geo/recent")
        assert kwargs["params"]["dist"] == "50"
        assert kwargs["params"]["back"] == "1"

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self):
        mock_client = AsyncMock()
        provider = EBirdObservationProvider(api_key="", http_client=mock_client)

        with pytest.raises(ConfigurationError):
            await provider.get_nearby_recent(1.0, 2.0)
        mock_client.get.assert_not_called()
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_error_status_is_provider_unavailable(self):
        response = MagicMock()
        response.raise_for_status = MagicMock(side_effect=_http_error(500))
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=response)
        provider = EBirdObservationProvider(api_key="k", http_client=mock_client)

        with pytest.raises(ProviderUnavailableError, match="500"):
            await provider.get_nearby_recent(1.0, 2.0)

    @pytest.mark.asyncio
    async def test_quota_status_is_rate_limit_error(self):
        response = MagicMock()
        response.raise_for_status = MagicMock(side_effect=_http_error(429))
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=response)
        provider = EBirdObservationProvider(api_key="k", http_client=mock_client)

        with pytest.raises(RateLimitError):
            await provider.get_nearby_recent(1.0, 2.0)

    @pytest.mark.asyncio
    async def test_transport_error_is_provider_unavailable(self):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        provider = EBirdObservationProvider(api_key="k", http_client=mock_client)

        with pytest.raises(ProviderUnavailableError):
            await provider.get_nearby_notable(1.0, 2.0)

    @pytest.mark.asyncio
    async def test_results_are_cached(self):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(return_value=_ok(EBIRD_ITEMS))
        provider = EBirdObservationProvider(
            api_key="k", cache=MemoryCacheProvider(), http_client=mock_client
        )

        first = await provider.get_nearby_notable(42.48, -76.45)
        second = await provider.get_nearby_notable(42.48, -76.45)

        assert first == second
        assert mock_client.get.call_count == 1


# ======================================================================
# Nominatim
# ======================================================================


class TestFormatPlaceName:
    def test_city_and_state(self):
        payload = {"address": {"city": "Ithaca", "state": "New York"}}
        assert format_place_name(payload) == "Ithaca, New York"

    def test_town_preferred_over_village(self):
        payload = {"address": {"town": "Dryden", "village": "Freeville", "state": "New York"}}
        assert format_place_name(payload) == "Dryden, New York"

    def test_locality_without_state(self):
        assert format_place_name({"address": {"village": "Freeville"}}) == "Freeville"

    def test_display_name_fallback(self):
        payload = {"address": {"state": "New York"}, "display_name": "Somewhere, NY, USA"}
        assert format_place_name(payload) == "Somewhere, NY, USA"

    def test_nothing_usable(self):
        assert format_place_name({}) is None


class TestNominatimGeocodingProvider:
    @pytest.mark.asyncio
    async def test_reverse_request_and_cache(self):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(
            return_value=_ok({"address": {"city": "Ithaca", "state": "New York"}})
        )
        provider = NominatimGeocodingProvider(
            base_url="https://geo.test",
            user_agent="BirdPhotoCache/test",
            cache=MemoryCacheProvider(),
            http_client=mock_client,
        )

        assert await provider.reverse(42.4440, -76.5019) == "Ithaca, New York"
        assert await provider.reverse(42.4441, -76.5021) == "Ithaca, New York"

        assert mock_client.get.call_count == 1
        args, kwargs = mock_client.get.call_args
        assert args[0] == "https://geo.test/reverse"
        assert kwargs["params"]["format"] == "json"
        assert kwargs["params"]["lon"] == -76.5019
        assert kwargs["headers"]["User-Agent"] == "BirdPhotoCache/test"

    @pytest.mark.asyncio
    async def test_failure_returns_none(self):
        mock_client = AsyncMock()
        mock_client.get = AsyncMock(side_effect=httpx.ConnectError("down"))
        provider = NominatimGeocodingProvider(http_client=mock_client)

        assert await provider.reverse(1.0, 2.0) is None


# ======================================================================
# Response cache
# ======================================================================


class TestMemoryCacheProvider:
    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        cache = MemoryCacheProvider()
        await cache.set("k", {"v": 1})
        assert await cache.exists("k")
        assert await cache.get("k") == {"v": 1}
        await cache.delete("k")
        assert await cache.get("k") is None
        assert not await cache.exists("k")

    @pytest.mark.asyncio
    async def test_zero_ttl_expires_immediately(self):
        cache = MemoryCacheProvider()
        await cache.set("k", "v", ttl=0)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_lru_eviction(self):
        cache = MemoryCacheProvider(max_size=2)
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.get("a")
        await cache.set("c", 3)
        assert await cache.get("b") is None
        assert await cache.get("a") == 1
        assert await cache.get("c") == 3

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self):
        await MemoryCacheProvider().delete("nope")
