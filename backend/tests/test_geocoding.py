"""Tests for GeocodingService (Nominatim reverse + forward)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from centermap.services.geocoding import (
    UNKNOWN_LOCATION,
    GeocodingService,
    place_name_from_address,
)


def _mock_response(data, status_code: int = 200, path: str = "reverse") -> httpx.Response:
    """Create a mock httpx.Response."""
    return httpx.Response(
        status_code=status_code,
        json=data,
        request=httpx.Request("GET", f"https://nominatim.openstreetmap.org/{path}"),
    )


def _service(response=None, side_effect=None) -> GeocodingService:
    limiter = AsyncMock()
    limiter.acquire = AsyncMock(return_value=0.0)
    svc = GeocodingService(rate_limiter=limiter)
    svc._client = AsyncMock()
    svc._client.get = AsyncMock(return_value=response, side_effect=side_effect)
    return svc


# ---------------------------------------------------------------------------
# Place name priority
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "address, expected",
    [
        ({"city": "New York", "state": "New York", "country": "United States"}, "New York, New York"),
        ({"town": "Hoboken", "state": "New Jersey"}, "Hoboken, New Jersey"),
        ({"village": "Ridgewood", "country": "United States"}, "Ridgewood"),
        ({"state": "Bavaria", "country": "Germany"}, "Bavaria, Germany"),
        ({"country": "Iceland"}, "Iceland"),
        ({"state": "Nowhere"}, UNKNOWN_LOCATION),
        ({}, UNKNOWN_LOCATION),
    ],
)
def test_place_name_priority(address, expected):
    assert place_name_from_address(address) == expected


# ---------------------------------------------------------------------------
# Reverse geocoding
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_reverse_geocode_success():
    svc = _service(
        _mock_response({"address": {"city": "New York", "state": "New York", "country": "United States"}})
    )

    result = await svc.reverse_geocode(40.75, -74.0)

    assert result == "New York, New York"
    params = svc._client.get.call_args.kwargs["params"]
    assert params["lat"] == "40.75"
    assert params["lon"] == "-74.0"
    assert params["addressdetails"] == "1"
    svc._rate_limiter.acquire.assert_awaited_once()


@pytest.mark.asyncio
async def test_reverse_geocode_http_error_returns_unknown():
    svc = _service(_mock_response({"error": "busy"}, status_code=503))

    assert await svc.reverse_geocode(40.75, -74.0) == UNKNOWN_LOCATION


@pytest.mark.asyncio
async def test_reverse_geocode_network_error_returns_unknown():
    """Network error maps to Unknown Location (never raises)."""
    svc = _service(side_effect=httpx.ConnectError("Connection refused"))

    assert await svc.reverse_geocode(40.75, -74.0) == UNKNOWN_LOCATION


@pytest.mark.asyncio
async def test_reverse_geocode_unexpected_body_returns_unknown():
    svc = _service(_mock_response({"error": "Unable to geocode"}))

    assert await svc.reverse_geocode(0.0, -150.0) == UNKNOWN_LOCATION


# ---------------------------------------------------------------------------
# Forward geocoding
# ---------------------------------------------------------------------------


NOMINATIM_SEARCH_RESULTS = [
    {"display_name": "Berlin, Germany", "lat": "52.52", "lon": "13.405"},
    {"display_name": "Berlin, MD, USA", "lat": "38.32", "lon": "-75.22"},
    {"display_name": "No coordinates"},
]


@pytest.mark.asyncio
async def test_forward_geocode_success():
    svc = _service(_mock_response(NOMINATIM_SEARCH_RESULTS, path="search"))

    results = await svc.forward_geocode("Berlin", limit=3)

    assert len(results) == 2
    assert results[0] == {"display_name": "Berlin, Germany", "lat": "52.52", "lon": "13.405"}
    assert svc._client.get.call_args.kwargs["params"]["limit"] == "3"


@pytest.mark.asyncio
async def test_forward_geocode_network_error():
    """Network error returns empty list (never raises)."""
    svc = _service(side_effect=httpx.ConnectError("Connection refused"))

    assert await svc.forward_geocode("Berlin") == []


class TestGeocodeSearchEndpoint:
    def test_search_endpoint_proxies_results(self, client):
        from centermap.dependencies import get_geocoding_service
        from centermap.main import app as fastapi_app

        svc = AsyncMock(spec=GeocodingService)
        svc.forward_geocode = AsyncMock(return_value=NOMINATIM_SEARCH_RESULTS[:1])
        fastapi_app.dependency_overrides[get_geocoding_service] = lambda: svc

        resp = client.get("/geocode/search", params={"q": "Berlin"})

        assert resp.status_code == 200
        assert resp.json()[0]["display_name"] == "Berlin, Germany"
        svc.forward_geocode.assert_awaited_once_with("Berlin", limit=5)

    def test_search_endpoint_requires_query(self, client):
        resp = client.get("/geocode/search", params={"q": ""})
        assert resp.status_code == 400
