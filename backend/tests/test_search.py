"""Tests for the web search (DuckDuckGo) and geodata (Overpass) sources."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest

from centermap.errors import UpstreamError
from centermap.services.overpass import (
    OverpassClient,
    build_facility_query,
    facility_snippet,
)
from centermap.services.search import SearchClient, snippets_from_answer


DDG_ANSWER = {
    "AbstractText": "Vocational schools teach skilled trades.",
    "RelatedTopics": [
        {"Text": "Lincoln Tech - automotive and welding programs", "FirstURL": "https://x"},
        {
            "Name": "Colleges",
            "Topics": [
                {"Text": "Hudson County Community College"},
                {"Text": "Pratt Institute"},
            ],
        },
        {"Text": "A fourth topic that should be cut off"},
        {"Text": ""},
    ],
}


def _response(data, status_code: int = 200, method: str = "GET", url: str = "https://api.duckduckgo.com/"):
    return httpx.Response(status_code=status_code, json=data, request=httpx.Request(method, url))


# ---------------------------------------------------------------------------
# DuckDuckGo
# ---------------------------------------------------------------------------


class TestSnippetsFromAnswer:
    def test_abstract_then_three_related(self):
        snippets = snippets_from_answer(DDG_ANSWER)

        assert snippets == [
            "Vocational schools teach skilled trades.",
            "Lincoln Tech - automotive and welding programs",
            "Hudson County Community College",
            "Pratt Institute",
        ]

    def test_no_abstract(self):
        snippets = snippets_from_answer({"AbstractText": "", "RelatedTopics": [{"Text": "One"}]})
        assert snippets == ["One"]

    def test_empty_answer(self):
        assert snippets_from_answer({}) == []


class TestSearchClient:
    @pytest.mark.asyncio
    async def test_search_success(self):
        client = SearchClient()
        client._client = AsyncMock()
        client._client.get = AsyncMock(return_value=_response(DDG_ANSWER))

        snippets = await client.search("vocational schools New York")

        assert len(snippets) == 4
        params = client._client.get.call_args.kwargs["params"]
        assert params["q"] == "vocational schools New York"
        assert params["format"] == "json"
        assert params["no_html"] == "1"

    @pytest.mark.asyncio
    async def test_search_http_error_raises_upstream(self):
        client = SearchClient()
        client._client = AsyncMock()
        client._client.get = AsyncMock(return_value=_response({}, status_code=500))

        with pytest.raises(UpstreamError, match="HTTP 500"):
            await client.search("anything")

    @pytest.mark.asyncio
    async def test_search_network_error_raises_upstream(self):
        client = SearchClient()
        client._client = AsyncMock()
        client._client.get = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(UpstreamError) as exc_info:
            await client.search("anything")
        assert exc_info.value.service == "DuckDuckGo"


# ---------------------------------------------------------------------------
# Overpass
# ---------------------------------------------------------------------------


OVERPASS_PAYLOAD = {
    "elements": [
        {
            "type": "node",
            "id": 1,
            "tags": {
                "name": "ABC Welding School",
                "amenity": "school",
            },
        },
        {"type": "node", "id": 2, "tags": {"amenity": "school"}},
        {
            "type": "way",
            "id": 3,
            "center": {"lat": 40.74, "lon": -73.99},
            "tags": {
                "name": "City Tech",
                "operator": "CUNY",
                "amenity": "college",
                "contact:website": "https://citytech.cuny.edu",
                "phone": "+1 718 260 5000",
                "addr:housenumber": "300",
                "addr:street": "Jay Street",
                "addr:city": "Brooklyn",
            },
        },
    ]
}


class TestFacilitySnippet:
    def test_minimal_facility(self):
        assert facility_snippet({"name": "ABC Welding School", "amenity": "school"}) == (
            "Name: ABC Welding School, Type: school"
        )

    def test_full_facility_field_order(self):
        snippet = facility_snippet(OVERPASS_PAYLOAD["elements"][2]["tags"])
        assert snippet == (
            "Name: City Tech, Operator: CUNY, Type: college, "
            "Website: https://citytech.cuny.edu, Phone: +1 718 260 5000, "
            "Address: 300 Jay Street, Brooklyn"
        )

    def test_unnamed_facility_is_skipped(self):
        assert facility_snippet({"amenity": "school"}) is None


class TestOverpassClient:
    def test_query_covers_nodes_and_ways_in_bbox(self, bounds):
        query = build_facility_query(bounds)
        assert "node[" in query and "way[" in query
        assert "(40.7,-74.1,40.8,-73.9)" in query
        assert "school|college|university|training" in query

    @pytest.mark.asyncio
    async def test_fetch_snippets_in_result_order(self, bounds):
        client = OverpassClient()
        client._client = AsyncMock()
        client._client.post = AsyncMock(
            return_value=_response(OVERPASS_PAYLOAD, method="POST", url="https://overpass-api.de/api/interpreter")
        )

        snippets = await client.fetch_snippets(bounds)

        assert len(snippets) == 2
        assert snippets[0] == "Name: ABC Welding School, Type: school"
        assert snippets[1].startswith("Name: City Tech")
        assert "data" in client._client.post.call_args.kwargs["data"]

    @pytest.mark.asyncio
    async def test_fetch_failure_raises_upstream(self, bounds):
        client = OverpassClient()
        client._client = AsyncMock()
        client._client.post = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))

        with pytest.raises(UpstreamError) as exc_info:
            await client.fetch_snippets(bounds)
        assert exc_info.value.service == "Overpass"
