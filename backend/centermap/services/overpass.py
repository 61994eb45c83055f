"""Geodata source: education facilities from the Overpass API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from centermap.errors import UpstreamError
from centermap.models.bounds import AreaBounds

logger = logging.getLogger(__name__)

FACILITY_AMENITIES = ("school", "college", "university", "training")
WEBSITE_TAG_KEYS = ("website", "contact:website", "url")
PHONE_TAG_KEYS = ("phone", "contact:phone")


def build_facility_query(bounds: AreaBounds, timeout: int = 25) -> str:
    bbox = bounds.as_overpass_bbox()
    amenity = "|".join(FACILITY_AMENITIES)
    return f"""
[out:json][timeout:{timeout}];
(
  node["amenity"~"^({amenity})$"]({bbox});
  way["amenity"~"^({amenity})$"]({bbox});
);
out center tags;
"""


def _first_tag(tags: dict[str, str], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = (tags.get(key) or "").strip()
        if value:
            return value
    return ""


def format_address(tags: dict[str, str]) -> str:
    street = " ".join(
        part for part in (tags.get("addr:housenumber", ""), tags.get("addr:street", "")) if part
    )
    parts = [street, tags.get("addr:city", ""), tags.get("addr:postcode", "")]
    return ", ".join(p.strip() for p in parts if p and p.strip())


def facility_snippet(tags: dict[str, str]) -> str | None:
    """Render one facility's tags as a labelled text snippet.

    Returns None for unnamed elements. Empty fields are omitted.
    """
    name = (tags.get("name") or "").strip()
    if not name:
        return None
    fields = (
        ("Name", name),
        ("Operator", (tags.get("operator") or "").strip()),
        ("Type", (tags.get("amenity") or "").strip()),
        ("Description", (tags.get("description") or "").strip()),
        ("Website", _first_tag(tags, WEBSITE_TAG_KEYS)),
        ("Phone", _first_tag(tags, PHONE_TAG_KEYS)),
        ("Address", format_address(tags)),
    )
    return ", ".join(f"{label}: {value}" for label, value in fields if value)


class OverpassClient:
    """Queries Overpass for schools, colleges, universities and training amenities."""

    def __init__(
        self,
        url: str = "https://overpass-api.de/api/interpreter",
        user_agent: str = "TrainingCenterMapper/1.0",
        timeout: float = 60.0,
    ) -> None:
        self._url = url
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"User-Agent": user_agent},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_facilities(self, bounds: AreaBounds) -> list[dict[str, Any]]:
        """Return raw Overpass elements (with tags) inside *bounds*."""
        query = build_facility_query(bounds)
        try:
            response = await self._client.post(self._url, data={"data": query})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                "Overpass", f"Overpass returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError("Overpass", f"Cannot reach Overpass: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("Overpass", f"Overpass returned invalid JSON: {exc}") from exc

        elements = payload.get("elements", []) if isinstance(payload, dict) else []
        logger.debug("Overpass returned %d elements for bbox %s", len(elements), bounds.as_overpass_bbox())
        return [e for e in elements if isinstance(e, dict)]

    async def fetch_snippets(self, bounds: AreaBounds) -> list[str]:
        """One snippet per named facility, in result order."""
        snippets: list[str] = []
        for element in await self.fetch_facilities(bounds):
            snippet = facility_snippet(element.get("tags") or {})
            if snippet:
                snippets.append(snippet)
        return snippets
