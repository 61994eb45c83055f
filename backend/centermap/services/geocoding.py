"""Geocoding service: Nominatim reverse + forward lookups.

Reverse geocoding turns the centroid of the selected rectangle into a place
name used in search queries and the extraction prompt. Forward geocoding backs
the map page's search bar; it is proxied here because browsers cannot set the
User-Agent header Nominatim requires.

Both lookups are best-effort: failures are logged and mapped to a default
value, never raised. Requests share one rate limiter (1 req/sec per the
Nominatim usage policy).
"""

from __future__ import annotations

import logging

import httpx

from centermap.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown Location"

# Nominatim reports the settlement under different keys depending on its size
_CITY_KEYS = ("city", "town", "village", "municipality")


def place_name_from_address(address: dict[str, str]) -> str:
    """Pick the most useful place name from Nominatim address components.

    Priority: "city, state" > city > "state, country" > country > Unknown.
    """
    city = next((address[k] for k in _CITY_KEYS if address.get(k)), None)
    state = address.get("state")
    country = address.get("country")

    if city and state:
        return f"{city}, {state}"
    if city:
        return city
    if state and country:
        return f"{state}, {country}"
    if country:
        return country
    return UNKNOWN_LOCATION


class GeocodingService:
    """Nominatim client for reverse (centroid → name) and forward (name → points) lookups."""

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "TrainingCenterMapper/1.0",
        timeout: float = 10.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._rate_limiter = rate_limiter or RateLimiter.every(1.0)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )

    async def close(self) -> None:
        """Close the shared HTTP client."""
        await self._client.aclose()

    async def reverse_geocode(self, lat: float, lng: float) -> str:
        """Resolve a point to a place name; "Unknown Location" on any failure."""
        await self._rate_limiter.acquire()
        try:
            response = await self._client.get(
                f"{self._base_url}/reverse",
                params={
                    "lat": str(lat),
                    "lon": str(lng),
                    "format": "json",
                    "zoom": "10",
                    "addressdetails": "1",
                    "accept-language": "en",
                },
            )
            response.raise_for_status()
            data = response.json()
            address = data.get("address") or {}
            if not isinstance(address, dict):
                return UNKNOWN_LOCATION
            return place_name_from_address(address)
        except Exception:
            logger.warning(
                "Nominatim reverse geocode failed for (%s, %s)",
                lat,
                lng,
                exc_info=True,
            )
            return UNKNOWN_LOCATION

    async def forward_geocode(
        self, query: str, *, limit: int = 5
    ) -> list[dict[str, str]]:
        """Forward geocode a place name to coordinates via Nominatim.

        Returns a list of dicts with keys: display_name, lat, lon.
        Returns an empty list if the lookup fails.
        """
        await self._rate_limiter.acquire()
        try:
            response = await self._client.get(
                f"{self._base_url}/search",
                params={
                    "q": query,
                    "format": "jsonv2",
                    "limit": str(limit),
                    "accept-language": "en",
                },
            )
            response.raise_for_status()
            data = response.json()
        except Exception:
            logger.warning(
                "Nominatim forward geocode failed for %r",
                query,
                exc_info=True,
            )
            return []

        return [
            {
                "display_name": item.get("display_name", ""),
                "lat": item.get("lat", ""),
                "lon": item.get("lon", ""),
            }
            for item in data
            if "lat" in item and "lon" in item
        ]
