"""Geocoding proxy router: proxies Nominatim searches through the backend.

Browser fetch() cannot set the User-Agent header (it's a forbidden header
per the Fetch standard), but Nominatim requires an identifying User-Agent per
their usage policy. The map page's search bar calls this instead.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from centermap.dependencies import get_geocoding_service
from centermap.services.geocoding import GeocodingService

router = APIRouter(prefix="/geocode", tags=["geocoding"])


@router.get("/search")
async def forward_geocode(
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(5, ge=1, le=10),
    geocoding_service: GeocodingService = Depends(get_geocoding_service),
) -> list[dict[str, str]]:
    """Forward geocode a place name to coordinates via Nominatim."""
    return await geocoding_service.forward_geocode(q, limit=limit)
