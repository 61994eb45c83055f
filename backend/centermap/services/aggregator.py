"""Content aggregator: collects raw text about an area from search and geodata.

Search queries run one after another. Each gather builds its own rate limiter
from the injected factory and every query waits on it first, so concurrent
requests pace their own queries independently. One failing source never
aborts the others: its error is logged and it contributes no snippets.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from centermap.errors import UpstreamError
from centermap.models.bounds import AreaBounds
from centermap.services.overpass import OverpassClient
from centermap.services.rate_limit import RateLimiter
from centermap.services.search import SearchClient

logger = logging.getLogger(__name__)

SEARCH_QUERY_TEMPLATES: tuple[str, ...] = (
    "training centers in {location}",
    "vocational schools {location}",
    "professional training courses {location}",
    "technical institutes {location}",
    "skills development programs {location}",
)


class ContentAggregator:
    """Gather snippets for one area: search results first, then facilities."""

    def __init__(
        self,
        search_client: SearchClient,
        overpass_client: OverpassClient,
        rate_limiter_factory: Callable[[], RateLimiter] = RateLimiter,
    ) -> None:
        self.search_client = search_client
        self.overpass_client = overpass_client
        self.rate_limiter_factory = rate_limiter_factory

    async def gather(self, location: str, bounds: AreaBounds) -> list[str]:
        snippets = await self._gather_search(location, self.rate_limiter_factory())
        search_count = len(snippets)
        snippets.extend(await self._gather_geodata(bounds))
        logger.info(
            "Gathered %d snippets for %r (%d search, %d geodata)",
            len(snippets),
            location,
            search_count,
            len(snippets) - search_count,
        )
        return snippets

    async def _gather_search(self, location: str, rate_limiter: RateLimiter) -> list[str]:
        snippets: list[str] = []
        for template in SEARCH_QUERY_TEMPLATES:
            query = template.format(location=location)
            await rate_limiter.acquire()
            try:
                results = await self.search_client.search(query)
            except UpstreamError as exc:
                logger.warning("Search query %r failed, skipping: %s", query, exc)
                continue
            snippets.extend(results)
        return snippets

    async def _gather_geodata(self, bounds: AreaBounds) -> list[str]:
        try:
            return await self.overpass_client.fetch_snippets(bounds)
        except UpstreamError as exc:
            logger.warning("Overpass facility query failed, skipping: %s", exc)
            return []
