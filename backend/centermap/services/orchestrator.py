"""Request orchestrator for area extraction: bounds → place → snippets → records."""

from __future__ import annotations

import logging
from typing import Any

from centermap.models.bounds import AreaBounds
from centermap.models.center import ExtractResponse, SourceCounts
from centermap.services.aggregator import ContentAggregator
from centermap.services.extraction import ExtractionService
from centermap.services.geocoding import GeocodingService

logger = logging.getLogger(__name__)

NO_INFORMATION_FOUND = (
    "No information found for this area. "
    "Try selecting a larger or more populated area."
)
NOTHING_EXTRACTED = (
    "No training centers could be extracted from the information found for this area. "
    "Try selecting a different area."
)


class ExtractionOrchestrator:
    """Runs one extraction request end to end, strictly in sequence."""

    def __init__(
        self,
        geocoding_service: GeocodingService,
        aggregator: ContentAggregator,
        extraction_service: ExtractionService,
    ) -> None:
        self.geocoding_service = geocoding_service
        self.aggregator = aggregator
        self.extraction_service = extraction_service

    async def run(self, raw_bounds: Any) -> ExtractResponse:
        """Extract training centers for the rectangle in *raw_bounds*.

        Raises ValidationError before any remote call if the bounds are
        malformed, and ConfigurationError if no model API key is set. Model
        call failures (UpstreamError, ParseError) propagate to the caller.
        """
        bounds = AreaBounds.from_payload(raw_bounds)
        self.extraction_service.ensure_configured()

        lat, lng = bounds.centroid()
        location = await self.geocoding_service.reverse_geocode(lat, lng)
        logger.info("Extracting training centers near %r (%.5f, %.5f)", location, lat, lng)

        snippets = await self.aggregator.gather(location, bounds)
        if not snippets:
            logger.info("No web content found for %r, skipping extraction", location)
            return ExtractResponse(
                success=False,
                error=NO_INFORMATION_FOUND,
                bounds=bounds,
                location=location,
            )

        centers = await self.extraction_service.extract(snippets, location, bounds)
        sources = SourceCounts(
            web_content=len(snippets),
            gemini_analysis=True,
            extracted_centers=len(centers),
        )
        if not centers:
            logger.info("Model extracted no training centers from %d snippets", len(snippets))
            return ExtractResponse(
                success=False,
                error=NOTHING_EXTRACTED,
                bounds=bounds,
                location=location,
                sources=sources,
            )

        logger.info("Extracted %d training centers from %d snippets", len(centers), len(snippets))
        return ExtractResponse(
            success=True,
            centers=centers,
            bounds=bounds,
            location=location,
            sources=sources,
        )
