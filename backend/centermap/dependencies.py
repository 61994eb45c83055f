"""FastAPI dependency injection for the services created at startup."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from centermap.services.aggregator import ContentAggregator
from centermap.services.diagnostics import DiagnosticsService
from centermap.services.extraction import ExtractionService
from centermap.services.geocoding import GeocodingService
from centermap.services.llm import LLMService
from centermap.services.orchestrator import ExtractionOrchestrator


def _from_state(request: Request, name: str, label: str):
    svc = getattr(request.app.state, name, None)
    if svc is None:
        raise HTTPException(status_code=503, detail=f"{label} unavailable")
    return svc


def get_llm_service(request: Request) -> LLMService:
    """Inject the LLMService initialized at startup."""
    return _from_state(request, "llm_service", "LLM service")


def get_geocoding_service(request: Request) -> GeocodingService:
    """Inject the GeocodingService singleton from app state."""
    return _from_state(request, "geocoding_service", "Geocoding service")


def get_content_aggregator(request: Request) -> ContentAggregator:
    """Inject the ContentAggregator singleton from app state."""
    return _from_state(request, "content_aggregator", "Content aggregator")


def get_diagnostics_service(request: Request) -> DiagnosticsService:
    return _from_state(request, "diagnostics_service", "Diagnostics service")


def get_extraction_service(
    request: Request,
    llm_service: LLMService = Depends(get_llm_service),
) -> ExtractionService:
    """Construct ExtractionService with the configured generation settings."""
    settings = request.app.state.settings
    return ExtractionService(
        llm_service=llm_service,
        temperature=settings.extraction_temperature,
        max_output_tokens=settings.extraction_max_output_tokens,
    )


def get_orchestrator(
    geocoding_service: GeocodingService = Depends(get_geocoding_service),
    aggregator: ContentAggregator = Depends(get_content_aggregator),
    extraction_service: ExtractionService = Depends(get_extraction_service),
) -> ExtractionOrchestrator:
    """Construct ExtractionOrchestrator from its dependencies."""
    return ExtractionOrchestrator(
        geocoding_service=geocoding_service,
        aggregator=aggregator,
        extraction_service=extraction_service,
    )
