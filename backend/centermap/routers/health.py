from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from centermap.dependencies import get_diagnostics_service, get_llm_service
from centermap.errors import CenterMapError
from centermap.services.diagnostics import DiagnosticsService
from centermap.services.llm import LLMService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health(llm_service: LLMService = Depends(get_llm_service)):
    """Check the Gemini key is configured and a tiny generation round-trips."""
    try:
        model_info = await llm_service.check_health()
    except CenterMapError as exc:
        logger.warning("Health check failed: %s", exc)
        content = {"status": "error", "error": str(exc), "timestamp": _now()}
        if exc.remediation:
            content["remediation"] = exc.remediation
        return JSONResponse(status_code=500, content=content)

    return {
        "status": "healthy",
        "message": "Gemini API is connected and working properly",
        "modelInfo": model_info,
        "timestamp": _now(),
    }


@router.get("/diagnostics")
async def diagnostics(
    diagnostics_service: DiagnosticsService = Depends(get_diagnostics_service),
):
    """Run reachability probes against Gemini, Nominatim, DuckDuckGo and Overpass."""
    return await diagnostics_service.run()
