"""Area extraction endpoint: the map page POSTs the drawn rectangle here."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from centermap.dependencies import get_orchestrator
from centermap.errors import CenterMapError, describe_error
from centermap.models.center import ExtractResponse
from centermap.services.orchestrator import ExtractionOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["extract"])


async def _read_bounds(request: Request) -> Any:
    """Return the raw ``bounds`` value, or None if the body is not a JSON object."""
    try:
        payload = await request.json()
    except ValueError:
        logger.info("Extraction request body is not valid JSON")
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("bounds")


@router.post(
    "/extract",
    response_model=ExtractResponse,
    response_model_exclude_none=True,
)
async def extract_training_centers(
    request: Request,
    orchestrator: ExtractionOrchestrator = Depends(get_orchestrator),
):
    """Find training centers inside the ``bounds`` object of the JSON body.

    Validation problems return 400; configuration and upstream failures
    return 500 with a user-facing error (and remediation steps for a
    missing API key). "Nothing found" outcomes are 200 with success=false.
    """
    try:
        return await orchestrator.run(await _read_bounds(request))
    except CenterMapError as exc:
        if exc.status_code >= 500:
            logger.error("Extraction failed: %s", exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={**describe_error(exc), "centers": []},
        )
    except Exception as exc:
        logger.exception("Unexpected error during extraction")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to extract training centers",
                "details": str(exc),
                "centers": [],
            },
        )
