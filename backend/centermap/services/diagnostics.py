"""System diagnostics: independent reachability probes for every external API.

Each probe is isolated: its failure is recorded and the next probe still runs.
Probes run one after another.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from centermap.config import Settings
from centermap.errors import UpstreamError
from centermap.services.llm import LLMService

logger = logging.getLogger(__name__)

PASSED = "PASSED"
FAILED = "FAILED"

# Tiny Overpass query over lower Manhattan
_OVERPASS_PROBE = "[out:json][timeout:5];node(40.7,-74.1,40.8,-74.0)[amenity=school];out 1;"


def _passed(message: str) -> dict[str, Any]:
    return {"status": PASSED, "message": message}


def _failed(error: str, details: str | None = None, solution: str | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {"status": FAILED, "error": error}
    if details:
        result["details"] = details
    if solution:
        result["solution"] = solution
    return result


class DiagnosticsService:
    """Runs the probes behind GET /diagnostics."""

    def __init__(self, settings: Settings, llm_service: LLMService) -> None:
        self._settings = settings
        self._llm_service = llm_service

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=10.0,
            headers={"User-Agent": self._settings.user_agent},
        )

    async def run(self) -> dict[str, Any]:
        tests: dict[str, dict[str, Any]] = {}

        if self._llm_service.has_api_key:
            tests["geminiConfig"] = _passed("Gemini API key is configured")
            tests["geminiConnectivity"] = await self._probe_gemini()
        else:
            tests["geminiConfig"] = _failed(
                "GEMINI_API_KEY environment variable is not set",
                solution="Add GEMINI_API_KEY to your environment variables or .env file",
            )

        tests["nominatim"] = await self._probe_nominatim()
        tests["duckduckgo"] = await self._probe_duckduckgo()
        tests["overpass"] = await self._probe_overpass()

        failed = [name for name, result in tests.items() if result["status"] == FAILED]
        if failed:
            logger.warning("Diagnostics found failing probes: %s", ", ".join(failed))

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": {
                "hasGeminiKey": self._llm_service.has_api_key,
                "geminiModel": self._llm_service.model,
            },
            "tests": tests,
            "overallStatus": "HEALTHY" if not failed else "ISSUES_DETECTED",
            "failedTestCount": len(failed),
            "totalTestCount": len(tests),
        }

    async def _probe_gemini(self) -> dict[str, Any]:
        try:
            await self._llm_service.get_model_info()
        except UpstreamError as exc:
            return _failed(
                "Gemini API is not responding correctly",
                details=str(exc),
                solution="Check that your API key is valid and has access to the configured model",
            )
        return _passed("Gemini API is accessible and responding")

    async def _probe_nominatim(self) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self._settings.nominatim_url.rstrip('/')}/search",
                    params={"q": "New York", "format": "json", "limit": "1"},
                )
        except httpx.HTTPError as exc:
            return _failed("Cannot reach Nominatim API", details=str(exc))
        if response.is_success:
            return _passed("Nominatim geocoding API is accessible")
        return _failed(f"Nominatim API returned {response.status_code}")

    async def _probe_duckduckgo(self) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.get(
                    self._settings.search_url,
                    params={"q": "test", "format": "json", "no_html": "1", "skip_disambig": "1"},
                )
        except httpx.HTTPError as exc:
            return _failed("Cannot reach DuckDuckGo API", details=str(exc))
        if response.is_success:
            return _passed("DuckDuckGo API is accessible")
        return _failed(f"DuckDuckGo API returned {response.status_code}")

    async def _probe_overpass(self) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(
                    self._settings.overpass_url,
                    data={"data": _OVERPASS_PROBE},
                )
        except httpx.HTTPError as exc:
            return _failed("Cannot reach Overpass API", details=str(exc))
        if response.is_success:
            return _passed("OpenStreetMap Overpass API is accessible")
        return _failed(f"Overpass API returned {response.status_code}")
