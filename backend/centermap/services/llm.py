"""LLM service: Google Gemini ``generateContent`` over plain HTTP.

All language-model interactions in the project go through this service:
the extraction prompt, the health round trip, diagnostics and the manual
model test endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from centermap.errors import ConfigurationError, EmptyModelOutputError, UpstreamError

logger = logging.getLogger(__name__)

HEALTH_PROMPT = "Respond with 'API is working' if you can read this message."
HEALTH_PHRASE = "API is working"


@dataclass(frozen=True, slots=True)
class LLMResponse:
    """Result from a Gemini generation call."""

    text: str
    model: str
    finish_reason: str | None


class LLMService:
    """Gemini REST client.

    The API key travels in the ``x-goog-api-key`` header, never in the URL,
    so it does not end up in access logs or error messages.
    """

    __slots__ = (
        "model",
        "_api_key",
        "_base_url",
        "_timeout",
    )

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key.strip() if api_key else ""
        self.model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def ensure_configured(self) -> None:
        """Raise ConfigurationError if no API key is set."""
        if not self._api_key:
            raise ConfigurationError("GEMINI_API_KEY environment variable is not set")

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self._api_key,
        }

    # ── generate ─────────────────────────────────────────────────

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_output_tokens: int = 1024,
        top_k: int | None = None,
        top_p: float | None = None,
    ) -> LLMResponse:
        """Generate a single response for *prompt*.

        Raises:
            ConfigurationError: no API key.
            UpstreamError: transport failure or non-2xx status.
            EmptyModelOutputError: the model returned no text.
        """
        self.ensure_configured()

        generation_config: dict[str, Any] = {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
        }
        if top_k is not None:
            generation_config["topK"] = top_k
        if top_p is not None:
            generation_config["topP"] = top_p

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/models/{self.model}:generateContent",
                    headers=self._headers(),
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                "Gemini",
                f"Gemini returned HTTP {exc.response.status_code}: {exc.response.text[:500]}",
            ) from exc
        except httpx.TimeoutException as exc:
            raise UpstreamError("Gemini", f"Gemini request timed out after {self._timeout}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError("Gemini", f"Cannot connect to Gemini: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("Gemini", f"Gemini returned invalid JSON: {exc}") from exc

        text, finish_reason = self._extract_text(data)
        if not text.strip():
            raise EmptyModelOutputError(
                detail=f"No text in Gemini response (finish reason: {finish_reason or 'unknown'})"
            )
        return LLMResponse(text=text, model=self.model, finish_reason=finish_reason)

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> tuple[str, str | None]:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            return "", None
        first = candidates[0] or {}
        parts = (first.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        return text, first.get("finishReason")

    # ── model info / health ──────────────────────────────────────

    async def get_model_info(self) -> dict[str, Any]:
        """Fetch metadata for the configured model."""
        self.ensure_configured()
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{self._base_url}/models/{self.model}",
                    headers=self._headers(),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(
                "Gemini",
                f"Gemini returned HTTP {exc.response.status_code}: {exc.response.text[:500]}",
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError("Gemini", f"Cannot connect to Gemini: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("Gemini", f"Gemini returned invalid JSON: {exc}") from exc

        return {
            "model": data.get("name"),
            "version": data.get("version"),
            "displayName": data.get("displayName"),
            "description": data.get("description"),
        }

    async def check_health(self) -> dict[str, Any]:
        """Round-trip a tiny generation and verify the expected phrase comes back.

        Returns the model info on success. Raises ConfigurationError,
        UpstreamError or EmptyModelOutputError otherwise.
        """
        model_info = await self.get_model_info()
        result = await self.generate(HEALTH_PROMPT, temperature=0.0, max_output_tokens=20)
        if HEALTH_PHRASE.lower() not in result.text.lower():
            logger.warning("Gemini health reply did not contain the expected phrase: %r", result.text)
            raise UpstreamError("Gemini", "Gemini API response validation failed")
        return model_info
