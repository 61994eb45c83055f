"""Error taxonomy for the extraction pipeline and HTTP surface.

Every error carries the HTTP status it maps to and a message that is safe to
show to the user. ``describe_error`` turns any of them into the JSON error
payload returned by the API.
"""

from __future__ import annotations

from typing import Any

GEMINI_KEY_REMEDIATION: tuple[str, ...] = (
    "Create a .env file in the directory the server is started from",
    "Add this line: GEMINI_API_KEY=your_actual_api_key_here",
    "Restart the server",
    "Get a free API key at https://ai.google.dev/",
)


class CenterMapError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code: int = 500
    user_message: str = "An unexpected error occurred"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail

    @property
    def remediation(self) -> list[str]:
        return []


class ConfigurationError(CenterMapError):
    """Raised when the language-model API key is missing."""

    user_message = "Gemini API key is not configured"

    @property
    def remediation(self) -> list[str]:
        return list(GEMINI_KEY_REMEDIATION)


class ValidationError(CenterMapError):
    """Raised for malformed bounds or export payloads."""

    status_code = 400
    user_message = "Invalid request"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail)
        if detail:
            # Validation messages are written for the user already
            self.user_message = detail


class UpstreamError(CenterMapError):
    """Raised on a non-2xx response or transport failure from a third-party API."""

    def __init__(self, service: str, detail: str | None = None) -> None:
        super().__init__(detail or f"{service} request failed")
        self.service = service
        self.user_message = f"The {service} service could not be reached or returned an error"


class EmptyModelOutputError(UpstreamError):
    """Raised when the language model returns no text."""

    def __init__(self, service: str = "Gemini", detail: str | None = None) -> None:
        super().__init__(service, detail or "No text in model response")
        self.user_message = "The language model returned an empty response. Please try again."


class ParseError(CenterMapError):
    """Raised when model output does not contain the expected JSON shape."""

    user_message = "Could not read training center data from the language model response"


def describe_error(exc: CenterMapError) -> dict[str, Any]:
    """Build the JSON error body for *exc*."""
    payload: dict[str, Any] = {"success": False, "error": exc.user_message}
    if exc.detail and exc.detail != exc.user_message:
        payload["details"] = exc.detail
    if exc.remediation:
        payload["remediation"] = exc.remediation
    return payload
