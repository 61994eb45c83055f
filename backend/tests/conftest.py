from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

# Set test environment BEFORE importing app modules.
# centermap.main reads get_settings() at import time.
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from centermap.main import app as fastapi_app
from centermap.models.bounds import AreaBounds
from centermap.services.llm import LLMResponse, LLMService

NYC_BOUNDS_PAYLOAD = {"north": 40.8, "south": 40.7, "east": -73.9, "west": -74.1}


# ── Bounds fixtures ───────────────────────────────────────────────────


@pytest.fixture(name="bounds_payload")
def bounds_payload_fixture() -> dict[str, float]:
    return dict(NYC_BOUNDS_PAYLOAD)


@pytest.fixture(name="bounds")
def bounds_fixture() -> AreaBounds:
    """Lower Manhattan / Jersey City rectangle."""
    return AreaBounds(**NYC_BOUNDS_PAYLOAD)


# ── HTTP client fixtures ──────────────────────────────────────────────


@pytest.fixture(name="client")
def client_fixture():
    """FastAPI TestClient; overrides set by a test are cleared afterwards."""
    with TestClient(fastapi_app) as client:
        yield client
    fastapi_app.dependency_overrides.clear()


# ── Mock service fixtures ─────────────────────────────────────────────


@pytest.fixture(name="mock_llm_service")
def mock_llm_service_fixture() -> MagicMock:
    """Mock LLMService for tests that don't need real Gemini."""
    mock = MagicMock(spec=LLMService)
    mock.model = "test-model"
    mock.has_api_key = True
    mock.ensure_configured = MagicMock(return_value=None)
    mock.generate = AsyncMock(
        return_value=LLMResponse(
            text="Mock LLM response",
            model="test-model",
            finish_reason="STOP",
        )
    )
    mock.get_model_info = AsyncMock(
        return_value={
            "model": "models/test-model",
            "version": "001",
            "displayName": "Test Model",
            "description": "A model for tests",
        }
    )
    mock.check_health = AsyncMock(return_value=mock.get_model_info.return_value)
    return mock
