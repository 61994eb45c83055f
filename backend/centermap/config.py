from __future__ import annotations

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # The only secret. Read from GEMINI_API_KEY and nowhere else.
    gemini_api_key: str = ""
    require_gemini_api_key: bool = False

    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Free public data sources
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    search_url: str = "https://api.duckduckgo.com/"
    user_agent: str = "TrainingCenterMapper/1.0"

    http_timeout_seconds: float = 30.0
    llm_timeout_seconds: float = 60.0
    search_interval_seconds: float = 1.0  # gap between consecutive search queries
    nominatim_interval_seconds: float = 1.0  # Nominatim usage policy

    # Extraction call tuning
    extraction_temperature: float = 0.1
    extraction_max_output_tokens: int = 2048

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_gemini_api_key(self) -> Settings:
        self.gemini_api_key = self.gemini_api_key.strip()
        if not self.gemini_api_key and self.require_gemini_api_key:
            raise ValueError(
                "GEMINI_API_KEY is not set but REQUIRE_GEMINI_API_KEY is enabled. "
                "Add GEMINI_API_KEY=<your key> to .env (get one at https://ai.google.dev/) "
                "or unset REQUIRE_GEMINI_API_KEY for development."
            )
        return self

    @property
    def has_gemini_api_key(self) -> bool:
        return bool(self.gemini_api_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
