from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from centermap.models.bounds import AreaBounds

Category = Literal["blue-collar", "white-collar", "other"]
ExportFormat = Literal["csv", "json"]


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class TrainingCenter(BaseModel):
    """A training facility extracted for one search session."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: Category
    address: str = ""
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    description: str | None = None
    coordinates: Coordinates


# --- API schemas ---

class SourceCounts(BaseModel):
    """Provenance counts for one extraction request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    web_content: int = 0           # snippets gathered
    gemini_analysis: bool = False  # True if the model was called
    extracted_centers: int = 0     # records returned


class ExtractResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    centers: list[TrainingCenter] = Field(default_factory=list)
    bounds: AreaBounds | None = None
    location: str | None = None
    sources: SourceCounts = Field(default_factory=SourceCounts)
    error: str | None = None


class ExportRequest(BaseModel):
    centers: list[TrainingCenter]
    format: ExportFormat = "json"
