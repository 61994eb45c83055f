"""Extraction engine: turns gathered web text into TrainingCenter records.

The snippets are embedded in one instruction for the language model, which
must answer with a JSON array of facilities that literally appear in the text.
The reply is parsed strictly: it is either a list of records, an explicit
"nothing found" answer, or malformed. Each record is validated on its own;
records that fail validation are dropped, the rest are clamped into the
selected rectangle and categorized by keyword scoring.
"""

from __future__ import annotations

import enum
import json
import logging
import re
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from centermap.errors import ParseError
from centermap.models.bounds import AreaBounds
from centermap.models.center import Category, Coordinates, TrainingCenter
from centermap.services.llm import LLMService

logger = logging.getLogger(__name__)

SNIPPET_SEPARATOR = "\n\n---\n\n"

BLUE_COLLAR_TERMS: tuple[str, ...] = (
    "welding", "construction", "automotive", "electrical", "plumbing", "hvac",
    "mechanic", "carpentry", "masonry", "trade", "skilled", "craft",
    "apprentice", "technical", "vocational", "industrial",
)
WHITE_COLLAR_TERMS: tuple[str, ...] = (
    "business", "management", "finance", "accounting", "marketing", "sales",
    "consulting", "administration", "leadership", "professional", "corporate",
    "office", "analyst", "data", "software", "computer", "it", "technology",
    "digital",
)


def _term_pattern(terms: Sequence[str]) -> re.Pattern[str]:
    # Terms must start a word ("trades" counts, "institute" has no "it")
    return re.compile(r"\b(?:" + "|".join(re.escape(t) for t in terms) + ")", re.IGNORECASE)


_BLUE_COLLAR_RE = _term_pattern(BLUE_COLLAR_TERMS)
_WHITE_COLLAR_RE = _term_pattern(WHITE_COLLAR_TERMS)


def classify_category(name: str, description: str | None = None) -> Category:
    """Score name + description against both lexicons; ties go to "other"."""
    text = f"{name} {description or ''}"
    blue = len(_BLUE_COLLAR_RE.findall(text))
    white = len(_WHITE_COLLAR_RE.findall(text))
    if blue > white and blue > 0:
        return "blue-collar"
    if white > blue and white > 0:
        return "white-collar"
    return "other"


def build_prompt(snippets: Sequence[str], location: str, bounds: AreaBounds) -> str:
    joined = SNIPPET_SEPARATOR.join(snippets)
    return (
        "You are extracting training facilities from web search results.\n\n"
        f"Location: {location}\n"
        f"Area bounds: north {bounds.north}, south {bounds.south}, "
        f"east {bounds.east}, west {bounds.west}\n\n"
        "Below is text gathered from web searches and OpenStreetMap for this area, "
        f"separated by '---':\n\n{joined}\n\n"
        "Instructions:\n"
        "1. Return ONLY training centers, vocational schools, colleges, institutes or "
        "other training facilities that are literally named in the text above.\n"
        "2. Do NOT invent facilities, names, addresses or contact details.\n"
        "3. For lat and lng, give your best estimate of the facility's location; it "
        "must fall inside the area bounds.\n"
        "4. Respond with ONLY a JSON array, no prose, where each element has the fields: "
        '"name", "address", "description", "phone", "website", "email", "lat", "lng", '
        '"source" (which part of the text mentioned it). Use null for unknown fields.\n'
        "5. If the text names no real training centers, respond with exactly: []\n"
    )


class OutputKind(enum.Enum):
    RECORDS = "records"
    EMPTY = "empty"
    MALFORMED = "malformed"


@dataclass
class ParsedOutput:
    kind: OutputKind
    items: list[Any] = field(default_factory=list)


# Replies the model gives instead of "[]" when nothing was found
EMPTY_MARKERS = frozenset({
    "[]",
    "none",
    "no training centers found",
    "no training centers found.",
})
EMPTY_PHRASES = ("no real training centers",)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def parse_model_output(text: str) -> ParsedOutput:
    """Classify a model reply as records, an explicit empty answer, or malformed."""
    cleaned = _FENCE_RE.sub("", text.strip()).strip()

    items = _decode_array(cleaned)
    if items is not None:
        return ParsedOutput(OutputKind.RECORDS if items else OutputKind.EMPTY, items)

    normalized = " ".join(cleaned.lower().split())
    if normalized in EMPTY_MARKERS or any(p in normalized for p in EMPTY_PHRASES):
        return ParsedOutput(OutputKind.EMPTY)
    return ParsedOutput(OutputKind.MALFORMED)


def _decode_array(text: str) -> list[Any] | None:
    """Return the whole reply or the first embedded JSON array, if any."""
    try:
        whole = json.loads(text)
    except ValueError:
        pass
    else:
        if isinstance(whole, list):
            return whole

    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except ValueError:
            start = text.find("[", start + 1)
            continue
        if isinstance(value, list) and all(isinstance(v, dict) for v in value):
            return value
        start = text.find("[", start + 1)
    return None


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        if not value or value.lower() in ("null", "none", "n/a", "unknown"):
            return None
    return value


class ExtractedFacility(BaseModel):
    """One element of the model's JSON array, before it becomes a TrainingCenter."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    address: str | None = None
    description: str | None = None
    phone: str | None = None
    website: str | None = None
    email: str | None = None
    lat: float = Field(allow_inf_nan=False)
    lng: float = Field(allow_inf_nan=False)
    source: str | None = None

    @field_validator("address", "description", "phone", "website", "email", "source", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is not None and not isinstance(value, str):
            value = str(value)
        return value


class ExtractionService:
    """Build the prompt, call the model once, and turn its reply into records."""

    def __init__(
        self,
        llm_service: LLMService,
        temperature: float = 0.1,
        max_output_tokens: int = 2048,
    ) -> None:
        self.llm_service = llm_service
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @property
    def is_configured(self) -> bool:
        return self.llm_service.has_api_key

    def ensure_configured(self) -> None:
        self.llm_service.ensure_configured()

    async def extract(
        self,
        snippets: Sequence[str],
        location: str,
        bounds: AreaBounds,
    ) -> list[TrainingCenter]:
        prompt = build_prompt(snippets, location, bounds)
        response = await self.llm_service.generate(
            prompt,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )

        parsed = parse_model_output(response.text)
        if parsed.kind is OutputKind.MALFORMED:
            logger.warning("Unparsable model output: %.300r", response.text)
            raise ParseError("Model response did not contain a JSON array of training centers")
        if parsed.kind is OutputKind.EMPTY:
            logger.info("Model reported no training centers for %r", location)
            return []

        return self.build_centers(parsed.items, bounds)

    def build_centers(
        self,
        items: Sequence[Any],
        bounds: AreaBounds,
        timestamp_ms: int | None = None,
    ) -> list[TrainingCenter]:
        """Validate, clamp and categorize raw model records."""
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)

        centers: list[TrainingCenter] = []
        for index, item in enumerate(items):
            try:
                facility = ExtractedFacility.model_validate(item)
            except PydanticValidationError as exc:
                logger.warning(
                    "Dropping invalid extracted record #%d: %s",
                    index,
                    "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()),
                )
                continue

            lat, lng = bounds.clamp(facility.lat, facility.lng)
            description = facility.description
            if facility.source:
                source_note = f"Source: {facility.source}"
                description = f"{description} {source_note}" if description else source_note

            centers.append(
                TrainingCenter(
                    id=f"extracted-{index}-{timestamp_ms}",
                    name=facility.name,
                    category=classify_category(facility.name, facility.description),
                    address=facility.address or "",
                    phone=facility.phone,
                    email=facility.email,
                    website=facility.website,
                    description=description,
                    coordinates=Coordinates(lat=lat, lng=lng),
                )
            )
        return centers
