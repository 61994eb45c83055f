from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError

from centermap.errors import ValidationError

BOUND_FIELDS: tuple[str, ...] = ("north", "south", "east", "west")


class AreaBounds(BaseModel):
    """Axis-aligned lat/lng rectangle selected on the map."""

    model_config = ConfigDict(frozen=True)

    north: float
    south: float
    east: float
    west: float

    @model_validator(mode="after")
    def _check_rectangle(self) -> AreaBounds:
        for name in ("north", "south"):
            if not -90.0 <= getattr(self, name) <= 90.0:
                raise ValueError(f"'{name}' must be a latitude between -90 and 90")
        for name in ("east", "west"):
            if not -180.0 <= getattr(self, name) <= 180.0:
                raise ValueError(f"'{name}' must be a longitude between -180 and 180")
        # Inverted and zero-area rectangles are rejected, not normalized.
        if self.north <= self.south:
            raise ValueError("'north' must be greater than 'south'")
        if self.east <= self.west:
            raise ValueError("'east' must be greater than 'west'")
        return self

    @classmethod
    def from_payload(cls, payload: Any) -> AreaBounds:
        """Validate an untrusted JSON value and build bounds from it.

        Raises ValidationError if a field is missing, not a finite number,
        out of range, or the rectangle is inverted or empty.
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("Invalid bounds: expected an object with north, south, east and west")

        values: dict[str, float] = {}
        for name in BOUND_FIELDS:
            if name not in payload or payload[name] is None:
                raise ValidationError(f"Invalid bounds: '{name}' is missing")
            raw = payload[name]
            # bool is an int subclass; JSON true/false is never a coordinate
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise ValidationError(f"Invalid bounds: '{name}' must be a number")
            if not math.isfinite(raw):
                raise ValidationError(f"Invalid bounds: '{name}' must be a finite number")
            values[name] = float(raw)

        try:
            return cls(**values)
        except PydanticValidationError as exc:
            message = exc.errors()[0].get("msg", "invalid rectangle")
            message = message.removeprefix("Value error, ")
            raise ValidationError(f"Invalid bounds: {message}") from exc

    def centroid(self) -> tuple[float, float]:
        return (self.north + self.south) / 2, (self.east + self.west) / 2

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    def clamp(self, lat: float, lng: float) -> tuple[float, float]:
        """Pull a coordinate inside the rectangle."""
        return (
            min(max(lat, self.south), self.north),
            min(max(lng, self.west), self.east),
        )

    def as_overpass_bbox(self) -> str:
        # Overpass bbox order is (south, west, north, east)
        return f"{self.south},{self.west},{self.north},{self.east}"
