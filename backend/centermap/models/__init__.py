from __future__ import annotations

from centermap.models.bounds import AreaBounds  # noqa: F401
from centermap.models.center import (  # noqa: F401
    Coordinates,
    ExportRequest,
    ExtractResponse,
    SourceCounts,
    TrainingCenter,
)
