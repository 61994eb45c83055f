"""Data export endpoint: download the current result list as CSV or JSON."""
from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Sequence

from fastapi import APIRouter
from fastapi.responses import Response

from centermap.models.center import ExportRequest, TrainingCenter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["export"])

CSV_HEADER = (
    "ID",
    "Name",
    "Category",
    "Address",
    "Phone",
    "Email",
    "Website",
    "Description",
    "Latitude",
    "Longitude",
)

_MEDIA_TYPES = {"csv": "text/csv", "json": "application/json"}


def _csv_row(center: TrainingCenter) -> list[str]:
    return [
        center.id,
        center.name,
        center.category,
        center.address,
        center.phone or "",
        center.email or "",
        center.website or "",
        center.description or "",
        str(center.coordinates.lat),
        str(center.coordinates.lng),
    ]


def centers_to_csv(centers: Sequence[TrainingCenter]) -> str:
    """Render centers as CSV: one header line plus one line per center.

    Fields containing commas, quotes or line breaks are wrapped in double
    quotes with inner quotes doubled. Lines are joined with "\\n" and there is
    no trailing newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADER)
    for center in centers:
        writer.writerow(_csv_row(center))
    return buffer.getvalue().rstrip("\n")


def centers_to_json(centers: Sequence[TrainingCenter]) -> str:
    return json.dumps(
        [c.model_dump(mode="json", exclude_none=True) for c in centers],
        indent=2,
        ensure_ascii=False,
    )


@router.post("/export")
def export_centers(body: ExportRequest) -> Response:
    """Return the posted centers as a file attachment."""
    if body.format == "csv":
        content = centers_to_csv(body.centers)
    else:
        content = centers_to_json(body.centers)

    logger.info("Exporting %d centers as %s", len(body.centers), body.format)
    return Response(
        content=content,
        media_type=_MEDIA_TYPES[body.format],
        headers={
            "Content-Disposition": f'attachment; filename="training-centers.{body.format}"',
        },
    )
