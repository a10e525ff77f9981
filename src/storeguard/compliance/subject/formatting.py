"""Export formatting: structured JSON document or sectioned flat CSV."""

import csv
import io
import json
from datetime import datetime
from typing import Any

from storeguard.compliance.subject.types import ExportPayload, SubjectData
from storeguard.compliance.types import ExportFormat


def to_structured(data: SubjectData, exported_at: datetime) -> str:
    """Render the export as one JSON document."""
    document = {
        "subject_id": data.subject_id,
        "exported_at": exported_at.isoformat(),
        "data": data.model_dump(mode="json", exclude={"subject_id"}),
    }
    return json.dumps(document, indent=2, sort_keys=False)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def _rows(section: dict[str, Any] | list[dict[str, Any]]) -> list[dict[str, Any]]:
    if isinstance(section, dict):
        return [section] if section else []
    return [item for item in section if isinstance(item, dict)]


def to_flat(data: SubjectData) -> str:
    """Render the export as CSV, one titled block per section.

    Each block is the section name in upper case, a blank line, a header row
    built from the union of the rows' keys, the rows, and a blank line.
    Nested values are JSON-encoded into a single cell.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    sections = SubjectData.model_validate(data.model_dump(mode="json")).sections()

    for name, section in sections.items():
        writer.writerow([name.upper()])
        writer.writerow([])
        rows = _rows(section)
        if rows:
            headers: list[str] = []
            for row in rows:
                headers.extend(key for key in row if key not in headers)
            writer.writerow(headers)
            for row in rows:
                writer.writerow([_cell(row.get(header)) for header in headers])
        writer.writerow([])

    return buffer.getvalue()


def format_export(data: SubjectData, fmt: ExportFormat, exported_at: datetime) -> ExportPayload:
    """Format collected subject data for delivery."""
    stamp = exported_at.strftime("%Y-%m-%d")
    if fmt == ExportFormat.FLAT:
        return ExportPayload(
            format=fmt,
            content=to_flat(data),
            media_type="text/csv",
            filename=f"customer-data-export-{stamp}.csv",
            exported_at=exported_at,
            found=data.found,
        )
    return ExportPayload(
        format=fmt,
        content=to_structured(data, exported_at),
        media_type="application/json",
        filename=f"customer-data-export-{stamp}.json",
        exported_at=exported_at,
        found=data.found,
    )
