"""CSV export of a custom field inventory."""

import csv
from datetime import date
from pathlib import Path
from typing import TextIO

import structlog

from field_exporter.asana.models import CustomField, LastUsed, LastUsedStatus, ResourceRef
from field_exporter.inventory.filters import format_kind

logger = structlog.get_logger()

CSV_HEADERS = [
    "Name",
    "Field GID",
    "Type",
    "Description",
    "Created By",
    "Scope",
    "Last Used",
    "Projects",
    "Project Visibility",
    "Portfolios",
    "Goals",
    "Options / Variations",
]


def format_date(value: date) -> str:
    """Format like "Mar 5, 2025"."""
    return f"{value:%b} {value.day}, {value.year}"


def format_last_used(last_used: LastUsed) -> str:
    if last_used.status == LastUsedStatus.NOT_CHECKED:
        return "Not checked"
    if last_used.status == LastUsedStatus.FOUND and last_used.modified_at:
        return format_date(last_used.modified_at)
    return "Never / Unknown"


def format_visibility(visibility: str | None) -> str:
    if visibility == "private":
        return "Private"
    if visibility in ("public_to_workspace", "public"):
        return "Public"
    return "Unknown"


def _names(refs: list[ResourceRef]) -> str:
    return "; ".join(r.name for r in refs)


def field_row(custom_field: CustomField) -> list[str]:
    projects = custom_field.associations.projects
    options = "; ".join(
        o.name if o.enabled else f"{o.name} (disabled)" for o in custom_field.enum_options
    )
    return [
        custom_field.name,
        custom_field.gid,
        format_kind(custom_field.kind),
        custom_field.description or "",
        custom_field.created_by or "",
        custom_field.scope_label,
        format_last_used(custom_field.last_used),
        _names(projects),
        "; ".join(f"{p.name} ({format_visibility(p.visibility)})" for p in projects),
        _names(custom_field.associations.portfolios),
        _names(custom_field.associations.goals),
        options,
    ]


def write_csv(fields: list[CustomField], stream: TextIO) -> int:
    """Write fields as CSV rows in the given order.

    Returns:
        Number of data rows written
    """
    writer = csv.writer(stream)
    writer.writerow(CSV_HEADERS)
    for custom_field in fields:
        writer.writerow(field_row(custom_field))
    return len(fields)


def default_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"custom-fields-{today.isoformat()}.csv"


def export_csv(fields: list[CustomField], path: str | Path) -> Path:
    """Export fields to a CSV file.

    Args:
        fields: Fields to write, already filtered and sorted
        path: Target file, or a directory to receive the default file name

    Returns:
        Path of the written file
    """
    target = Path(path)
    if target.is_dir():
        target = target / default_filename()
    target.parent.mkdir(parents=True, exist_ok=True)

    with target.open("w", newline="", encoding="utf-8") as f:
        rows = write_csv(fields, f)

    logger.info("csv_exported", path=str(target), rows=rows)
    return target
