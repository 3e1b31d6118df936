"""Search, filter, sort and summarize a custom field inventory."""

from dataclasses import dataclass, field
from enum import Enum

from field_exporter.asana.models import CustomField, LastUsedStatus

KIND_LABELS = {
    "text": "Text",
    "number": "Number",
    "enum": "Dropdown",
    "multi_enum": "Multi-select",
    "date": "Date",
    "people": "People",
}

SORT_COLUMNS = ("name", "gid", "type", "created_by", "scope", "last_used")


class Scope(str, Enum):
    """Scope filter values."""

    ALL = "all"
    GLOBAL = "global"
    LOCAL = "local"


def format_kind(kind: str) -> str:
    """Human label for a field kind; unknown kinds are returned as-is."""
    return KIND_LABELS.get(kind, kind)


@dataclass
class InventoryFilter:
    """Criteria for narrowing an inventory.

    ``exclude_creators`` drops fields created by any of the named people
    (case-insensitive), e.g. to hide fields owned by integrations.
    """

    search: str = ""
    kind: str | None = None
    scope: Scope = Scope.ALL
    exclude_creators: list[str] = field(default_factory=list)


@dataclass
class InventoryStats:
    total: int
    global_count: int
    local_count: int
    type_count: int


def _search_text(custom_field: CustomField) -> str:
    assoc = custom_field.associations
    parts = [
        custom_field.name,
        custom_field.gid,
        custom_field.description,
        custom_field.created_by,
        *(o.name for o in custom_field.enum_options),
        *(r.name for r in assoc.projects + assoc.portfolios + assoc.goals),
    ]
    return " ".join(p for p in parts if p).lower()


def apply_filters(fields: list[CustomField], flt: InventoryFilter) -> list[CustomField]:
    """Return the fields matching every criterion, preserving order."""
    query = flt.search.lower().strip()
    excluded = {c.lower().strip() for c in flt.exclude_creators if c.strip()}

    result = []
    for custom_field in fields:
        if query and query not in _search_text(custom_field):
            continue
        if flt.kind and flt.kind != "all" and custom_field.kind != flt.kind:
            continue
        if flt.scope == Scope.GLOBAL and not custom_field.is_global_to_workspace:
            continue
        if flt.scope == Scope.LOCAL and custom_field.is_global_to_workspace:
            continue
        if excluded and (custom_field.created_by or "").lower() in excluded:
            continue
        result.append(custom_field)
    return result


def _sort_value(custom_field: CustomField, column: str) -> str:
    if column == "name":
        return custom_field.name.lower()
    if column == "gid":
        return custom_field.gid
    if column == "type":
        return custom_field.kind.lower()
    if column == "created_by":
        return (custom_field.created_by or "").lower()
    if column == "scope":
        return custom_field.scope_label.lower()
    if column == "last_used":
        last_used = custom_field.last_used
        if last_used.status == LastUsedStatus.FOUND and last_used.modified_at:
            return last_used.modified_at.isoformat()
        return ""
    raise ValueError(f"Unknown sort column: {column}")


def sort_fields(
    fields: list[CustomField], column: str = "name", descending: bool = False
) -> list[CustomField]:
    """Sort by one of SORT_COLUMNS; the sort is stable."""
    return sorted(fields, key=lambda f: _sort_value(f, column), reverse=descending)


def summarize(fields: list[CustomField]) -> InventoryStats:
    global_count = sum(1 for f in fields if f.is_global_to_workspace)
    return InventoryStats(
        total=len(fields),
        global_count=global_count,
        local_count=len(fields) - global_count,
        type_count=len({f.kind for f in fields}),
    )


def available_kinds(fields: list[CustomField]) -> list[str]:
    """Distinct kinds present in the inventory, sorted."""
    return sorted({f.kind for f in fields})
