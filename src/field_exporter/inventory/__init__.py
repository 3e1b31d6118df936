"""Inventory filtering, sorting and export."""

from field_exporter.inventory.export import export_csv, write_csv
from field_exporter.inventory.filters import (
    InventoryFilter,
    Scope,
    apply_filters,
    format_kind,
    sort_fields,
    summarize,
)

__all__ = [
    "InventoryFilter",
    "Scope",
    "apply_filters",
    "export_csv",
    "format_kind",
    "sort_fields",
    "summarize",
    "write_csv",
]
