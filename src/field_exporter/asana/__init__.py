"""Asana integration module."""

from field_exporter.asana.client import AsanaClient
from field_exporter.asana.models import (
    CustomField,
    EnumOption,
    FieldAssociations,
    FieldKind,
    LastUsed,
    LastUsedStatus,
    Resource,
    ResourceCategory,
    ResourceRef,
    Workspace,
)

__all__ = [
    "AsanaClient",
    "CustomField",
    "EnumOption",
    "FieldAssociations",
    "FieldKind",
    "LastUsed",
    "LastUsedStatus",
    "Resource",
    "ResourceCategory",
    "ResourceRef",
    "Workspace",
]
