"""Data models for Asana custom fields and the resources that carry them."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FieldKind(str, Enum):
    """Custom field kinds known to the exporter.

    Asana may add new subtypes; unknown kinds are kept as plain strings.
    """

    TEXT = "text"
    NUMBER = "number"
    ENUM = "enum"
    MULTI_ENUM = "multi_enum"
    DATE = "date"
    PEOPLE = "people"


SELECT_KINDS = {FieldKind.ENUM.value, FieldKind.MULTI_ENUM.value}


class ResourceCategory(str, Enum):
    """Resource types that can have custom fields attached."""

    PROJECTS = "projects"
    PORTFOLIOS = "portfolios"
    GOALS = "goals"


class LastUsedStatus(str, Enum):
    """Outcome of a last-used lookup for one field."""

    NOT_CHECKED = "not_checked"
    FOUND = "found"
    NONE_FOUND = "none_found"
    UNKNOWN = "unknown"


class Workspace(BaseModel):
    """Asana workspace model."""

    gid: str
    name: str
    is_organization: bool = False


class Resource(BaseModel):
    """A project, portfolio or goal seen during discovery."""

    gid: str
    name: str
    visibility: str | None = None


class ResourceRef(BaseModel):
    """One attachment of a field to a resource."""

    gid: str
    name: str
    visibility: str | None = None
    attached_at: datetime | None = None
    attached_by: str | None = None


class EnumOption(BaseModel):
    """Option of a single- or multi-select field."""

    name: str
    color: str | None = None
    enabled: bool = True


class FieldAssociations(BaseModel):
    """Resources a field is attached to, per category."""

    projects: list[ResourceRef] = Field(default_factory=list)
    portfolios: list[ResourceRef] = Field(default_factory=list)
    goals: list[ResourceRef] = Field(default_factory=list)

    def for_category(self, category: ResourceCategory) -> list[ResourceRef]:
        return getattr(self, category.value)


class LastUsed(BaseModel):
    """When a task last had the field populated.

    ``status`` keeps "never checked" apart from "checked, nothing found"
    and from "checked, lookup failed".
    """

    status: LastUsedStatus = LastUsedStatus.NOT_CHECKED
    modified_at: datetime | None = None
    task_gid: str | None = None
    error: str | None = None

    @property
    def checked(self) -> bool:
        return self.status != LastUsedStatus.NOT_CHECKED


class CustomField(BaseModel):
    """Asana custom field definition with its associations."""

    gid: str
    name: str
    kind: str = FieldKind.TEXT.value
    description: str | None = None
    is_global_to_workspace: bool = False
    enabled: bool = True

    enum_options: list[EnumOption] = Field(default_factory=list)

    created_by: str | None = None
    created_at: datetime | None = None

    # Number / formula formatting details
    precision: int | None = None
    currency_code: str | None = None
    format: str | None = None

    associations: FieldAssociations = Field(default_factory=FieldAssociations)
    last_used: LastUsed = Field(default_factory=LastUsed)

    @property
    def is_select(self) -> bool:
        return self.kind in SELECT_KINDS

    @property
    def scope_label(self) -> str:
        return "Global" if self.is_global_to_workspace else "Local"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CustomField":
        """Build a field from a raw Asana custom field payload.

        Args:
            data: Custom field dict as returned by the Asana API

        Returns:
            CustomField with no associations and an unchecked last-used state
        """
        kind = data.get("resource_subtype") or data.get("type") or FieldKind.TEXT.value

        options = []
        if kind in SELECT_KINDS:
            for opt in data.get("enum_options") or []:
                options.append(
                    EnumOption(
                        name=opt.get("name", ""),
                        color=opt.get("color"),
                        enabled=opt.get("enabled", True) is not False,
                    )
                )

        creator = data.get("created_by")
        created_by = creator.get("name") if isinstance(creator, dict) else None

        return cls(
            gid=data["gid"],
            name=data.get("name") or "",
            kind=kind,
            description=data.get("description") or None,
            is_global_to_workspace=bool(data.get("is_global_to_workspace", False)),
            enabled=data.get("enabled", True) is not False,
            enum_options=options,
            created_by=created_by,
            created_at=data.get("created_at"),
            precision=data.get("precision"),
            currency_code=data.get("currency_code"),
            format=data.get("format"),
        )
