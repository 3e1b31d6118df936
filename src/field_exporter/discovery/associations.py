"""Maps custom fields to the projects, portfolios or goals they are attached to."""

from dataclasses import dataclass, field
from typing import Any

import structlog

from field_exporter.asana.client import AsanaClient
from field_exporter.asana.models import CustomField, Resource, ResourceCategory, ResourceRef
from field_exporter.discovery.batch import BatchRunner
from field_exporter.discovery.pagination import ErrorPolicy, collect_pages
from field_exporter.discovery.progress import CATEGORY_RANGES, ProgressReporter

logger = structlog.get_logger()


@dataclass
class CategoryScan:
    """Everything one category contributed to the inventory."""

    category: ResourceCategory
    associations: dict[str, list[ResourceRef]] = field(default_factory=dict)
    discovered: dict[str, CustomField] = field(default_factory=dict)
    resource_count: int = 0
    failed_resources: int = 0
    list_failed: bool = False
    error: str | None = None


def _parse_resource(category: ResourceCategory, data: dict[str, Any]) -> Resource:
    visibility = None
    if category == ResourceCategory.PROJECTS:
        visibility = data.get("privacy_setting") or "unknown"
    return Resource(gid=data["gid"], name=data.get("name") or "", visibility=visibility)


async def fetch_resources(
    client: AsanaClient,
    workspace_gid: str,
    category: ResourceCategory,
) -> tuple[list[Resource], str | None]:
    """Fetch every resource of a category, degrading to none on failure.

    Returns:
        (resources, error) where error is set only if the list fetch failed
    """
    fetch_page = {
        ResourceCategory.PROJECTS: client.get_projects_page,
        ResourceCategory.PORTFOLIOS: client.get_portfolios_page,
        ResourceCategory.GOALS: client.get_goals_page,
    }[category]
    result = await collect_pages(
        lambda offset: fetch_page(workspace_gid, offset),
        label=category.value,
        on_error=ErrorPolicy.DEGRADE,
    )

    resources: list[Resource] = []
    seen: set[str] = set()
    for item in result.items:
        if not item.get("gid") or item["gid"] in seen:
            continue
        seen.add(item["gid"])
        resources.append(_parse_resource(category, item))
    return resources, result.error if result.failed else None


@dataclass
class ResourceFields:
    """Fields attached to a single resource."""

    refs: dict[str, ResourceRef] = field(default_factory=dict)
    local_fields: dict[str, CustomField] = field(default_factory=dict)


async def fetch_resource_settings(
    client: AsanaClient,
    category: ResourceCategory,
    resource: Resource,
) -> list[dict[str, Any]]:
    """Fetch all custom field settings for one resource, raising on failure."""
    result = await collect_pages(
        lambda offset: client.get_custom_field_settings_page(category, resource.gid, offset),
        label=f"{category.value}:{resource.gid}:custom_field_settings",
    )
    return result.items


def parse_resource_settings(
    resource: Resource,
    settings: list[dict[str, Any]],
    known_gids: set[str],
) -> ResourceFields:
    """Turn raw custom field settings into refs and unknown local fields.

    Raises:
        pydantic.ValidationError: If a setting or field payload is malformed
    """
    parsed = ResourceFields()
    for setting in settings:
        field_data = setting.get("custom_field") or {}
        field_gid = field_data.get("gid")
        if not field_gid or field_gid in parsed.refs:
            continue

        creator = setting.get("created_by")
        parsed.refs[field_gid] = ResourceRef(
            gid=resource.gid,
            name=resource.name,
            visibility=resource.visibility,
            attached_at=setting.get("created_at"),
            attached_by=creator.get("name") if isinstance(creator, dict) else None,
        )

        if field_data.get("is_global_to_workspace") is False and field_gid not in known_gids:
            parsed.local_fields[field_gid] = CustomField.from_api(field_data)
    return parsed


async def scan_resource(
    client: AsanaClient,
    category: ResourceCategory,
    resource: Resource,
    known_gids: set[str],
) -> ResourceFields:
    settings = await fetch_resource_settings(client, category, resource)
    return parse_resource_settings(resource, settings, known_gids)


async def map_category_fields(
    client: AsanaClient,
    workspace_gid: str,
    category: ResourceCategory,
    known_gids: set[str],
    runner: BatchRunner,
    progress: ProgressReporter | None = None,
) -> CategoryScan:
    """Scan every resource in a category for attached custom fields.

    Args:
        client: Asana client
        workspace_gid: Workspace to scan
        category: Projects, portfolios or goals
        known_gids: Field GIDs already in the inventory (not modified)
        runner: Batch runner used for the per-resource settings requests
        progress: Optional progress reporter

    Returns:
        CategoryScan with per-field associations and newly discovered fields
    """
    scan = CategoryScan(category=category)
    start, end = CATEGORY_RANGES[category.value]
    if progress:
        progress.update(start, f"Loading {category.value}...")

    resources, error = await fetch_resources(client, workspace_gid, category)
    scan.resource_count = len(resources)
    if error is not None:
        scan.list_failed = True
        scan.error = error
        logger.warning("category_unavailable", category=category.value, error=error)
        return scan

    def report(done: int, total: int) -> None:
        if progress:
            progress.span(
                start, end, done, total, f"Mapping {category.value} fields ({done} of {total})..."
            )

    results = await runner.run(
        resources,
        lambda resource: scan_resource(client, category, resource, known_gids),
        on_batch=report,
    )

    for resource, result in zip(resources, results):
        if not result.ok:
            scan.failed_resources += 1
            logger.warning(
                "resource_settings_unavailable",
                category=category.value,
                resource_gid=resource.gid,
                error=result.error,
            )
            continue

        for field_gid, ref in result.value.refs.items():
            scan.associations.setdefault(field_gid, []).append(ref)
        for field_gid, custom_field in result.value.local_fields.items():
            scan.discovered.setdefault(field_gid, custom_field)

    logger.info(
        "category_scanned",
        category=category.value,
        resources=scan.resource_count,
        failed_resources=scan.failed_resources,
        fields=len(scan.associations),
        discovered=len(scan.discovered),
    )
    return scan
