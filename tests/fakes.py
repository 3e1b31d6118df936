"""Test doubles and payload builders for the Asana API."""

from typing import Any

from field_exporter.asana.models import ResourceCategory, Workspace


def field_payload(gid: str, name: str, is_global: bool = True, **extra: Any) -> dict:
    """Raw custom field dict as returned by the Asana API."""
    data = {
        "gid": gid,
        "name": name,
        "type": "text",
        "resource_subtype": "text",
        "is_global_to_workspace": is_global,
        "enabled": True,
    }
    data.update(extra)
    return data


def setting_payload(field: dict, created_at: str | None = None, created_by: str | None = None) -> dict:
    """Raw custom_field_settings entry embedding a field."""
    setting: dict[str, Any] = {"custom_field": field}
    if created_at:
        setting["created_at"] = created_at
    if created_by:
        setting["created_by"] = {"name": created_by}
    return setting


class FakeAsanaClient:
    """In-memory stand-in for AsanaClient with offset pagination.

    Any collection may be set to an Exception instance to make every
    request for it fail.
    """

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.library: list[dict] | Exception = []
        self.resources: dict[ResourceCategory, list[dict] | Exception] = {}
        self.settings: dict[tuple[ResourceCategory, str], list[dict] | Exception] = {}
        self.tasks: dict[str, dict | None | Exception] = {}
        self.search_calls: list[tuple[str, str, str | None]] = []
        self.settings_calls: list[tuple[ResourceCategory, str]] = []
        self.workspaces: list[Workspace] = []

    async def get_workspaces(self) -> list[Workspace]:
        return self.workspaces

    def _page(self, items: list[dict] | Exception, offset: str | None) -> dict:
        if isinstance(items, Exception):
            raise items
        start = int(offset or 0)
        end = start + self.page_size
        next_page = {"offset": str(end)} if end < len(items) else None
        return {"data": items[start:end], "next_page": next_page}

    async def get_custom_fields_page(self, workspace_gid: str, offset: str | None = None) -> dict:
        return self._page(self.library, offset)

    def _resources_page(self, category: ResourceCategory, offset: str | None) -> dict:
        return self._page(self.resources.get(category, []), offset)

    async def get_projects_page(self, workspace_gid: str, offset: str | None = None) -> dict:
        return self._resources_page(ResourceCategory.PROJECTS, offset)

    async def get_portfolios_page(self, workspace_gid: str, offset: str | None = None) -> dict:
        return self._resources_page(ResourceCategory.PORTFOLIOS, offset)

    async def get_goals_page(self, workspace_gid: str, offset: str | None = None) -> dict:
        return self._resources_page(ResourceCategory.GOALS, offset)

    async def get_custom_field_settings_page(
        self, category: ResourceCategory, resource_gid: str, offset: str | None = None
    ) -> dict:
        if offset is None:
            self.settings_calls.append((category, resource_gid))
        return self._page(self.settings.get((category, resource_gid), []), offset)

    async def search_last_modified_task(
        self, workspace_gid: str, field_gid: str, project_gid: str | None = None
    ) -> dict | None:
        self.search_calls.append((workspace_gid, field_gid, project_gid))
        task = self.tasks.get(field_gid)
        if isinstance(task, Exception):
            raise task
        return task
