"""Asana API client wrapper."""

import asyncio
from typing import Any

import asana
import structlog
from asana.rest import ApiException
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from field_exporter.asana.models import ResourceCategory, Workspace

logger = structlog.get_logger()

CUSTOM_FIELD_OPT_FIELDS = [
    "name",
    "type",
    "resource_subtype",
    "description",
    "created_by.name",
    "created_at",
    "is_global_to_workspace",
    "enabled",
    "enum_options.name",
    "enum_options.color",
    "enum_options.enabled",
    "precision",
    "currency_code",
    "format",
]

# custom_field_settings entries embed the field plus who attached it and when
SETTING_OPT_FIELDS = [f"custom_field.{name}" for name in ["gid", *CUSTOM_FIELD_OPT_FIELDS]] + [
    "created_at",
    "created_by.name",
]

RESOURCE_OPT_FIELDS = {
    ResourceCategory.PROJECTS: ["name", "privacy_setting"],
    ResourceCategory.PORTFOLIOS: ["name"],
    ResourceCategory.GOALS: ["name"],
}


def _is_retryable(exc: BaseException) -> bool:
    """Retry only on rate limiting and server-side failures."""
    if isinstance(exc, ApiException):
        return exc.status == 429 or (exc.status or 0) >= 500
    return False


_api_retry = retry(
    retry=retry_if_exception(_is_retryable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _as_dict(response: Any) -> dict[str, Any]:
    return response if isinstance(response, dict) else response.to_dict()


class AsanaClient:
    """Read-only wrapper around the Asana API with async support and rate limiting.

    The SDK page iterator is disabled, so every list method returns one raw
    page: ``{"data": [...], "next_page": {"offset": ...} | None}``.
    """

    def __init__(self, access_token: str, page_size: int = 100) -> None:
        """Initialize Asana client.

        Args:
            access_token: Asana Personal Access Token
            page_size: Number of records requested per page
        """
        configuration = asana.Configuration()
        configuration.access_token = access_token
        configuration.return_page_iterator = False
        self.api_client = asana.ApiClient(configuration)
        self.page_size = page_size

        self.workspaces_api = asana.WorkspacesApi(self.api_client)
        self.custom_fields_api = asana.CustomFieldsApi(self.api_client)
        self.custom_field_settings_api = asana.CustomFieldSettingsApi(self.api_client)
        self.projects_api = asana.ProjectsApi(self.api_client)
        self.portfolios_api = asana.PortfoliosApi(self.api_client)
        self.goals_api = asana.GoalsApi(self.api_client)
        self.tasks_api = asana.TasksApi(self.api_client)

    def _page_opts(self, opt_fields: list[str], offset: str | None, **extra: Any) -> dict[str, Any]:
        opts: dict[str, Any] = {"limit": self.page_size, "opt_fields": ",".join(opt_fields)}
        if offset:
            opts["offset"] = offset
        opts.update(extra)
        return opts

    @_api_retry
    async def get_workspaces(self) -> list[Workspace]:
        """Get all workspaces visible to the token.

        Returns:
            List of Workspace objects
        """
        try:
            response = await asyncio.to_thread(
                self.workspaces_api.get_workspaces,
                {"limit": 100, "opt_fields": "name,is_organization"},
            )
            workspaces = [
                Workspace(
                    gid=item["gid"],
                    name=item.get("name", ""),
                    is_organization=item.get("is_organization", False),
                )
                for item in _as_dict(response).get("data") or []
            ]
            logger.info("fetched_workspaces", count=len(workspaces))
            return workspaces

        except ApiException as e:
            logger.error("asana_api_error", error=str(e), operation="get_workspaces")
            raise

    @_api_retry
    async def get_custom_fields_page(
        self, workspace_gid: str, offset: str | None = None
    ) -> dict[str, Any]:
        """Get one page of the workspace custom field library.

        Args:
            workspace_gid: The GID of the workspace
            offset: Continuation cursor from the previous page

        Returns:
            Raw page dict with ``data`` and ``next_page``
        """
        try:
            response = await asyncio.to_thread(
                self.custom_fields_api.get_custom_fields_for_workspace,
                workspace_gid,
                self._page_opts(CUSTOM_FIELD_OPT_FIELDS, offset),
            )
            page = _as_dict(response)
            logger.debug(
                "fetched_custom_fields_page",
                workspace_gid=workspace_gid,
                count=len(page.get("data") or []),
            )
            return page

        except ApiException as e:
            logger.error("asana_api_error", error=str(e), workspace_gid=workspace_gid)
            raise

    @_api_retry
    async def _get_resources_page(
        self,
        category: ResourceCategory,
        workspace_gid: str,
        offset: str | None = None,
    ) -> dict[str, Any]:
        """Get one page of projects, portfolios or goals in a workspace.

        Archived projects are excluded.

        Args:
            category: Which resource list to fetch
            workspace_gid: The GID of the workspace
            offset: Continuation cursor from the previous page

        Returns:
            Raw page dict with ``data`` and ``next_page``
        """
        opt_fields = RESOURCE_OPT_FIELDS[category]
        try:
            if category == ResourceCategory.PROJECTS:
                response = await asyncio.to_thread(
                    self.projects_api.get_projects,
                    self._page_opts(opt_fields, offset, workspace=workspace_gid, archived=False),
                )
            elif category == ResourceCategory.PORTFOLIOS:
                response = await asyncio.to_thread(
                    self.portfolios_api.get_portfolios,
                    workspace_gid,
                    self._page_opts(opt_fields, offset),
                )
            else:
                response = await asyncio.to_thread(
                    self.goals_api.get_goals,
                    self._page_opts(opt_fields, offset, workspace=workspace_gid),
                )
            return _as_dict(response)

        except ApiException as e:
            logger.error(
                "asana_api_error",
                error=str(e),
                category=category.value,
                workspace_gid=workspace_gid,
            )
            raise

    async def get_projects_page(self, workspace_gid: str, offset: str | None = None) -> dict[str, Any]:
        return await self._get_resources_page(ResourceCategory.PROJECTS, workspace_gid, offset)

    async def get_portfolios_page(self, workspace_gid: str, offset: str | None = None) -> dict[str, Any]:
        return await self._get_resources_page(ResourceCategory.PORTFOLIOS, workspace_gid, offset)

    async def get_goals_page(self, workspace_gid: str, offset: str | None = None) -> dict[str, Any]:
        return await self._get_resources_page(ResourceCategory.GOALS, workspace_gid, offset)

    @_api_retry
    async def get_custom_field_settings_page(
        self,
        category: ResourceCategory,
        resource_gid: str,
        offset: str | None = None,
    ) -> dict[str, Any]:
        """Get one page of custom field settings attached to a resource.

        Args:
            category: Resource type the GID belongs to
            resource_gid: The GID of the project, portfolio or goal
            offset: Continuation cursor from the previous page

        Returns:
            Raw page dict; each entry embeds a ``custom_field`` payload
        """
        opts = self._page_opts(SETTING_OPT_FIELDS, offset)
        try:
            if category == ResourceCategory.PROJECTS:
                response = await asyncio.to_thread(
                    self.custom_field_settings_api.get_custom_field_settings_for_project,
                    resource_gid,
                    opts,
                )
            elif category == ResourceCategory.PORTFOLIOS:
                response = await asyncio.to_thread(
                    self.custom_field_settings_api.get_custom_field_settings_for_portfolio,
                    resource_gid,
                    opts,
                )
            else:
                response = await asyncio.to_thread(
                    self.custom_field_settings_api.get_custom_field_settings_for_goal,
                    resource_gid,
                    opts,
                )
            return _as_dict(response)

        except ApiException as e:
            logger.error(
                "asana_api_error",
                error=str(e),
                category=category.value,
                resource_gid=resource_gid,
            )
            raise

    @_api_retry
    async def search_last_modified_task(
        self,
        workspace_gid: str,
        field_gid: str,
        project_gid: str | None = None,
    ) -> dict[str, Any] | None:
        """Find the most recently modified task that has a custom field set.

        Args:
            workspace_gid: The GID of the workspace
            field_gid: The GID of the custom field
            project_gid: Optionally restrict the search to one project

        Returns:
            Task dict with ``gid`` and ``modified_at``, or None if no task has it set
        """
        opts: dict[str, Any] = {
            f"custom_fields.{field_gid}.is_set": True,
            "sort_by": "modified_at",
            "sort_ascending": False,
            "limit": 1,
            "opt_fields": "modified_at",
        }
        if project_gid:
            opts["projects.any"] = project_gid

        try:
            response = await asyncio.to_thread(
                self.tasks_api.search_tasks_for_workspace, workspace_gid, opts
            )
            tasks = _as_dict(response).get("data") or []
            logger.debug(
                "searched_last_modified_task",
                field_gid=field_gid,
                project_gid=project_gid,
                found=bool(tasks),
            )
            return tasks[0] if tasks else None

        except ApiException as e:
            logger.error("asana_api_error", error=str(e), field_gid=field_gid)
            raise
