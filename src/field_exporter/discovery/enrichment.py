"""Last-used lookups: when did a task last have each custom field set."""

import structlog

from field_exporter.asana.client import AsanaClient
from field_exporter.asana.models import CustomField, LastUsed, LastUsedStatus
from field_exporter.discovery.batch import BatchRunner, FetchResult
from field_exporter.discovery.progress import ENRICHMENT_RANGE, ProgressReporter

logger = structlog.get_logger()


def _to_last_used(result: FetchResult[dict | None]) -> LastUsed:
    if not result.ok:
        return LastUsed(status=LastUsedStatus.UNKNOWN, error=result.error)
    task = result.value
    if not task:
        return LastUsed(status=LastUsedStatus.NONE_FOUND)
    return LastUsed(
        status=LastUsedStatus.FOUND,
        modified_at=task.get("modified_at"),
        task_gid=task.get("gid"),
    )


class LastUsedEnricher:
    """Looks up the most recently modified task using each field.

    Each lookup is one task search, so this roughly doubles the number of
    upstream calls in an aggregation.
    """

    def __init__(self, client: AsanaClient, runner: BatchRunner):
        """Initialize enricher.

        Args:
            client: Asana client
            runner: Batch runner for the per-field searches
        """
        self.client = client
        self.runner = runner

    async def check_field(
        self,
        workspace_gid: str,
        field_gid: str,
        project_gid: str | None = None,
    ) -> LastUsed:
        """Look up a single field, optionally within one project.

        Failures are returned as an UNKNOWN status, never raised.
        """
        try:
            task = await self.client.search_last_modified_task(
                workspace_gid, field_gid, project_gid=project_gid
            )
            result: FetchResult[dict | None] = FetchResult.success(task)
        except Exception as e:
            logger.warning(
                "last_used_lookup_failed",
                field_gid=field_gid,
                project_gid=project_gid,
                error=str(e),
            )
            result = FetchResult.absent(str(e))
        return _to_last_used(result)

    async def enrich(
        self,
        workspace_gid: str,
        fields: list[CustomField],
        progress: ProgressReporter | None = None,
    ) -> list[CustomField]:
        """Set ``last_used`` on every field.

        Args:
            workspace_gid: Workspace to search
            fields: Fields to enrich (modified in place)
            progress: Optional progress reporter

        Returns:
            The same list of fields
        """
        start, end = ENRICHMENT_RANGE

        def report(done: int, total: int) -> None:
            if progress:
                progress.span(start, end, done, total, f"Checking last usage ({done} of {total} fields)...")

        if progress:
            progress.update(start, f"Checking last usage for {len(fields)} fields...")

        results = await self.runner.run(
            fields,
            lambda f: self.client.search_last_modified_task(workspace_gid, f.gid),
            on_batch=report,
        )

        for custom_field, result in zip(fields, results):
            custom_field.last_used = _to_last_used(result)

        unknown = sum(1 for f in fields if f.last_used.status == LastUsedStatus.UNKNOWN)
        logger.info("last_used_enriched", fields=len(fields), unknown=unknown)
        return fields
