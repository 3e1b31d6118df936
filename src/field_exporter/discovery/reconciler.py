"""Field reconciliation engine.

Builds the custom field inventory for a workspace:

1. Load the workspace custom field library (the authoritative source).
2. Scan projects, then portfolios, then goals for attached fields. Fields
   that only exist on those resources are added once, in the first
   category they appear in.
3. Attach each field's per-category associations.
4. Optionally look up when each field was last used.

Only a failure in step 1 aborts the run; every other failure degrades to
"no data from that resource".
"""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from field_exporter.asana.client import AsanaClient
from field_exporter.asana.models import CustomField, FieldAssociations, ResourceCategory, ResourceRef
from field_exporter.config import Settings
from field_exporter.discovery.associations import CategoryScan, map_category_fields
from field_exporter.discovery.batch import BatchRunner
from field_exporter.discovery.enrichment import LastUsedEnricher
from field_exporter.discovery.pagination import CollectionFetchError, ErrorPolicy, collect_pages
from field_exporter.discovery.progress import DONE, LIBRARY_END, ProgressCallback, ProgressReporter

logger = structlog.get_logger()

CATEGORY_ORDER = (
    ResourceCategory.PROJECTS,
    ResourceCategory.PORTFOLIOS,
    ResourceCategory.GOALS,
)


class FieldLibraryError(Exception):
    """Raised when the workspace custom field library cannot be loaded."""

    pass


class AggregationInProgressError(Exception):
    """Raised when a second aggregation is started while one is running."""

    pass


@dataclass
class CategoryOutcome:
    """Diagnostics for one resource category."""

    category: ResourceCategory
    resource_count: int = 0
    failed_resources: int = 0
    list_failed: bool = False
    discovered: int = 0
    error: str | None = None


@dataclass
class DiscoveryState:
    """Accumulator threaded through the reconciliation phases."""

    fields: dict[str, CustomField] = field(default_factory=dict)
    known_gids: set[str] = field(default_factory=set)
    associations: dict[ResourceCategory, dict[str, list[ResourceRef]]] = field(default_factory=dict)
    outcomes: list[CategoryOutcome] = field(default_factory=list)

    @classmethod
    def from_library(cls, library: list[CustomField]) -> "DiscoveryState":
        state = cls()
        for custom_field in library:
            if custom_field.gid not in state.fields:
                state.fields[custom_field.gid] = custom_field
        state.known_gids = set(state.fields)
        return state


@dataclass
class InventoryResult:
    """Output of one aggregation run."""

    workspace_gid: str
    fields: list[CustomField]
    outcomes: list[CategoryOutcome]
    last_used_checked: bool
    started_at: datetime
    finished_at: datetime

    @property
    def degraded(self) -> bool:
        return any(o.list_failed or o.failed_resources for o in self.outcomes)


def merge_category(state: DiscoveryState, scan: CategoryScan) -> DiscoveryState:
    """Fold one category scan into the accumulator.

    Discovered fields whose GID is already present are skipped, so library
    entries and earlier categories always win.
    """
    added = 0
    for gid, custom_field in scan.discovered.items():
        if gid in state.fields:
            continue
        state.fields[gid] = custom_field
        added += 1
    state.known_gids.update(state.fields)
    state.associations[scan.category] = scan.associations
    state.outcomes.append(
        CategoryOutcome(
            category=scan.category,
            resource_count=scan.resource_count,
            failed_resources=scan.failed_resources,
            list_failed=scan.list_failed,
            discovered=added,
            error=scan.error,
        )
    )
    return state


def attach_associations(state: DiscoveryState) -> list[CustomField]:
    """Give every merged field its projects, portfolios and goals lists."""
    fields = list(state.fields.values())
    for custom_field in fields:
        custom_field.associations = FieldAssociations(
            **{
                category.value: list(state.associations.get(category, {}).get(custom_field.gid, []))
                for category in CATEGORY_ORDER
            }
        )

    orphaned = {
        gid
        for mapping in state.associations.values()
        for gid in mapping
        if gid not in state.fields
    }
    if orphaned:
        logger.debug("associations_without_definition", count=len(orphaned))
    return fields


class FieldReconciler:
    """Runs the full custom field aggregation for a workspace."""

    def __init__(self, client: AsanaClient, settings: Settings):
        """Initialize reconciler.

        Args:
            client: Asana client
            settings: Batch widths, pauses and page size come from here
        """
        self.client = client
        self.settings = settings
        self._run_lock = asyncio.Lock()

    def _discovery_runner(self) -> BatchRunner:
        return BatchRunner(
            self.settings.discovery_batch_width,
            self.settings.discovery_batch_pause,
            name="discovery",
        )

    def enricher(self) -> LastUsedEnricher:
        runner = BatchRunner(
            self.settings.enrichment_batch_width,
            self.settings.enrichment_batch_pause,
            name="enrichment",
        )
        return LastUsedEnricher(self.client, runner)

    async def load_library(self, workspace_gid: str, progress: ProgressReporter) -> list[CustomField]:
        """Fetch the workspace custom field library.

        Raises:
            FieldLibraryError: If any page fails or an entry is malformed
        """

        def report(pages: int, items: int) -> None:
            progress.update(
                min(pages * 5, LIBRARY_END),
                f"Loading workspace custom fields (page {pages}, {items} fields)...",
            )

        progress.update(0, "Loading custom fields...")
        try:
            result = await collect_pages(
                lambda offset: self.client.get_custom_fields_page(workspace_gid, offset),
                label="workspace custom fields",
                on_error=ErrorPolicy.RAISE,
                on_page=report,
            )
        except CollectionFetchError as e:
            logger.error("field_library_failed", workspace_gid=workspace_gid, error=str(e.cause))
            raise FieldLibraryError(f"Failed to load custom fields: {e.cause}") from e

        try:
            library = [CustomField.from_api(item) for item in result.items if item.get("gid")]
        except ValidationError as e:
            logger.error("field_library_invalid", workspace_gid=workspace_gid, error=str(e))
            raise FieldLibraryError(f"Failed to load custom fields: {e}") from e
        logger.info("field_library_loaded", workspace_gid=workspace_gid, count=len(library))
        return library

    async def run(
        self,
        workspace_gid: str,
        include_last_used: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> InventoryResult:
        """Build the custom field inventory for a workspace.

        Args:
            workspace_gid: Workspace to aggregate
            include_last_used: Also look up when each field was last used
            on_progress: Optional callback receiving (percent, message)

        Returns:
            InventoryResult with one entry per field GID

        Raises:
            FieldLibraryError: If the workspace library cannot be loaded
            AggregationInProgressError: If another run is in flight
        """
        if self._run_lock.locked():
            raise AggregationInProgressError("An aggregation is already running")

        async with self._run_lock:
            started_at = datetime.now(UTC)
            progress = ProgressReporter(on_progress)
            log = logger.bind(workspace_gid=workspace_gid)

            library = await self.load_library(workspace_gid, progress)
            state = DiscoveryState.from_library(library)
            progress.update(LIBRARY_END, f"Loaded {len(library)} custom fields. Loading projects...")

            runner = self._discovery_runner()
            for category in CATEGORY_ORDER:
                scan = await map_category_fields(
                    self.client,
                    workspace_gid,
                    category,
                    set(state.known_gids),
                    runner,
                    progress,
                )
                state = merge_category(state, scan)

            fields = attach_associations(state)

            if include_last_used:
                await self.enricher().enrich(workspace_gid, fields, progress)

            progress.update(DONE, "Done!")
            result = InventoryResult(
                workspace_gid=workspace_gid,
                fields=fields,
                outcomes=state.outcomes,
                last_used_checked=include_last_used,
                started_at=started_at,
                finished_at=datetime.now(UTC),
            )
            log.info(
                "inventory_built",
                fields=len(fields),
                library=len(library),
                discovered=len(fields) - len(library),
                degraded=result.degraded,
                last_used_checked=include_last_used,
            )
            return result
