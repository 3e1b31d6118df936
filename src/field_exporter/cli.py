"""Field exporter CLI."""

import asyncio
import sys
from datetime import UTC, datetime
from pathlib import Path

import click
import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from field_exporter.asana.client import AsanaClient
from field_exporter.asana.models import CustomField, LastUsedStatus, ResourceRef
from field_exporter.config import Settings, get_settings
from field_exporter.discovery.reconciler import (
    AggregationInProgressError,
    FieldLibraryError,
    FieldReconciler,
    InventoryResult,
)
from field_exporter.inventory.export import export_csv, format_last_used
from field_exporter.inventory.filters import (
    SORT_COLUMNS,
    InventoryFilter,
    Scope,
    apply_filters,
    available_kinds,
    format_kind,
    sort_fields,
    summarize,
)
from field_exporter.utils.logging_setup import configure_logging

console = Console()
logger = structlog.get_logger()

# Last used colouring thresholds, in days
AGING_DAYS = 90
STALE_DAYS = 180


def _load_settings() -> Settings:
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        console.print("\n[dim]Run 'field-exporter configure' or set ASANA_ACCESS_TOKEN[/dim]")
        sys.exit(1)
    configure_logging(settings.log_level, settings.log_format)
    return settings


def _resolve_workspace(workspace: str | None, settings: Settings) -> str:
    gid = workspace or settings.asana_workspace_gid
    if not gid:
        console.print("[red]No workspace given.[/red] Use --workspace or set ASANA_WORKSPACE_GID.")
        console.print("[dim]Run 'field-exporter workspaces' to list available workspaces.[/dim]")
        sys.exit(1)
    return gid


def _format_refs(refs: list[ResourceRef], show_visibility: bool = False) -> str:
    if not refs:
        return "[dim]—[/dim]"
    lines = []
    for ref in refs:
        if show_visibility:
            icon = "🔒" if ref.visibility == "private" else "🌐"
            lines.append(f"{icon} {ref.name}")
        else:
            lines.append(ref.name)
    return "\n".join(lines)


def _last_used_cell(custom_field: CustomField, now: datetime | None = None) -> str:
    last_used = custom_field.last_used
    text = format_last_used(last_used)
    if last_used.status == LastUsedStatus.UNKNOWN:
        return f"[yellow]{text}[/yellow]"
    if last_used.status != LastUsedStatus.FOUND or last_used.modified_at is None:
        return f"[dim]{text}[/dim]"

    modified_at = last_used.modified_at
    if modified_at.tzinfo is None:
        modified_at = modified_at.replace(tzinfo=UTC)
    days = ((now or datetime.now(UTC)) - modified_at).days
    color = "green"
    if days > STALE_DAYS:
        color = "red"
    elif days > AGING_DAYS:
        color = "dark_orange"
    return f"[{color}]{text}[/{color}]\n[dim]{days} days ago[/dim]"


def render_table(fields: list[CustomField]) -> Table:
    table = Table(show_lines=True)
    table.add_column("Name", style="bold")
    table.add_column("GID", style="dim")
    table.add_column("Type")
    table.add_column("Created By")
    table.add_column("Scope")
    table.add_column("Last Used")
    table.add_column("Projects")
    table.add_column("Portfolios")
    table.add_column("Goals")
    table.add_column("Options")

    for f in fields:
        options = "\n".join(o.name if o.enabled else f"[dim]{o.name}[/dim]" for o in f.enum_options)
        table.add_row(
            f.name,
            f.gid,
            format_kind(f.kind),
            f.created_by or "—",
            "[green]Global[/green]" if f.is_global_to_workspace else "[cyan]Local[/cyan]",
            _last_used_cell(f),
            _format_refs(f.associations.projects, show_visibility=True),
            _format_refs(f.associations.portfolios),
            _format_refs(f.associations.goals),
            options or "[dim]—[/dim]",
        )
    return table


def _print_outcomes(result: InventoryResult) -> None:
    for outcome in result.outcomes:
        name = outcome.category.value
        if outcome.list_failed:
            console.print(f"[yellow]⚠ Could not load {name}; their fields are not shown[/yellow]")
        elif outcome.failed_resources:
            console.print(
                f"[yellow]⚠ {outcome.failed_resources} of {outcome.resource_count} {name} "
                f"could not be read[/yellow]"
            )


async def _run_inventory(
    settings: Settings, workspace_gid: str, include_last_used: bool
) -> InventoryResult:
    client = AsanaClient(settings.asana_access_token, page_size=settings.page_size)
    reconciler = FieldReconciler(client, settings)

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Loading custom fields...", total=100)

        def on_progress(percent: int, message: str) -> None:
            progress.update(task_id, completed=percent, description=message)

        return await reconciler.run(workspace_gid, include_last_used, on_progress)


@click.group()
@click.version_option(package_name="asana-field-exporter")
def main():
    """Asana Custom Field Exporter.

    Builds an inventory of every custom field in a workspace, where each one
    is used, and when it was last populated.
    """
    pass


@main.command()
def workspaces():
    """List the workspaces your token can access."""
    settings = _load_settings()
    client = AsanaClient(settings.asana_access_token, page_size=settings.page_size)

    try:
        found = asyncio.run(client.get_workspaces())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not found:
        console.print("[yellow]No workspaces found.[/yellow]")
        return

    table = Table(title="Workspaces")
    table.add_column("GID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Organization")
    for ws in found:
        marker = " [green]✓[/green]" if ws.gid == settings.asana_workspace_gid else ""
        table.add_row(ws.gid, ws.name + marker, "yes" if ws.is_organization else "no")
    console.print(table)


@main.command()
@click.option("--workspace", "-w", help="Workspace GID (defaults to ASANA_WORKSPACE_GID)")
@click.option(
    "--last-used/--no-last-used",
    default=None,
    help="Look up when each field was last used (roughly doubles API calls)",
)
@click.option("--search", "-s", default="", help="Filter by name, GID, description, options or resources")
@click.option("--type", "kind", help="Only fields of this type (text, number, enum, ...)")
@click.option(
    "--scope",
    type=click.Choice([s.value for s in Scope]),
    default=Scope.ALL.value,
    help="Only global or only local fields",
)
@click.option("--exclude-creator", multiple=True, help="Hide fields created by this person (repeatable)")
@click.option("--sort", "sort_col", type=click.Choice(SORT_COLUMNS), default="name", help="Sort column")
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option(
    "--export",
    "export_path",
    is_flag=False,
    flag_value="default",
    help="Write the filtered fields to CSV (file or directory; defaults to EXPORT_DIR)",
)
@click.option("--no-table", is_flag=True, help="Skip printing the table")
def fields(
    workspace: str | None,
    last_used: bool | None,
    search: str,
    kind: str | None,
    scope: str,
    exclude_creator: tuple[str, ...],
    sort_col: str,
    desc: bool,
    export_path: str | None,
    no_table: bool,
):
    """Build the custom field inventory for a workspace.

    Examples:
        field-exporter fields --workspace 1234567890
        field-exporter fields --last-used --scope local --export fields.csv
    """
    settings = _load_settings()
    workspace_gid = _resolve_workspace(workspace, settings)
    include_last_used = settings.include_last_used if last_used is None else last_used

    try:
        result = asyncio.run(_run_inventory(settings, workspace_gid, include_last_used))
    except (FieldLibraryError, AggregationInProgressError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    stats = summarize(result.fields)
    console.print(
        f"[bold]{stats.total}[/bold] fields  "
        f"[green]{stats.global_count} global[/green]  "
        f"[cyan]{stats.local_count} local[/cyan]  "
        f"{stats.type_count} types"
    )
    _print_outcomes(result)

    flt = InventoryFilter(
        search=search,
        kind=kind,
        scope=Scope(scope),
        exclude_creators=list(exclude_creator),
    )
    shown = sort_fields(apply_filters(result.fields, flt), sort_col, desc)

    kinds = available_kinds(result.fields)
    if kind and kind != "all" and kind not in kinds:
        console.print(f"[yellow]No fields of type '{kind}'. Available: {', '.join(kinds)}[/yellow]")

    if not no_table:
        if shown:
            console.print(render_table(shown))
        else:
            console.print("[yellow]No fields match the current filters.[/yellow]")

    if not include_last_used:
        console.print("[dim]Last used dates were not checked. Use --last-used to include them.[/dim]")

    if export_path:
        if export_path == "default":
            export_path = settings.export_dir
        if not shown:
            console.print("[yellow]Nothing to export.[/yellow]")
            return
        written = export_csv(shown, export_path)
        console.print(f"[green]✓[/green] Exported {len(shown)} fields to {written}")


@main.command(name="last-used")
@click.argument("field_gid")
@click.option("--workspace", "-w", help="Workspace GID (defaults to ASANA_WORKSPACE_GID)")
@click.option("--project", "project_gid", help="Only search tasks in this project")
def last_used_command(field_gid: str, workspace: str | None, project_gid: str | None):
    """Show when FIELD_GID was last set on a task."""
    settings = _load_settings()
    workspace_gid = _resolve_workspace(workspace, settings)
    client = AsanaClient(settings.asana_access_token, page_size=settings.page_size)
    enricher = FieldReconciler(client, settings).enricher()

    result = asyncio.run(enricher.check_field(workspace_gid, field_gid, project_gid=project_gid))

    scope = f" in project {project_gid}" if project_gid else ""
    if result.status == LastUsedStatus.FOUND:
        console.print(
            f"Field {field_gid} last used{scope}: [bold]{format_last_used(result)}[/bold] "
            f"(task {result.task_gid})"
        )
    elif result.status == LastUsedStatus.NONE_FOUND:
        console.print(f"[dim]No task{scope} has field {field_gid} set.[/dim]")
    else:
        console.print(f"[yellow]Could not check field {field_gid}: {result.error}[/yellow]")
        sys.exit(1)


@main.command()
@click.option("--show", is_flag=True, help="Display current configuration")
def configure(show: bool):
    """Set up the Asana token and default workspace in .env."""
    if show:
        console.print("[bold]Field Exporter Configuration[/bold]\n")

        try:
            settings = Settings()
        except ValidationError as e:
            console.print(f"[red]Error loading configuration: {e}[/red]")
            console.print("\n[dim]Make sure .env file exists with required variables[/dim]")
            sys.exit(1)

        token = settings.asana_access_token
        console.print("[bold]Asana:[/bold]")
        console.print(f"  Workspace GID: {settings.asana_workspace_gid or '(not set)'}")
        console.print(f"  Access Token: ...{token[-4:] if len(token) > 4 else ''}")
        console.print(f"  Page Size: {settings.page_size}")

        console.print("\n[bold]Batching:[/bold]")
        console.print(
            f"  Discovery: {settings.discovery_batch_width} at a time, "
            f"{settings.discovery_batch_pause}s pause"
        )
        console.print(
            f"  Last used: {settings.enrichment_batch_width} at a time, "
            f"{settings.enrichment_batch_pause}s pause"
        )
        console.print(f"  Check last used by default: {settings.include_last_used}")

        console.print("\n[bold]Output:[/bold]")
        console.print(f"  Export Dir: {settings.export_dir}")
        console.print(f"  Log Level: {settings.log_level} ({settings.log_format})")

        console.print("\n[green]✓ Configuration loaded successfully[/green]")
        return

    from dotenv import dotenv_values, set_key

    env_path = Path.cwd() / ".env"
    existing = dotenv_values(env_path) if env_path.exists() else {}

    console.print("[bold green]Field Exporter Configuration[/bold green]\n")
    console.print("Create a Personal Access Token under Asana → My Settings → Apps.\n")

    token = click.prompt(
        "Asana Personal Access Token",
        default=existing.get("ASANA_ACCESS_TOKEN") or None,
        hide_input=True,
        show_default=False,
    )
    env_path.touch(exist_ok=True)
    set_key(str(env_path), "ASANA_ACCESS_TOKEN", token)

    client = AsanaClient(token)
    try:
        found = asyncio.run(client.get_workspaces())
    except Exception as e:
        console.print(f"[yellow]Could not list workspaces: {e}[/yellow]")
        found = []

    if found:
        for i, ws in enumerate(found, 1):
            console.print(f"  {i}. {ws.name} [dim]({ws.gid})[/dim]")
        choice = click.prompt(
            "Default workspace", type=click.IntRange(1, len(found)), default=1
        )
        set_key(str(env_path), "ASANA_WORKSPACE_GID", found[choice - 1].gid)

    console.print(f"\n[green]✓[/green] Saved configuration to {env_path}")


if __name__ == "__main__":
    main()
