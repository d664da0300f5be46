"""CLI commands for timeslab."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime  # noqa: TC003
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from timeslab.config import DEFAULT_RECENT_WINDOW_DAYS
from timeslab.core.exceptions import CatalogLoadError, TimeslabError


if TYPE_CHECKING:
    from timeslab import DataAccess
    from timeslab.core.models import QueryResult
    from timeslab.core.ports import ProgressReporter
    from timeslab.core.resolver import Resolution
    from timeslab.core.scheduler import ReconcileReport
    from timeslab.discovery import CatalogConfig


app = typer.Typer(
    name="timeslab",
    help="Range queries over time-partitioned datasets with offline caching.",
    no_args_is_help=True,
)

DATE_FORMATS = ["%Y-%m-%d"]

DEFAULT_CATALOG_TEMPLATE = '''\
"""Default dataset catalog.

Define your datasets here. Each dataset specifies:
- name: Unique identifier used in queries
- manifest: URL or path of the dataset's partition manifest
- description: Optional human-readable description
- date_field: Record field holding the record's date (default "date")
"""

from timeslab import DatasetSource

datasets = [
    # Example dataset - replace with your own
    # DatasetSource(
    #     name="casualties",
    #     manifest="https://data.example.org/casualties/manifest.json",
    #     description="Daily casualty reports",
    # ),
]

# Optional overrides
# cache_dir = ".timeslab/cache"
# generation = "v1"
# refresh_interval_hours = 6
'''


@app.callback()
def configure(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log cache fallbacks, refreshes and failures.",
    ),
) -> None:
    """Range queries over time-partitioned datasets with offline caching."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


def _echo_error(error: TimeslabError) -> None:
    typer.echo(f"Error: {error}", err=True)
    if error.recovery_hint:
        typer.echo(f"Hint: {error.recovery_hint}", err=True)


def load_settings(
    catalog_name: str | None = None,
) -> tuple[CatalogConfig, Path, dict[str, Path]]:
    """Load and combine the project's catalogs.

    Datasets from every selected catalog are concatenated; for the
    optional settings the last catalog (by name) that sets one wins.

    Args:
        catalog_name: Optional catalog name to filter by.

    Returns:
        Tuple of (combined settings, project root Path, catalogs dict).

    Raises:
        typer.Exit: If catalog not found or load errors occur.
    """
    from timeslab.config import find_project_root
    from timeslab.discovery import CatalogConfig, discover_catalogs, load_catalog

    root = find_project_root()
    catalogs = discover_catalogs(root)

    if not catalogs:
        typer.echo("No catalogs found. Run 'timeslab init' to get started.")
        raise typer.Exit(1)

    # Filter to specific catalog if requested
    if catalog_name:
        if catalog_name not in catalogs:
            typer.echo(f"Catalog '{catalog_name}' not found.")
            typer.echo(f"Available catalogs: {', '.join(sorted(catalogs.keys()))}")
            raise typer.Exit(1)
        catalogs = {catalog_name: catalogs[catalog_name]}

    combined = CatalogConfig()
    for _name, catalog_path in sorted(catalogs.items()):
        try:
            loaded = load_catalog(catalog_path)
        except CatalogLoadError as e:
            _echo_error(e)
            raise typer.Exit(1) from None
        combined = CatalogConfig(
            datasets=[*combined.datasets, *loaded.datasets],
            cache_dir=loaded.cache_dir or combined.cache_dir,
            generation=loaded.generation or combined.generation,
            refresh_interval_hours=(
                loaded.refresh_interval_hours or combined.refresh_interval_hours
            ),
        )

    return combined, root, catalogs


def load_access_context(
    catalog_name: str | None = None,
    progress: ProgressReporter | None = None,
) -> tuple[DataAccess, Path, CatalogConfig]:
    """Build a DataAccess for CLI commands.

    Args:
        catalog_name: Optional catalog name to filter by.
        progress: Optional progress reporter for partition downloads.

    Returns:
        Tuple of (DataAccess instance, project root Path, combined settings).

    Raises:
        typer.Exit: If catalog not found or load errors occur.
    """
    from timeslab import DataAccess
    from timeslab.config import DEFAULT_CACHE_DIR
    from timeslab.core.coordinator import DEFAULT_GENERATION

    settings, root, _catalogs = load_settings(catalog_name)
    access = DataAccess.from_directory(
        settings.datasets,
        directory=root,
        cache_dir=settings.cache_dir or DEFAULT_CACHE_DIR,
        generation=settings.generation or DEFAULT_GENERATION,
        progress=progress,
    )
    return access, root, settings


@app.command()
def init(
    directory: str | None = typer.Argument(
        None,
        help="Directory to initialize. Defaults to current directory.",
    ),
) -> None:
    """Initialize a new timeslab project structure."""
    from timeslab.config import ProjectLayout

    target = Path(directory) if directory else Path.cwd()
    layout = ProjectLayout(target.resolve())
    target = layout.root

    catalogs_dir = layout.catalogs_dir
    if not catalogs_dir.exists():
        catalogs_dir.mkdir(parents=True)
        typer.echo(f"Created {catalogs_dir.relative_to(target)}/")

    # Create default.py if it doesn't exist
    default_py = catalogs_dir / "default.py"
    if not default_py.exists():
        default_py.write_text(DEFAULT_CATALOG_TEMPLATE)
        typer.echo(f"Created {default_py.relative_to(target)}")

    cache_dir = layout.cache_dir()
    if not cache_dir.exists():
        cache_dir.mkdir(parents=True)
        typer.echo(f"Created {cache_dir.relative_to(target)}/")


@app.command()
def resolve(
    name: str = typer.Argument(help="Name of the dataset."),
    start: datetime = typer.Argument(help="First day (inclusive).", formats=DATE_FORMATS),
    end: datetime = typer.Argument(help="Last day (exclusive).", formats=DATE_FORMATS),
    catalog: str | None = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Catalog to load datasets from.",
    ),
) -> None:
    """Show which partitions cover a date range."""
    access, _root, _settings = load_access_context(catalog_name=catalog)

    async def _resolve() -> Resolution:
        async with access:
            return await access.resolve(name, start.date(), end.date())

    try:
        resolution = asyncio.run(_resolve())
    except TimeslabError as e:
        _echo_error(e)
        raise typer.Exit(1) from None

    if not resolution.partitions:
        typer.echo(f"No partitions of '{name}' overlap {start.date()} to {end.date()}.")
        return

    table = Table()
    table.add_column("Partition")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Records", justify="right")
    table.add_column("Location")
    for partition in resolution.partitions:
        table.add_row(
            partition.id,
            partition.start.isoformat(),
            partition.end.isoformat(),
            str(partition.record_count),
            partition.location,
        )

    console = Console(force_terminal=True)
    console.print(table)

    if resolution.partial_coverage and resolution.coverage:
        covered_start, covered_end = resolution.coverage
        typer.echo(
            f"Partial coverage: data exists for {covered_start} to {covered_end} only."
        )


@app.command()
def query(
    name: str = typer.Argument(help="Name of the dataset."),
    start: datetime = typer.Argument(help="First day (inclusive).", formats=DATE_FORMATS),
    end: datetime = typer.Argument(help="Last day (exclusive).", formats=DATE_FORMATS),
    output: str = typer.Option(
        "json",
        "--format",
        "-f",
        help="Output format: 'json' (full result) or 'table' (records).",
    ),
    limit: int | None = typer.Option(
        None,
        "--limit",
        "-n",
        help="Show at most this many records in table output.",
    ),
    catalog: str | None = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Catalog to load datasets from.",
    ),
) -> None:
    """Print the records of a dataset inside a date range."""
    from timeslab.cli.formatting import _format_freshness, _records_table
    from timeslab.progress import RichProgressReporter

    if output not in ("json", "table"):
        typer.echo(f"Unknown format '{output}'. Use 'json' or 'table'.", err=True)
        raise typer.Exit(1)

    with RichProgressReporter(console=Console(stderr=True)) as reporter:
        access, _root, _settings = load_access_context(catalog, progress=reporter)

        async def _query() -> QueryResult:
            async with access:
                return await access.query_range(name, start.date(), end.date())

        result = asyncio.run(_query())

    if output == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        console = Console(force_terminal=True)
        console.print(_records_table(result.records, limit=limit))
        summary = Text(f"{len(result.records)} record(s)")
        if result.freshness is not None:
            summary.append(", ")
            summary.append_text(_format_freshness(result.freshness.value))
        console.print(summary)

    if result.offline.offline:
        since = result.offline.offline_since
        typer.echo(
            "Offline: served from cache"
            + (f" (offline since {since.isoformat()})" if since else ""),
            err=True,
        )
    if result.partial_coverage:
        typer.echo("Warning: partial coverage for the requested range.", err=True)
    for error in result.errors:
        _echo_error(error)

    if result.errors and not result.records:
        raise typer.Exit(1)


@app.command(name="cache-info")
def cache_info(
    keys: bool = typer.Option(
        False,
        "--keys",
        "-k",
        help="List the cached keys in each namespace.",
    ),
) -> None:
    """Show cache namespaces and their entries."""
    from timeslab.adapters.cache import FileCacheStore
    from timeslab.core.formatting import format_size

    access, _root, _settings = load_access_context()

    async def _info() -> dict[str, list[str]]:
        async with access:
            return await access.coordinator.cache_info()

    info = asyncio.run(_info())

    if not info:
        typer.echo("Cache is empty.")
        return

    current = access.coordinator.current_namespaces()
    table = Table()
    table.add_column("Namespace")
    table.add_column("Entries", justify="right")
    table.add_column("Generation")
    for namespace, namespace_keys in info.items():
        table.add_row(
            namespace,
            str(len(namespace_keys)),
            "current" if namespace in current else "old",
        )

    console = Console(force_terminal=True)
    console.print(table)

    if keys:
        for namespace, namespace_keys in info.items():
            typer.echo(f"{namespace}:")
            for key in namespace_keys:
                typer.echo(f"  {key}")

    store = access.coordinator.store
    if isinstance(store, FileCacheStore):
        stats = store.statistics()
        typer.echo(
            f"Total size: {format_size(stats['total_size'])} "
            f"in {stats['file_count']} file(s)"
        )


@app.command()
def purge(
    all_namespaces: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Delete the current generation too.",
    ),
) -> None:
    """Delete cache namespaces left over from old generations."""
    access, _root, _settings = load_access_context()

    async def _purge() -> list[str]:
        async with access:
            coordinator = access.coordinator
            if not all_namespaces:
                return await coordinator.purge_stale_generations()
            dropped = []
            for namespace in await coordinator.store.namespaces():
                await coordinator.store.drop_namespace(namespace)
                dropped.append(namespace)
            return dropped

    dropped = asyncio.run(_purge())
    for namespace in dropped:
        typer.echo(f"Deleted {namespace}")
    typer.echo(f"Purged {len(dropped)} namespace(s).")


@app.command()
def refresh(
    names: list[str] | None = typer.Argument(
        None, help="Datasets to reconcile. Defaults to all datasets."
    ),
    window_days: int = typer.Option(
        DEFAULT_RECENT_WINDOW_DAYS,
        "--window-days",
        "-w",
        help="Re-fetch partitions covering this many trailing days.",
    ),
    watch: bool = typer.Option(
        False,
        "--watch",
        help="Keep reconciling on the catalog's refresh interval until interrupted.",
    ),
    catalog: str | None = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Catalog to load datasets from.",
    ),
) -> None:
    """Re-fetch manifests and recent partitions."""
    from datetime import timedelta

    from timeslab.config import DEFAULT_REFRESH_INTERVAL_HOURS
    from timeslab.core.scheduler import ReconciliationScheduler

    access, _root, settings = load_access_context(catalog_name=catalog)
    interval = timedelta(
        hours=settings.refresh_interval_hours or DEFAULT_REFRESH_INTERVAL_HOURS
    )
    scheduler = ReconciliationScheduler(
        access, interval=interval, recent_window=timedelta(days=window_days)
    )

    async def _refresh() -> ReconcileReport:
        async with access:
            report = await scheduler.reconcile_once(names or None, reason="cli")
            if watch:
                await scheduler.start()
                typer.echo(f"Watching; next refresh in {interval}. Press Ctrl+C to stop.")
                try:
                    await asyncio.Event().wait()
                finally:
                    await scheduler.stop()
            return report

    try:
        report = asyncio.run(_refresh())
    except KeyboardInterrupt:
        typer.echo("Stopped.")
        return

    for name in report.checked:
        state = "updated" if name in report.updated else "unchanged"
        typer.echo(f"{name}: {state}")
    for name, error in report.errors.items():
        typer.echo(f"{name}: failed", err=True)
        _echo_error(error)

    if report.errors:
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()
