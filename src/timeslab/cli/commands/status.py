"""Status command for CLI."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.table import Table

from timeslab.cli.formatting import _format_freshness
from timeslab.cli.main import _echo_error, app, load_access_context
from timeslab.core.exceptions import TimeslabError
from timeslab.core.formatting import format_age
from timeslab.core.freshness import age_of, classify
from timeslab.core.models import Manifest, Origin, utcnow


@dataclass
class _DatasetStatus:
    name: str
    manifest: Manifest | None = None
    origin: Origin | None = None
    error: TimeslabError | None = None


@app.command()
def status(
    catalog: str | None = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Show status for a specific catalog only.",
    ),
) -> None:
    """Show manifest coverage and freshness per dataset."""
    access, _root, settings = load_access_context(catalog_name=catalog)

    if not settings.datasets:
        typer.echo("No datasets found. Edit .timeslab/catalogs/default.py to add some.")
        return

    async def _collect() -> list[_DatasetStatus]:
        rows: list[_DatasetStatus] = []
        async with access:
            for source in access.datasets:
                try:
                    manifest, origin = await access.fetch_manifest(source.name)
                except TimeslabError as e:
                    rows.append(_DatasetStatus(source.name, error=e))
                else:
                    rows.append(_DatasetStatus(source.name, manifest, origin))
        return rows

    rows = asyncio.run(_collect())
    now = utcnow()

    table = Table()
    table.add_column("Name")
    table.add_column("Partitions", justify="right")
    table.add_column("Coverage")
    table.add_column("Generated")
    table.add_column("Status")

    for row in rows:
        if row.manifest is None:
            table.add_row(row.name, "-", "-", "-", _format_freshness("missing"))
            continue
        manifest = row.manifest
        coverage = (
            f"{manifest.start} to {manifest.end}" if manifest.partitions else "empty"
        )
        state = (
            "offline"
            if row.origin is Origin.CACHE
            else classify(manifest.generated_at, now).value
        )
        table.add_row(
            row.name,
            str(len(manifest.partitions)),
            coverage,
            format_age(age_of(manifest.generated_at, now)),
            _format_freshness(state),
        )

    console = Console(force_terminal=True)
    console.print(table)

    for row in rows:
        if row.error is not None:
            _echo_error(row.error)
