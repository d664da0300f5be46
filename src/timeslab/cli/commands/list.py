"""List command for CLI."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from timeslab.cli.formatting import _load_catalog_datasets
from timeslab.cli.main import _echo_error, app, load_settings
from timeslab.core.exceptions import CatalogLoadError


@app.command(name="list")
def list_datasets(
    catalog: str | None = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Show datasets from a specific catalog only.",
    ),
) -> None:
    """List all datasets in the catalogs."""
    # Validates that catalogs exist and the filter names one
    load_settings(catalog_name=catalog)

    try:
        all_datasets = _load_catalog_datasets(catalog_name=catalog)
    except CatalogLoadError as e:
        _echo_error(e)
        raise typer.Exit(1) from None

    if not all_datasets:
        typer.echo("No datasets found. Edit .timeslab/catalogs/default.py to add some.")
        return

    table = Table()
    table.add_column("Name")
    table.add_column("Manifest")
    table.add_column("Description")
    for display_name, manifest, description in all_datasets:
        table.add_row(display_name, manifest, description)

    # Force terminal output to ensure tables render correctly in all environments
    console = Console(force_terminal=True)
    console.print(table)
