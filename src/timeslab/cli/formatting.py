"""Shared formatting helpers for CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.table import Table
from rich.text import Text

from timeslab.core.formatting import status_to_color


if TYPE_CHECKING:
    from collections.abc import Sequence

    from timeslab.core.models import Record


def _format_freshness(status: str) -> Text:
    """Format a freshness or availability status with color coding.

    Args:
        status: "fresh", "recent", "stale", "outdated", "offline" or "missing".

    Returns:
        Rich Text object with appropriate color:
        - "fresh" -> green
        - "recent" -> blue
        - "stale" -> yellow
        - "outdated" / "missing" -> red
        - "offline" -> magenta
    """
    color = status_to_color(status)
    return Text(status, style=color) if color else Text(status)


def _load_catalog_datasets(
    catalog_name: str | None = None,
) -> list[tuple[str, str, str]]:
    """Load datasets from catalogs and return formatted list.

    Args:
        catalog_name: Optional catalog name to filter by.

    Returns:
        List of tuples (display_name, manifest, description) for each dataset.

    Raises:
        CatalogLoadError: If catalog file cannot be loaded.
    """
    from timeslab.config import find_project_root
    from timeslab.discovery import discover_catalogs, load_catalog

    root = find_project_root()
    catalogs = discover_catalogs(root)

    if not catalogs:
        return []

    # Filter to specific catalog if requested
    if catalog_name:
        if catalog_name not in catalogs:
            return []
        catalogs = {catalog_name: catalogs[catalog_name]}

    result: list[tuple[str, str, str]] = []
    for catalog_name_item, catalog_path in sorted(catalogs.items()):
        # CatalogLoadError will propagate up if load_catalog fails
        for ds in load_catalog(catalog_path).datasets:
            # Multiple catalogs - show prefix
            display_name = (
                ds.name if len(catalogs) == 1 else f"{catalog_name_item}/{ds.name}"
            )
            result.append((display_name, ds.manifest, ds.description))

    return result


def _records_table(records: Sequence[Record], limit: int | None = None) -> Table:
    """Build a table with one column per record field.

    Columns follow first appearance across the shown records. Nested
    values are rendered as compact JSON.
    """
    shown = records if limit is None else records[:limit]
    columns: dict[str, None] = {}
    for record in shown:
        columns.update(dict.fromkeys(record))

    table = Table()
    for column in columns:
        table.add_column(column)
    for record in shown:
        table.add_row(*(_cell(record.get(column)) for column in columns))

    if limit is not None and len(records) > limit:
        table.caption = f"{len(records) - limit} more record(s) not shown"
    return table


def _cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, dict | list):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)
