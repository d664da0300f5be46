"""Catalog discovery utilities.

Discovers and loads catalog definition files from .timeslab/catalogs/.
A catalog is a Python module defining ``datasets`` and, optionally,
``cache_dir``, ``generation`` and ``refresh_interval_hours``.
"""

from __future__ import annotations

import importlib.util
import sys
import traceback
from dataclasses import dataclass, field
from pathlib import Path

from timeslab.config import ProjectLayout
from timeslab.core.exceptions import CatalogLoadError
from timeslab.core.models import DatasetSource


@dataclass(frozen=True)
class CatalogConfig:
    """Settings read from one catalog file."""

    datasets: list[DatasetSource] = field(default_factory=list)
    cache_dir: str | None = None
    generation: str | None = None
    refresh_interval_hours: float | None = None


def discover_catalogs(root: Path) -> dict[str, Path]:
    """Find all catalog files under .timeslab/catalogs/.

    Args:
        root: Project root directory to search from.

    Returns:
        Dict mapping catalog names to their file paths.
        Names are derived from filenames (e.g., 'markets.py' -> 'markets').
    """
    catalog_dir = ProjectLayout(root).catalogs_dir
    if not catalog_dir.exists():
        return {}

    return {p.stem: p for p in catalog_dir.glob("*.py") if not p.name.startswith("_")}


def load_catalog(path: Path) -> CatalogConfig:
    """Load a catalog file and extract its datasets and settings.

    Args:
        path: Path to the catalog Python file.

    Returns:
        The catalog's datasets and optional overrides.

    Raises:
        CatalogLoadError: If the file fails to import or defines invalid values.
    """
    # Generate a unique module name to avoid conflicts
    module_name = f"_timeslab_catalog_{path.stem}_{id(path)}"

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise CatalogLoadError(f"Could not load catalog from {path}", catalog_path=path)

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module

    try:
        spec.loader.exec_module(module)
    except SyntaxError as e:
        raise CatalogLoadError(
            f"Syntax error in catalog {path.name}: {e.msg}",
            catalog_path=path,
            line=e.lineno,
            cause=e,
        ) from e
    except Exception as e:
        raise CatalogLoadError(
            f"Failed to load catalog {path.name}: {e}",
            catalog_path=path,
            line=_error_line(e, path),
            cause=e,
        ) from e
    finally:
        # Clean up to avoid polluting sys.modules
        sys.modules.pop(module_name, None)

    datasets = list(getattr(module, "datasets", []))
    for item in datasets:
        if not isinstance(item, DatasetSource):
            raise CatalogLoadError(
                f"Catalog {path.name} lists {item!r}, expected DatasetSource",
                catalog_path=path,
            )

    interval = getattr(module, "refresh_interval_hours", None)
    if interval is not None and (not isinstance(interval, int | float) or interval <= 0):
        raise CatalogLoadError(
            f"refresh_interval_hours in {path.name} must be a positive number",
            catalog_path=path,
        )

    return CatalogConfig(
        datasets=datasets,
        cache_dir=getattr(module, "cache_dir", None),
        generation=getattr(module, "generation", None),
        refresh_interval_hours=float(interval) if interval is not None else None,
    )


def _error_line(error: BaseException, path: Path) -> int | None:
    """Line in path where error was raised, if it was raised there."""
    for frame in reversed(traceback.extract_tb(error.__traceback__)):
        if Path(frame.filename) == path:
            return frame.lineno
    return None
