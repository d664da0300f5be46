"""Project layout and defaults for timeslab.

A project is the nearest directory holding a ``.timeslab`` folder, a
``pyproject.toml`` or a ``.git`` directory. Catalog modules live in
``.timeslab/catalogs`` and the disk cache in ``.timeslab/cache`` unless a
catalog names another cache directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


PROJECT_DIR = ".timeslab"
ROOT_MARKERS = (PROJECT_DIR, "pyproject.toml", ".git")

DEFAULT_CACHE_DIR = f"{PROJECT_DIR}/cache"
DEFAULT_REFRESH_INTERVAL_HOURS = 6.0
DEFAULT_RECENT_WINDOW_DAYS = 30


def find_project_root(start: Path | None = None) -> Path:
    """Return the nearest directory at or above start holding a root marker.

    A ``.timeslab`` folder inside a larger repository therefore wins over
    the repository's own ``pyproject.toml`` or ``.git``.

    Args:
        start: Directory to search from. Defaults to the current directory.

    Returns:
        Absolute path of the project root, or of start when no marker is found.

    Example:
        >>> from timeslab.config import find_project_root
        >>> root = find_project_root()
        >>> cache_dir = root / ".timeslab" / "cache"
    """
    origin = (start if start is not None else Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        if any((directory / marker).exists() for marker in ROOT_MARKERS):
            return directory
    return origin


@dataclass(frozen=True)
class ProjectLayout:
    """Where a project keeps its catalogs and cache.

    Attributes:
        root: Absolute project root directory.
    """

    root: Path

    @classmethod
    def discover(cls, start: Path | None = None) -> ProjectLayout:
        """Build the layout of the project containing start."""
        return cls(find_project_root(start))

    @property
    def project_dir(self) -> Path:
        """The ``.timeslab`` directory."""
        return self.root / PROJECT_DIR

    @property
    def catalogs_dir(self) -> Path:
        """Directory scanned for catalog modules."""
        return self.project_dir / "catalogs"

    def cache_dir(self, override: Path | str | None = None) -> Path:
        """Resolve the cache directory.

        Relative overrides (as written in catalog files) are taken from the
        project root; absolute ones are used as given.
        """
        path = Path(override) if override else Path(DEFAULT_CACHE_DIR)
        return path if path.is_absolute() else self.root / path
