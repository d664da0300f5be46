"""Domain exceptions for timeslab.

All library errors inherit from TimeslabError, allowing users to catch
any library exception with a single except clause. Each exception provides
a recovery_hint property with guidance on resolving the error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from datetime import date
    from pathlib import Path


class TimeslabError(Exception):
    """Base class for all timeslab exceptions.

    Catch this to handle any error from the library.
    """

    @property
    def recovery_hint(self) -> str | None:
        """Optional guidance on how to resolve this error."""
        return None


class DatasetNotFoundError(TimeslabError):
    """Raised when a requested dataset was never registered.

    Attributes:
        name: The dataset name that was not found.
        available: List of available dataset names.
    """

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available if available is not None else []
        super().__init__(f"Dataset '{name}' not found")

    @property
    def recovery_hint(self) -> str:
        """Suggest available datasets or how to check them."""
        if self.available:
            return f"Available datasets: {', '.join(self.available)}"
        return "Check access.datasets for available names"


class GapError(TimeslabError):
    """Raised when a manifest is missing coverage inside a requested range.

    Attributes:
        dataset: Dataset whose manifest has the gap.
        start: First missing day (inclusive).
        end: Day after the last missing day (exclusive).
    """

    def __init__(self, dataset: str, start: date, end: date) -> None:
        self.dataset = dataset
        self.start = start
        self.end = end
        super().__init__(
            f"Manifest for '{dataset}' has no partition covering "
            f"[{start.isoformat()}, {end.isoformat()})"
        )

    @property
    def recovery_hint(self) -> str:
        """Point at the upstream manifest."""
        return f"Regenerate the manifest for '{self.dataset}' so partitions are contiguous"


class TransportError(TimeslabError):
    """Base class for network/storage transport failures.

    Attributes:
        source: The URL or path that caused the error.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        source: str,
        cause: Exception | None = None,
    ) -> None:
        self.source = source
        self.cause = cause
        super().__init__(message)


class TransportNotFoundError(TransportError):
    """Raised when the requested resource doesn't exist."""

    @property
    def recovery_hint(self) -> str:
        """Suggest verifying the location."""
        return f"Verify the resource exists: {self.source}"


class TransportAccessError(TransportError):
    """Raised when access to the resource is denied."""

    @property
    def recovery_hint(self) -> str:
        """Suggest checking permissions."""
        return "Check credentials and bucket/path permissions"


class TransportTimeoutError(TransportError):
    """Raised when the transport gave up waiting for a response."""

    @property
    def recovery_hint(self) -> str:
        """Suggest checking connectivity."""
        return "Check network connectivity or raise the transport timeout"


class OfflineUnavailableError(TimeslabError):
    """No cached copy exists for a resource that could not be fetched.

    This is carried as a structured value on coordinated responses and
    query results rather than raised to the presentation layer.

    Attributes:
        url: The resource that was requested.
        cause: The transport failure that triggered the fallback.
    """

    def __init__(self, url: str, cause: Exception | None = None) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"'{url}' is not available offline")

    @property
    def recovery_hint(self) -> str:
        """Suggest reconnecting."""
        return "Reconnect and retry; this resource has never been cached"


class ManifestFetchError(TimeslabError):
    """Raised when a dataset manifest cannot be retrieved or parsed.

    Attributes:
        dataset: Dataset whose manifest failed.
        source: Manifest URL or path.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        dataset: str,
        source: str,
        cause: Exception | None = None,
    ) -> None:
        self.dataset = dataset
        self.source = source
        self.cause = cause
        super().__init__(message)


class ManifestFormatError(ManifestFetchError):
    """Raised when a manifest document is malformed."""

    @property
    def recovery_hint(self) -> str:
        """Point at the malformed document."""
        return f"Check the manifest document at {self.source}"


class PartitionFetchError(TimeslabError):
    """Raised when one partition cannot be retrieved or parsed.

    Partition failures never abort a whole query; they are collected on
    the query result and mark it as partially covered.

    Attributes:
        dataset: Dataset owning the partition.
        partition_id: The failed partition.
        source: Partition URL or path.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        dataset: str,
        partition_id: str,
        source: str,
        cause: Exception | None = None,
    ) -> None:
        self.dataset = dataset
        self.partition_id = partition_id
        self.source = source
        self.cause = cause
        super().__init__(message)


class PartitionFormatError(PartitionFetchError):
    """Raised when a partition payload is malformed."""

    @property
    def recovery_hint(self) -> str:
        """Point at the malformed payload."""
        return f"Check the partition payload at {self.source}"


class CacheError(TimeslabError):
    """Base class for cache-related errors."""

    pass


class CacheCorruptError(CacheError):
    """Raised when a cache entry's metadata is corrupt or unreadable.

    Attributes:
        key: The cache key for the corrupt entry.
        path: The path to the corrupt file.
    """

    def __init__(
        self,
        message: str,
        key: str,
        path: Path,
        cause: Exception | None = None,
    ) -> None:
        self.key = key
        self.path = path
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest deleting the corrupt cache entry."""
        return f"Delete cache files for '{self.key}' or run 'timeslab purge --all'"


class ConfigurationError(TimeslabError):
    """Raised for configuration problems (missing or invalid settings)."""

    pass


class CatalogLoadError(TimeslabError):
    """Raised when a catalog file cannot be loaded.

    Attributes:
        catalog_path: Path to the catalog file that failed to load.
        line: Line number where the error occurred (if available).
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        catalog_path: Path,
        line: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.catalog_path = catalog_path
        self.line = line
        self.cause = cause
        super().__init__(message)

    @property
    def recovery_hint(self) -> str:
        """Suggest checking the catalog file at the specific line."""
        if self.line:
            return f"Check {self.catalog_path.name} at line {self.line}"
        return f"Check {self.catalog_path.name} for syntax or import errors"
