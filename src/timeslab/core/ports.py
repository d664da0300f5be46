"""Port interfaces for hexagonal architecture.

Ports define contracts that adapters must implement. The core domain
depends only on these protocols, never on concrete implementations.
Every port method that crosses an I/O boundary is a coroutine.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from datetime import datetime

    from timeslab.core.models import CacheEntry

ProgressCallback = Callable[[int, int], None]
Clock = Callable[[], "datetime"]


@runtime_checkable
class TransportPort(Protocol):
    """Network boundary for manifests and partition payloads."""

    async def get(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Retrieve the full payload at source.

        Args:
            source: URL or path of the resource.
            progress: Optional callback function(bytes_received, total_bytes).
                total_bytes is 0 when the size is unknown.

        Returns:
            The payload bytes.

        Raises:
            TransportNotFoundError: If the resource does not exist.
            TransportAccessError: If access is denied.
            TransportTimeoutError: If the transport timed out.
            TransportError: For any other transport failure.
        """
        ...

    async def aclose(self) -> None:
        """Release connections held by the transport."""
        ...


@runtime_checkable
class CacheStorePort(Protocol):
    """Namespaced store of cache entries.

    A namespace groups entries of one request category and one cache
    generation. Entries are replaced whole; a reader never observes a
    partially written entry.
    """

    async def get(self, namespace: str, key: str) -> CacheEntry | None:
        """Return the most recently stored entry for key, or None."""
        ...

    async def put(self, namespace: str, entry: CacheEntry) -> None:
        """Store entry, superseding any previous entry with the same key."""
        ...

    async def delete(self, namespace: str, key: str) -> None:
        """Remove one entry if present."""
        ...

    async def keys(self, namespace: str) -> list[str]:
        """List keys stored in a namespace."""
        ...

    async def namespaces(self) -> list[str]:
        """List every namespace that currently holds entries."""
        ...

    async def drop_namespace(self, namespace: str) -> int:
        """Delete a whole namespace.

        Returns:
            Number of entries removed.
        """
        ...


@runtime_checkable
class ProgressReporter(Protocol):
    """Reports download progress to the user.

    This protocol defines the contract for progress display adapters.
    The core domain uses this to report progress without depending
    on any specific UI library.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start tracking a download task.

        Args:
            name: Human-readable name for the task (partition label).
            total: Total bytes to download, 0 when unknown.

        Returns:
            A ProgressCallback to call with (bytes_downloaded, total_bytes).
        """
        ...

    def finish_task(self, name: str) -> None:
        """Mark a task as complete.

        Args:
            name: The task name passed to start_task().
        """
        ...


class NullProgressReporter:
    """A ProgressReporter that produces no output.

    Used as the default when no progress reporting is desired.
    """

    def start_task(self, name: str, total: int) -> ProgressCallback:  # noqa: ARG002
        """Return a no-op callback."""
        return lambda _downloaded, _total: None

    def finish_task(self, name: str) -> None:
        """Do nothing."""
        _ = name  # Unused but required by protocol
