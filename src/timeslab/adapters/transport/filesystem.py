"""Filesystem transport for manifests and partitions stored on local disk."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from timeslab.core.exceptions import (
    TransportAccessError,
    TransportError,
    TransportNotFoundError,
)


if TYPE_CHECKING:
    from timeslab.core.ports import ProgressCallback


# Chunk size for reading files (64KB)
_CHUNK_SIZE = 64 * 1024


class FilesystemTransport:
    """Transport adapter for local filesystem reads.

    Implements TransportPort for local paths. Useful for local development
    and for datasets published to a shared directory. Reads run in a worker
    thread so the event loop is never blocked.
    """

    async def get(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Read a whole file with progress reporting.

        Args:
            source: Path to file (absolute or relative).
            progress: Optional callback function(bytes_read, total_bytes).

        Raises:
            TransportNotFoundError: If the file does not exist.
            TransportAccessError: If the file cannot be read for permission reasons.
            TransportError: For any other OS error.
        """
        return await asyncio.to_thread(self._read, source, progress)

    def _read(self, source: str, progress: ProgressCallback | None) -> bytes:
        path = Path(source)
        try:
            total_size = path.stat().st_size
            chunks: list[bytes] = []
            bytes_read = 0
            with path.open("rb") as f:
                for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                    chunks.append(chunk)
                    bytes_read += len(chunk)
                    if progress:
                        progress(bytes_read, total_size)
        except FileNotFoundError as e:
            raise TransportNotFoundError(
                f"File not found: {source}",
                source=source,
                cause=e,
            ) from e
        except PermissionError as e:
            raise TransportAccessError(
                f"Permission denied: {source}",
                source=source,
                cause=e,
            ) from e
        except OSError as e:
            raise TransportError(
                f"Could not read {source}: {e}",
                source=source,
                cause=e,
            ) from e
        return b"".join(chunks)

    async def aclose(self) -> None:
        """Nothing to release for local files."""
