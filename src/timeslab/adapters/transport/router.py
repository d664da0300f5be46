"""RouterTransport composite adapter for URI scheme-based routing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from timeslab.core.exceptions import TransportError


if TYPE_CHECKING:
    import httpx

    from timeslab.core.ports import ProgressCallback, TransportPort


def parse_uri_scheme(uri: str) -> str | None:
    """Extract the URI scheme from a source string.

    Args:
        uri: Source URI or file path.

    Returns:
        The scheme (e.g., 'https', 's3', 'file') or None for local paths.
    """
    if "://" in uri:
        scheme = uri.split("://", 1)[0]
        # Avoid confusing Windows drive letters (C:) with schemes
        if len(scheme) > 1:
            return scheme.lower()
    return None


def strip_file_scheme(uri: str) -> str:
    """Strip file:// prefix from URI, returning plain path.

    Args:
        uri: URI that may have file:// prefix.

    Returns:
        The path without file:// prefix.
    """
    if uri.startswith("file://"):
        return uri[7:]  # len("file://") == 7
    return uri


class RouterTransport:
    """Transport adapter that routes to backends based on URI scheme.

    Implements TransportPort by delegating to scheme-specific adapters.
    """

    def __init__(self, backends: dict[str | None, TransportPort]) -> None:
        """Initialize with scheme-to-adapter mapping.

        Args:
            backends: Mapping of scheme (e.g., 'https', 's3', 'file') to
                TransportPort adapter. Use None as key for default (local
                paths without scheme).
        """
        self._backends = backends

    def _get_backend_and_path(self, uri: str) -> tuple[TransportPort, str]:
        """Get the appropriate backend and normalized path for a URI.

        Raises:
            TransportError: If no backend handles the URI's scheme.
        """
        scheme = parse_uri_scheme(uri)
        if scheme in self._backends:
            # Strip file:// prefix for filesystem backend
            path = strip_file_scheme(uri) if scheme == "file" else uri
            return self._backends[scheme], path
        if scheme is None and None in self._backends:
            return self._backends[None], uri
        scheme_display = f"'{scheme}'" if scheme else "local path"
        raise TransportError(
            f"No transport registered for scheme {scheme_display}", source=uri
        )

    async def get(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Fetch a resource by delegating to the appropriate backend."""
        backend, path = self._get_backend_and_path(source)
        return await backend.get(path, progress)

    async def aclose(self) -> None:
        """Close every distinct backend once."""
        seen: set[int] = set()
        for backend in self._backends.values():
            if id(backend) in seen:
                continue
            seen.add(id(backend))
            await backend.aclose()


def create_router(
    http_client: httpx.AsyncClient | None = None,
    s3_client: Any | None = None,
) -> RouterTransport:
    """Create a RouterTransport with default backends.

    Args:
        http_client: Optional httpx client. If not provided, creates default.
        s3_client: Optional boto3 S3 client. If not provided, creates default.

    Returns:
        RouterTransport configured with HttpTransport, S3Transport and
        FilesystemTransport.
    """
    from timeslab.adapters.transport import (
        FilesystemTransport,
        HttpTransport,
        S3Transport,
    )

    fs = FilesystemTransport()
    http = HttpTransport(client=http_client)
    return RouterTransport(
        backends={
            "http": http,
            "https": http,
            "s3": S3Transport(client=s3_client),
            "file": fs,
            None: fs,
        }
    )
