"""HTTP transport using httpx."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from timeslab.core.exceptions import (
    TransportAccessError,
    TransportError,
    TransportNotFoundError,
    TransportTimeoutError,
)


if TYPE_CHECKING:
    from timeslab.core.ports import ProgressCallback


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpTransport:
    """Transport adapter for http(s) resources.

    Implements TransportPort on top of an ``httpx.AsyncClient``. The
    client's timeout bounds every request; a timeout surfaces as
    TransportTimeoutError so callers treat it like any network failure.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the HTTP transport.

        Args:
            client: Optional preconfigured client. When omitted a client is
                created and owned (closed by aclose()) by this transport.
            timeout: Timeout in seconds for an owned client.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout, follow_redirects=True
        )

    async def get(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Download a resource, streaming it to report progress.

        Args:
            source: http:// or https:// URL.
            progress: Optional callback function(bytes_received, total_bytes).

        Raises:
            TransportNotFoundError: On HTTP 404/410.
            TransportAccessError: On HTTP 401/403.
            TransportTimeoutError: If the request timed out.
            TransportError: For other HTTP statuses and connection failures.
        """
        try:
            async with self._client.stream("GET", source) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length") or 0)
                chunks: list[bytes] = []
                received = 0
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
                    received += len(chunk)
                    if progress:
                        progress(received, total)
        except httpx.TimeoutException as e:
            raise TransportTimeoutError(
                f"Timed out fetching {source}", source=source, cause=e
            ) from e
        except httpx.HTTPStatusError as e:
            raise self._translate_status_error(e, source) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"HTTP error fetching {source}: {e}", source=source, cause=e
            ) from e
        logger.debug("Fetched %s (%d bytes)", source, received)
        return b"".join(chunks)

    def _translate_status_error(
        self, error: httpx.HTTPStatusError, source: str
    ) -> TransportError:
        """Translate an httpx status error to a domain exception."""
        code = error.response.status_code
        if code in (404, 410):
            return TransportNotFoundError(
                f"Resource not found: {source}", source=source, cause=error
            )
        if code in (401, 403):
            return TransportAccessError(
                f"Access denied: {source}", source=source, cause=error
            )
        return TransportError(
            f"HTTP {code} fetching {source}", source=source, cause=error
        )

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
