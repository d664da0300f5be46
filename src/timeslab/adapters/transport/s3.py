"""S3 transport using boto3."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from timeslab.core.exceptions import (
    TransportAccessError,
    TransportError,
    TransportNotFoundError,
    TransportTimeoutError,
)


if TYPE_CHECKING:
    from timeslab.core.ports import ProgressCallback


# Chunk size for streaming downloads (64KB)
_CHUNK_SIZE = 64 * 1024


class S3Transport:
    """Transport adapter for objects in S3.

    Implements TransportPort for ``s3://bucket/key`` URIs. boto3 is
    blocking, so each download runs in a worker thread.
    """

    def __init__(self, client: Any | None = None) -> None:
        """Initialize S3 transport.

        Args:
            client: Optional boto3 S3 client. If not provided, a default client
                is created on first use.
        """
        self._owns_client = client is None
        self._client = client

    @property
    def client(self) -> Any:
        """The boto3 S3 client, created on first access if none was given."""
        if self._client is None:
            self._client = boto3.client("s3")
        return self._client

    async def get(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        """Download an object with progress reporting.

        Args:
            source: S3 URI (s3://bucket/key).
            progress: Optional callback function(bytes_downloaded, total_bytes).

        Raises:
            TransportNotFoundError: If the object does not exist.
            TransportAccessError: If access is denied.
            TransportTimeoutError: If the connection timed out.
            TransportError: For other S3 errors.
        """
        return await asyncio.to_thread(self._download, source, progress)

    def _download(self, source: str, progress: ProgressCallback | None) -> bytes:
        bucket, key = self._parse_s3_uri(source)

        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            total_size = response["ContentLength"]
            body = response["Body"]

            chunks: list[bytes] = []
            bytes_downloaded = 0
            for chunk in iter(lambda: body.read(_CHUNK_SIZE), b""):
                chunks.append(chunk)
                bytes_downloaded += len(chunk)
                if progress:
                    progress(bytes_downloaded, total_size)
        except ClientError as e:
            raise self._translate_client_error(e, source) from e
        except BotoCoreError as e:
            raise self._translate_botocore_error(e, source) from e

        return b"".join(chunks)

    def _parse_s3_uri(self, uri: str) -> tuple[str, str]:
        """Parse an S3 URI into bucket and key.

        Args:
            uri: S3 URI in format s3://bucket/key.

        Returns:
            Tuple of (bucket, key).

        Raises:
            ValueError: If URI is not a valid S3 URI.
        """
        if not uri.startswith("s3://"):
            raise ValueError(f"Invalid S3 URI: {uri}")

        # Remove s3:// prefix
        path = uri[5:]

        # Split on first /
        parts = path.split("/", 1)
        if len(parts) != 2 or not parts[1]:
            raise ValueError(f"Invalid S3 URI (missing key): {uri}")

        bucket, key = parts
        return bucket, key

    def _translate_client_error(self, error: ClientError, source: str) -> TransportError:
        """Translate botocore ClientError to domain exception.

        Args:
            error: The botocore ClientError.
            source: The source URI for context.

        Returns:
            Appropriate TransportError subclass.
        """
        code = error.response.get("Error", {}).get("Code", "")

        # Not found errors
        if code in ("404", "NoSuchKey", "NoSuchBucket"):
            return TransportNotFoundError(
                f"Object not found: {source}",
                source=source,
                cause=error,
            )

        # Access denied errors
        if code in ("403", "AccessDenied"):
            return TransportAccessError(
                f"Access denied: {source}",
                source=source,
                cause=error,
            )

        # Generic S3 error
        return TransportError(
            f"S3 error ({code}): {error}",
            source=source,
            cause=error,
        )

    def _translate_botocore_error(
        self, error: BotoCoreError, source: str
    ) -> TransportError:
        """Translate connection-level botocore errors to domain exceptions."""
        if "timeout" in type(error).__name__.lower():
            return TransportTimeoutError(
                f"Timed out fetching {source}", source=source, cause=error
            )
        return TransportError(
            f"S3 connection error: {error}", source=source, cause=error
        )

    async def aclose(self) -> None:
        """Close the connection pool of a client this transport created."""
        if self._owns_client and self._client is not None:
            await asyncio.to_thread(self._client.close)
