"""Transport adapters for manifests and partition payloads."""

from timeslab.adapters.transport.filesystem import FilesystemTransport
from timeslab.adapters.transport.http import HttpTransport
from timeslab.adapters.transport.router import RouterTransport, create_router
from timeslab.adapters.transport.s3 import S3Transport


__all__ = [
    "FilesystemTransport",
    "HttpTransport",
    "RouterTransport",
    "S3Transport",
    "create_router",
]
