"""File-based cache store adapter implementing CacheStorePort."""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import os
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from timeslab.core.exceptions import CacheCorruptError
from timeslab.core.models import CacheEntry, Origin


@dataclass(frozen=True, slots=True)
class _Sidecar:
    key: str
    stored_at: datetime
    origin: Origin
    body_path: Path


class FileCacheStore:
    """Local disk cache with JSON metadata sidecars.

    Each namespace is a directory under cache_dir. An entry is a
    .meta.json sidecar named after the SHA-256 of its key, holding the
    key, the retrieval time and the name of its payload file. Every write
    stores the payload under a fresh name before the sidecar is moved into
    place, so a sidecar only ever names a complete payload and an
    interrupted write leaves the previous entry readable. Store operations
    are serialized.

    Attributes:
        cache_dir: Directory where namespaces are stored.
    """

    def __init__(self, cache_dir: Path) -> None:
        """Initialize the cache with a directory path.

        Args:
            cache_dir: Directory where cached payloads will be stored.
        """
        self.cache_dir = cache_dir
        self._lock = asyncio.Lock()

    def _namespace_dir(self, namespace: str) -> Path:
        """Get the directory for a namespace."""
        return self.cache_dir / namespace

    def _meta_path(self, namespace: str, key: str) -> Path:
        """Get the path for a metadata sidecar file."""
        return self._namespace_dir(namespace) / f"{_digest(key)}.meta.json"

    def _load_sidecar(self, meta_path: Path, key: str) -> _Sidecar:
        try:
            with meta_path.open() as f:
                data = json.load(f)
            body_name = data["body"]
            if not body_name or Path(body_name).name != body_name:
                raise ValueError(f"payload name {body_name!r} is not a file name")
            return _Sidecar(
                key=data.get("key", key),
                stored_at=datetime.fromisoformat(data["stored_at"]),
                origin=Origin(data.get("origin", Origin.NETWORK.value)),
                body_path=meta_path.parent / body_name,
            )
        except (
            json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError
        ) as e:
            raise CacheCorruptError(
                f"Cache metadata corrupt for '{key}'",
                key=key,
                path=meta_path,
                cause=e,
            ) from e

    async def get(self, namespace: str, key: str) -> CacheEntry | None:
        """Get the cached entry for key, or None if not cached.

        Raises:
            CacheCorruptError: If the metadata sidecar exists but is unreadable.
        """
        async with self._lock:
            return await asyncio.to_thread(self._read, namespace, key)

    def _read(self, namespace: str, key: str) -> CacheEntry | None:
        meta_path = self._meta_path(namespace, key)
        if not meta_path.exists():
            return None

        sidecar = self._load_sidecar(meta_path, key)
        try:
            body = sidecar.body_path.read_bytes()
        except FileNotFoundError:
            return None

        return CacheEntry(
            key=sidecar.key,
            body=body,
            stored_at=sidecar.stored_at,
            origin=sidecar.origin,
        )

    def _current_body(self, meta_path: Path, key: str) -> Path | None:
        """Payload file named by an existing sidecar, if it can be read."""
        if not meta_path.exists():
            return None
        try:
            return self._load_sidecar(meta_path, key).body_path
        except CacheCorruptError:
            return None

    async def put(self, namespace: str, entry: CacheEntry) -> None:
        """Store an entry, replacing any previous entry for its key."""
        async with self._lock:
            await asyncio.to_thread(self._write, namespace, entry)

    def _write(self, namespace: str, entry: CacheEntry) -> None:
        meta_path = self._meta_path(namespace, entry.key)
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        previous = self._current_body(meta_path, entry.key)

        body_name = f"{_digest(entry.key)}.{uuid.uuid4().hex}.body"
        body_path = meta_path.parent / body_name
        _atomic_write(body_path, entry.body)
        data = {
            "key": entry.key,
            "stored_at": entry.stored_at.isoformat(),
            "origin": entry.origin.value,
            "body": body_path.name,
        }
        _atomic_write(meta_path, json.dumps(data).encode("utf-8"))

        if previous is not None:
            previous.unlink(missing_ok=True)

    async def delete(self, namespace: str, key: str) -> None:
        """Remove an entry from the cache."""
        async with self._lock:
            meta_path = self._meta_path(namespace, key)
            body_path = self._current_body(meta_path, key)
            meta_path.unlink(missing_ok=True)
            if body_path is not None:
                body_path.unlink(missing_ok=True)

    async def keys(self, namespace: str) -> list[str]:
        """List keys stored in a namespace."""
        async with self._lock:
            return await asyncio.to_thread(self._keys, namespace)

    def _keys(self, namespace: str) -> list[str]:
        directory = self._namespace_dir(namespace)
        if not directory.is_dir():
            return []
        keys: list[str] = []
        for meta_path in directory.glob("*.meta.json"):
            with contextlib.suppress(OSError, json.JSONDecodeError, KeyError, TypeError):
                keys.append(json.loads(meta_path.read_text())["key"])
        return keys

    async def namespaces(self) -> list[str]:
        """List namespace directories that hold at least one entry."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(
            p.name
            for p in self.cache_dir.iterdir()
            if p.is_dir() and any(p.glob("*.meta.json"))
        )

    async def drop_namespace(self, namespace: str) -> int:
        """Delete a namespace directory and return how many entries it held."""
        async with self._lock:
            directory = self._namespace_dir(namespace)
            if not directory.is_dir():
                return 0
            count = sum(1 for _ in directory.glob("*.meta.json"))
            await asyncio.to_thread(shutil.rmtree, directory)
            return count

    def size(self) -> int:
        """Calculate total cache size in bytes.

        Includes both payload files and metadata (.meta.json) files.
        """
        return self.statistics()["total_size"]

    def statistics(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with 'total_size' (bytes) and 'file_count' (number of files).
        """
        total_size = 0
        file_count = 0

        if not self.cache_dir.exists():
            return {"total_size": 0, "file_count": 0}

        for file_path in self.cache_dir.rglob("*"):
            if file_path.is_file():
                with contextlib.suppress(OSError):
                    total_size += file_path.stat().st_size
                    file_count += 1

        return {"total_size": total_size, "file_count": file_count}


def _digest(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _atomic_write(path: Path, data: bytes) -> None:
    """Write data to a temporary sibling and move it over path."""
    tmp_path = path.parent / f".{path.name}.tmp"
    tmp_path.write_bytes(data)
    os.replace(tmp_path, path)
