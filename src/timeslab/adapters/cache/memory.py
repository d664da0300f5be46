"""In-memory cache store adapter implementing CacheStorePort."""

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from timeslab.core.models import CacheEntry


class MemoryCacheStore:
    """Namespaced cache held in process memory.

    Each namespace keeps at most max_entries entries and evicts the least
    recently used one when full. Intended as the single cache instance of
    one application run, or for tests.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        """Initialize an empty store.

        Args:
            max_entries: Per-namespace entry limit; None means unbounded.
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._namespaces: dict[str, OrderedDict[str, CacheEntry]] = {}

    async def get(self, namespace: str, key: str) -> CacheEntry | None:
        """Return the entry for key, marking it recently used."""
        entries = self._namespaces.get(namespace)
        if entries is None or key not in entries:
            return None
        entries.move_to_end(key)
        return entries[key]

    async def put(self, namespace: str, entry: CacheEntry) -> None:
        """Store entry, evicting the least recently used one if full."""
        entries = self._namespaces.setdefault(namespace, OrderedDict())
        entries[entry.key] = entry
        entries.move_to_end(entry.key)
        if self._max_entries is not None:
            while len(entries) > self._max_entries:
                entries.popitem(last=False)

    async def delete(self, namespace: str, key: str) -> None:
        """Remove one entry if present."""
        entries = self._namespaces.get(namespace)
        if entries is not None:
            entries.pop(key, None)

    async def keys(self, namespace: str) -> list[str]:
        """List keys stored in a namespace."""
        return list(self._namespaces.get(namespace, ()))

    async def namespaces(self) -> list[str]:
        """List namespaces currently holding entries."""
        return [name for name, entries in self._namespaces.items() if entries]

    async def drop_namespace(self, namespace: str) -> int:
        """Delete a namespace and return how many entries it held."""
        entries = self._namespaces.pop(namespace, None)
        return len(entries) if entries else 0
