"""Cache store adapters."""

from timeslab.adapters.cache.file_cache import FileCacheStore
from timeslab.adapters.cache.memory import MemoryCacheStore


__all__ = ["FileCacheStore", "MemoryCacheStore"]
