"""Cache coordination at the network boundary.

Every request goes to the network first. Successful responses are
written through to a cache namespace for their request category; when
the network fails the coordinator falls back to the cached copy and
marks the response as served offline.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from timeslab.core.exceptions import CacheError, OfflineUnavailableError, TransportError
from timeslab.core.models import CacheEntry, Origin, utcnow


if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from timeslab.core.exceptions import TimeslabError
    from timeslab.core.ports import CacheStorePort, Clock, ProgressCallback, TransportPort


logger = logging.getLogger(__name__)

CACHE_PREFIX = "timeslab"
DEFAULT_GENERATION = "v1"

STATIC_SUFFIXES = (".js", ".css", ".png", ".jpg", ".svg", ".woff", ".woff2")
DEFAULT_API_HOSTS = (
    "techforpalestine.org",
    "goodshepherdcollective.org",
    "humdata.org",
    "worldbank.org",
)


class RequestCategory(str, Enum):
    """Cache policy category of a request."""

    STATIC = "static"
    API = "api"
    DATA = "data"
    OTHER = "other"


def categorize(url: str, api_hosts: Iterable[str] = DEFAULT_API_HOSTS) -> RequestCategory:
    """Infer the request category from a URL or path.

    Static assets are recognised by file suffix, third-party API calls by
    an ``/api/`` path segment or a known upstream host, and data payloads
    by a ``/data/`` path segment.
    """
    parts = urlsplit(url)
    path = parts.path or url
    host = parts.hostname or ""

    if path.lower().endswith(STATIC_SUFFIXES):
        return RequestCategory.STATIC
    if "/api/" in path or any(host == h or host.endswith(f".{h}") for h in api_hosts):
        return RequestCategory.API
    if "/data/" in path or "data-consolidation" in path:
        return RequestCategory.DATA
    return RequestCategory.OTHER


@dataclass(frozen=True, slots=True)
class CoordinatedResponse:
    """Result of a coordinated request.

    Offline state lives on this envelope; cached payloads are returned
    byte-for-byte as they were stored.

    Attributes:
        url: The requested resource.
        category: Cache policy category that was applied.
        body: Payload bytes, None when nothing could be served.
        origin: NETWORK or CACHE, None when nothing could be served.
        stored_at: When the payload was retrieved from the network.
        status: HTTP-like status (200 served, 503 unavailable).
        offline: True when a fallback was needed for this response.
        offline_since: When connectivity was first lost, for data responses.
        error: Structured error when nothing could be served.
    """

    url: str
    category: RequestCategory
    body: bytes | None = None
    origin: Origin | None = None
    stored_at: datetime | None = None
    status: int = 200
    offline: bool = False
    offline_since: datetime | None = None
    error: TimeslabError | None = None

    @property
    def ok(self) -> bool:
        """True when a payload is available."""
        return self.body is not None

    def json(self) -> Any:
        """Decode the payload as JSON, or the offline error object if unavailable."""
        if self.body is None:
            return {
                "error": "Offline",
                "message": "This data is not available offline",
                "offline": True,
            }
        return json.loads(self.body)


class CacheCoordinator:
    """Applies per-category network/cache policy to outgoing requests.

    Policies:
        static: network first, cached copy on failure, else 503 result.
        api: network first, cached copy marked offline on failure, else a
            structured "offline, not cached" result.
        data: network first, cached copy marked offline with an
            offline_since timestamp on failure, else an unavailable result.

    Namespaces are tagged with a cache generation. Namespaces belonging to
    any other generation are deleted before the first request is served.
    """

    def __init__(
        self,
        transport: TransportPort,
        store: CacheStorePort,
        *,
        generation: str = DEFAULT_GENERATION,
        api_hosts: Iterable[str] = DEFAULT_API_HOSTS,
        clock: Clock = utcnow,
    ) -> None:
        self._transport = transport
        self._store = store
        self._generation = generation
        self._api_hosts = tuple(api_hosts)
        self._clock = clock
        self._purged = False
        self._purge_lock = asyncio.Lock()
        self._offline_since: datetime | None = None

    @property
    def generation(self) -> str:
        """Current cache generation tag."""
        return self._generation

    @property
    def store(self) -> CacheStorePort:
        """The underlying cache store."""
        return self._store

    @property
    def offline_since(self) -> datetime | None:
        """When the last run of consecutive network failures began."""
        return self._offline_since

    def namespace(self, category: RequestCategory) -> str:
        """Cache namespace for a category in the current generation."""
        return f"{CACHE_PREFIX}-{category.value}-{self._generation}"

    def current_namespaces(self) -> set[str]:
        """All namespaces belonging to the current generation."""
        return {self.namespace(category) for category in RequestCategory}

    async def purge_stale_generations(self) -> list[str]:
        """Delete every namespace not belonging to the current generation.

        Returns:
            Names of the namespaces that were deleted.
        """
        keep = self.current_namespaces()
        dropped: list[str] = []
        for namespace in await self._store.namespaces():
            if namespace in keep:
                continue
            count = await self._store.drop_namespace(namespace)
            logger.info("Deleted old cache namespace %s (%d entries)", namespace, count)
            dropped.append(namespace)
        self._purged = True
        return dropped

    async def _ensure_purged(self) -> None:
        if self._purged:
            return
        async with self._purge_lock:
            if not self._purged:
                await self.purge_stale_generations()

    async def request(
        self,
        url: str,
        category: RequestCategory | None = None,
        progress: ProgressCallback | None = None,
    ) -> CoordinatedResponse:
        """Fetch url under its category's policy.

        Never raises for transport failures; those are turned into a
        cached fallback or an unavailable response.

        Args:
            url: Resource URL or path.
            category: Policy to apply; inferred from url when omitted.
            progress: Optional byte progress callback for the network attempt.
        """
        await self._ensure_purged()
        if category is None:
            category = categorize(url, self._api_hosts)
        namespace = self.namespace(category)

        try:
            body = await self._transport.get(url, progress)
        except TransportError as e:
            return await self._fallback(url, category, namespace, e)

        if self._offline_since is not None:
            logger.info("Network available again (offline since %s)", self._offline_since)
            self._offline_since = None

        entry = CacheEntry(key=url, body=body, stored_at=self._clock())
        await self._store.put(namespace, entry)
        return CoordinatedResponse(
            url=url,
            category=category,
            body=body,
            origin=Origin.NETWORK,
            stored_at=entry.stored_at,
        )

    async def _fallback(
        self,
        url: str,
        category: RequestCategory,
        namespace: str,
        error: TransportError,
    ) -> CoordinatedResponse:
        now = self._clock()
        if self._offline_since is None:
            self._offline_since = now

        entry = await self._read_cached(namespace, url)
        if entry is None:
            logger.warning("Network failed for %s and no cached copy exists: %s", url, error)
            return CoordinatedResponse(
                url=url,
                category=category,
                status=503,
                offline=True,
                offline_since=self._offline_since,
                error=OfflineUnavailableError(url, cause=error),
            )

        logger.info("Serving %s response for %s from cache: %s", category.value, url, error)
        if category is RequestCategory.API:
            return CoordinatedResponse(
                url=url,
                category=category,
                body=entry.body,
                origin=Origin.CACHE,
                stored_at=entry.stored_at,
                offline=True,
            )
        if category is RequestCategory.DATA:
            return CoordinatedResponse(
                url=url,
                category=category,
                body=entry.body,
                origin=Origin.CACHE,
                stored_at=entry.stored_at,
                offline=True,
                offline_since=self._offline_since,
            )
        return CoordinatedResponse(
            url=url,
            category=category,
            body=entry.body,
            origin=Origin.CACHE,
            stored_at=entry.stored_at,
        )

    async def cached(
        self, url: str, category: RequestCategory | None = None
    ) -> CacheEntry | None:
        """Return the cached entry for url without touching the network.

        Unreadable entries are treated as missing.
        """
        await self._ensure_purged()
        if category is None:
            category = categorize(url, self._api_hosts)
        return await self._read_cached(self.namespace(category), url)

    async def _read_cached(self, namespace: str, url: str) -> CacheEntry | None:
        try:
            return await self._store.get(namespace, url)
        except CacheError as e:
            logger.warning("Ignoring unreadable cache entry for %s: %s", url, e)
            return None

    async def cache_info(self) -> dict[str, list[str]]:
        """Keys held in each cache namespace, by namespace name."""
        info: dict[str, list[str]] = {}
        for namespace in sorted(await self._store.namespaces()):
            info[namespace] = sorted(await self._store.keys(namespace))
        return info

    async def aclose(self) -> None:
        """Close the underlying transport."""
        await self._transport.aclose()
