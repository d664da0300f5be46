"""Core domain services for timeslab."""

from __future__ import annotations

import inspect
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from timeslab.config import DEFAULT_CACHE_DIR, ProjectLayout
from timeslab.core.coordinator import (
    DEFAULT_GENERATION,
    CacheCoordinator,
    RequestCategory,
)
from timeslab.core.exceptions import (
    DatasetNotFoundError,
    ManifestFetchError,
    TimeslabError,
)
from timeslab.core.fetcher import FetchOutcome, PartitionFetcher
from timeslab.core.freshness import classify
from timeslab.core.manifest_store import ManifestStore
from timeslab.core.merger import merge
from timeslab.core.models import (
    OfflineStatus,
    Origin,
    QueryResult,
    RangeQuery,
    utcnow,
)
from timeslab.core.parsing import parse_manifest
from timeslab.core.resolver import Resolution, resolve


if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date, timedelta
    from types import TracebackType

    import httpx

    from timeslab.core.models import DatasetSource, Manifest, Partition, RecordBatch
    from timeslab.core.ports import CacheStorePort, Clock, ProgressReporter, TransportPort


logger = logging.getLogger(__name__)

DEFAULT_MAX_CACHED_BATCHES = 256

SubscriptionCallback = Callable[[QueryResult], Awaitable[None] | None]


@dataclass(eq=False)
class Subscription:
    """A standing interest in a range, re-delivered when newer data lands."""

    query: RangeQuery
    callback: SubscriptionCallback
    _owner: DataAccess = field(repr=False)

    @property
    def active(self) -> bool:
        """Whether the subscription still receives updates."""
        return self in self._owner._subscriptions

    def unsubscribe(self) -> None:
        """Stop receiving updates. Safe to call more than once."""
        self._owner._subscriptions.pop(self, None)


class DataAccess:
    """Answers range queries over time-partitioned datasets.

    Resolves a range to partitions through the dataset's manifest, fetches
    them (coalesced, through the cache coordinator), merges and trims the
    records, and labels the result with its freshness and offline state.
    """

    def __init__(
        self,
        sources: list[DatasetSource],
        coordinator: CacheCoordinator,
        *,
        manifests: ManifestStore | None = None,
        progress: ProgressReporter | None = None,
        clock: Clock = utcnow,
        max_cached_batches: int = DEFAULT_MAX_CACHED_BATCHES,
    ) -> None:
        self._sources = {s.name: s for s in sources}
        self._coordinator = coordinator
        self._manifests = manifests if manifests is not None else ManifestStore()
        self._fetcher = PartitionFetcher(coordinator, progress=progress)
        self._clock = clock
        self._max_cached_batches = max_cached_batches
        self._batches: OrderedDict[tuple[str, str], RecordBatch] = OrderedDict()
        # dict used as an insertion-ordered set
        self._subscriptions: dict[Subscription, None] = {}

    @classmethod
    def from_directory(
        cls,
        sources: list[DatasetSource],
        directory: Path | None = None,
        cache_dir: Path | str = DEFAULT_CACHE_DIR,
        *,
        generation: str = DEFAULT_GENERATION,
        http_client: httpx.AsyncClient | None = None,
        progress: ProgressReporter | None = None,
    ) -> DataAccess:
        """Create DataAccess with auto-discovered project root and default adapters.

        Args:
            sources: Datasets to serve.
            directory: Start directory for root discovery (defaults to cwd).
            cache_dir: Cache directory relative to project root or absolute path.
            generation: Cache generation tag.
            http_client: Optional httpx client for http(s) resources.
            progress: Optional progress reporter for partition downloads.

        Returns:
            DataAccess with a RouterTransport and a FileCacheStore.
        """
        from timeslab.adapters.cache import FileCacheStore
        from timeslab.adapters.transport import create_router

        layout = ProjectLayout.discover(directory)
        coordinator = CacheCoordinator(
            create_router(http_client=http_client),
            FileCacheStore(layout.cache_dir(cache_dir)),
            generation=generation,
        )
        return cls(sources, coordinator, progress=progress)

    @classmethod
    def create(
        cls,
        sources: list[DatasetSource],
        transport: TransportPort,
        store: CacheStorePort,
        *,
        generation: str = DEFAULT_GENERATION,
        progress: ProgressReporter | None = None,
        clock: Clock = utcnow,
    ) -> DataAccess:
        """Create DataAccess from a transport and cache store."""
        coordinator = CacheCoordinator(
            transport, store, generation=generation, clock=clock
        )
        return cls(sources, coordinator, progress=progress, clock=clock)

    async def __aenter__(self) -> DataAccess:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release network connections."""
        await self._coordinator.aclose()

    @property
    def datasets(self) -> list[DatasetSource]:
        """List all configured datasets."""
        return list(self._sources.values())

    @property
    def manifests(self) -> ManifestStore:
        """The manifest store backing this instance."""
        return self._manifests

    @property
    def coordinator(self) -> CacheCoordinator:
        """The cache coordinator used for all network access."""
        return self._coordinator

    @property
    def fetcher(self) -> PartitionFetcher:
        """The partition fetcher used for all partition payloads."""
        return self._fetcher

    def get_source(self, name: str) -> DatasetSource:
        """Look up a dataset by name.

        Raises:
            DatasetNotFoundError: If no dataset with that name exists.
        """
        try:
            return self._sources[name]
        except KeyError:
            raise DatasetNotFoundError(
                name, available=list(self._sources.keys())
            ) from None

    async def fetch_manifest(self, name: str) -> tuple[Manifest, Origin]:
        """Retrieve and decode a dataset's manifest without installing it.

        Returns:
            The manifest and where its bytes came from.

        Raises:
            DatasetNotFoundError: If no dataset with that name exists.
            ManifestFetchError: If the manifest is unavailable.
            ManifestFormatError: If the manifest is malformed.
        """
        source = self.get_source(name)
        response = await self._coordinator.request(source.manifest, RequestCategory.DATA)
        if not response.ok or response.origin is None:
            raise ManifestFetchError(
                f"Manifest for '{name}' is unavailable",
                dataset=name,
                source=source.manifest,
                cause=response.error,
            )
        assert response.body is not None
        return _decode_manifest(source, response.body), response.origin

    async def _cached_manifest(self, source: DatasetSource) -> Manifest | None:
        entry = await self._coordinator.cached(source.manifest, RequestCategory.DATA)
        if entry is None:
            return None
        try:
            return _decode_manifest(source, entry.body)
        except TimeslabError as e:
            logger.warning("Ignoring cached manifest for '%s': %s", source.name, e)
            return None

    async def refresh_manifest(self, name: str) -> bool:
        """Fetch a dataset's manifest and install it if it is newer.

        A manifest left in the cache by an earlier session is installed
        first, so a fetch that returns the same manifest is not reported
        as a change.

        Returns:
            True if a manifest was registered or replaced.
        """
        source = self.get_source(name)
        if name not in self._manifests:
            previous = await self._cached_manifest(source)
            if previous is not None:
                self._manifests.register(previous)
                logger.debug("Seeded '%s' from cached manifest", name)

        manifest, origin = await self.fetch_manifest(name)
        if name not in self._manifests:
            self._manifests.register(manifest)
            logger.info(
                "Registered '%s' with %d partitions", name, len(manifest.partitions)
            )
            return True

        current = self._manifests.get_manifest(name)
        if origin is Origin.CACHE or not manifest.is_newer_than(current):
            return False

        self._manifests.replace_manifest(name, manifest)
        logger.info(
            "Replaced manifest for '%s' (generated %s)",
            name,
            manifest.generated_at.isoformat(),
        )
        return True

    async def get_manifest(self, name: str) -> Manifest:
        """Return the installed manifest, fetching it on first use."""
        self.get_source(name)
        if name not in self._manifests:
            await self.refresh_manifest(name)
        return self._manifests.get_manifest(name)

    async def resolve(self, name: str, start: date, end: date) -> Resolution:
        """Resolve a range to partitions of the dataset's current manifest."""
        return resolve(await self.get_manifest(name), start, end)

    def _cached_batch(self, partition: Partition) -> RecordBatch | None:
        batch = self._batches.get(partition.key)
        if batch is None:
            return None
        if batch.partition.last_modified != partition.last_modified:
            return None
        self._batches.move_to_end(partition.key)
        return batch

    def _remember(self, batch: RecordBatch) -> None:
        if batch.origin is not Origin.NETWORK:
            return
        self._batches[batch.partition.key] = batch
        self._batches.move_to_end(batch.partition.key)
        while len(self._batches) > self._max_cached_batches:
            self._batches.popitem(last=False)

    def forget_partitions(self, partitions: Iterable[Partition]) -> None:
        """Drop remembered batches so the next query re-fetches them."""
        for partition in partitions:
            self._batches.pop(partition.key, None)

    async def fetch_partitions(self, partitions: Iterable[Partition]) -> list[FetchOutcome]:
        """Fetch partitions, reusing batches already retrieved for the same version."""
        partitions = list(partitions)
        outcomes: dict[tuple[str, str], FetchOutcome] = {}
        missing: list[Partition] = []
        for partition in partitions:
            batch = self._cached_batch(partition)
            if batch is None:
                missing.append(partition)
            else:
                outcomes[partition.key] = FetchOutcome(partition, batch=batch)

        for outcome in await self._fetcher.fetch_many(missing):
            if outcome.batch is not None:
                self._remember(outcome.batch)
            outcomes[outcome.partition.key] = outcome

        return [outcomes[p.key] for p in partitions]

    async def query_range(self, dataset: str, start: date, end: date) -> QueryResult:
        """Return a dataset's records inside ``[start, end)``.

        Dataset-level failures (unknown dataset, unavailable manifest,
        manifest gap) produce a result with no records and the failure
        in ``errors``. Partition-level failures keep the records that
        could be fetched and mark the result as partially covered.
        """
        query = RangeQuery(dataset, start, end)
        try:
            source = self.get_source(dataset)
            resolution = await self.resolve(dataset, start, end)
        except TimeslabError as e:
            logger.warning("Query %s [%s, %s) failed: %s", dataset, start, end, e)
            return QueryResult.failed(query, e)

        outcomes = await self.fetch_partitions(resolution.partitions)
        batches = [o.batch for o in outcomes if o.batch is not None]
        errors: tuple[TimeslabError, ...] = tuple(
            o.error for o in outcomes if o.error is not None
        )

        records = merge(batches, start, end, date_field=source.date_field)

        fetched_at = min((b.fetched_at for b in batches), default=None)
        offline_batches = [b for b in batches if b.is_offline]
        offline = OfflineStatus(
            offline=bool(offline_batches),
            offline_since=min(
                (b.offline_since for b in offline_batches if b.offline_since),
                default=None,
            ),
        )

        return QueryResult(
            query=query,
            records=tuple(records),
            freshness=classify(fetched_at, self._clock()) if fetched_at else None,
            partial_coverage=resolution.partial_coverage or bool(errors),
            coverage=resolution.coverage,
            errors=errors,
            offline=offline,
            fetched_at=fetched_at,
        )

    def subscribe(
        self,
        dataset: str,
        start: date,
        end: date,
        callback: SubscriptionCallback,
    ) -> Subscription:
        """Register callback to receive refreshed results for a range.

        The callback is invoked with a new QueryResult whenever a refresh
        publishes newer data overlapping the range. It may be a plain
        function or a coroutine function.

        Raises:
            DatasetNotFoundError: If no dataset with that name exists.
        """
        self.get_source(dataset)
        subscription = Subscription(RangeQuery(dataset, start, end), callback, self)
        self._subscriptions[subscription] = None
        return subscription

    @property
    def subscriptions(self) -> list[Subscription]:
        """Active subscriptions in registration order."""
        return list(self._subscriptions)

    async def publish(
        self, dataset: str, window: tuple[date, date] | None = None
    ) -> int:
        """Re-run and deliver every subscription on dataset overlapping window.

        Returns:
            Number of subscriptions notified.
        """
        notified = 0
        for subscription in list(self._subscriptions):
            query = subscription.query
            if query.dataset != dataset:
                continue
            if window is not None and not (query.start < window[1] and window[0] < query.end):
                continue
            result = await self.query_range(query.dataset, query.start, query.end)
            if not subscription.active:
                continue
            await _deliver(subscription, result)
            notified += 1
        return notified

    async def refresh_recent(self, name: str, window: timedelta) -> Resolution:
        """Re-fetch the partitions covering the trailing window of a dataset.

        Args:
            name: Dataset name.
            window: Length of the trailing window, measured back from the
                end of the manifest's coverage.

        Returns:
            The resolution of the trailing window that was re-fetched.
        """
        manifest = await self.get_manifest(name)
        if manifest.end is None:
            today = self._clock().date()
            return Resolution(name, today, today)
        resolution = resolve(manifest, manifest.end - window, manifest.end)
        self.forget_partitions(resolution.partitions)
        await self.fetch_partitions(resolution.partitions)
        return resolution


def _decode_manifest(source: DatasetSource, body: bytes) -> Manifest:
    manifest = parse_manifest(body, source.manifest, dataset=source.name)
    if manifest.dataset != source.name:
        raise ManifestFetchError(
            f"Manifest at {source.manifest} describes '{manifest.dataset}', "
            f"not '{source.name}'",
            dataset=source.name,
            source=source.manifest,
        )
    return manifest


async def _deliver(subscription: Subscription, result: QueryResult) -> None:
    try:
        outcome: Any = subscription.callback(result)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception:
        logger.exception(
            "Subscriber for %s [%s, %s) failed",
            subscription.query.dataset,
            subscription.query.start,
            subscription.query.end,
        )
