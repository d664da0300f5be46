"""Coalescing partition fetcher."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from timeslab.core.coordinator import RequestCategory
from timeslab.core.exceptions import PartitionFetchError, TimeslabError
from timeslab.core.models import RecordBatch
from timeslab.core.parsing import parse_partition
from timeslab.core.ports import NullProgressReporter


if TYPE_CHECKING:
    from collections.abc import Iterable

    from timeslab.core.coordinator import CacheCoordinator
    from timeslab.core.models import Partition
    from timeslab.core.ports import ProgressReporter


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Result of fetching one partition: a batch or an error, never both."""

    partition: Partition
    batch: RecordBatch | None = None
    error: PartitionFetchError | None = None

    @property
    def ok(self) -> bool:
        """True when the partition was fetched."""
        return self.batch is not None


@dataclass(slots=True)
class _InFlight:
    task: asyncio.Task[RecordBatch]
    waiters: int = 0


class PartitionFetcher:
    """Fetches partition payloads through the cache coordinator.

    Concurrent fetches of the same partition share one in-flight task.
    Each caller holds a reference on the shared task; a cancelled caller
    drops its reference, and the task itself is only cancelled once no
    caller is left waiting on it.
    """

    def __init__(
        self,
        coordinator: CacheCoordinator,
        progress: ProgressReporter | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._progress = progress if progress is not None else NullProgressReporter()
        self._inflight: dict[tuple[str, str], _InFlight] = {}

    @property
    def in_flight(self) -> int:
        """Number of partition fetches currently running."""
        return len(self._inflight)

    async def fetch(self, partition: Partition) -> RecordBatch:
        """Fetch and decode one partition.

        Raises:
            PartitionFetchError: If the payload is unavailable (network
                failure with no cached copy) or malformed.
        """
        key = partition.key
        inflight = self._inflight.get(key)
        if inflight is None:
            task = asyncio.ensure_future(self._load(partition))
            inflight = _InFlight(task)
            self._inflight[key] = inflight
            task.add_done_callback(lambda _t: self._forget(key, inflight))
        else:
            logger.debug("Joining in-flight fetch of %s/%s", *key)

        inflight.waiters += 1
        try:
            return await asyncio.shield(inflight.task)
        finally:
            inflight.waiters -= 1
            if inflight.waiters == 0 and not inflight.task.done():
                # A later caller must start a new fetch, not join this one.
                self._forget(key, inflight)
                inflight.task.cancel()

    def _forget(self, key: tuple[str, str], inflight: _InFlight) -> None:
        if self._inflight.get(key) is inflight:
            del self._inflight[key]

    async def _load(self, partition: Partition) -> RecordBatch:
        label = f"{partition.dataset}/{partition.id}"
        callback = self._progress.start_task(label, 0)
        try:
            response = await self._coordinator.request(
                partition.location, RequestCategory.DATA, progress=callback
            )
        finally:
            self._progress.finish_task(label)

        if not response.ok or response.stored_at is None or response.origin is None:
            raise PartitionFetchError(
                f"Partition '{partition.id}' of '{partition.dataset}' is unavailable",
                dataset=partition.dataset,
                partition_id=partition.id,
                source=partition.location,
                cause=response.error,
            )

        assert response.body is not None
        records = parse_partition(response.body, partition)
        return RecordBatch(
            partition=partition,
            records=records,
            fetched_at=response.stored_at,
            origin=response.origin,
            offline_since=response.offline_since,
        )

    async def fetch_many(self, partitions: Iterable[Partition]) -> list[FetchOutcome]:
        """Fetch partitions concurrently, reporting each one independently.

        Any exception raised while fetching one partition becomes that
        partition's PartitionFetchError; only cancellation propagates.

        Returns:
            One outcome per partition, in the order given.
        """
        partitions = list(partitions)
        results = await asyncio.gather(
            *(self.fetch(p) for p in partitions), return_exceptions=True
        )

        outcomes: list[FetchOutcome] = []
        for partition, result in zip(partitions, results, strict=True):
            if isinstance(result, RecordBatch):
                outcomes.append(FetchOutcome(partition, batch=result))
            elif isinstance(result, PartitionFetchError):
                logger.warning("%s", result)
                outcomes.append(FetchOutcome(partition, error=result))
            elif isinstance(result, Exception):
                if isinstance(result, TimeslabError):
                    logger.warning("Partition '%s' failed: %s", partition.id, result)
                else:
                    logger.error(
                        "Partition '%s' failed unexpectedly",
                        partition.id,
                        exc_info=result,
                    )
                outcomes.append(
                    FetchOutcome(
                        partition,
                        error=PartitionFetchError(
                            str(result),
                            dataset=partition.dataset,
                            partition_id=partition.id,
                            source=partition.location,
                            cause=result,
                        ),
                    )
                )
            else:
                raise result
        return outcomes
