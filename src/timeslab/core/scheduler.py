"""Periodic reconciliation of manifests and recent partitions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from timeslab.config import DEFAULT_RECENT_WINDOW_DAYS, DEFAULT_REFRESH_INTERVAL_HOURS
from timeslab.core.exceptions import TimeslabError
from timeslab.core.models import utcnow


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from timeslab.core.ports import Clock
    from timeslab.core.services import DataAccess


logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = timedelta(hours=DEFAULT_REFRESH_INTERVAL_HOURS)
DEFAULT_RECENT_WINDOW = timedelta(days=DEFAULT_RECENT_WINDOW_DAYS)


@dataclass
class RefreshStatus:
    """Observable state of the scheduler.

    Attributes:
        is_refreshing: A reconciliation pass is running.
        last_refresh: When the last pass finished.
        next_refresh: When the next interval-triggered pass is due.
        errors: Last failure per dataset; cleared when the dataset succeeds.
    """

    is_refreshing: bool = False
    last_refresh: datetime | None = None
    next_refresh: datetime | None = None
    errors: dict[str, TimeslabError] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    """Outcome of one reconciliation pass.

    Attributes:
        reason: What triggered the pass ("interval", "reconnect", ...).
        checked: Datasets whose manifest was re-fetched.
        updated: Datasets whose manifest advanced and were re-fetched.
        notified: Number of subscriptions that received new results.
        errors: Failures by dataset name.
    """

    reason: str
    checked: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    notified: int = 0
    errors: dict[str, TimeslabError] = field(default_factory=dict)


class ReconciliationScheduler:
    """Keeps manifests and open partitions up to date.

    A pass re-fetches the manifest of every dataset. When a manifest has
    advanced it is installed, the partitions covering the trailing recent
    window are re-fetched, and subscribers overlapping that window are
    sent fresh results. Closed historical partitions are never re-fetched
    here.

    Passes run on a fixed interval once start() is awaited, and
    immediately whenever trigger() is called (reconnect, visibility
    restored). Passes never overlap.

    Example:
        >>> scheduler = ReconciliationScheduler(access)
        >>> await scheduler.start()
        >>> scheduler.trigger("reconnect")
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        access: DataAccess,
        *,
        interval: timedelta = DEFAULT_REFRESH_INTERVAL,
        recent_window: timedelta = DEFAULT_RECENT_WINDOW,
        clock: Clock = utcnow,
    ) -> None:
        if interval <= timedelta(0):
            raise ValueError("Refresh interval must be positive")
        self._access = access
        self._interval = interval
        self._recent_window = recent_window
        self._clock = clock
        self._status = RefreshStatus()
        self._lock = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._reason = "interval"
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[Callable[[RefreshStatus], None]] = []

    @property
    def status(self) -> RefreshStatus:
        """Current refresh status."""
        return self._status

    def on_status_change(
        self, callback: Callable[[RefreshStatus], None]
    ) -> Callable[[], None]:
        """Call callback with a snapshot of the status each time it changes.

        The status changes when a pass starts, when it finishes and when
        the next interval-triggered pass is scheduled or cancelled.

        Returns:
            A function that unregisters the callback.
        """
        self._listeners.append(callback)

        def remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return remove

    def _status_changed(self) -> None:
        snapshot = replace(self._status, errors=dict(self._status.errors))
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Refresh status listener failed")

    @property
    def running(self) -> bool:
        """Whether the recurring task is active."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the recurring reconciliation task. No-op if already running."""
        if self.running:
            return
        self._wakeup.clear()
        self._task = asyncio.create_task(self._run(), name="timeslab-reconcile")
        logger.info("Reconciliation every %s started", self._interval)

    async def stop(self) -> None:
        """Cancel the recurring task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._status.next_refresh = None
        self._status_changed()
        logger.info("Reconciliation stopped")

    def trigger(self, reason: str = "reconnect") -> None:
        """Request an immediate pass (e.g. network reconnected, app visible again)."""
        self._reason = reason
        self._wakeup.set()

    async def _run(self) -> None:
        while True:
            self._status.next_refresh = self._clock() + self._interval
            self._status_changed()
            try:
                await asyncio.wait_for(
                    self._wakeup.wait(), timeout=self._interval.total_seconds()
                )
                reason = self._reason
            except TimeoutError:
                reason = "interval"
            self._wakeup.clear()
            self._reason = "interval"
            await self.reconcile_once(reason=reason)

    async def reconcile_once(
        self,
        datasets: Iterable[str] | None = None,
        *,
        reason: str = "manual",
    ) -> ReconcileReport:
        """Run one reconciliation pass.

        Args:
            datasets: Dataset names to check, defaults to all configured datasets.
            reason: What triggered the pass, for logging and the report.
        """
        names = (
            list(datasets)
            if datasets is not None
            else [s.name for s in self._access.datasets]
        )
        async with self._lock:
            self._status.is_refreshing = True
            self._status_changed()
            checked: list[str] = []
            updated: list[str] = []
            errors: dict[str, TimeslabError] = {}
            notified = 0
            try:
                for name in names:
                    try:
                        changed = await self._access.refresh_manifest(name)
                        checked.append(name)
                        if changed:
                            resolution = await self._access.refresh_recent(
                                name, self._recent_window
                            )
                            updated.append(name)
                            notified += await self._access.publish(
                                name, resolution.coverage
                            )
                    except TimeslabError as e:
                        logger.warning("Reconciling '%s' failed: %s", name, e)
                        errors[name] = e
                        self._status.errors[name] = e
                    else:
                        self._status.errors.pop(name, None)
            finally:
                self._status.is_refreshing = False
                self._status.last_refresh = self._clock()
                self._status_changed()

        logger.info(
            "Reconciliation (%s): %d checked, %d updated, %d notified, %d failed",
            reason,
            len(checked),
            len(updated),
            notified,
            len(errors),
        )
        return ReconcileReport(
            reason=reason,
            checked=tuple(checked),
            updated=tuple(updated),
            notified=notified,
            errors=errors,
        )

    async def retry_failed(self) -> ReconcileReport:
        """Re-run a pass for the datasets whose last attempt failed."""
        return await self.reconcile_once(list(self._status.errors), reason="retry")
