"""Unit tests for the reconciliation scheduler."""

import asyncio
from datetime import date, timedelta

import pytest


NEXT_MANIFEST_TIME = "2024-04-02T06:00:00+00:00"


def _scheduler(access, clock, **kwargs):
    from timeslab.core.scheduler import ReconciliationScheduler

    return ReconciliationScheduler(access, clock=clock, **kwargs)


async def _wait_for_refresh(scheduler) -> None:
    async def _poll() -> None:
        while scheduler.status.last_refresh is None:
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=2)


@pytest.mark.core
@pytest.mark.tra("Service.Reconciliation")
@pytest.mark.tier(1)
class TestReconcileOnce:
    """Tests for a single reconciliation pass."""

    @pytest.mark.asyncio
    async def test_first_pass_registers_manifests(self, access, clock) -> None:
        """The first pass installs every dataset's manifest."""
        scheduler = _scheduler(access, clock)

        report = await scheduler.reconcile_once()

        assert report.checked == ("casualties",)
        assert report.updated == ("casualties",)
        assert "casualties" in access.manifests
        assert scheduler.status.last_refresh == clock.now
        assert not scheduler.status.is_refreshing

    @pytest.mark.asyncio
    async def test_unchanged_manifest_fetches_no_partitions(self, access, site, clock) -> None:
        """When the manifest has not advanced, only the manifest is requested."""
        scheduler = _scheduler(access, clock)
        await scheduler.reconcile_once()
        calls_before = len(site.transport.calls)

        report = await scheduler.reconcile_once()

        assert report.updated == ()
        assert site.transport.calls[calls_before:] == [site.manifest_url]

    @pytest.mark.asyncio
    async def test_advanced_manifest_refetches_recent_window_only(
        self, access, site, clock
    ) -> None:
        """A newer manifest re-fetches partitions in the trailing window only."""
        scheduler = _scheduler(access, clock, recent_window=timedelta(days=30))
        await scheduler.reconcile_once()
        q4_calls = site.transport.count(site.partition_url("2023-Q4"))
        q1_calls = site.transport.count(site.partition_url("2024-Q1"))

        site.publish_manifest(generated_at=NEXT_MANIFEST_TIME)
        report = await scheduler.reconcile_once()

        assert report.updated == ("casualties",)
        assert site.transport.count(site.partition_url("2024-Q1")) == q1_calls + 1
        assert site.transport.count(site.partition_url("2023-Q4")) == q4_calls

    @pytest.mark.asyncio
    async def test_subscribers_receive_updated_records(self, access, site, clock) -> None:
        """Subscribers overlapping the recent window get the new records."""
        received = []
        access.subscribe("casualties", date(2024, 3, 1), date(2024, 4, 1), received.append)
        scheduler = _scheduler(access, clock)
        await scheduler.reconcile_once()
        assert [r["date"] for r in received[-1].records] == ["2024-03-31"]

        site.publish_partition(
            "2024-Q1",
            [
                {"date": "2023-12-31", "killed": 4},
                {"date": "2024-01-15", "killed": 5},
                {"date": "2024-03-15", "killed": 7},
                {"date": "2024-03-31", "killed": 6},
            ],
        )
        site.publish_manifest(generated_at=NEXT_MANIFEST_TIME)
        report = await scheduler.reconcile_once()

        assert report.notified == 1
        assert [r["date"] for r in received[-1].records] == ["2024-03-15", "2024-03-31"]

    @pytest.mark.asyncio
    async def test_historical_subscribers_are_not_notified(self, access, site, clock) -> None:
        """Subscribers outside the recent window are left alone."""
        received = []
        scheduler = _scheduler(access, clock)
        await scheduler.reconcile_once()
        access.subscribe("casualties", date(2023, 10, 7), date(2023, 11, 1), received.append)

        site.publish_manifest(generated_at=NEXT_MANIFEST_TIME)
        report = await scheduler.reconcile_once()

        assert report.notified == 0
        assert received == []

    @pytest.mark.asyncio
    async def test_failures_are_recorded_per_dataset(self, access, site, clock) -> None:
        """A failing dataset is reported and kept in status.errors."""
        from timeslab.core.exceptions import ManifestFormatError

        site.transport.payloads[site.manifest_url] = b"not json"
        scheduler = _scheduler(access, clock)

        report = await scheduler.reconcile_once()

        assert report.checked == ()
        assert isinstance(report.errors["casualties"], ManifestFormatError)
        assert "casualties" in scheduler.status.errors

    @pytest.mark.asyncio
    async def test_retry_failed_reruns_failed_datasets(self, access, site, clock) -> None:
        """retry_failed() re-runs failed datasets and clears their errors."""
        site.transport.payloads[site.manifest_url] = b"not json"
        scheduler = _scheduler(access, clock)
        await scheduler.reconcile_once()

        site.publish_manifest()
        report = await scheduler.retry_failed()

        assert report.reason == "retry"
        assert report.checked == ("casualties",)
        assert scheduler.status.errors == {}

    @pytest.mark.asyncio
    async def test_retry_failed_without_failures_checks_nothing(self, access, clock) -> None:
        """retry_failed() with no recorded failures is a no-op pass."""
        scheduler = _scheduler(access, clock)

        report = await scheduler.retry_failed()

        assert report.checked == ()


@pytest.mark.core
@pytest.mark.tra("Service.Reconciliation")
@pytest.mark.tier(2)
class TestSchedulerLoop:
    """Tests for the recurring task lifecycle."""

    def test_rejects_non_positive_interval(self, access, clock) -> None:
        """The refresh interval must be positive."""
        with pytest.raises(ValueError, match="positive"):
            _scheduler(access, clock, interval=timedelta(0))

    @pytest.mark.asyncio
    async def test_trigger_runs_pass_immediately(self, access, clock) -> None:
        """trigger() wakes the loop before the interval elapses."""
        scheduler = _scheduler(access, clock, interval=timedelta(hours=6))
        await scheduler.start()
        assert scheduler.running

        scheduler.trigger("reconnect")
        await _wait_for_refresh(scheduler)
        await scheduler.stop()

        assert "casualties" in access.manifests
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_interval_runs_pass(self, access, clock) -> None:
        """The loop runs a pass every interval."""
        scheduler = _scheduler(access, clock, interval=timedelta(milliseconds=10))
        await scheduler.start()

        await _wait_for_refresh(scheduler)
        await scheduler.stop()

        assert "casualties" in access.manifests

    @pytest.mark.asyncio
    async def test_next_refresh_is_tracked(self, access, clock) -> None:
        """While running, next_refresh is one interval ahead; stop() clears it."""
        scheduler = _scheduler(access, clock, interval=timedelta(hours=6))
        await scheduler.start()
        await asyncio.sleep(0)

        assert scheduler.status.next_refresh == clock.now + timedelta(hours=6)

        await scheduler.stop()
        assert scheduler.status.next_refresh is None

    @pytest.mark.asyncio
    async def test_start_twice_and_stop_twice(self, access, clock) -> None:
        """start() and stop() are idempotent."""
        scheduler = _scheduler(access, clock)

        await scheduler.start()
        await scheduler.start()
        await scheduler.stop()
        await scheduler.stop()

        assert not scheduler.running


@pytest.mark.core
@pytest.mark.tra("Service.Reconciliation")
@pytest.mark.tier(2)
class TestStatusListeners:
    """Tests for status change callbacks."""

    @pytest.mark.asyncio
    async def test_pass_reports_start_and_finish(self, access, clock) -> None:
        """A listener sees is_refreshing go up and down around a pass."""
        scheduler = _scheduler(access, clock)
        seen = []
        scheduler.on_status_change(seen.append)

        await scheduler.reconcile_once()

        assert [s.is_refreshing for s in seen] == [True, False]
        assert seen[0].last_refresh is None
        assert seen[1].last_refresh == clock.now

    @pytest.mark.asyncio
    async def test_snapshots_do_not_alias_live_status(self, access, site, clock) -> None:
        """Each callback receives its own copy of the status."""
        scheduler = _scheduler(access, clock)
        seen = []
        scheduler.on_status_change(seen.append)
        site.transport.offline = True

        await scheduler.reconcile_once()

        assert seen[-1] is not scheduler.status
        assert "casualties" in seen[-1].errors
        scheduler.status.errors.clear()
        assert "casualties" in seen[-1].errors

    @pytest.mark.asyncio
    async def test_schedule_and_stop_are_reported(self, access, clock) -> None:
        """Scheduling the next pass and stopping both notify listeners."""
        scheduler = _scheduler(access, clock, interval=timedelta(hours=6))
        seen = []
        scheduler.on_status_change(seen.append)

        await scheduler.start()
        await asyncio.sleep(0)
        await scheduler.stop()

        assert [s.next_refresh for s in seen] == [clock.now + timedelta(hours=6), None]

    @pytest.mark.asyncio
    async def test_removed_listener_is_not_called(self, access, clock) -> None:
        """The function returned by on_status_change unregisters the callback."""
        scheduler = _scheduler(access, clock)
        seen = []
        remove = scheduler.on_status_change(seen.append)

        remove()
        remove()
        await scheduler.reconcile_once()

        assert seen == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_pass(self, access, clock) -> None:
        """A raising callback is logged and the pass still completes."""
        scheduler = _scheduler(access, clock)
        seen = []

        def broken(status) -> None:
            raise RuntimeError("listener bug")

        scheduler.on_status_change(broken)
        scheduler.on_status_change(seen.append)

        report = await scheduler.reconcile_once()

        assert report.checked == ("casualties",)
        assert len(seen) == 2
