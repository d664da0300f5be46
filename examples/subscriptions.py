"""Live updates with subscriptions and the reconciliation scheduler.

A subscription re-delivers a range whenever a reconciliation pass finds
that the dataset's manifest has advanced and the range overlaps the
recently re-fetched window. Closed historical partitions are never
re-fetched.
"""

import asyncio
from datetime import date, timedelta

from timeslab import (
    DataAccess,
    DatasetSource,
    QueryResult,
    ReconciliationScheduler,
)


casualties = DatasetSource(
    name="casualties",
    manifest="https://data.example.org/data/casualties/manifest.json",
)


def on_update(result: QueryResult) -> None:
    """Called with a fresh QueryResult after every relevant refresh."""
    print(f"{len(result.records)} records as of {result.fetched_at}")


async def main() -> None:
    async with DataAccess.from_directory([casualties]) as access:
        subscription = access.subscribe(
            "casualties", date(2024, 3, 1), date(2024, 4, 1), on_update
        )

        scheduler = ReconciliationScheduler(
            access,
            interval=timedelta(hours=6),
            recent_window=timedelta(days=30),
        )
        await scheduler.start()

        # Run a pass now, e.g. when the network comes back
        scheduler.trigger("reconnect")
        await asyncio.sleep(60)

        if scheduler.status.errors:
            await scheduler.retry_failed()

        subscription.unsubscribe()
        await scheduler.stop()


if __name__ == "__main__":
    asyncio.run(main())
