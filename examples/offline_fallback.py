"""Offline fallback with the on-disk cache.

Every successful response is written to the cache. When the network is
unavailable, the cached copy is served instead and the result says so:
``offline`` is set, ``offline_since`` records when connectivity was
lost, and ``fetched_at`` still reports when the data was retrieved.
"""

import asyncio
from datetime import date

from timeslab import DataAccess, DatasetSource


casualties = DatasetSource(
    name="casualties",
    manifest="https://data.example.org/data/casualties/manifest.json",
)


async def main() -> None:
    # Cache lives under <project root>/.timeslab/cache and survives restarts
    async with DataAccess.from_directory([casualties]) as access:
        result = await access.query_range("casualties", date(2024, 1, 1), date(2024, 2, 1))

    if result.offline.offline:
        print(f"Offline since {result.offline.offline_since}; showing cached data")
    if result.freshness is not None:
        print(f"Data retrieved at {result.fetched_at} ({result.freshness.value})")
        if result.freshness.requires_pulse:
            print("This data is getting old")

    # Ask the coordinator what it holds per namespace
    async with DataAccess.from_directory([casualties]) as access:
        for namespace, keys in (await access.coordinator.cache_info()).items():
            print(f"{namespace}: {len(keys)} entries")


if __name__ == "__main__":
    asyncio.run(main())
