"""Basic range query example.

This example shows the simplest usage pattern: describe a dataset by
its manifest, create a DataAccess, and ask for the records between two
dates. The library fetches only the partitions the range touches,
caches them, and labels the result with its freshness.
"""

import asyncio
from datetime import date
from pathlib import Path

from timeslab import (
    DataAccess,
    DatasetSource,
    FileCacheStore,
    create_router,
)


# Define a dataset by the location of its partition manifest
casualties = DatasetSource(
    name="casualties",
    manifest="https://data.example.org/data/casualties/manifest.json",
    description="Daily casualty reports",
)


async def main() -> None:
    # Option 1: Manual wiring (full control over adapters)
    # Use this when you need a custom transport or cache location
    access = DataAccess.create(
        [casualties],
        create_router(),
        FileCacheStore(Path("./.timeslab/cache")),
    )

    # Option 2: Factory method (recommended for most cases)
    # Auto-discovers project root, wires up RouterTransport and FileCacheStore
    # access = DataAccess.from_directory([casualties])

    async with access:
        # Resolve the range, fetch the covering partitions, merge and trim
        result = await access.query_range("casualties", date(2024, 1, 1), date(2024, 2, 1))
        print(f"{len(result.records)} records, freshness: {result.freshness}")

        # Ranges past the end of the manifest are clipped, not rejected
        if result.partial_coverage:
            print(f"Only {result.coverage} is covered")

        # A second query over the same partitions reuses the fetched batches
        result = await access.query_range("casualties", date(2024, 1, 15), date(2024, 1, 20))


if __name__ == "__main__":
    asyncio.run(main())
