"""Error handling patterns with recovery hints.

This example demonstrates how query failures are reported on the result
rather than raised, and how to use the recovery_hint property to provide
actionable guidance.
"""

import asyncio
from datetime import date

from timeslab import (
    DataAccess,
    DatasetNotFoundError,
    DatasetSource,
    GapError,
    ManifestFetchError,
    MemoryCacheStore,
    PartitionFetchError,
    QueryResult,
    TimeslabError,
    create_router,
)


access = DataAccess.create(
    [
        DatasetSource(name="casualties", manifest="s3://bucket/casualties/manifest.json"),
        DatasetSource(name="press", manifest="s3://bucket/press/manifest.json"),
    ],
    create_router(),
    MemoryCacheStore(),
)


# Pattern 1: Dataset-level failures produce an empty result
async def query_or_explain(name: str, start: date, end: date) -> QueryResult:
    """Query a range and explain why nothing came back."""
    result = await access.query_range(name, start, end)
    for error in result.errors:
        if isinstance(error, DatasetNotFoundError):
            # recovery_hint lists available datasets
            print(f"Dataset '{name}' not found.")
        elif isinstance(error, GapError):
            print(f"The manifest has no data for {error.start} to {error.end}.")
        elif isinstance(error, ManifestFetchError):
            print(f"The manifest could not be loaded: {error}")
        if error.recovery_hint:
            print(f"Hint: {error.recovery_hint}")
    return result


# Pattern 2: Partition-level failures keep the records that were fetched
async def query_best_effort(name: str, start: date, end: date) -> QueryResult:
    """Use whatever could be fetched, naming the partitions that failed."""
    result = await access.query_range(name, start, end)
    failed = [e.partition_id for e in result.errors if isinstance(e, PartitionFetchError)]
    if failed:
        print(f"Missing partitions {failed}; showing {len(result.records)} records")
    return result


# Pattern 3: Operations that do raise (resolve, subscribe) use TimeslabError
async def resolve_safely(name: str, start: date, end: date) -> None:
    """Catch all library errors with the base exception."""
    try:
        resolution = await access.resolve(name, start, end)
    except TimeslabError as e:
        print(f"Error: {e}")
        if e.recovery_hint:
            print(f"Hint: {e.recovery_hint}")
        return
    print(f"{len(resolution.partitions)} partition(s) cover the range")


async def main() -> None:
    async with access:
        await query_or_explain("casualtys", date(2024, 1, 1), date(2024, 2, 1))
        await query_best_effort("casualties", date(2023, 12, 1), date(2024, 2, 1))
        await resolve_safely("press", date(2024, 1, 1), date(2024, 2, 1))


if __name__ == "__main__":
    asyncio.run(main())
