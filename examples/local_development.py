"""Local development example using FilesystemTransport.

This example shows how to develop against a local directory that mirrors
the published data layout: a manifest.json next to one JSON file per
partition. Switching to the real host only changes the manifest location.
"""

import asyncio
import json
from datetime import date
from pathlib import Path

from timeslab import (
    DataAccess,
    DatasetSource,
    FilesystemTransport,
    MemoryCacheStore,
    create_router,
)


# Local directory mirroring https://data.example.org/data/
MOCK_SITE_ROOT = Path("./test_fixtures/site/data")


def setup_mock_data() -> Path:
    """Write a two-partition dataset and return its manifest path."""
    directory = MOCK_SITE_ROOT / "casualties"
    directory.mkdir(parents=True, exist_ok=True)

    (directory / "2023-Q4.json").write_text(
        json.dumps({"data": [{"date": "2023-12-30", "killed": 3}]})
    )
    (directory / "2024-Q1.json").write_text(
        json.dumps({"data": [{"date": "2024-01-15", "killed": 5}]})
    )
    manifest = {
        "dataset": "casualties",
        "generatedAt": "2024-04-01T06:00:00Z",
        "partitions": [
            {"id": "2023-Q4", "start": "2023-10-07", "end": "2023-12-31", "file": "2023-Q4.json"},
            {"id": "2024-Q1", "start": "2023-12-31", "end": "2024-04-01", "file": "2024-Q1.json"},
        ],
    }
    manifest_path = directory / "manifest.json"
    manifest_path.write_text(json.dumps(manifest))
    return manifest_path


def create_dev_access(manifest_path: Path) -> DataAccess:
    """Create DataAccess reading the local mirror."""
    return DataAccess.create(
        [DatasetSource(name="casualties", manifest=str(manifest_path))],
        FilesystemTransport(),
        MemoryCacheStore(),
    )


def create_prod_access() -> DataAccess:
    """Create DataAccess reading the published site.

    create_router() routes https:// to HttpTransport, s3:// to
    S3Transport and plain paths to FilesystemTransport.
    """
    return DataAccess.create(
        [
            DatasetSource(
                name="casualties",
                manifest="https://data.example.org/data/casualties/manifest.json",
            )
        ],
        create_router(),
        MemoryCacheStore(),
    )


async def main() -> None:
    manifest_path = setup_mock_data()
    async with create_dev_access(manifest_path) as access:
        result = await access.query_range("casualties", date(2023, 12, 1), date(2024, 2, 1))
        for record in result.records:
            print(record)


if __name__ == "__main__":
    asyncio.run(main())
