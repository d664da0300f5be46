"""Project root discovery for portable relative paths.

ProjectLayout.discover() walks up from the current directory to the
nearest folder holding a ``.timeslab`` directory, a ``pyproject.toml`` or
a ``.git`` directory, so a notebook or script finds the same cache no
matter where it is run from.
"""

import asyncio
from datetime import date

from timeslab import (
    DataAccess,
    DatasetSource,
    FileCacheStore,
    ProjectLayout,
    create_router,
)


layout = ProjectLayout.discover()
print(f"Project root: {layout.root}")

# <root>/.timeslab/cache, or pass a catalog's cache_dir to override it
cache_dir = layout.cache_dir()

casualties = DatasetSource(
    name="casualties",
    manifest="https://data.example.org/data/casualties/manifest.json",
)

access = DataAccess.create([casualties], create_router(), FileCacheStore(cache_dir))


async def main() -> None:
    async with access:
        result = await access.query_range("casualties", date(2024, 1, 1), date(2024, 2, 1))
    print(f"{len(result.records)} records, cache at {cache_dir}")


if __name__ == "__main__":
    asyncio.run(main())
