"""Pytest configuration and shared fixtures.

This module registers custom markers for CI job separation and provides
shared fixtures for the test suite: a scriptable in-memory transport, a
controllable clock and a fake data site serving one quarterly dataset.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from timeslab.core.exceptions import TransportError, TransportNotFoundError


if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from timeslab.core.ports import ProgressCallback
    from timeslab.core.services import DataAccess


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "core: Core models, ports, and services")
    config.addinivalue_line("markers", "transport: Transport adapters (http, s3, filesystem)")
    config.addinivalue_line("markers", "cache: Cache store adapters")
    config.addinivalue_line("markers", "progress: Rich progress integration")
    config.addinivalue_line("markers", "cli: CLI tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "property: Hypothesis property-based tests")
    config.addinivalue_line(
        "markers", "tra: Test Responsibility Anchor (TRA) - namespace.Anchor format"
    )
    config.addinivalue_line(
        "markers",
        "tier: Test tier for CI job separation (0=instant, 1=fast, 2=standard, 3=slow, 4=manual)",
    )


class FakeTransport:
    """In-memory TransportPort with scriptable payloads and failures.

    Payloads map a source to bytes, or to an exception raised on get().
    Unknown sources raise TransportNotFoundError. Setting ``offline``
    makes every request fail like a dropped connection, and ``gate``
    holds every request until the event is set.
    """

    def __init__(self, payloads: dict[str, bytes | Exception] | None = None) -> None:
        self.payloads: dict[str, bytes | Exception] = dict(payloads or {})
        self.calls: list[str] = []
        self.offline = False
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def get(self, source: str, progress: ProgressCallback | None = None) -> bytes:
        self.calls.append(source)
        if self.gate is not None:
            await self.gate.wait()
        if self.offline:
            raise TransportError("Network unreachable", source=source)
        payload = self.payloads.get(source)
        if payload is None:
            raise TransportNotFoundError(f"Not found: {source}", source=source)
        if isinstance(payload, Exception):
            raise payload
        if progress:
            progress(len(payload), len(payload))
        return payload

    def count(self, source: str) -> int:
        """Number of get() calls made for source."""
        return self.calls.count(source)

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Callable clock returning a settable aware UTC time."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


DEFAULT_PARTITIONS = [
    ("2023-Q4", "2023-10-07", "2023-12-31"),
    ("2024-Q1", "2023-12-31", "2024-04-01"),
]

DEFAULT_RECORDS = {
    "2023-Q4": [
        {"date": "2023-12-30", "killed": 3},
        {"date": "2023-10-07", "killed": 1},
        {"date": "2023-11-15", "killed": 2},
    ],
    "2024-Q1": [
        {"date": "2023-12-31", "killed": 4},
        {"date": "2024-01-15", "killed": 5},
        {"date": "2024-03-31", "killed": 6},
    ],
}


@dataclass
class FakeSite:
    """A data host publishing one dataset's manifest and partitions."""

    transport: FakeTransport
    dataset: str = "casualties"
    base: str = "https://data.example.org/data/casualties"
    partitions: list[tuple[str, str, str]] = field(default_factory=list)

    @property
    def manifest_url(self) -> str:
        return f"{self.base}/manifest.json"

    def partition_url(self, partition_id: str) -> str:
        return f"{self.base}/{partition_id}.json"

    def publish_manifest(
        self,
        partitions: list[tuple[str, str, str]] | None = None,
        generated_at: str = "2024-04-01T06:00:00+00:00",
        **extra: Any,
    ) -> None:
        if partitions is not None:
            self.partitions = partitions
        doc = {
            "dataset": self.dataset,
            "generatedAt": generated_at,
            "partitions": [
                {
                    "id": pid,
                    "start": start,
                    "end": end,
                    "file": f"{pid}.json",
                    "recordCount": 0,
                    **extra.get(pid, {}),
                }
                for pid, start, end in self.partitions
            ],
        }
        self.transport.payloads[self.manifest_url] = json.dumps(doc).encode()

    def publish_partition(self, partition_id: str, records: list[dict[str, Any]]) -> None:
        self.transport.payloads[self.partition_url(partition_id)] = json.dumps(
            records
        ).encode()


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Reusable fake transport with no payloads."""
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    """Clock pinned to 2024-04-01 12:00 UTC."""
    return FakeClock(datetime(2024, 4, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def site(fake_transport: FakeTransport) -> FakeSite:
    """Site serving 'casualties' as two contiguous quarterly partitions.

    2023-Q4 covers [2023-10-07, 2023-12-31) and 2024-Q1 covers
    [2023-12-31, 2024-04-01); each holds three records.
    """
    fake = FakeSite(fake_transport)
    fake.publish_manifest(DEFAULT_PARTITIONS)
    for partition_id, records in DEFAULT_RECORDS.items():
        fake.publish_partition(partition_id, records)
    return fake


@pytest.fixture
def access(site: FakeSite, clock: FakeClock) -> DataAccess:
    """DataAccess over the fake site with an in-memory cache."""
    from timeslab.adapters.cache import MemoryCacheStore
    from timeslab.core.models import DatasetSource
    from timeslab.core.services import DataAccess

    return DataAccess.create(
        [DatasetSource(name=site.dataset, manifest=site.manifest_url)],
        site.transport,
        MemoryCacheStore(),
        clock=clock,
    )


def write_local_site(
    directory: Path,
    dataset: str = "casualties",
    generated_at: datetime | None = None,
) -> Path:
    """Write the default partitions and a manifest under directory.

    Returns:
        Path of the manifest file.
    """
    directory.mkdir(parents=True, exist_ok=True)
    for partition_id, records in DEFAULT_RECORDS.items():
        (directory / f"{partition_id}.json").write_text(json.dumps(records))
    manifest = {
        "dataset": dataset,
        "generatedAt": (generated_at or datetime.now(UTC)).isoformat(),
        "partitions": [
            {"id": pid, "start": start, "end": end, "file": f"{pid}.json", "recordCount": 3}
            for pid, start, end in DEFAULT_PARTITIONS
        ],
    }
    manifest_path = directory / "manifest.json"
    manifest_path.write_text(json.dumps(manifest))
    return manifest_path


@pytest.fixture
def cli_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project directory with one catalog serving 'casualties' from local files.

    The working directory is changed to the project root.
    """
    manifest_path = write_local_site(tmp_path / "site" / "data" / "casualties")
    catalogs_dir = tmp_path / ".timeslab" / "catalogs"
    catalogs_dir.mkdir(parents=True)
    (catalogs_dir / "default.py").write_text(
        "from timeslab import DatasetSource\n"
        "\n"
        "datasets = [\n"
        f"    DatasetSource(name='casualties', manifest='{manifest_path}',\n"
        "                  description='Daily casualty counts'),\n"
        "]\n"
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def local_site() -> Callable[..., Path]:
    """Writer for a local dataset directory; see write_local_site()."""
    return write_local_site
