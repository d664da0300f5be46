"""Core domain models for timeslab.

These models are pure Python dataclasses with no I/O dependencies.
They represent datasets, their partition manifests, fetched record
batches and the results handed to the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from timeslab.core.exceptions import TimeslabError


Record = dict[str, Any]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime, assuming UTC for naive values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Origin(str, Enum):
    """Where the bytes of a response came from."""

    NETWORK = "network"
    CACHE = "cache"


class Freshness(str, Enum):
    """Staleness classification derived from the age of a piece of data.

    Members are declared from least to most stale; ``rank`` exposes that
    ordering for comparisons.
    """

    FRESH = "fresh"
    RECENT = "recent"
    STALE = "stale"
    OUTDATED = "outdated"

    @property
    def rank(self) -> int:
        """Position in the fresh -> outdated ordering (0 is freshest)."""
        return list(type(self)).index(self)

    @property
    def requires_pulse(self) -> bool:
        """Whether presentation should visually flag this data as old."""
        return self in (Freshness.STALE, Freshness.OUTDATED)


@dataclass(frozen=True, slots=True)
class DatasetSource:
    """A named dataset whose partitions are listed by a remote manifest.

    Attributes:
        name: Unique identifier for the dataset (e.g. "casualties").
        manifest: URL or path of the dataset's manifest document.
        description: Optional human-readable description.
        date_field: Record field holding the record's date or timestamp.

    Example:
        >>> casualties = DatasetSource(
        ...     name="casualties",
        ...     manifest="https://data.example.org/casualties/manifest.json",
        ... )
        >>> casualties.date_field
        'date'
    """

    name: str
    manifest: str
    description: str = ""
    date_field: str = "date"

    def __post_init__(self) -> None:
        """Validate dataset fields after initialization."""
        if not self.name:
            raise ValueError("Dataset name cannot be empty")
        if not self.manifest:
            raise ValueError("Dataset manifest location cannot be empty")
        if not self.date_field:
            raise ValueError("Dataset date_field cannot be empty")


@dataclass(frozen=True, slots=True)
class Partition:
    """An immutable, contiguous slice of a dataset's timeline.

    Coverage is the half-open interval ``[start, end)`` in calendar days:
    a boundary day shared by two adjacent partitions belongs to the later one.

    Attributes:
        id: Partition identifier, unique within its dataset.
        dataset: Owning dataset name.
        start: First covered day (inclusive).
        end: Day after the last covered day (exclusive).
        location: URL or path of the partition payload.
        record_count: Approximate number of records, as reported by the manifest.
        last_modified: When the manifest says the partition was last written.
    """

    id: str
    dataset: str
    start: date
    end: date
    location: str
    record_count: int = 0
    last_modified: datetime | None = None

    def __post_init__(self) -> None:
        """Validate the coverage interval."""
        if not self.id:
            raise ValueError("Partition id cannot be empty")
        if self.start >= self.end:
            raise ValueError(
                f"Partition '{self.id}' must end after it starts "
                f"({self.start.isoformat()} >= {self.end.isoformat()})"
            )

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the partition across datasets."""
        return (self.dataset, self.id)

    def covers(self, day: date) -> bool:
        """Check whether day falls inside ``[start, end)``."""
        return self.start <= day < self.end

    def overlaps(self, start: date, end: date) -> bool:
        """Check whether this partition intersects ``[start, end)``."""
        return self.start < end and start < self.end


@dataclass(frozen=True, slots=True)
class Manifest:
    """Catalog of a dataset's partitions.

    Partitions are ordered by start date and never overlap. Gaps are
    representable here on purpose: the resolver reports them when a query
    touches one.

    Attributes:
        dataset: Dataset name.
        partitions: Partitions ordered by start date.
        generated_at: When the producing process wrote this manifest.
        source: Free-form description of the upstream data source.
    """

    dataset: str
    partitions: tuple[Partition, ...]
    generated_at: datetime
    source: str = ""

    def __post_init__(self) -> None:
        """Enforce ordering and non-overlap of partitions."""
        for previous, current in zip(self.partitions, self.partitions[1:]):
            if current.start < previous.start:
                raise ValueError(
                    f"Partitions of '{self.dataset}' are not ordered by start date"
                )
            if current.start < previous.end:
                raise ValueError(
                    f"Partitions '{previous.id}' and '{current.id}' of "
                    f"'{self.dataset}' overlap"
                )

    @property
    def start(self) -> date | None:
        """First day covered by the manifest, or None when empty."""
        return self.partitions[0].start if self.partitions else None

    @property
    def end(self) -> date | None:
        """Exclusive end of the manifest's coverage, or None when empty."""
        return self.partitions[-1].end if self.partitions else None

    @property
    def record_count(self) -> int:
        """Sum of the partitions' approximate record counts."""
        return sum(p.record_count for p in self.partitions)

    def get_partition(self, partition_id: str) -> Partition | None:
        """Look up a partition by id."""
        for partition in self.partitions:
            if partition.id == partition_id:
                return partition
        return None

    def is_newer_than(self, other: Manifest) -> bool:
        """Check whether this manifest was generated after other."""
        return as_utc(self.generated_at) > as_utc(other.generated_at)


@dataclass(frozen=True, slots=True)
class RangeQuery:
    """A request for a dataset's records inside ``[start, end)``."""

    dataset: str
    start: date
    end: date

    @property
    def is_empty(self) -> bool:
        """A range whose start is not before its end selects nothing."""
        return self.start >= self.end


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Bytes of a fetched resource with the time they were retrieved.

    Attributes:
        key: Resource identity (request URL or partition location).
        body: Raw payload bytes.
        stored_at: When the payload was retrieved from the network.
        origin: Origin tag recorded alongside the entry.
    """

    key: str
    body: bytes
    stored_at: datetime = field(default_factory=utcnow)
    origin: Origin = Origin.NETWORK


@dataclass(frozen=True, slots=True)
class RecordBatch:
    """Records parsed from one partition payload.

    Attributes:
        partition: The partition the records were read from.
        records: Records in the order the payload listed them.
        fetched_at: When the payload was retrieved from the network.
        origin: NETWORK for a live response, CACHE for an offline fallback.
        offline_since: Set when the batch was served from cache while offline.
    """

    partition: Partition
    records: tuple[Record, ...]
    fetched_at: datetime
    origin: Origin = Origin.NETWORK
    offline_since: datetime | None = None

    @property
    def is_offline(self) -> bool:
        """Whether this batch was served from cache after a network failure."""
        return self.origin is Origin.CACHE


@dataclass(frozen=True, slots=True)
class OfflineStatus:
    """Offline envelope attached to results served from cache."""

    offline: bool = False
    offline_since: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "offline": self.offline,
            "offlineSince": (
                self.offline_since.isoformat() if self.offline_since else None
            ),
        }


@dataclass(frozen=True, slots=True)
class QueryResult:
    """What the presentation layer receives for a range query.

    A result is produced even when the query fails entirely; the failure
    is then listed in ``errors`` and ``records`` is empty.

    Attributes:
        query: The range that was asked for.
        records: Merged records inside the range, ordered by timestamp.
        freshness: Staleness of the oldest batch used, None when nothing was fetched.
        partial_coverage: True when the range was clipped or a partition failed.
        coverage: The sub-range actually backed by partitions, if any.
        errors: Dataset- or partition-level failures encountered.
        offline: Offline envelope for results served from cache.
        fetched_at: Retrieval time of the oldest batch used.
    """

    query: RangeQuery
    records: tuple[Record, ...] = ()
    freshness: Freshness | None = None
    partial_coverage: bool = False
    coverage: tuple[date, date] | None = None
    errors: tuple[TimeslabError, ...] = ()
    offline: OfflineStatus = field(default_factory=OfflineStatus)
    fetched_at: datetime | None = None

    @classmethod
    def failed(cls, query: RangeQuery, error: TimeslabError) -> QueryResult:
        """Build a result for a query that could not be resolved at all."""
        return cls(query=query, partial_coverage=True, errors=(error,))

    @property
    def ok(self) -> bool:
        """True when no errors were recorded."""
        return not self.errors

    @property
    def stale_cache_served(self) -> bool:
        """Informational flag: some data came from cache after a network failure."""
        return self.offline.offline

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "dataset": self.query.dataset,
            "start": self.query.start.isoformat(),
            "end": self.query.end.isoformat(),
            "records": list(self.records),
            "freshness": self.freshness.value if self.freshness else None,
            "partialCoverage": self.partial_coverage,
            "coverage": (
                [self.coverage[0].isoformat(), self.coverage[1].isoformat()]
                if self.coverage
                else None
            ),
            "errors": [str(e) for e in self.errors],
            **self.offline.to_dict(),
            "fetchedAt": self.fetched_at.isoformat() if self.fetched_at else None,
        }
