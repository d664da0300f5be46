"""Resolution of date ranges to the partitions that cover them."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import TYPE_CHECKING

from timeslab.core.exceptions import GapError


if TYPE_CHECKING:
    from datetime import date

    from timeslab.core.models import Manifest, Partition


@dataclass(frozen=True, slots=True)
class Resolution:
    """Partitions selected for a range, plus the range they actually cover.

    Attributes:
        dataset: Dataset the manifest belongs to.
        start: Requested start (inclusive).
        end: Requested end (exclusive).
        partitions: Selected partitions in chronological order.
        coverage: Requested range clipped to the manifest, None if nothing overlaps.
    """

    dataset: str
    start: date
    end: date
    partitions: tuple[Partition, ...] = ()
    coverage: tuple[date, date] | None = None

    @property
    def is_empty_range(self) -> bool:
        """True when the request itself selects no days."""
        return self.start >= self.end

    @property
    def partial_coverage(self) -> bool:
        """True when the manifest covers less than the requested range."""
        if self.is_empty_range:
            return False
        return self.coverage != (self.start, self.end)


def resolve(manifest: Manifest, start: date, end: date) -> Resolution:
    """Find the partitions of manifest that cover ``[start, end)``.

    Ranges reaching past either end of the manifest are clipped to the
    available coverage and reported through ``Resolution.coverage``.
    A boundary day shared by two partitions belongs to the later one.

    Args:
        manifest: Snapshot of the dataset's manifest.
        start: First requested day (inclusive).
        end: Day after the last requested day (exclusive).

    Returns:
        The selected partitions and clipped coverage. An empty range
        (start >= end) yields no partitions.

    Raises:
        GapError: If two consecutive partitions touching the range are
            not contiguous. The error names the missing interval.
    """
    if start >= end:
        return Resolution(manifest.dataset, start, end)

    partitions = manifest.partitions
    # First partition whose exclusive end lies after start
    first = bisect_right(partitions, start, key=lambda p: p.end)

    if 0 < first < len(partitions):
        before, after = partitions[first - 1], partitions[first]
        if before.end < after.start and start < after.start:
            raise GapError(manifest.dataset, before.end, after.start)

    selected: list[Partition] = []
    for partition in partitions[first:]:
        if partition.start >= end:
            break
        if selected and partition.start != selected[-1].end:
            raise GapError(manifest.dataset, selected[-1].end, partition.start)
        selected.append(partition)

    if not selected:
        return Resolution(manifest.dataset, start, end)

    coverage = (max(start, selected[0].start), min(end, selected[-1].end))
    return Resolution(manifest.dataset, start, end, tuple(selected), coverage)
