"""Merging of partition batches into one trimmed record sequence."""

from __future__ import annotations

import logging
from operator import itemgetter
from typing import TYPE_CHECKING

from timeslab.core.parsing import record_timestamp


if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date, datetime

    from timeslab.core.models import Record, RecordBatch


logger = logging.getLogger(__name__)


def merge(
    batches: Iterable[RecordBatch],
    start: date,
    end: date,
    *,
    date_field: str = "date",
) -> list[Record]:
    """Concatenate batches chronologically and keep records inside ``[start, end)``.

    Batches may be given in any order (e.g. fetch completion order); they
    are put in partition order first. Records inside one partition need
    not be sorted: the output is stable-sorted by record timestamp, so
    records sharing a timestamp keep their partition order.

    Records whose date field is missing or unparseable cannot be placed
    on the timeline and are left out.

    Args:
        batches: Fetched partition batches.
        start: First day to keep (inclusive).
        end: Day after the last day to keep (exclusive).
        date_field: Record field holding the date or timestamp.

    Returns:
        Records ordered by non-decreasing timestamp.
    """
    ordered = sorted(batches, key=lambda b: (b.partition.start, b.partition.id))

    kept: list[tuple[datetime, Record]] = []
    undated = 0
    for batch in ordered:
        for record in batch.records:
            timestamp = record_timestamp(record, date_field)
            if timestamp is None:
                undated += 1
                continue
            if start <= timestamp.date() < end:
                kept.append((timestamp, record))

    if undated:
        logger.debug("Dropped %d records without a usable '%s'", undated, date_field)

    kept.sort(key=itemgetter(0))
    return [record for _, record in kept]
