"""Decoding of manifest documents and partition payloads.

Both documents are JSON. Manifests list partitions with half-open
``[start, end)`` coverage; the producer scripts also emit an older
``date_range`` block whose ``end`` is inclusive, which is converted here.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import PurePosixPath
from typing import Any

from timeslab.core.exceptions import ManifestFormatError, PartitionFormatError
from timeslab.core.models import Manifest, Partition, Record, as_utc


def resolve_location(base: str, location: str) -> str:
    """Resolve a partition file reference against the manifest location.

    Args:
        base: URL or path of the manifest document.
        location: Partition reference from the manifest. Absolute URLs and
            absolute paths are returned unchanged.

    Returns:
        The partition URL or path.

    Example:
        >>> resolve_location("https://host/data/casualties/manifest.json", "2024-Q1.json")
        'https://host/data/casualties/2024-Q1.json'
    """
    if "://" in location or location.startswith("/"):
        return location
    if "://" in base:
        return f"{base.rsplit('/', 1)[0]}/{location}"
    return str(PurePosixPath(base).parent / location)


def parse_date(value: Any) -> date:
    """Parse a calendar day from an ISO string, date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise ValueError(f"Not a date: {value!r}")


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        return as_utc(datetime.fromisoformat(value))
    raise ValueError(f"Not a timestamp: {value!r}")


def record_timestamp(record: Record, date_field: str) -> datetime | None:
    """Return a record's timestamp as written, or None if it has none.

    The value is kept as wall-clock time (timezone dropped) so that the
    calendar day a record was filed under is the day it is trimmed by.
    """
    value = record.get(date_field)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value).replace(tzinfo=None)
        except ValueError:
            return None
    return None


def _load_json(body: bytes) -> Any:
    return json.loads(body.decode("utf-8"))


def _first(mapping: dict[str, Any], *names: str) -> Any:
    for name in names:
        if mapping.get(name) is not None:
            return mapping[name]
    return None


def _partition_from_entry(
    entry: Any, index: int, dataset: str, manifest_source: str
) -> Partition:
    if not isinstance(entry, dict):
        raise ValueError(f"partition #{index} is not an object")

    file_ref = _first(entry, "file", "url", "path")
    if not file_ref:
        raise ValueError(f"partition #{index} has no file")

    partition_id = _first(entry, "id", "quarter", "year")
    if partition_id is None:
        partition_id = PurePosixPath(str(file_ref)).stem

    start = _first(entry, "start")
    end = _first(entry, "end")
    if start is None or end is None:
        date_range = entry.get("date_range")
        if not isinstance(date_range, dict):
            raise ValueError(f"partition '{partition_id}' has no coverage interval")
        start = date_range.get("start")
        # date_range.end is the last covered day
        end = parse_date(date_range.get("end")) + timedelta(days=1)

    last_modified = _first(entry, "lastModified", "last_modified")
    record_count = _first(entry, "recordCount", "record_count", "records")

    return Partition(
        id=str(partition_id),
        dataset=str(entry.get("dataset") or dataset),
        start=parse_date(start),
        end=parse_date(end),
        location=resolve_location(manifest_source, str(file_ref)),
        record_count=int(record_count or 0),
        last_modified=parse_timestamp(last_modified) if last_modified else None,
    )


def parse_manifest(body: bytes, source: str, dataset: str | None = None) -> Manifest:
    """Decode a manifest document.

    Args:
        body: Raw JSON bytes.
        source: Where the manifest was read from; partition files are
            resolved relative to it.
        dataset: Expected dataset name, used when the document omits one.

    Returns:
        The manifest with partitions ordered by start date.

    Raises:
        ManifestFormatError: If the document is not valid JSON, lacks
            required fields, or lists overlapping partitions.
    """
    name = dataset or ""
    try:
        doc = _load_json(body)
        if not isinstance(doc, dict):
            raise ValueError("document is not an object")
        name = str(doc.get("dataset") or dataset or "")
        if not name:
            raise ValueError("document does not name its dataset")
        entries = doc.get("partitions", doc.get("files"))
        if not isinstance(entries, list):
            raise ValueError("document has no partition list")
        generated_at = _first(doc, "generatedAt", "generated_at", "last_updated")
        if generated_at is None:
            raise ValueError("document has no generation timestamp")

        partitions = sorted(
            (
                _partition_from_entry(entry, i, name, source)
                for i, entry in enumerate(entries)
            ),
            key=lambda p: (p.start, p.end),
        )
        return Manifest(
            dataset=name,
            partitions=tuple(partitions),
            generated_at=parse_timestamp(generated_at),
            source=str(doc.get("source") or ""),
        )
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        # json.JSONDecodeError is a ValueError
        raise ManifestFormatError(
            f"Malformed manifest at {source}: {e}",
            dataset=name,
            source=source,
            cause=e,
        ) from e


def parse_partition(body: bytes, partition: Partition) -> tuple[Record, ...]:
    """Decode a partition payload into its records.

    Accepts either a bare JSON array of records or an object whose
    ``data`` member is that array.

    Raises:
        PartitionFormatError: If the payload is not valid JSON or any
            record is not an object.
    """
    try:
        doc = _load_json(body)
        records = doc.get("data") if isinstance(doc, dict) else doc
        if not isinstance(records, list):
            raise ValueError("payload has no record array")
        for i, record in enumerate(records):
            if not isinstance(record, dict):
                raise ValueError(f"record #{i} is not an object")
    except (UnicodeDecodeError, ValueError) as e:
        raise PartitionFormatError(
            f"Malformed partition '{partition.id}' at {partition.location}: {e}",
            dataset=partition.dataset,
            partition_id=partition.id,
            source=partition.location,
            cause=e,
        ) from e
    return tuple(records)
