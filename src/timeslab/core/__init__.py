"""Core domain module for timeslab.

This module contains the domain models, port definitions and the pure
resolution, merging and freshness logic. Network and disk access live
behind the ports and are supplied by adapters.
"""

from timeslab.core.freshness import classify
from timeslab.core.merger import merge
from timeslab.core.models import (
    CacheEntry,
    DatasetSource,
    Freshness,
    Manifest,
    Partition,
    QueryResult,
    RangeQuery,
    RecordBatch,
)
from timeslab.core.ports import CacheStorePort, ProgressCallback, TransportPort
from timeslab.core.resolver import Resolution, resolve


__all__ = [
    "CacheEntry",
    "CacheStorePort",
    "DatasetSource",
    "Freshness",
    "Manifest",
    "Partition",
    "ProgressCallback",
    "QueryResult",
    "RangeQuery",
    "RecordBatch",
    "Resolution",
    "TransportPort",
    "classify",
    "merge",
    "resolve",
]
