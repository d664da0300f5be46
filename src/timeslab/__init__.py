"""timeslab - range queries over time-partitioned datasets.

This library answers "give me the records of dataset X between two dates"
by resolving the range against the dataset's partition manifest, fetching
only the partitions it needs (with in-flight coalescing and a network-first
cache), merging and trimming the records, and labelling the result with
its freshness and offline state.

Example:
    >>> from datetime import date
    >>> from timeslab import DataAccess, DatasetSource
    >>> casualties = DatasetSource(
    ...     name="casualties",
    ...     manifest="https://data.example.org/casualties/manifest.json",
    ... )
    >>> access = DataAccess.from_directory([casualties])
    >>> result = await access.query_range(
    ...     "casualties", date(2024, 1, 1), date(2024, 2, 1)
    ... )
"""

from timeslab.adapters.cache import FileCacheStore, MemoryCacheStore
from timeslab.adapters.transport import (
    FilesystemTransport,
    HttpTransport,
    RouterTransport,
    S3Transport,
    create_router,
)
from timeslab.config import ProjectLayout, find_project_root
from timeslab.core.coordinator import CacheCoordinator, CoordinatedResponse, RequestCategory
from timeslab.core.exceptions import (
    CacheCorruptError,
    CacheError,
    CatalogLoadError,
    ConfigurationError,
    DatasetNotFoundError,
    GapError,
    ManifestFetchError,
    ManifestFormatError,
    OfflineUnavailableError,
    PartitionFetchError,
    PartitionFormatError,
    TimeslabError,
    TransportAccessError,
    TransportError,
    TransportNotFoundError,
    TransportTimeoutError,
)
from timeslab.core.freshness import classify
from timeslab.core.manifest_store import ManifestStore
from timeslab.core.merger import merge
from timeslab.core.models import (
    CacheEntry,
    DatasetSource,
    Freshness,
    Manifest,
    OfflineStatus,
    Origin,
    Partition,
    QueryResult,
    RangeQuery,
    RecordBatch,
)
from timeslab.core.ports import (
    CacheStorePort,
    NullProgressReporter,
    ProgressCallback,
    ProgressReporter,
    TransportPort,
)
from timeslab.core.resolver import Resolution, resolve
from timeslab.core.scheduler import ReconcileReport, ReconciliationScheduler, RefreshStatus
from timeslab.core.services import DataAccess, Subscription
from timeslab.discovery import CatalogConfig, discover_catalogs, load_catalog
from timeslab.progress import RichProgressReporter


__version__ = "0.1.0"

__all__ = [
    "CacheCoordinator",
    "CacheCorruptError",
    "CacheEntry",
    "CacheError",
    "CacheStorePort",
    "CatalogConfig",
    "CatalogLoadError",
    "ConfigurationError",
    "CoordinatedResponse",
    "DataAccess",
    "DatasetNotFoundError",
    "DatasetSource",
    "FileCacheStore",
    "FilesystemTransport",
    "Freshness",
    "GapError",
    "HttpTransport",
    "Manifest",
    "ManifestFetchError",
    "ManifestFormatError",
    "ManifestStore",
    "MemoryCacheStore",
    "NullProgressReporter",
    "OfflineStatus",
    "OfflineUnavailableError",
    "Origin",
    "Partition",
    "PartitionFetchError",
    "PartitionFormatError",
    "ProgressCallback",
    "ProgressReporter",
    "ProjectLayout",
    "QueryResult",
    "RangeQuery",
    "ReconcileReport",
    "ReconciliationScheduler",
    "RecordBatch",
    "RefreshStatus",
    "RequestCategory",
    "Resolution",
    "RichProgressReporter",
    "RouterTransport",
    "S3Transport",
    "Subscription",
    "TimeslabError",
    "TransportAccessError",
    "TransportError",
    "TransportNotFoundError",
    "TransportPort",
    "TransportTimeoutError",
    "__version__",
    "classify",
    "create_router",
    "discover_catalogs",
    "find_project_root",
    "load_catalog",
    "merge",
    "resolve",
]
