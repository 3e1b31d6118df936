"""Custom field discovery and aggregation."""

from field_exporter.discovery.batch import BatchRunner, FetchResult
from field_exporter.discovery.enrichment import LastUsedEnricher
from field_exporter.discovery.pagination import (
    CollectionFetchError,
    CollectionResult,
    ErrorPolicy,
    collect_pages,
)
from field_exporter.discovery.reconciler import (
    AggregationInProgressError,
    FieldLibraryError,
    FieldReconciler,
    InventoryResult,
)

__all__ = [
    "AggregationInProgressError",
    "BatchRunner",
    "CollectionFetchError",
    "CollectionResult",
    "ErrorPolicy",
    "FetchResult",
    "FieldLibraryError",
    "FieldReconciler",
    "InventoryResult",
    "LastUsedEnricher",
    "collect_pages",
]
