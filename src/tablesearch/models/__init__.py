from .column import ColumnDescriptor
from .page import Page
from .table import TableRef, TableMetadata, SearchSession, make_cache_key
from .match_record import MatchRecord, NULL_SENTINEL
from .results import (
    SearchMode,
    SearchProgress,
    SearchResult,
    StoreValidation,
    ValidationReport,
    CacheStats,
    CachedTableInfo,
    SessionStatistics,
)

__all__ = [
    "ColumnDescriptor",
    "Page",
    "TableRef",
    "TableMetadata",
    "SearchSession",
    "make_cache_key",
    "MatchRecord",
    "NULL_SENTINEL",
    "SearchMode",
    "SearchProgress",
    "SearchResult",
    "StoreValidation",
    "ValidationReport",
    "CacheStats",
    "CachedTableInfo",
    "SessionStatistics",
]
