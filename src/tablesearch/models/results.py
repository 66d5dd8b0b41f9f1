from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from .match_record import MatchRecord


class SearchMode:
    LIKE = "like"
    REGEX = "regex"


class SearchProgress(BaseModel):
    page_number: int
    total_pages: int
    matches_found: int

    @property
    def percent(self) -> float:
        return self.page_number / self.total_pages * 100 if self.total_pages else 100.0


class SearchResult(BaseModel):
    """
        Outcome of a full scan over one table.
    """
    table_id: str
    patterns: List[str] = Field(default_factory=list)
    mode: str = SearchMode.LIKE
    matches: List[MatchRecord] = Field(default_factory=list)
    elapsed_ms: int = 0
    pages_processed: int = 0
    total_pages: int = 0
    warnings: List[str] = Field(default_factory=list)

    @property
    def match_count(self) -> int:
        return len(self.matches)

    def column_groups(self) -> Dict[str, List[MatchRecord]]:
        """Matches grouped per column, columns with the most matches first."""
        groups: Dict[str, List[MatchRecord]] = {}
        for match in self.matches:
            groups.setdefault(match.column_name, []).append(match)
        return dict(sorted(groups.items(), key=lambda item: len(item[1]), reverse=True))

    def unique_records(self) -> Dict[str, List[MatchRecord]]:
        """Matches grouped by the row's key snapshot."""
        records: Dict[str, List[MatchRecord]] = {}
        for match in self.matches:
            records.setdefault(match.record_key(), []).append(match)
        return records


class StoreValidation(BaseModel):
    """
        Raw comparison of stored pages against the metadata's expectations.
    """
    cache_key: str
    metadata_present: bool = False
    is_expired: bool = False
    expected_pages: int = 0
    actual_pages: int = 0
    missing_pages: List[int] = Field(default_factory=list)
    readable_first: Optional[bool] = None   # None when no pages are stored
    readable_last: Optional[bool] = None
    issues: List[str] = Field(default_factory=list)


class ValidationReport(BaseModel):
    cache_key: str
    is_valid: bool
    is_fresh: bool
    expected_pages: int
    actual_pages: int
    missing_pages: List[int] = Field(default_factory=list)
    page_coverage: float = 0.0
    issues: List[str] = Field(default_factory=list)


class CacheStats(BaseModel):
    cache_key: str
    page_count: int = 0
    byte_size: int = 0
    last_modified: Optional[datetime] = None


class CachedTableInfo(BaseModel):
    cache_key: str
    environment: str
    database: str
    table_id: str
    cached_at: datetime
    total_rows: int
    total_pages: int
    cached_pages: int
    byte_size: int
    is_expired: bool

    @property
    def is_complete(self) -> bool:
        return self.cached_pages >= self.total_pages


class SessionStatistics(BaseModel):
    session_id: str
    table_id: str
    created_at: datetime
    is_initialized: bool
    cached_at: Optional[datetime] = None
    total_rows: int = 0
    column_count: int = 0
    key_column_count: int = 0
    page_size: int = 0
    total_pages: int = 0
    cached_pages: int = 0
    cache_size: int = 0

    @property
    def is_complete(self) -> bool:
        return self.is_initialized and self.cached_pages >= self.total_pages

    @property
    def completion_percentage(self) -> float:
        return self.cached_pages / self.total_pages * 100 if self.total_pages else 0.0

    @property
    def cache_size_display(self) -> str:
        if self.cache_size < 1024 * 1024:
            return f"{self.cache_size // 1024:,} KB"
        return f"{self.cache_size / 1024 / 1024:,.1f} MB"
