import logging
from typing import List, Optional, Sequence, Union

from config.settings import Settings
from ..tablesearch.builders import MetadataBuilder
from ..tablesearch.fetching import Fetcher, SourceAccessPolicy
from ..tablesearch.manager import CacheValidator, SearchOrchestrator
from ..tablesearch.manager.search_orchestrator import ProgressCallback
from ..tablesearch.models import (
    CachedTableInfo,
    CacheStats,
    SearchMode,
    SearchResult,
    SearchSession,
    SessionStatistics,
    TableMetadata,
    TableRef,
    ValidationReport,
)
from ..tablesearch.source import TableSource
from ..tablesearch.storage import PageStore

logger = logging.getLogger(__name__)

class SearchService:
    """
        Main entry point for cached table value search.
    """
    def __init__(
        self,
        settings: Settings,
        source: TableSource,
        policy: Optional[SourceAccessPolicy] = None
    ):
        self.settings = settings
        self.source = source

        # One policy per service unless the caller shares one across services
        self.policy = policy or SourceAccessPolicy.from_settings(settings)

        # Initialize components
        self.page_store = PageStore(settings)
        self.metadata_builder = MetadataBuilder(self.page_store, source, self.policy, settings)
        self.fetcher = Fetcher(self.page_store, source, self.policy)
        self.orchestrator = SearchOrchestrator(
            metadata_builder=self.metadata_builder,
            fetcher=self.fetcher,
            page_store=self.page_store,
            settings=settings
        )
        self.validator = CacheValidator(self.page_store)

    def table_ref(self, table_name: str) -> TableRef:
        """Reference a table ('table' or 'schema.table') in the configured source."""
        return TableRef.parse(self.settings.SOURCE_ENVIRONMENT, self.settings.SOURCE_DATABASE, table_name)

    def initialize_cache(
        self,
        table: TableRef,
        tiebreaker: Optional[Sequence[str]] = None
    ) -> TableMetadata:
        return self.metadata_builder.initialize_cache(table, tiebreaker)

    def open_session(
        self,
        table: TableRef,
        tiebreaker: Optional[Sequence[str]] = None
    ) -> SearchSession:
        return self.orchestrator.open_session(table, tiebreaker)

    def search(
        self,
        table: Union[TableRef, SearchSession],
        pattern: Union[str, Sequence[str]],
        mode: str = SearchMode.LIKE,
        progress: Optional[ProgressCallback] = None
    ) -> SearchResult:
        """
            Search every page of a table, reusing cached pages.
        """
        if isinstance(table, SearchSession):
            return self.orchestrator.search_session(table, pattern, mode, progress)
        return self.orchestrator.search(table, pattern, mode, progress)

    def refresh_table(
        self,
        table: TableRef,
        tiebreaker: Optional[Sequence[str]] = None
    ) -> TableMetadata:
        """Drop everything cached for table and capture fresh metadata."""
        logger.info(f"Refreshing table data for {table.display_name}...")
        self.page_store.clear(table.cache_key)
        return self.metadata_builder.capture(table, tiebreaker)

    def validate(self, cache_key: str) -> ValidationReport:
        return self.validator.validate(cache_key)

    def stats(self, cache_key: str) -> CacheStats:
        return self.page_store.stats(cache_key)

    def clear_cache(self, cache_key: Optional[str] = None) -> bool:
        return self.page_store.clear(cache_key)

    def list_cached_tables(self) -> List[CachedTableInfo]:
        return self.page_store.list_cached_tables()

    def cache_size(self) -> int:
        return self.page_store.total_size()

    def session_statistics(self, session: SearchSession) -> SessionStatistics:
        stats = SessionStatistics(
            session_id=str(session.session_id),
            table_id=session.table.table_id,
            created_at=session.created_at,
            is_initialized=session.metadata is not None
        )

        metadata = session.metadata
        if metadata is not None:
            cache_stats = self.page_store.stats(session.cache_key)
            stats.cached_at = metadata.cached_at
            stats.total_rows = metadata.total_rows
            stats.column_count = len(metadata.columns)
            stats.key_column_count = len(metadata.key_columns)
            stats.page_size = metadata.page_size
            stats.total_pages = metadata.total_pages
            stats.cached_pages = cache_stats.page_count
            stats.cache_size = cache_stats.byte_size

        return stats
