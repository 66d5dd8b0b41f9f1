import logging
import time
from datetime import datetime
from typing import List, Optional, Sequence

from ..fetching import SourceAccessPolicy
from ..models import TableMetadata, TableRef
from ..source import TableSource
from ..storage import PageStore

logger = logging.getLogger(__name__)

class MetadataBuilder:
    """Captures table metadata from the source, or reuses a valid cached copy"""
    def __init__(
        self,
        page_store: PageStore,
        source: TableSource,
        policy: SourceAccessPolicy,
        settings
    ):
        self.page_store = page_store
        self.source = source
        self.policy = policy
        self.page_size = settings.PAGE_SIZE

    def initialize_cache(
        self,
        table: TableRef,
        tiebreaker: Optional[Sequence[str]] = None
    ) -> TableMetadata:
        """
            Metadata for table. No source query is issued while cached
            metadata is within its TTL.
        """
        cache_key = table.cache_key

        cached = self.page_store.load_metadata(cache_key)
        if cached is not None:
            logger.info(f"Using cached data for {table.table_id} (cached {cached.cached_at:%Y-%m-%d %H:%M})")
            return cached

        # Stale or corrupt metadata: stored pages may no longer line up with the table
        if self.page_store.has_metadata(cache_key):
            logger.info(f"Discarding stale cache for {table.display_name}")
            self.page_store.clear(cache_key)

        return self.capture(table, tiebreaker)

    def capture(self, table: TableRef, tiebreaker: Optional[Sequence[str]] = None) -> TableMetadata:
        """Query the source for a fresh snapshot and persist it."""
        logger.info(f"Initializing cache for {table.display_name}...")
        start_time = time.time()

        metadata = TableMetadata(
            environment=table.environment,
            database=table.database,
            table_id=table.table_id,
            schema_name=table.schema_name,
            cached_at=datetime.now(),
            page_size=self.page_size
        )

        try:
            with self.policy.slot():
                columns = self.source.columns(table)
                key_columns = self.source.key_columns(table)
                total_rows = self.source.row_count(table)
        except Exception as e:
            logger.warning(f"Could not read metadata for {table.display_name}: {e}")
            return metadata

        metadata.columns = columns
        metadata.key_columns = key_columns
        metadata.total_rows = total_rows
        metadata.order_columns = self._pin_order(metadata, tiebreaker)

        if not key_columns:
            logger.warning(
                f"{table.table_id} has no primary key; paging ordered by {', '.join(metadata.order_columns) or 'nothing'}"
            )

        self.page_store.save_metadata(table.cache_key, metadata)

        duration = time.time() - start_time
        logger.info(
            f"Table metadata cached in {duration:.2f}s. Total rows: {total_rows:,}, "
            f"Columns: {len(columns)}, Pages: {metadata.total_pages}"
        )
        return metadata

    def _pin_order(self, metadata: TableMetadata, tiebreaker: Optional[Sequence[str]]) -> List[str]:
        if metadata.key_columns:
            return list(metadata.key_columns)
        if tiebreaker:
            return list(tiebreaker)
        return metadata.fetch_columns()
