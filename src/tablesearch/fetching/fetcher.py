import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict

from ..models import Page, SearchSession
from ..source import TableSource
from ..storage import PageStore
from .access_policy import SourceAccessPolicy

logger = logging.getLogger(__name__)

JSON_SCALARS = (str, int, float, bool)

class Fetcher:
    """
        Serves pages from the page store, falling back to a throttled
        source read that is written through to the store.
    """
    def __init__(self, page_store: PageStore, source: TableSource, policy: SourceAccessPolicy):
        self.page_store = page_store
        self.source = source
        self.policy = policy

    def get_page(self, session: SearchSession, page_number: int) -> Page:
        cached = self.page_store.load_page(session.cache_key, page_number)
        if cached is not None:
            return cached

        return self.fetch_page(session, page_number)

    def fetch_page(self, session: SearchSession, page_number: int) -> Page:
        """Read a page from the source and cache it, bypassing the store lookup."""
        metadata = session.metadata
        if metadata is None:
            logger.warning(f"No metadata for {session.table.display_name}; page {page_number} left empty")
            return Page.empty(page_number)

        offset = (page_number - 1) * metadata.page_size

        try:
            with self.policy.slot():
                rows = self.source.read_window(
                    session.table,
                    metadata.fetch_columns(),
                    metadata.order_columns,
                    offset,
                    metadata.page_size
                )
        except Exception as e:
            logger.warning(f"Source read failed for {session.table.display_name} page {page_number}: {e}")
            return Page.empty(page_number)

        page = Page.from_rows(page_number, [_normalize_row(row) for row in rows], metadata.page_size)
        self.page_store.save_page(session.cache_key, page_number, page)

        logger.debug(f"Fetched page {page_number} of {metadata.table_id}: {page.row_count} rows")
        return page


def _normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce driver values to JSON scalars so cached and fresh pages match alike."""
    return {column: _normalize_value(value) for column, value in row.items()}


def _normalize_value(value: Any) -> Any:
    if value is None or isinstance(value, JSON_SCALARS):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)
