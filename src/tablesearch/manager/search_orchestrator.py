import gc
import logging
import time
from typing import Callable, List, Optional, Sequence, Union

from ..builders import MetadataBuilder
from ..fetching import Fetcher
from ..matching import compile_patterns, match_page, validate_pattern
from ..models import (
    MatchRecord,
    SearchMode,
    SearchProgress,
    SearchResult,
    SearchSession,
    TableRef,
)
from ..storage import PageStore

logger = logging.getLogger(__name__)

PROGRESS_CHECKPOINTS = 10

ProgressCallback = Callable[[SearchProgress], None]

class SearchOrchestrator:
    """
        Scans every page of a table, in page order, for a pattern.

        A page that cannot be read is skipped; the scan itself never aborts.
    """
    def __init__(
        self,
        metadata_builder: MetadataBuilder,
        fetcher: Fetcher,
        page_store: PageStore,
        settings,
        reclaim: Callable[[], object] = gc.collect
    ):
        self.metadata_builder = metadata_builder
        self.fetcher = fetcher
        self.page_store = page_store
        self.reclaim_after_pages = settings.RECLAIM_AFTER_PAGES
        self.reclaim = reclaim

    def open_session(self, table: TableRef, tiebreaker: Optional[Sequence[str]] = None) -> SearchSession:
        metadata = self.metadata_builder.initialize_cache(table, tiebreaker)
        return SearchSession(table=table, metadata=metadata)

    def search(
        self,
        table: TableRef,
        pattern: Union[str, Sequence[str]],
        mode: str = SearchMode.LIKE,
        progress: Optional[ProgressCallback] = None
    ) -> SearchResult:
        session = self.open_session(table)
        return self.search_session(session, pattern, mode, progress)

    def search_session(
        self,
        session: SearchSession,
        pattern: Union[str, Sequence[str]],
        mode: str = SearchMode.LIKE,
        progress: Optional[ProgressCallback] = None
    ) -> SearchResult:
        patterns = [pattern] if isinstance(pattern, str) else list(pattern)
        result = SearchResult(table_id=session.table.table_id, patterns=patterns, mode=mode)
        start_time = time.perf_counter()

        problem = validate_pattern(patterns, mode)
        if problem:
            logger.warning(f"{problem}; search of {session.table.table_id} returns no matches")
            result.warnings.append(problem)
            return result

        metadata = session.metadata
        if metadata is None:
            logger.warning(f"No cached data available for {session.table.display_name}")
            result.warnings.append("No table metadata available")
            return result

        if not metadata.columns:
            logger.warning(f"{metadata.table_id} has no searchable columns")
            result.warnings.append("Table has no searchable columns")
            return result

        total_pages = metadata.total_pages
        result.total_pages = total_pages
        checkpoint = max(1, total_pages // PROGRESS_CHECKPOINTS)

        logger.info(
            f"Searching {metadata.table_id}: {total_pages} pages "
            f"({metadata.page_size:,} rows per page), {mode} {patterns}"
        )

        # Validated above, so this cannot raise
        predicate = compile_patterns(patterns, mode)

        matches: List[MatchRecord] = []
        for page_number in range(1, total_pages + 1):
            page = self.fetcher.get_page(session, page_number)

            if page.rows:
                matches.extend(match_page(page, metadata.columns, metadata.key_columns, predicate))
                result.pages_processed += 1

            if page_number % checkpoint == 0 or page_number == total_pages:
                update = SearchProgress(
                    page_number=page_number,
                    total_pages=total_pages,
                    matches_found=len(matches)
                )
                logger.info(
                    f"Progress: {update.percent:.1f}% ({page_number}/{total_pages} pages) "
                    f"- {len(matches):,} matches found"
                )
                if progress is not None:
                    progress(update)

            if self.reclaim_after_pages and page_number % self.reclaim_after_pages == 0:
                self.reclaim()

        result.matches = matches
        result.elapsed_ms = int((time.perf_counter() - start_time) * 1000)

        self._mark_complete(session)

        logger.info(
            f"Search of {metadata.table_id} complete in {result.elapsed_ms}ms: "
            f"{len(matches):,} matches across {result.pages_processed} pages"
        )
        return result

    def _mark_complete(self, session: SearchSession) -> None:
        metadata = session.metadata
        if metadata.is_complete:
            return

        stored = self.page_store.list_pages(session.cache_key)
        if len(stored) >= metadata.total_pages:
            metadata.is_complete = True
            self.page_store.save_metadata(session.cache_key, metadata)
