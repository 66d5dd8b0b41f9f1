import logging

from ..models import ValidationReport
from ..storage import PageStore

logger = logging.getLogger(__name__)

class CacheValidator:
    """
        Judges whether a table's cache can serve a full search.

        Validity depends only on metadata presence, page coverage and the
        readability of the boundary pages. Age is reported through is_fresh.
    """
    def __init__(self, page_store: PageStore):
        self.page_store = page_store

    def validate(self, cache_key: str) -> ValidationReport:
        logger.info(f"Validating cache for {cache_key}...")
        raw = self.page_store.validate(cache_key)

        readable = raw.readable_first is not False and raw.readable_last is not False
        is_valid = raw.metadata_present and not raw.missing_pages and readable

        if raw.expected_pages:
            coverage = raw.actual_pages / raw.expected_pages
        else:
            coverage = 1.0 if raw.metadata_present else 0.0

        issues = list(raw.issues)
        if is_valid:
            issues.append("Page integrity check passed")

        report = ValidationReport(
            cache_key=cache_key,
            is_valid=is_valid,
            is_fresh=raw.metadata_present and not raw.is_expired,
            expected_pages=raw.expected_pages,
            actual_pages=raw.actual_pages,
            missing_pages=raw.missing_pages,
            page_coverage=coverage,
            issues=issues
        )

        if not report.is_valid:
            logger.warning(f"Cache for {cache_key} is INVALID: {'; '.join(raw.issues)}")
        return report
