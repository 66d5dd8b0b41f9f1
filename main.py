import sys
import logging
from pathlib import Path
from typing import Any, List, Optional
from dataclasses import dataclass

from config.settings import Settings
from src.api.search_service import SearchService
from src.tablesearch.exceptions import SourceUnavailable
from src.tablesearch.matching import describe_search
from src.tablesearch.models import SearchResult, TableMetadata
from src.tablesearch.source import PostgresTableSource, connect


LOG_DIR = Path(__file__).parent / "logs"
LOG_FILE = LOG_DIR / "table_search.log"


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = False,
    log_to_console: bool = True
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
        log_to_file: Write logs to logs/table_search.log (default: False)
        log_to_console: Write logs to console/stderr (default: True)

    Returns:
        Root logger instance
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # stderr keeps stdout free for search reports
    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Suppress noisy third-party logs
    for lib in ['psycopg2', 'urllib3']:
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root_logger


logger = logging.getLogger(__name__)


@dataclass
class ConnectionResult:
    """Result of source connection attempt"""
    success: bool
    source_conn: Optional[Any] = None
    error: Optional[str] = None


def get_source_connection(settings: Settings) -> ConnectionResult:
    """
    Create a read-only source database connection from settings.

    Returns:
        ConnectionResult with source_conn or error
    """
    logger.info(f"Connecting to source database: {settings.SOURCE_HOST}:{settings.SOURCE_PORT}/{settings.SOURCE_DATABASE}")

    try:
        source_conn = connect(settings)
        logger.info(f"Connected to source database: {settings.SOURCE_DATABASE}")
        return ConnectionResult(success=True, source_conn=source_conn)

    except SourceUnavailable as e:
        logger.error(f"Source database connection failed: {e.message}")
        return ConnectionResult(success=False, error=e.message)


def get_search_service(settings: Settings, source_conn) -> SearchService:
    """Wire a SearchService against a PostgreSQL source connection."""
    return SearchService(settings=settings, source=PostgresTableSource(source_conn))


def format_search_report(
    result: SearchResult,
    metadata: Optional[TableMetadata] = None,
    max_samples: int = 3,
    max_display_length: int = 50,
    max_records: int = 10
) -> str:
    """
    Render a search result as a plain-text report.

    Args:
        result: Completed search
        metadata: Table metadata, used for column type details
        max_samples: Sample matches shown per column
        max_display_length: Values longer than this are truncated
        max_records: Unique records listed in the summary
    """
    lines: List[str] = [
        "=" * 60,
        "SEARCH RESULTS",
        "=" * 60,
        f"  Table: {result.table_id}",
        f"  Search: {describe_search(result.patterns, result.mode)}",
        f"  Pages Processed: {result.pages_processed:,} of {result.total_pages:,}",
    ]

    groups = result.column_groups()
    lines.append(f"  Columns with Matches: {len(groups)}")
    lines.append(f"  Total Matches: {result.match_count:,}")
    lines.append(f"  Search Time: {result.elapsed_ms:,} ms")

    for warning in result.warnings:
        lines.append(f"  Warning: {warning}")

    if not groups:
        lines.append("")
        lines.append("No matches found in any column.")
        lines.append("- Try using wildcards: %search_term%")
        lines.append("- Consider using regular expressions for complex patterns (REGEX: prefix)")
        return "\n".join(lines)

    lines.append("")
    lines.append("COLUMN RESULTS:")
    lines.append("-" * 40)

    for column_name, matches in groups.items():
        lines.append(f"Column: {column_name}")

        column = metadata.get_column(column_name) if metadata else None
        if column:
            nullability = "NULL" if column.is_nullable else "NOT NULL"
            lines.append(f"  Type: {column.data_type}({column.length_display()}) {nullability}")

        lines.append(f"  Matches: {len(matches):,}")
        for match in matches[:max_samples]:
            sample = f"    - '{match.display_value(max_display_length)}'"
            if match.key_values:
                sample += " | Keys: " + ", ".join(f"{k}={v}" for k, v in match.key_values.items())
            lines.append(sample)

        if len(matches) > max_samples:
            lines.append(f"    ... and {len(matches) - max_samples:,} more matches")
        lines.append("")

    records = result.unique_records()
    lines.append("UNIQUE RECORDS SUMMARY:")
    lines.append("-" * 40)

    for record_matches in list(records.values())[:max_records]:
        first = record_matches[0]
        if first.key_values:
            lines.append("  Record: " + ", ".join(f"{k}={v}" for k, v in first.key_values.items()))
            found_in = list(dict.fromkeys(m.column_name for m in record_matches))
            lines.append(f"    Found in: {', '.join(found_in)}")
        else:
            lines.append("  Record: (No primary key available)")

    if len(records) > max_records:
        lines.append(f"  ... and {len(records) - max_records:,} more unique records")

    lines.append(f"  Total Unique Records: {len(records):,}")
    return "\n".join(lines)
