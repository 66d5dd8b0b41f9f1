import sys
import os
import argparse
import logging

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config.settings import Settings
from main import setup_logging, get_source_connection, get_search_service, format_search_report
from src.tablesearch.exceptions import ConfigInvalid
from src.tablesearch.matching import parse_search_input, describe_search, validate_pattern

logger = logging.getLogger(__name__)

def main():
    parser = argparse.ArgumentParser(description='Search every value of a table for a pattern')
    parser.add_argument('table', help="Table name, 'table' or 'schema.table'")
    parser.add_argument('pattern', help="LIKE pattern(s), comma-separated for AND, or 'REGEX:<expression>'")
    parser.add_argument('--regex', action='store_true', help='Treat the pattern as a regular expression')
    parser.add_argument('--schema', help='Schema of the table (default: public)')
    parser.add_argument('--refresh', action='store_true', help='Discard cached data and capture the table again')
    parser.add_argument('--tiebreaker', help='Comma-separated ordering columns for tables without a primary key')
    parser.add_argument('--max-samples', type=int, help='Sample matches shown per column')
    parser.add_argument('--environment', help='Environment label used in cache keys')
    parser.add_argument('--log-file', action='store_true', help='Also write logs to logs/table_search.log')
    args = parser.parse_args()

    overrides = {}
    if args.environment:
        overrides['SOURCE_ENVIRONMENT'] = args.environment

    try:
        settings = Settings.from_env(**overrides)
    except ConfigInvalid as e:
        setup_logging()
        logger.error(e.message)
        sys.exit(1)

    setup_logging(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), log_to_file=args.log_file)

    patterns, mode = parse_search_input(args.pattern, use_regex=args.regex)
    problem = validate_pattern(patterns, mode)
    if problem:
        logger.error(problem)
        sys.exit(1)

    logger.info(f"Search configuration: {describe_search(patterns, mode)}")

    connection = get_source_connection(settings)
    if not connection.success:
        sys.exit(1)

    table_name = f"{args.schema}.{args.table}" if args.schema else args.table
    tiebreaker = [c.strip() for c in args.tiebreaker.split(',') if c.strip()] if args.tiebreaker else None
    max_samples = args.max_samples or settings.DEFAULT_MAX_SAMPLES

    try:
        service = get_search_service(settings, connection.source_conn)
        table = service.table_ref(table_name)

        if args.refresh:
            service.refresh_table(table, tiebreaker)

        session = service.open_session(table, tiebreaker)
        result = service.search(session, patterns, mode)

        print(format_search_report(
            result,
            metadata=session.metadata,
            max_samples=max_samples,
            max_display_length=settings.MAX_DISPLAY_LENGTH
        ))

        stats = service.session_statistics(session)
        logger.info(
            f"Cache: {stats.cached_pages}/{stats.total_pages} pages "
            f"({stats.completion_percentage:.1f}%), {stats.cache_size_display}"
        )

    except Exception as e:
        logger.error(f"Search failed: {e}", exc_info=True)
        sys.exit(1)

    finally:
        connection.source_conn.close()
        logger.info("Connection closed")


if __name__ == '__main__':
    main()
