import sys
import os
import argparse
import logging

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config.settings import Settings
from main import setup_logging
from src.tablesearch.exceptions import ConfigInvalid
from src.tablesearch.manager import CacheValidator
from src.tablesearch.models import TableRef
from src.tablesearch.storage import PageStore

logger = logging.getLogger(__name__)


def _cache_key(settings: Settings, table: str) -> str:
    return TableRef.parse(settings.SOURCE_ENVIRONMENT, settings.SOURCE_DATABASE, table).cache_key


def show_status(store: PageStore, settings: Settings):
    tables = store.list_cached_tables()
    print("CACHE STATUS")
    print("=" * 40)
    print(f"  Directory: {store.root}")
    print(f"  Caching: {'enabled' if store.enabled else 'disabled'}")
    print(f"  Compression: {'on' if store.compress else 'off'}")
    print(f"  Expiry: {settings.CACHE_EXPIRY_HOURS}h")
    print(f"  Cached tables: {len(tables)}")
    print(f"  Total size: {store.total_size() / 1024 / 1024:.2f} MB")


def list_tables(store: PageStore):
    tables = store.list_cached_tables()
    if not tables:
        print("No cached tables found.")
        return

    for info in tables:
        state = "expired" if info.is_expired else "fresh"
        completeness = "complete" if info.is_complete else f"{info.cached_pages}/{info.total_pages} pages"
        print(
            f"{info.environment}.{info.database}.{info.table_id} | {info.total_rows:,} rows | "
            f"{completeness} | {info.byte_size / 1024:,.0f} KB | cached {info.cached_at:%Y-%m-%d %H:%M} ({state})"
        )


def validate_table(store: PageStore, cache_key: str) -> bool:
    report = CacheValidator(store).validate(cache_key)
    print(f"Cache Validation: {cache_key}")
    print(f"  Valid: {report.is_valid}")
    print(f"  Fresh: {report.is_fresh}")
    print(f"  Pages: {report.actual_pages}/{report.expected_pages} ({report.page_coverage:.1%})")
    for issue in report.issues:
        print(f"  - {issue}")
    return report.is_valid


def show_stats(store: PageStore, cache_key: str):
    stats = store.stats(cache_key)
    print(f"Cache Statistics: {cache_key}")
    print(f"  Pages: {stats.page_count}")
    print(f"  Size: {stats.byte_size / 1024:,.1f} KB")
    if stats.last_modified:
        print(f"  Last modified: {stats.last_modified:%Y-%m-%d %H:%M:%S}")


def main():
    parser = argparse.ArgumentParser(description='Inspect and maintain the table page cache')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('status', help='Show cache configuration and totals')
    subparsers.add_parser('list', help='List cached tables')

    for name, help_text in [('validate', 'Check page coverage and integrity of a table'),
                            ('stats', 'Show page count and size of a table')]:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('table', help="Table name, 'table' or 'schema.table'")

    clear = subparsers.add_parser('clear', help='Remove cached data')
    clear.add_argument('table', nargs='?', help='Table to clear (omit with --all to clear everything)')
    clear.add_argument('--all', action='store_true', help='Clear the whole cache')

    parser.add_argument('--environment', help='Environment label used in cache keys')
    args = parser.parse_args()

    overrides = {'SOURCE_ENVIRONMENT': args.environment} if args.environment else {}
    try:
        settings = Settings.from_env(**overrides)
    except ConfigInvalid as e:
        setup_logging()
        logger.error(e.message)
        sys.exit(1)

    setup_logging(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    store = PageStore(settings)

    if args.command == 'status':
        show_status(store, settings)
    elif args.command == 'list':
        list_tables(store)
    elif args.command == 'validate':
        if not validate_table(store, _cache_key(settings, args.table)):
            sys.exit(2)
    elif args.command == 'stats':
        show_stats(store, _cache_key(settings, args.table))
    elif args.command == 'clear':
        if args.table:
            ok = store.clear(_cache_key(settings, args.table))
        elif args.all:
            ok = store.clear()
        else:
            logger.error("Give a table to clear, or --all")
            sys.exit(1)
        if not ok:
            sys.exit(1)


if __name__ == '__main__':
    main()
