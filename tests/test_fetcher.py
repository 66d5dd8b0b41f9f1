"""
Tests for page fetching, pagination and write-through caching.
"""

import math
from datetime import date, datetime
from decimal import Decimal

import pytest

from src.tablesearch.builders import MetadataBuilder
from src.tablesearch.fetching import Fetcher, SourceAccessPolicy
from src.tablesearch.fetching.fetcher import _normalize_value
from src.tablesearch.models import SearchSession
from src.tablesearch.storage import PageStore


def build(settings, source, table, tiebreaker=None):
    store = PageStore(settings)
    policy = SourceAccessPolicy(max_concurrent=2, min_interval_ms=0)
    metadata = MetadataBuilder(store, source, policy, settings).initialize_cache(table, tiebreaker)
    session = SearchSession(table=table, metadata=metadata)
    return store, Fetcher(store, source, policy), session


class TestPagination:
    """Pages cover the table exactly once."""

    @pytest.mark.parametrize("row_count,page_size", [(25, 10), (30, 10), (7, 10), (1, 1)])
    def test_page_shapes(self, make_settings, make_source, table, row_count, page_size):
        settings = make_settings(PAGE_SIZE=page_size)
        source = make_source(row_count)
        _, fetcher, session = build(settings, source, table)

        total_pages = math.ceil(row_count / page_size)
        assert session.metadata.total_pages == total_pages

        pages = [fetcher.get_page(session, n) for n in range(1, total_pages + 1)]

        for page in pages[:-1]:
            assert page.row_count == page_size
        remainder = row_count - page_size * (total_pages - 1)
        assert pages[-1].row_count == remainder
        assert pages[-1].is_last_page is (remainder < page_size)

        ids = [row["id"] for page in pages for row in page.rows]
        assert ids == sorted(ids)
        assert len(set(ids)) == row_count

    def test_windows_use_offsets(self, settings, make_source, table):
        source = make_source(25)
        _, fetcher, session = build(settings, source, table)

        for n in (1, 2, 3):
            fetcher.get_page(session, n)

        assert [c["offset"] for c in source.window_calls] == [0, 10, 20]
        assert all(c["limit"] == 10 for c in source.window_calls)


class TestWriteThrough:
    """Fetched pages are stored and served from the store afterwards."""

    def test_cache_hit_skips_source(self, settings, make_source, table):
        source = make_source(25)
        store, fetcher, session = build(settings, source, table)

        first = fetcher.get_page(session, 2)
        second = fetcher.get_page(session, 2)

        assert first == second
        assert len(source.window_calls) == 1
        assert store.list_pages(session.cache_key) == [2]

    def test_fetch_page_bypasses_store(self, settings, make_source, table):
        source = make_source(25)
        _, fetcher, session = build(settings, source, table)

        fetcher.get_page(session, 1)
        fetcher.fetch_page(session, 1)

        assert len(source.window_calls) == 2


class TestDegradation:
    """Source failures never escape the fetcher."""

    def test_failed_read_returns_empty_terminal_page(self, settings, make_source, table):
        source = make_source(25)
        store, fetcher, session = build(settings, source, table)
        source.fail_offsets = {10}

        page = fetcher.get_page(session, 2)

        assert page.page_number == 2
        assert page.rows == []
        assert page.is_last_page is True
        assert store.load_page(session.cache_key, 2) is None

    def test_missing_metadata_returns_empty_page(self, settings, make_source, table):
        source = make_source(25)
        _, fetcher, _ = build(settings, source, table)

        page = fetcher.get_page(SearchSession(table=table), 1)

        assert page.rows == []
        assert source.window_calls == []


class TestOrdering:
    """Window ordering is pinned at capture time."""

    def test_keyed_table_orders_by_key(self, settings, make_source, table):
        source = make_source(25)
        _, fetcher, session = build(settings, source, table)

        fetcher.get_page(session, 1)

        assert session.metadata.order_columns == ["id"]
        assert source.window_calls[0]["order_by"] == ["id"]

    def test_keyless_table_uses_tiebreaker(self, settings, make_source, table):
        source = make_source(25, key_columns=())
        _, fetcher, session = build(settings, source, table, tiebreaker=["name"])

        fetcher.get_page(session, 1)
        fetcher.get_page(session, 2)

        assert session.metadata.key_columns == []
        assert [c["order_by"] for c in source.window_calls] == [["name"], ["name"]]

    def test_keyless_table_without_tiebreaker_orders_by_all_columns(self, settings, make_source, table):
        source = make_source(25, key_columns=())
        _, _, session = build(settings, source, table)

        assert session.metadata.order_columns == ["name", "description"]


class TestNormalizeValue:
    """Driver values are reduced to JSON scalars."""

    def test_values(self):
        assert _normalize_value(None) is None
        assert _normalize_value(5) == 5
        assert _normalize_value(Decimal("1.50")) == "1.50"
        assert _normalize_value(date(2024, 1, 2)) == "2024-01-02"
        assert _normalize_value(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
        assert _normalize_value(b"\x01\xff") == "01ff"
