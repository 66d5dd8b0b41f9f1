"""
Shared fixtures: an in-memory table source and settings rooted in tmp_path.
"""

import threading
import time
from typing import Any, Dict, List, Optional, Sequence

import pytest

from config.settings import Settings
from src.tablesearch.models import ColumnDescriptor, TableRef
from src.tablesearch.source import TableSource


class FakeTableSource(TableSource):
    """In-memory source that records every call made against it."""

    def __init__(
        self,
        rows: List[Dict[str, Any]],
        columns: Sequence[ColumnDescriptor],
        key_columns: Sequence[str] = ("id",),
        read_delay: float = 0.0,
    ):
        self.rows = rows
        self._columns = list(columns)
        self._key_columns = list(key_columns)
        self.read_delay = read_delay

        self.metadata_calls = 0
        self.window_calls: List[Dict[str, Any]] = []
        self.fail_metadata = False
        self.fail_offsets = set()

        self._lock = threading.Lock()
        self._active = 0
        self.max_active = 0

    def columns(self, table: TableRef) -> List[ColumnDescriptor]:
        self._check_metadata()
        self.metadata_calls += 1
        return list(self._columns)

    def key_columns(self, table: TableRef) -> List[str]:
        self._check_metadata()
        return list(self._key_columns)

    def row_count(self, table: TableRef) -> int:
        self._check_metadata()
        return len(self.rows)

    def read_window(self, table, columns, order_by, offset, limit):
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            self.window_calls.append({"offset": offset, "limit": limit, "order_by": list(order_by)})

        try:
            if self.read_delay:
                time.sleep(self.read_delay)
            if offset in self.fail_offsets:
                raise ConnectionError(f"window at offset {offset} failed")

            ordered = sorted(self.rows, key=lambda row: tuple(str(row.get(c)) for c in order_by))
            return [{c: row.get(c) for c in columns} for row in ordered[offset:offset + limit]]
        finally:
            with self._lock:
                self._active -= 1

    def _check_metadata(self):
        if self.fail_metadata:
            raise ConnectionError("source is down")


NAME_COLUMNS = [
    ColumnDescriptor(name="name", data_type="character varying", max_length=100, is_nullable=False),
    ColumnDescriptor(name="description", data_type="text", max_length=-1),
]


def make_rows(count: int) -> List[Dict[str, Any]]:
    """Rows with zero-padded ids so string ordering equals numeric ordering."""
    rows = []
    for i in range(1, count + 1):
        rows.append({
            "id": f"{i:05d}",
            "name": "AD_Managers" if i % 5 == 0 else f"user_{i}",
            "description": None if i % 7 == 0 else f"row number {i}",
        })
    return rows


@pytest.fixture
def damage_gzip_body():
    """Overwrite the deflate stream of a gzip file, keeping header and trailer intact."""
    def _damage(path):
        raw = bytearray(path.read_bytes())
        raw[10:len(raw) - 8] = b"\xff" * (len(raw) - 18)
        path.write_bytes(bytes(raw))
    return _damage


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides: Any) -> Settings:
        values = {
            "SOURCE_DATABASE": "salesdb",
            "CACHE_DIRECTORY": str(tmp_path / "cache"),
            "PAGE_SIZE": 10,
            "QUERY_DELAY_MS": 0,
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def table() -> TableRef:
    return TableRef(environment="dev", database="salesdb", table_name="users")


@pytest.fixture
def make_source():
    def _make(row_count: int = 25, key_columns: Optional[Sequence[str]] = ("id",), **kwargs) -> FakeTableSource:
        return FakeTableSource(make_rows(row_count), NAME_COLUMNS, key_columns=key_columns, **kwargs)
    return _make
