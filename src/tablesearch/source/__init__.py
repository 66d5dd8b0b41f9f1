from .base import TableSource
from .postgres_source import PostgresTableSource, connect

__all__ = ["TableSource", "PostgresTableSource", "connect"]
