from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from ..models import ColumnDescriptor, TableRef


class TableSource(ABC):
    """
        Read-only access to the database holding the searched tables.
        Implementations may raise on any call; callers degrade gracefully.
    """

    @abstractmethod
    def read_window(
        self,
        table: TableRef,
        columns: Sequence[str],
        order_by: Sequence[str],
        offset: int,
        limit: int
    ) -> List[Dict[str, Any]]:
        """Rows [offset, offset + limit) of table in order_by order."""
        pass

    @abstractmethod
    def row_count(self, table: TableRef) -> int:
        pass

    @abstractmethod
    def columns(self, table: TableRef) -> List[ColumnDescriptor]:
        """Searchable (string typed) columns in ordinal order."""
        pass

    @abstractmethod
    def key_columns(self, table: TableRef) -> List[str]:
        """Primary key columns in key order; empty when the table has none."""
        pass
