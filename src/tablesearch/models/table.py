import math
from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field

from .column import ColumnDescriptor

DEFAULT_SCHEMA = "public"


def make_cache_key(environment: str, database: str, table_id: str) -> str:
    """Deterministic key addressing a table's metadata and all of its pages."""
    return f"{environment}_{database}_{table_id}".replace(" ", "_")


class TableRef(BaseModel):
    """
        Identifies one table of one database in one environment.
    """
    environment: str
    database: str
    table_name: str
    schema_name: str = DEFAULT_SCHEMA

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, environment: str, database: str, name: str) -> "TableRef":
        """Accepts 'table' or 'schema.table'."""
        if "." in name:
            schema_name, table_name = name.split(".", 1)
            return cls(environment=environment, database=database,
                       schema_name=schema_name, table_name=table_name)
        return cls(environment=environment, database=database, table_name=name)

    @property
    def table_id(self) -> str:
        if self.schema_name == DEFAULT_SCHEMA:
            return self.table_name
        return f"{self.schema_name}.{self.table_name}"

    @property
    def cache_key(self) -> str:
        return make_cache_key(self.environment, self.database, self.table_id)

    @property
    def display_name(self) -> str:
        return f"{self.environment}.{self.database}.{self.table_id}"


class TableMetadata(BaseModel):
    """
        Snapshot of a table's shape captured on first access.
    """
    environment: str
    database: str
    table_id: str
    schema_name: str = DEFAULT_SCHEMA
    columns: List[ColumnDescriptor] = Field(default_factory=list)
    key_columns: List[str] = Field(default_factory=list)
    order_columns: List[str] = Field(default_factory=list)   # pinned window ordering
    cached_at: datetime = Field(default_factory=datetime.now)
    total_rows: int = Field(default=0, ge=0)
    page_size: int = Field(gt=0)
    is_complete: bool = False

    @property
    def cache_key(self) -> str:
        return make_cache_key(self.environment, self.database, self.table_id)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_rows / self.page_size)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def fetch_columns(self) -> List[str]:
        """Searchable columns plus any key columns not already among them."""
        names = self.column_names
        return names + [k for k in self.key_columns if k not in names]

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        return next((c for c in self.columns if c.name == name), None)

    def age_hours(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now()
        return (now - self.cached_at).total_seconds() / 3600


class SearchSession(BaseModel):
    """
        A table opened for searching.
    """
    session_id: UUID = Field(default_factory=uuid4)
    table: TableRef
    metadata: Optional[TableMetadata] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def cache_key(self) -> str:
        return self.table.cache_key
