from typing import Any, Dict, List
from pydantic import BaseModel, Field

class Page(BaseModel):
    """
        One fixed-size window of a table's rows, in source order.
    """
    page_number: int = Field(ge=1)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    is_last_page: bool = False

    @classmethod
    def from_rows(cls, page_number: int, rows: List[Dict[str, Any]], page_size: int) -> "Page":
        return cls(
            page_number=page_number,
            rows=rows,
            is_last_page=len(rows) < page_size
        )

    @classmethod
    def empty(cls, page_number: int) -> "Page":
        """Terminal page returned when the source could not be read."""
        return cls(page_number=page_number, rows=[], is_last_page=True)

    @property
    def row_count(self) -> int:
        return len(self.rows)
