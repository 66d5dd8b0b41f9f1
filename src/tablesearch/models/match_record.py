from typing import Dict
from pydantic import BaseModel, Field

NULL_SENTINEL = "<NULL>"

class MatchRecord(BaseModel):
    """
        One column value that matched the search pattern.
    """
    column_name: str
    value: str
    key_values: Dict[str, str] = Field(default_factory=dict)   # key column -> stringified value
    page_number: int = 0
    row_index: int = 0      # position within the page

    def display_value(self, max_length: int = 50) -> str:
        """Value truncated for display, ending in '...' when cut."""
        if len(self.value) <= max_length:
            return self.value
        return self.value[:max_length - 3] + "..."

    def record_key(self) -> str:
        return "|".join(f"{k}={v}" for k, v in self.key_values.items())
