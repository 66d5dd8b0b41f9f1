from pydantic import BaseModel

class ColumnDescriptor(BaseModel):
    """
        A searchable column of the source table.
    """
    name: str
    data_type: str
    max_length: int = 0      # 0 = unknown, -1 = unbounded
    is_nullable: bool = True

    def length_display(self) -> str:
        if self.max_length == -1:
            return "MAX"
        if self.max_length == 0:
            return "?"
        return str(self.max_length)
