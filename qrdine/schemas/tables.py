from pydantic import BaseModel, Field, field_validator
from typing import Optional


class TableIn(BaseModel):
    name: str = Field(min_length=1)
    seats: int = Field(2, ge=1)
    is_occupied: bool = False
    current_order_id: Optional[str] = None


class TablePatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    seats: Optional[int] = Field(None, ge=1)
    is_occupied: Optional[bool] = None
    current_order_id: Optional[str] = None  # null frees the table

    @field_validator("name", "seats", "is_occupied")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class TableOut(TableIn):
    id: str
