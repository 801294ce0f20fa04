from pydantic import BaseModel, Field, field_validator
from typing import Optional


class Size(BaseModel):
    id: str
    name: str
    price_modifier: float = 0.0  # signed, added to base price


class Extra(BaseModel):
    id: str
    name: str
    price: float = Field(0.0, ge=0)


class MenuCategoryIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    display_order: int = 0

class MenuCategoryOut(MenuCategoryIn):
    id: str


class MenuItemIn(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    price: float = Field(ge=0)
    image: str = ""
    category_id: str
    category_name: str
    is_available: bool = True
    is_popular: bool = False
    sizes: Optional[list[Size]] = None
    extras: Optional[list[Extra]] = None

    @field_validator("sizes")
    @classmethod
    def _sizes_not_empty(cls, v):
        # first size is the customer's default selection
        if v is not None and len(v) == 0:
            raise ValueError("sizes must be omitted or contain at least one size")
        return v

    @field_validator("extras")
    @classmethod
    def _extras_unique(cls, v):
        if v is not None and len({e.id for e in v}) != len(v):
            raise ValueError("extra ids must be unique")
        return v


class MenuItemPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    is_available: Optional[bool] = None
    is_popular: Optional[bool] = None
    sizes: Optional[list[Size]] = None
    extras: Optional[list[Extra]] = None

    @field_validator("sizes")
    @classmethod
    def _sizes_not_empty(cls, v):
        if v is not None and len(v) == 0:
            raise ValueError("sizes must be omitted or contain at least one size")
        return v

    @field_validator("name", "description", "price", "image", "category_id", "category_name",
                     "is_available", "is_popular")
    @classmethod
    def _not_null(cls, v):
        # omit a field to leave it unchanged; only sizes and extras may be cleared
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class MenuItemOut(MenuItemIn):
    id: str

    @property
    def default_size(self) -> Optional[Size]:
        return self.sizes[0] if self.sizes else None


class MenuSection(BaseModel):
    category: str
    items: list[MenuItemOut]
