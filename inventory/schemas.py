from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .contract import MAX_COLUMN_INT

# price is stored as integer cents in the same column type as quantity
MAX_PRICE = Decimal(MAX_COLUMN_INT).scaleb(-2)


def _price_from_float(value):
    # floats go through their repr so 9.99 stays 9.99 rather than its binary expansion
    if isinstance(value, float):
        return Decimal(repr(value))
    return value


class ProductIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0, le=MAX_PRICE, decimal_places=2)
    quantity: int = Field(ge=0, le=MAX_COLUMN_INT, default=0)
    supplier_name: str = Field(min_length=1)
    supplier_contact: str = Field(min_length=1)

    @field_validator("price", mode="before")
    @classmethod
    def price_from_float(cls, value):
        return _price_from_float(value)

    @field_validator("name", "supplier_name", "supplier_contact")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class ProductPatch(BaseModel):
    """Partial update; only the fields that were sent are applied."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    price: Optional[Decimal] = None
    quantity: Optional[int] = None
    supplier_name: Optional[str] = None
    supplier_contact: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def price_from_float(cls, value):
        return _price_from_float(value)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    price: Decimal
    quantity: int
    supplier_name: str
    supplier_contact: str

    @computed_field
    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


class SaleIn(BaseModel):
    amount: int = Field(ge=1, le=MAX_COLUMN_INT, default=1)


class SaleOut(BaseModel):
    id: int
    quantity: int
