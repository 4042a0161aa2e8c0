from decimal import Decimal

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .contract import TABLE_NAME

CENTS = Decimal("0.01")


class Base(DeclarativeBase):
    pass


class Product(Base):
    __tablename__ = TABLE_NAME
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        # ids are never handed out twice, even after the newest row is deleted
        {"sqlite_autoincrement": True},
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    price_cents: Mapped[int]
    quantity: Mapped[int]
    supplier_name: Mapped[str] = mapped_column(String(255))
    supplier_contact: Mapped[str] = mapped_column(String(255))

    @property
    def price(self) -> Decimal:
        return Decimal(self.price_cents) * CENTS


def to_cents(price: Decimal) -> int:
    return int((price / CENTS).to_integral_value())
