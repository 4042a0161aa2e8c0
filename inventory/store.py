"""Persistent product store.

Every mutation runs under a single writer lock and in its own transaction, so
at most one mutation is in flight at a time. Sales are a single conditional
``UPDATE ... WHERE quantity >= amount``; the database never sees a
read-then-write window, which also keeps separate processes sharing one
database from overselling.
"""
import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pydantic
from sqlalchemy import delete as sql_delete
from sqlalchemy import select
from sqlalchemy import update as sql_update
from sqlalchemy.orm import sessionmaker

from .contract import (
    COLUMN_ID,
    COLUMN_PRICE,
    COLUMN_QUANTITY,
    MAX_COLUMN_INT,
    MIN_COLUMN_INT,
    PRODUCT_FIELDS,
)
from .db import session_scope
from .errors import InsufficientStock, NotFound, ValidationError
from .models import Product, to_cents
from .schemas import ProductIn, ProductOut, ProductPatch

logger = logging.getLogger(__name__)

SortSpec = Union[str, Sequence[str], None]


def _validated(model, **values):
    try:
        return model(**values)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


def _out_of_range(value: int) -> bool:
    return not MIN_COLUMN_INT <= value <= MAX_COLUMN_INT


def _is_absent_id(product_id) -> bool:
    """An id the column cannot hold names no product."""
    return isinstance(product_id, int) and _out_of_range(product_id)


def _column(field: str):
    if field not in PRODUCT_FIELDS:
        raise ValidationError(f"unknown product field: {field!r}")
    if field == COLUMN_PRICE:
        return Product.price_cents
    return getattr(Product, field)


def _filter_value(field: str, value: Any):
    """Coerce a filter value (possibly a query-string) to what the column stores."""
    if field == COLUMN_PRICE:
        try:
            price = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(f"invalid price filter: {value!r}")
        if not price.is_finite() or price != price.quantize(Decimal("0.01")):
            raise ValidationError(f"invalid price filter: {value!r}")
        cents = to_cents(price)
        if _out_of_range(cents):
            raise ValidationError(f"price filter out of range: {value!r}")
        return cents
    if field in (COLUMN_ID, COLUMN_QUANTITY):
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"invalid {field} filter: {value!r}")
        if _out_of_range(number):
            raise ValidationError(f"{field} filter out of range: {value!r}")
        return number
    return value


def _ordering(sort: SortSpec):
    if sort is None:
        return []
    keys = [sort] if isinstance(sort, str) else list(sort)
    clauses = []
    for key in keys:
        descending = key.startswith("-")
        column = _column(key[1:] if descending else key)
        clauses.append(column.desc() if descending else column.asc())
    return clauses


class InventoryStore:
    """CRUD plus atomic stock decrement over the ``products`` table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._write_lock = threading.Lock()

    def list(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        sort: SortSpec = None,
    ) -> List[ProductOut]:
        stmt = select(Product)
        for field, value in (filters or {}).items():
            stmt = stmt.where(_column(field) == _filter_value(field, value))
        # id last keeps insertion order for ties and for the unsorted case
        stmt = stmt.order_by(*_ordering(sort), Product.id)
        with session_scope(self._session_factory) as s:
            rows = s.execute(stmt).scalars().all()
            return [ProductOut.model_validate(p) for p in rows]

    def get(self, product_id: int) -> ProductOut:
        if _is_absent_id(product_id):
            raise NotFound(product_id)
        with session_scope(self._session_factory) as s:
            p = s.get(Product, product_id)
            if p is None:
                raise NotFound(product_id)
            return ProductOut.model_validate(p)

    def insert(
        self,
        name: str,
        price: Decimal,
        quantity: int,
        supplier_name: str,
        supplier_contact: str,
    ) -> int:
        fields = _validated(
            ProductIn,
            name=name,
            price=price,
            quantity=quantity,
            supplier_name=supplier_name,
            supplier_contact=supplier_contact,
        )
        with self._write_lock, session_scope(self._session_factory) as s:
            p = Product(
                name=fields.name,
                price_cents=to_cents(fields.price),
                quantity=fields.quantity,
                supplier_name=fields.supplier_name,
                supplier_contact=fields.supplier_contact,
            )
            s.add(p)
            s.flush()
            product_id = p.id
        logger.info("inserted product %s (%r, quantity=%d)", product_id, fields.name, fields.quantity)
        return product_id

    def update(self, product_id: int, fields: Mapping[str, Any]) -> int:
        """
        Apply the given fields to one product and re-validate the result.
        Returns the number of rows changed (always 1; a missing id raises NotFound).
        """
        changes = _validated(ProductPatch, **fields).model_dump(exclude_unset=True)
        if _is_absent_id(product_id):
            raise NotFound(product_id)
        with self._write_lock, session_scope(self._session_factory) as s:
            p = s.get(Product, product_id)
            if p is None:
                raise NotFound(product_id)
            merged = _validated(
                ProductIn,
                **{
                    "name": p.name,
                    "price": p.price,
                    "quantity": p.quantity,
                    "supplier_name": p.supplier_name,
                    "supplier_contact": p.supplier_contact,
                    **changes,
                },
            )
            p.name = merged.name
            p.price_cents = to_cents(merged.price)
            p.quantity = merged.quantity
            p.supplier_name = merged.supplier_name
            p.supplier_contact = merged.supplier_contact
        logger.info("updated product %s fields=%s", product_id, sorted(changes))
        return 1

    def delete(self, product_id: int) -> int:
        if _is_absent_id(product_id):
            return 0
        with self._write_lock, session_scope(self._session_factory) as s:
            res = s.execute(sql_delete(Product).where(Product.id == product_id))
            deleted = res.rowcount
        if deleted:
            logger.info("deleted product %s", product_id)
        return deleted

    def decrement_quantity(self, product_id: int, amount: int = 1) -> int:
        """
        Take ``amount`` units out of stock and return the remaining quantity.
        Raises InsufficientStock instead of letting the quantity go negative.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            raise ValidationError(f"amount must be a positive integer, got {amount!r}")
        if amount > MAX_COLUMN_INT:
            raise ValidationError(f"amount out of range: {amount!r}")
        if _is_absent_id(product_id):
            raise NotFound(product_id)
        with self._write_lock, session_scope(self._session_factory) as s:
            res = s.execute(
                sql_update(Product)
                .where(Product.id == product_id, Product.quantity >= amount)
                .values(quantity=Product.quantity - amount)
                .execution_options(synchronize_session=False)
            )
            current = s.execute(
                select(Product.quantity).where(Product.id == product_id)
            ).scalar_one_or_none()
            if res.rowcount != 1:
                if current is None:
                    raise NotFound(product_id)
                logger.warning(
                    "refused sale of %d from product %s: %d in stock", amount, product_id, current
                )
                raise InsufficientStock(product_id, current, amount)
        logger.info("sold %d of product %s, %d left", amount, product_id, current)
        return current
