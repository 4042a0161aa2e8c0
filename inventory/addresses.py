"""Resolve product addresses to store operations.

Two address shapes are recognised::

    content://<authority>/products        every product
    content://<authority>/products/<id>   one product

The bare paths ``products`` and ``/products/<id>`` resolve the same way.
"""
import enum
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional
from urllib.parse import urlsplit

from .contract import (
    CONTENT_AUTHORITY,
    CONTENT_ITEM_TYPE,
    CONTENT_LIST_TYPE,
    CONTENT_SCHEME,
    PATH_PRODUCTS,
)
from .errors import InvalidIdentifier, MalformedAddress, NotFound, ValidationError
from .schemas import ProductOut
from .store import InventoryStore, SortSpec


class AddressKind(enum.Enum):
    PRODUCTS = "products"
    PRODUCT_ID = "product_id"


@dataclass(frozen=True)
class Target:
    kind: AddressKind
    product_id: Optional[int] = None


_ID = re.compile(r"[0-9]+")

# path segments -> kind; "#" stands for the id segment
ROUTES = (
    ((PATH_PRODUCTS,), AddressKind.PRODUCTS),
    ((PATH_PRODUCTS, "#"), AddressKind.PRODUCT_ID),
)

INSERT_FIELDS = ("name", "price", "quantity", "supplier_name", "supplier_contact")

CONTENT_TYPES = {
    AddressKind.PRODUCTS: CONTENT_LIST_TYPE,
    AddressKind.PRODUCT_ID: CONTENT_ITEM_TYPE,
}


def resolve(address: str, authority: str = CONTENT_AUTHORITY) -> Target:
    parts = urlsplit(address)
    if parts.query or parts.fragment:
        raise MalformedAddress(address, "addresses take no query or fragment")
    if parts.scheme or parts.netloc:
        if parts.scheme != CONTENT_SCHEME or parts.netloc != authority:
            raise MalformedAddress(address, "unknown scheme or authority")

    segments = parts.path.lstrip("/").split("/")
    for pattern, kind in ROUTES:
        if len(pattern) != len(segments):
            continue
        product_id = None
        for expected, actual in zip(pattern, segments):
            if expected == "#":
                if not _ID.fullmatch(actual):
                    raise InvalidIdentifier(address, actual)
                product_id = int(actual)
            elif expected != actual:
                break
        else:
            return Target(kind, product_id)
    raise MalformedAddress(address)


class ProductRouter:
    """Address-keyed facade over an InventoryStore."""

    def __init__(self, store: InventoryStore, authority: str = CONTENT_AUTHORITY):
        self.store = store
        self.authority = authority

    def resolve(self, address: str) -> Target:
        return resolve(address, self.authority)

    def item_address(self, product_id: int) -> str:
        return f"{CONTENT_SCHEME}://{self.authority}/{PATH_PRODUCTS}/{product_id}"

    def content_type(self, address: str) -> str:
        return CONTENT_TYPES[self.resolve(address).kind]

    def _expect(self, address: str, kind: AddressKind, verb: str) -> Target:
        target = self.resolve(address)
        if target.kind is not kind:
            shape = "collection" if kind is AddressKind.PRODUCTS else "single-product"
            raise MalformedAddress(address, f"{verb} requires a {shape} address")
        return target

    def list(
        self,
        address: str,
        filters: Optional[Mapping[str, Any]] = None,
        sort: SortSpec = None,
    ) -> List[ProductOut]:
        self._expect(address, AddressKind.PRODUCTS, "list")
        return self.store.list(filters, sort)

    def get(self, address: str) -> ProductOut:
        target = self._expect(address, AddressKind.PRODUCT_ID, "get")
        return self.store.get(target.product_id)

    def insert(self, address: str, values: Mapping[str, Any]) -> int:
        self._expect(address, AddressKind.PRODUCTS, "insert")
        unknown = sorted(set(values) - set(INSERT_FIELDS))
        if unknown:
            raise ValidationError(f"unknown product fields: {unknown}")
        return self.store.insert(
            name=values.get("name"),
            price=values.get("price"),
            quantity=values.get("quantity", 0),
            supplier_name=values.get("supplier_name"),
            supplier_contact=values.get("supplier_contact"),
        )

    def update(self, address: str, values: Mapping[str, Any]) -> int:
        """Rows affected: 1 when the product was updated, 0 when it does not exist."""
        target = self._expect(address, AddressKind.PRODUCT_ID, "update")
        try:
            return self.store.update(target.product_id, values)
        except NotFound:
            return 0

    def delete(self, address: str) -> int:
        target = self._expect(address, AddressKind.PRODUCT_ID, "delete")
        return self.store.delete(target.product_id)

    def decrement(self, address: str, amount: int = 1) -> int:
        target = self._expect(address, AddressKind.PRODUCT_ID, "decrement")
        return self.store.decrement_quantity(target.product_id, amount)
