"""Single-table inventory store with an atomic sale operation."""

from .errors import (
    InsufficientStock,
    InvalidIdentifier,
    InventoryError,
    MalformedAddress,
    NotFound,
    ValidationError,
)
from .store import InventoryStore
from .addresses import ProductRouter

__all__ = [
    "InventoryStore",
    "ProductRouter",
    "InventoryError",
    "ValidationError",
    "NotFound",
    "InsufficientStock",
    "MalformedAddress",
    "InvalidIdentifier",
]
