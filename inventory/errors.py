"""Caller-visible failures raised by the store and the address router."""

from typing import Any, Dict, List, Optional


class InventoryError(Exception):
    """Base exception for all inventory errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(InventoryError):
    """Product fields or operation arguments are malformed."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        errors = [
            {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
            for e in exc.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        return cls(f"invalid product fields: {summary}", errors)


class NotFound(InventoryError):
    def __init__(self, product_id: int):
        super().__init__("product not found", {"id": product_id})
        self.product_id = product_id


class InsufficientStock(InventoryError):
    """A decrement would drive the quantity below zero."""

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            "insufficient stock",
            {"id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class AddressError(InventoryError):
    pass


class MalformedAddress(AddressError):
    def __init__(self, address: str, reason: str = "unrecognised address"):
        super().__init__(reason, {"address": address})
        self.address = address


class InvalidIdentifier(AddressError):
    def __init__(self, address: str, identifier: str):
        super().__init__(
            "product id must be a non-negative integer",
            {"address": address, "id": identifier},
        )
        self.address = address
        self.identifier = identifier
