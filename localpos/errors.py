from __future__ import annotations

from typing import Any, Optional


class PosError(ValueError):
    """Base class for every error raised by the POS core."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(PosError):
    """Raised when catalog, customer or user input is unusable."""


class RecordNotFoundError(PosError):
    def __init__(self, collection: str, key: str):
        super().__init__(f"No record '{key}' in {collection}.", {"collection": collection, "key": key})
        self.collection = collection
        self.key = key


class DuplicateKeyError(PosError):
    """Raised by insert-only writes when the key (or a unique index value) already exists."""

    def __init__(self, collection: str, key: Any):
        super().__init__(f"Duplicate key '{key}' in {collection}.", {"collection": collection, "key": key})
        self.collection = collection
        self.key = key


class UnknownCollectionError(PosError):
    pass


class CollectionScopeError(PosError):
    """Raised when a transaction touches a collection it did not declare."""


class UnknownUnitError(PosError):
    def __init__(self, product_id: str, unit_name: str):
        super().__init__(
            f"Unit '{unit_name}' is not defined for product {product_id}.",
            {"product_id": product_id, "unit_name": unit_name},
        )
        self.product_id = product_id
        self.unit_name = unit_name


class InsufficientStockError(PosError):
    def __init__(self, product_id: str, product_name: str, requested: float, available: float):
        super().__init__(
            f"Not enough stock for {product_name}: requested {requested:g}, available {available:g}.",
            {
                "product_id": product_id,
                "product_name": product_name,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available


class EmptyCartError(PosError):
    pass


class InvalidPaymentError(PosError):
    """Cash tendered is short, or a debt sale has no customer."""


class InvalidAmountError(PosError):
    pass


class InvalidBackupFormatError(PosError):
    pass


class CommitFailedError(PosError):
    """The store rejected a transactional write; nothing was persisted."""


class AuthenticationError(PosError):
    pass
