# Overview: Error taxonomy for the sale posting path.

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    VALIDATION = "ValidationError"
    PRODUCT_NOT_FOUND = "ProductNotFound"
    VARIANT_NOT_FOUND = "VariantNotFound"
    INSUFFICIENT_STOCK = "InsufficientStock"
    TRANSACTION_CONFLICT = "TransactionConflict"
    SALE_NOT_FOUND = "SaleNotFound"


class SaleError(Exception):
    """Raised for sale operation errors."""
    kind = ErrorKind.VALIDATION
    http_status = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self), "kind": self.kind.value}
        if self.details:
            body["details"] = self.details
        if self.retryable:
            body["retryable"] = True
        return body


class SaleValidationError(SaleError):
    """Malformed request; nothing was written."""


class ProductNotFound(SaleError):
    kind = ErrorKind.PRODUCT_NOT_FOUND


class VariantNotFound(SaleError):
    kind = ErrorKind.VARIANT_NOT_FOUND


class InsufficientStock(SaleError):
    kind = ErrorKind.INSUFFICIENT_STOCK


class SaleNotFound(SaleError):
    kind = ErrorKind.SALE_NOT_FOUND
    http_status = 404


class TransactionConflict(SaleError):
    """The store could not commit (concurrent writer). Safe to resubmit."""
    kind = ErrorKind.TRANSACTION_CONFLICT
    http_status = 500
    retryable = True
