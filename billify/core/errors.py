"""
Failure categories raised by the invoicing core.

Each category carries the HTTP status it maps to and a client-safe detail.
Internal causes stay on ``__cause__`` and are only logged.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FieldViolation:
    field: str
    message: str


class InvoicingError(Exception):
    status_code = 500
    detail = "An internal error occurred."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.detail)


class NotFound(InvoicingError):
    status_code = 404
    detail = "Resource not found"

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        self.detail = f"{resource} not found"
        super().__init__(self.detail)


class DuplicateInvoiceNumber(InvoicingError):
    status_code = 409
    detail = "Invoice already exists; fetch the next invoice number and retry."


class ValidationFailure(InvoicingError):
    status_code = 400
    detail = "Validation failed"

    def __init__(self, violations: list[FieldViolation]):
        self.violations = list(violations)
        super().__init__("; ".join(f"{v.field}: {v.message}" for v in self.violations) or self.detail)


class MissingProduct(InvoicingError):
    """An item references a product absent from the business catalog."""

    status_code = 500
    detail = "Invoice references an unknown product."

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"product {product_id} not in catalog")


class DataAccessFailure(InvoicingError):
    status_code = 500
    detail = "An internal error occurred. Please try again later."
