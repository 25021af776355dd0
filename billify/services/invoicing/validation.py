from __future__ import annotations

from billify.core.errors import FieldViolation, ValidationFailure
from billify.schemas.invoice import InvoiceCreate, InvoiceItemCreate, InvoiceUpdate


def _item_violations(items: list[InvoiceItemCreate]) -> list[FieldViolation]:
    out: list[FieldViolation] = []
    for i, item in enumerate(items):
        if item.product_id is None:
            out.append(FieldViolation(f"items[{i}].product_id", "is required"))
        if item.quantity < 1:
            out.append(FieldViolation(f"items[{i}].quantity", "must be at least 1"))
        if item.unit_price < 0:
            out.append(FieldViolation(f"items[{i}].unit_price", "must not be negative"))
    return out


def validate_invoice_payload(payload: InvoiceCreate | InvoiceUpdate, *, require_items: bool = False) -> list[FieldViolation]:
    """Field-level checks run before any repository call. Returns every violation found."""
    out: list[FieldViolation] = []
    number = getattr(payload, "invoice_number", None)
    if number is not None and number < 1:
        out.append(FieldViolation("invoice_number", "must be at least 1"))
    if payload.due_date < payload.invoice_date:
        out.append(FieldViolation("due_date", "must not be before invoice_date"))
    if payload.paid_date is not None and not payload.is_paid:
        out.append(FieldViolation("paid_date", "must be empty while the invoice is unpaid"))
    if require_items and not payload.items:
        out.append(FieldViolation("items", "at least one item is required"))
    out.extend(_item_violations(payload.items))
    return out


def ensure_valid(payload: InvoiceCreate | InvoiceUpdate, *, require_items: bool = False) -> None:
    violations = validate_invoice_payload(payload, require_items=require_items)
    if violations:
        raise ValidationFailure(violations)
