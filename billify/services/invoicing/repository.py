from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import case, delete, false, func, not_, null, select, update
from sqlalchemy.orm import Session, selectinload

from billify.core.config import settings
from billify.core.errors import DuplicateInvoiceNumber, FieldViolation, NotFound, ValidationFailure
from billify.models.business import Customer, Product
from billify.models.invoice import Invoice
from billify.models.invoice_item import InvoiceItem
from billify.services.invoicing.common import reading, transaction

logger = logging.getLogger("billify.invoices")

UNIQUENESS_POLICIES = ("business_number", "customer_date")


def settle_paid_date(invoice: Invoice) -> None:
    """Keep paid_date set exactly when is_paid is true."""
    if not invoice.is_paid:
        invoice.paid_date = None
    elif invoice.paid_date is None:
        invoice.paid_date = datetime.now(timezone.utc)


def check_references(
    db: Session,
    business_id: UUID,
    *,
    customer_id: UUID | None = None,
    items: Sequence[InvoiceItem] = (),
) -> None:
    """Customer and products must exist and belong to the issuing business."""
    out: list[FieldViolation] = []
    if customer_id is not None:
        owner = db.execute(select(Customer.business_id).where(Customer.id == customer_id)).scalar_one_or_none()
        if owner != business_id:
            out.append(FieldViolation("customer_id", "is not a customer of this business"))
    wanted = {item.product_id for item in items if item.product_id is not None}
    if wanted:
        known = set(
            db.execute(
                select(Product.id).where(Product.business_id == business_id, Product.id.in_(wanted))
            ).scalars()
        )
        for i, item in enumerate(items):
            if item.product_id is not None and item.product_id not in known:
                out.append(FieldViolation(f"items[{i}].product_id", "is not a product of this business"))
    if out:
        raise ValidationFailure(out)


def invoice_business_id(db: Session, invoice_id: UUID) -> UUID:
    business_id = db.execute(select(Invoice.business_id).where(Invoice.id == invoice_id)).scalar_one_or_none()
    if business_id is None:
        raise NotFound("Invoice")
    return business_id


def attach_items(db: Session, invoice_id: UUID, items: Sequence[InvoiceItem]) -> None:
    for line_no, item in enumerate(items, start=1):
        if item.product_id is None:
            raise ValidationFailure([FieldViolation(f"items[{line_no - 1}].product_id", "is required")])
        item.invoice_id = invoice_id
        item.line_no = line_no
        db.add(item)
    db.flush()


class InvoiceRepository:
    def __init__(self, db: Session, uniqueness: str | None = None):
        self.db = db
        self.uniqueness = (uniqueness or settings.invoice_uniqueness).strip().lower()
        if self.uniqueness not in UNIQUENESS_POLICIES:
            raise ValueError(f"Unknown invoice uniqueness policy: {self.uniqueness}")

    def _reject_same_customer_day(self, invoice: Invoice) -> None:
        q = select(Invoice.id).where(
            Invoice.customer_id == invoice.customer_id,
            Invoice.invoice_date == invoice.invoice_date,
        )
        if self.db.execute(q.limit(1)).first() is not None:
            raise DuplicateInvoiceNumber("invoice already exists for this customer on this date")

    def create(self, invoice: Invoice, items: Sequence[InvoiceItem] | None = None) -> Invoice:
        """
        Insert the header and, when given, its items in one transaction.
        A clash on (business_id, invoice_number) raises DuplicateInvoiceNumber and leaves nothing behind.
        """
        settle_paid_date(invoice)
        with transaction(self.db, conflict=DuplicateInvoiceNumber):
            check_references(self.db, invoice.business_id, customer_id=invoice.customer_id, items=items or ())
            if self.uniqueness == "customer_date":
                self._reject_same_customer_day(invoice)
            self.db.add(invoice)
            self.db.flush()
            if items:
                attach_items(self.db, invoice.id, items)
        with reading(self.db):
            self.db.refresh(invoice)
        logger.info(
            "invoice_created id=%s business=%s number=%s items=%s",
            invoice.id,
            invoice.business_id,
            invoice.invoice_number,
            len(items or []),
        )
        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice:
        with reading(self.db):
            row = self.db.execute(
                select(Invoice).where(Invoice.id == invoice_id).options(selectinload(Invoice.items))
            ).scalars().one_or_none()
        if row is None:
            raise NotFound("Invoice")
        return row

    def get_by_business_id(self, business_id: UUID) -> list[Invoice]:
        q = select(Invoice).where(Invoice.business_id == business_id).options(selectinload(Invoice.items))
        with reading(self.db):
            return list(self.db.execute(q).scalars().all())

    def update(self, invoice: Invoice) -> None:
        settle_paid_date(invoice)
        stmt = (
            update(Invoice)
            .where(Invoice.id == invoice.id)
            .values(
                customer_id=invoice.customer_id,
                total_amount=invoice.total_amount,
                invoice_date=invoice.invoice_date,
                due_date=invoice.due_date,
                is_paid=invoice.is_paid,
                paid_date=invoice.paid_date,
            )
            .execution_options(synchronize_session=False)
        )
        with transaction(self.db):
            business_id = invoice_business_id(self.db, invoice.id)
            check_references(self.db, business_id, customer_id=invoice.customer_id)
            self.db.execute(stmt)

    def update_status(self, invoice_id: UUID) -> None:
        """Flip is_paid in a single statement; paid_date follows the pre-update flag."""
        stmt = (
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(
                is_paid=not_(Invoice.is_paid),
                paid_date=case((Invoice.is_paid == false(), func.now()), else_=null()),
            )
            .execution_options(synchronize_session=False)
        )
        with transaction(self.db):
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                raise NotFound("Invoice")
        logger.info("invoice_status_toggled id=%s", invoice_id)

    def delete(self, invoice_id: UUID) -> None:
        # Items go with the header through ON DELETE CASCADE.
        stmt = delete(Invoice).where(Invoice.id == invoice_id).execution_options(synchronize_session=False)
        with transaction(self.db):
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                raise NotFound("Invoice")
        logger.info("invoice_deleted id=%s", invoice_id)
