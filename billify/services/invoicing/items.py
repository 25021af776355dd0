from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from billify.core.errors import FieldViolation, NotFound, ValidationFailure
from billify.models.invoice_item import InvoiceItem
from billify.services.invoicing.common import reading, transaction
from billify.services.invoicing.repository import attach_items, check_references, invoice_business_id

logger = logging.getLogger("billify.invoices")


class InvoiceItemRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, item: InvoiceItem) -> InvoiceItem:
        if item.product_id is None:
            raise ValidationFailure([FieldViolation("product_id", "is required")])
        with transaction(self.db):
            check_references(self.db, invoice_business_id(self.db, item.invoice_id), items=[item])
            if not item.line_no:
                last = self.db.execute(
                    select(func.coalesce(func.max(InvoiceItem.line_no), 0)).where(
                        InvoiceItem.invoice_id == item.invoice_id
                    )
                ).scalar_one()
                item.line_no = int(last) + 1
            self.db.add(item)
        with reading(self.db):
            self.db.refresh(item)
        return item

    def get_by_id(self, item_id: UUID) -> InvoiceItem:
        with reading(self.db):
            row = self.db.get(InvoiceItem, item_id)
        if row is None:
            raise NotFound("Invoice item")
        return row

    def get_by_invoice_id(self, invoice_id: UUID) -> list[InvoiceItem]:
        q = select(InvoiceItem).where(InvoiceItem.invoice_id == invoice_id).order_by(InvoiceItem.line_no)
        with reading(self.db):
            return list(self.db.execute(q).scalars().all())

    def update(self, item: InvoiceItem) -> None:
        if item.product_id is None:
            raise ValidationFailure([FieldViolation("product_id", "is required")])
        stmt = (
            update(InvoiceItem)
            # An item never moves to another invoice.
            .where(InvoiceItem.id == item.id, InvoiceItem.invoice_id == item.invoice_id)
            .values(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            .execution_options(synchronize_session=False)
        )
        with transaction(self.db):
            check_references(self.db, invoice_business_id(self.db, item.invoice_id), items=[item])
            if self.db.execute(stmt).rowcount == 0:
                raise NotFound("Invoice item")

    def delete(self, item_id: UUID) -> None:
        stmt = delete(InvoiceItem).where(InvoiceItem.id == item_id).execution_options(synchronize_session=False)
        with transaction(self.db):
            if self.db.execute(stmt).rowcount == 0:
                raise NotFound("Invoice item")

    def replace_all(self, invoice_id: UUID, items: Sequence[InvoiceItem]) -> None:
        """
        Swap the invoice's whole item set for ``items`` in one transaction.

        An empty ``items`` leaves the current set untouched. An item without a
        product, or with a product of another business, aborts the unit and
        the previous items stay as they were.
        """
        if not items:
            return
        with transaction(self.db):
            check_references(self.db, invoice_business_id(self.db, invoice_id), items=items)
            self.db.execute(
                delete(InvoiceItem)
                .where(InvoiceItem.invoice_id == invoice_id)
                .execution_options(synchronize_session=False)
            )
            attach_items(self.db, invoice_id, items)
        logger.info("invoice_items_replaced invoice=%s items=%s", invoice_id, len(items))
