from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from billify.models.invoice import Invoice
from billify.services.invoicing.common import reading


def next_invoice_number(db: Session, business_id: UUID) -> int:
    """
    Highest invoice number of the business plus one, or 1 for a business with no invoices.

    Advisory only: nothing is reserved, a concurrent create may still take the
    number and the loser gets DuplicateInvoiceNumber from the insert.
    """
    q = select(func.coalesce(func.max(Invoice.invoice_number), 0) + 1).where(Invoice.business_id == business_id)
    with reading(db):
        return int(db.execute(q).scalar_one())
