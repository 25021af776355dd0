from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from billify.models.business import Business, Customer, Product
from billify.models.invoice import Invoice
from billify.models.invoice_item import InvoiceItem
from billify.services.invoicing.directory import get_business, get_customer, list_products
from billify.services.invoicing.items import InvoiceItemRepository
from billify.services.invoicing.repository import InvoiceRepository


@dataclass
class AssembledInvoice:
    """Everything the renderer needs, already loaded."""

    invoice: Invoice
    business: Business
    customer: Customer
    items: list[InvoiceItem] = field(default_factory=list)
    # Whole catalog of the issuing business, not only the referenced products.
    products: list[Product] = field(default_factory=list)


def assemble_invoice(db: Session, invoice_id: UUID) -> AssembledInvoice:
    """
    Load header, items, customer, business and product catalog for one invoice.
    Any failing lookup propagates; a partial view is never returned.
    """
    invoice = InvoiceRepository(db).get_by_id(invoice_id)
    items = InvoiceItemRepository(db).get_by_invoice_id(invoice.id)
    customer = get_customer(db, invoice.customer_id)
    business = get_business(db, invoice.business_id)
    products = list_products(db, invoice.business_id)
    return AssembledInvoice(
        invoice=invoice,
        business=business,
        customer=customer,
        items=items,
        products=products,
    )
