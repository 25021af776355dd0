from billify.models.business import Business, Customer, Product
from billify.models.invoice import Invoice
from billify.models.invoice_item import InvoiceItem
from billify.models.user import User

__all__ = [
    "Business",
    "Customer",
    "Invoice",
    "InvoiceItem",
    "Product",
    "User",
]
