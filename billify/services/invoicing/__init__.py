from billify.services.invoicing.assembly import AssembledInvoice, assemble_invoice
from billify.services.invoicing.items import InvoiceItemRepository
from billify.services.invoicing.numbering import next_invoice_number
from billify.services.invoicing.repository import InvoiceRepository
from billify.services.invoicing.validation import ensure_valid, validate_invoice_payload

__all__ = [
    "AssembledInvoice",
    "InvoiceItemRepository",
    "InvoiceRepository",
    "assemble_invoice",
    "ensure_valid",
    "next_invoice_number",
    "validate_invoice_payload",
]
