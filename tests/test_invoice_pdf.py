from __future__ import annotations

import math
import re
import unittest
import uuid
from datetime import date
from decimal import Decimal

from factories import make_session_factory, new_invoice, new_item, seed
from reportlab.pdfbase.pdfmetrics import stringWidth

from billify.core.errors import MissingProduct, NotFound
from billify.models.business import Business, Customer, Product
from billify.models.invoice import Invoice
from billify.models.invoice_item import InvoiceItem
from billify.services.invoice_pdf import (
    ADDRESS_COL_W,
    ADDRESS_LINE_H,
    BODY_SIZE,
    FONT,
    InvoiceRenderer,
    address_block_height,
    fit_text,
    line_amounts,
    resolve_rows,
)
from billify.services.invoicing import AssembledInvoice, InvoiceRepository, assemble_invoice


def _page_count(pdf: bytes) -> int:
    return max(int(n) for n in re.findall(rb"/Count (\d+)", pdf))


def _view(items_count: int = 1, product_id=None) -> AssembledInvoice:
    pen = Product(id=uuid.UUID(int=1), name="Gel Pen", price=Decimal("100"), tax_rate=Decimal("18"))
    items = [
        InvoiceItem(product_id=product_id or pen.id, quantity=2, unit_price=Decimal("100"))
        for _ in range(items_count)
    ]
    return AssembledInvoice(
        invoice=Invoice(
            id=uuid.UUID(int=7),
            invoice_number=42,
            total_amount=Decimal("236.00"),
            invoice_date=date(2026, 3, 1),
            due_date=date(2026, 3, 31),
            is_paid=False,
        ),
        business=Business(
            name="Rao Stationers",
            gst_no="29ABCDE1234F1Z5",
            address="12 MG Road",
            city="Bengaluru",
            state="Karnataka",
            zip_code="560001",
            country="India",
            bank_name="State Bank",
            account_no="0012345678",
            ifsc="SBIN0000001",
            bank_branch="MG Road",
        ),
        customer=Customer(
            name="Acme Traders",
            gst_no="29AAACA1111A1Z1",
            billing_address="4th Floor, 221 Residency Road, Bengaluru 560025",
            shipping_address="Warehouse 7, Peenya Industrial Area, Bengaluru 560058",
        ),
        items=items,
        products=[pen],
    )


class LineAmountTests(unittest.TestCase):
    def test_taxable_tax_and_total(self):
        amounts = line_amounts(Decimal("100"), 2, Decimal("18"))
        self.assertEqual(amounts.taxable_value, Decimal("200"))
        self.assertEqual(amounts.tax_amount, Decimal("36"))
        self.assertEqual(amounts.line_total, Decimal("236"))

    def test_float_inputs_are_taken_at_face_value(self):
        amounts = line_amounts(19.99, 3, 12.5)
        self.assertEqual(amounts.taxable_value, Decimal("59.97"))
        self.assertEqual(amounts.line_total, Decimal("59.97") + Decimal("59.97") * Decimal("12.5") / 100)

    def test_rows_keep_item_order(self):
        a = Product(id=uuid.uuid4(), name="A", tax_rate=Decimal("0"))
        b = Product(id=uuid.uuid4(), name="B", tax_rate=Decimal("5"))
        items = [
            InvoiceItem(product_id=b.id, quantity=1, unit_price=Decimal("10")),
            InvoiceItem(product_id=a.id, quantity=1, unit_price=Decimal("10")),
            InvoiceItem(product_id=b.id, quantity=2, unit_price=Decimal("10")),
        ]
        rows = resolve_rows(items, [a, b])
        self.assertEqual([r.product.name for r in rows], ["B", "A", "B"])
        self.assertEqual([r.position for r in rows], [1, 2, 3])


class LayoutHelperTests(unittest.TestCase):
    def test_address_height_follows_text_width(self):
        text = "Warehouse 7, Peenya Industrial Area, Bengaluru 560058 " * 4
        expected = math.ceil(stringWidth(text, FONT, BODY_SIZE) / ADDRESS_COL_W) * ADDRESS_LINE_H
        self.assertEqual(address_block_height(text), expected)
        self.assertGreater(address_block_height(text), address_block_height("short"))

    def test_empty_address_takes_no_height(self):
        self.assertEqual(address_block_height(""), 0)

    def test_fit_text_truncates_to_width(self):
        fitted = fit_text("x" * 200, 30)
        self.assertTrue(fitted.endswith("..."))
        self.assertLessEqual(stringWidth(fitted, FONT, BODY_SIZE), 30)
        self.assertEqual(fit_text("Pen", 30), "Pen")


class RendererTests(unittest.TestCase):
    def test_renders_a_pdf(self):
        data = InvoiceRenderer(currency_symbol="Rs.").render(_view())
        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(_page_count(data), 1)

    def test_same_view_gives_identical_bytes(self):
        renderer = InvoiceRenderer(currency_symbol="Rs.", author="Billify")
        self.assertEqual(renderer.render(_view(3)), renderer.render(_view(3)))

    def test_different_totals_give_different_bytes(self):
        a = _view()
        b = _view()
        b.invoice.total_amount = Decimal("999.00")
        renderer = InvoiceRenderer()
        self.assertNotEqual(renderer.render(a), renderer.render(b))

    def test_missing_product_fails_without_output(self):
        with self.assertRaises(MissingProduct) as ctx:
            InvoiceRenderer().render(_view(product_id=uuid.UUID(int=99)))
        self.assertEqual(ctx.exception.product_id, uuid.UUID(int=99))

    def test_long_item_list_spills_onto_more_pages(self):
        data = InvoiceRenderer().render(_view(80))
        self.assertGreaterEqual(_page_count(data), 3)


class AssemblyTests(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.s = seed(self.db)

    def tearDown(self):
        self.db.close()

    def test_assembles_full_catalog_and_items(self):
        inv = InvoiceRepository(self.db).create(new_invoice(self.s, 5), [new_item(self.s.pen, 2, "100")])
        view = assemble_invoice(self.db, inv.id)
        self.assertEqual(view.invoice.invoice_number, 5)
        self.assertEqual(view.customer.name, "Acme Traders")
        self.assertEqual(view.business.name, "Rao Stationers")
        self.assertEqual(len(view.items), 1)
        # Unreferenced products are part of the catalog as well.
        self.assertEqual({p.name for p in view.products}, {"Gel Pen", "Ink Refill", "A4 Paper"})

        data = InvoiceRenderer().render(view)
        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(data, InvoiceRenderer().render(assemble_invoice(self.db, inv.id)))

    def test_missing_invoice(self):
        with self.assertRaises(NotFound):
            assemble_invoice(self.db, uuid.uuid4())

    def test_item_for_foreign_product_cannot_render(self):
        other = seed(self.db, email="other@example.com")
        invoice_id = InvoiceRepository(self.db).create(new_invoice(self.s, 1)).id
        # Written straight to the table; the repositories refuse such rows.
        self.db.add(
            InvoiceItem(invoice_id=invoice_id, product_id=other.pen.id, line_no=1, quantity=1, unit_price=Decimal("100"))
        )
        self.db.commit()
        with self.assertRaises(MissingProduct):
            InvoiceRenderer().render(assemble_invoice(self.db, invoice_id))


if __name__ == "__main__":
    unittest.main()
