from __future__ import annotations

import unittest
import uuid
from decimal import Decimal

from factories import make_session_factory, new_invoice, new_item, seed

from billify.core.errors import NotFound, ValidationFailure
from billify.models.invoice_item import InvoiceItem
from billify.services.invoicing import InvoiceItemRepository, InvoiceRepository


class ReplaceAllTests(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.s = seed(self.db)
        self.invoice = InvoiceRepository(self.db).create(
            new_invoice(self.s, 1),
            [new_item(self.s.pen, 2, "100"), new_item(self.s.ink, 5, "40")],
        )
        self.items = InvoiceItemRepository(self.db)

    def tearDown(self):
        self.db.close()

    def _snapshot(self):
        return [(i.product_id, i.quantity, i.unit_price) for i in self.items.get_by_invoice_id(self.invoice.id)]

    def test_failed_replace_keeps_previous_items(self):
        before = self._snapshot()
        self.assertEqual(len(before), 2)
        with self.assertRaises(ValidationFailure):
            self.items.replace_all(self.invoice.id, [new_item(self.s.paper, 1, "250"), new_item(None, 3, "10")])
        self.assertEqual(self._snapshot(), before)

    def test_empty_replace_is_a_no_op(self):
        before = self._snapshot()
        self.items.replace_all(self.invoice.id, [])
        self.assertEqual(self._snapshot(), before)

    def test_replace_swaps_the_whole_set_in_given_order(self):
        self.items.replace_all(
            self.invoice.id,
            [new_item(self.s.paper, 1, "250"), new_item(self.s.pen, 4, "95"), new_item(self.s.ink, 1, "40")],
        )
        self.assertEqual(
            self._snapshot(),
            [
                (self.s.paper.id, 1, Decimal("250.00")),
                (self.s.pen.id, 4, Decimal("95.00")),
                (self.s.ink.id, 1, Decimal("40.00")),
            ],
        )

    def test_replace_with_foreign_product_keeps_previous_items(self):
        other = seed(self.db, email="other@example.com")
        before = self._snapshot()
        with self.assertRaises(ValidationFailure) as ctx:
            self.items.replace_all(self.invoice.id, [new_item(self.s.paper, 1, "250"), new_item(other.paper, 1, "250")])
        self.assertEqual([v.field for v in ctx.exception.violations], ["items[1].product_id"])
        self.assertEqual(self._snapshot(), before)

    def test_replace_on_missing_invoice(self):
        with self.assertRaises(NotFound):
            self.items.replace_all(uuid.uuid4(), [new_item(self.s.pen)])

    def test_replace_does_not_touch_other_invoices(self):
        other = InvoiceRepository(self.db).create(new_invoice(self.s, 2), [new_item(self.s.paper, 7, "250")])
        self.items.replace_all(self.invoice.id, [new_item(self.s.pen, 1, "100")])
        self.assertEqual(len(self.items.get_by_invoice_id(other.id)), 1)


class SingleItemTests(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.s = seed(self.db)
        self.invoice = InvoiceRepository(self.db).create(new_invoice(self.s, 1), [new_item(self.s.pen, 2)])
        self.items = InvoiceItemRepository(self.db)

    def tearDown(self):
        self.db.close()

    def test_create_appends_after_existing_lines(self):
        added = self.items.create(
            InvoiceItem(invoice_id=self.invoice.id, product_id=self.s.ink.id, quantity=3, unit_price=Decimal("40"))
        )
        self.assertEqual(added.line_no, 2)
        self.assertEqual([i.product_id for i in self.items.get_by_invoice_id(self.invoice.id)], [self.s.pen.id, self.s.ink.id])

    def test_create_requires_product(self):
        with self.assertRaises(ValidationFailure):
            self.items.create(InvoiceItem(invoice_id=self.invoice.id, product_id=None, quantity=1, unit_price=Decimal("1")))

    def test_update_and_get(self):
        item = self.items.get_by_invoice_id(self.invoice.id)[0]
        self.items.update(
            InvoiceItem(id=item.id, invoice_id=self.invoice.id, product_id=self.s.paper.id, quantity=9, unit_price=Decimal("240"))
        )
        row = self.items.get_by_id(item.id)
        self.assertEqual(row.product_id, self.s.paper.id)
        self.assertEqual(row.quantity, 9)

    def test_create_rejects_product_of_another_business(self):
        other = seed(self.db, email="other@example.com")
        with self.assertRaises(ValidationFailure):
            self.items.create(InvoiceItem(invoice_id=self.invoice.id, product_id=other.pen.id, quantity=1, unit_price=Decimal("1")))
        self.assertEqual(len(self.items.get_by_invoice_id(self.invoice.id)), 1)

    def test_update_never_moves_item_to_another_invoice(self):
        other_invoice = InvoiceRepository(self.db).create(new_invoice(self.s, 2), [new_item(self.s.ink)])
        item_id = self.items.get_by_invoice_id(self.invoice.id)[0].id
        with self.assertRaises(NotFound):
            self.items.update(
                InvoiceItem(id=item_id, invoice_id=other_invoice.id, product_id=self.s.pen.id, quantity=5, unit_price=Decimal("1"))
            )
        row = self.items.get_by_id(item_id)
        self.assertEqual(row.invoice_id, self.invoice.id)
        self.assertEqual(row.quantity, 2)
        self.assertEqual(len(self.items.get_by_invoice_id(other_invoice.id)), 1)

    def test_missing_item(self):
        missing = uuid.uuid4()
        with self.assertRaises(NotFound):
            self.items.get_by_id(missing)
        with self.assertRaises(NotFound):
            self.items.delete(missing)
        with self.assertRaises(NotFound):
            self.items.update(InvoiceItem(id=missing, invoice_id=self.invoice.id, product_id=self.s.pen.id, quantity=1, unit_price=Decimal("1")))

    def test_delete(self):
        item = self.items.get_by_invoice_id(self.invoice.id)[0]
        self.items.delete(item.id)
        self.assertEqual(self.items.get_by_invoice_id(self.invoice.id), [])


if __name__ == "__main__":
    unittest.main()
