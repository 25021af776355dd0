from __future__ import annotations

import unittest
import uuid
from datetime import date, datetime
from decimal import Decimal

import factories  # noqa: F401 - points settings at sqlite before billify is imported

from billify.core.auth import Credential, create_session_token, parse_session_token
from billify.core.errors import ValidationFailure
from billify.schemas.invoice import InvoiceCreate, InvoiceItemCreate, InvoiceUpdate
from billify.services.invoicing import ensure_valid, validate_invoice_payload


def _payload(**overrides) -> InvoiceCreate:
    values = dict(
        invoice_number=1,
        business_id=uuid.uuid4(),
        customer_id=uuid.uuid4(),
        total_amount=Decimal("236"),
        invoice_date=date(2026, 3, 1),
        due_date=date(2026, 3, 31),
        items=[InvoiceItemCreate(product_id=uuid.uuid4(), quantity=2, unit_price=Decimal("100"))],
    )
    values.update(overrides)
    return InvoiceCreate(**values)


class ValidationTests(unittest.TestCase):
    def test_clean_payload_has_no_violations(self):
        self.assertEqual(validate_invoice_payload(_payload(), require_items=True), [])

    def test_collects_every_violation(self):
        payload = _payload(
            invoice_number=0,
            due_date=date(2026, 2, 1),
            items=[
                InvoiceItemCreate(product_id=None, quantity=0, unit_price=Decimal("-1")),
            ],
        )
        fields = [v.field for v in validate_invoice_payload(payload)]
        self.assertEqual(
            fields,
            ["invoice_number", "due_date", "items[0].product_id", "items[0].quantity", "items[0].unit_price"],
        )

    def test_create_needs_items(self):
        with self.assertRaises(ValidationFailure) as ctx:
            ensure_valid(_payload(items=[]), require_items=True)
        self.assertEqual([v.field for v in ctx.exception.violations], ["items"])

    def test_update_may_carry_no_items(self):
        payload = InvoiceUpdate(
            customer_id=uuid.uuid4(),
            total_amount=Decimal("1"),
            invoice_date=date(2026, 3, 1),
            due_date=date(2026, 3, 1),
        )
        ensure_valid(payload)

    def test_paid_date_without_paid_flag(self):
        payload = _payload(is_paid=False, paid_date=datetime(2026, 3, 5, 10, 0))
        self.assertEqual([v.field for v in validate_invoice_payload(payload)], ["paid_date"])


class CredentialTests(unittest.TestCase):
    def test_set_and_verify(self):
        cred = Credential()
        cred.set("s3cret-pass")
        self.assertTrue(cred.verify("s3cret-pass"))
        self.assertFalse(cred.verify("wrong"))
        stored_hash, stored_salt = cred.columns()
        self.assertNotIn("s3cret-pass", stored_hash)
        self.assertTrue(Credential(stored_hash, stored_salt).verify("s3cret-pass"))

    def test_empty_password_rejected(self):
        with self.assertRaises(ValueError):
            Credential().set("   ")

    def test_unset_credential_never_verifies(self):
        self.assertFalse(Credential().verify("anything"))


class SessionTokenTests(unittest.TestCase):
    def test_roundtrip(self):
        uid = str(uuid.uuid4())
        user = parse_session_token(create_session_token(user_id=uid, email="a@example.com"))
        self.assertIsNotNone(user)
        assert user is not None
        self.assertEqual(user.user_id, uid)
        self.assertEqual(str(user.uuid), uid)

    def test_tampered_token_rejected(self):
        token = create_session_token(user_id=str(uuid.uuid4()), email="a@example.com")
        payload, sig = token.split(".", 1)
        self.assertIsNone(parse_session_token(payload + "." + ("0" * len(sig))))
        self.assertIsNone(parse_session_token(None))
        self.assertIsNone(parse_session_token("garbage"))


if __name__ == "__main__":
    unittest.main()
