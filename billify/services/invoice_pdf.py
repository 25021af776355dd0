"""
Invoice document rendering.

Works only on an AssembledInvoice; no database access happens here. Output is
byte-identical for identical input (reportlab invariant mode, no clock reads).
"""
from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from billify.core.config import settings
from billify.core.errors import MissingProduct
from billify.models.business import Product
from billify.models.invoice_item import InvoiceItem
from billify.services.invoicing.assembly import AssembledInvoice

logger = logging.getLogger("billify.invoices")

PAGE_W, PAGE_H = A4
MARGIN = 8 * mm
CONTENT_W = PAGE_W - (2 * MARGIN)
BOTTOM_LIMIT = MARGIN + 10 * mm

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
BODY_SIZE = 8
ADDRESS_LINE_H = 6 * mm
ADDRESS_COL_W = 95 * mm
ROW_H = 7 * mm

PRIMARY = colors.HexColor("#4e4feb")
INK = colors.black
ROW_FILL = colors.HexColor("#eeeeee")
CENTS = Decimal("0.01")

# (title, width, alignment)
TABLE_COLUMNS = (
    ("#", 10 * mm, "C"),
    ("Item", 56 * mm, "L"),
    ("Rate / Item", 24 * mm, "R"),
    ("Qty", 14 * mm, "R"),
    ("Taxable Value", 28 * mm, "R"),
    ("Tax Amount", 28 * mm, "R"),
    ("Item Total", 34 * mm, "R"),
)


def _dec(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


@dataclass(frozen=True)
class LineAmounts:
    taxable_value: Decimal
    tax_amount: Decimal
    line_total: Decimal


def line_amounts(unit_price, quantity: int, tax_rate) -> LineAmounts:
    taxable = _dec(unit_price) * int(quantity)
    tax = taxable * _dec(tax_rate) / 100
    return LineAmounts(taxable_value=taxable, tax_amount=tax, line_total=taxable + tax)


@dataclass(frozen=True)
class InvoiceRow:
    position: int
    item: InvoiceItem
    product: Product
    amounts: LineAmounts


def find_product(products: list[Product], product_id) -> Product:
    for p in products:
        if p.id == product_id:
            return p
    raise MissingProduct(product_id)


def resolve_rows(items: list[InvoiceItem], products: list[Product]) -> list[InvoiceRow]:
    """One row per item in the given order. Fails before any drawing if a product is missing."""
    rows: list[InvoiceRow] = []
    for i, item in enumerate(items, start=1):
        product = find_product(products, item.product_id)
        rows.append(
            InvoiceRow(
                position=i,
                item=item,
                product=product,
                amounts=line_amounts(item.unit_price, item.quantity, product.tax_rate),
            )
        )
    return rows


def address_block_height(text: str, width: float = ADDRESS_COL_W, leading: float = ADDRESS_LINE_H) -> float:
    return math.ceil(stringWidth(text or "", FONT, BODY_SIZE) / width) * leading


def fit_text(text: str, width: float, font: str = FONT, size: float = BODY_SIZE) -> str:
    text = text or ""
    while stringWidth(text, font, size) > width and len(text) > 3:
        text = text[:-4] + "..."
    return text


class _Cursor:
    """Tracks the vertical write position and breaks pages."""

    def __init__(self, c: canvas.Canvas):
        self.c = c
        self.y = PAGE_H - MARGIN
        self.page = 1

    def _finish_page(self) -> None:
        self.c.setFont(FONT, 7)
        self.c.setFillColor(INK)
        self.c.drawRightString(PAGE_W - MARGIN, MARGIN, f"Page {self.page}")

    def ensure(self, height: float, on_new_page=None) -> None:
        if self.y - height >= BOTTOM_LIMIT:
            return
        self._finish_page()
        self.c.showPage()
        self.page += 1
        self.y = PAGE_H - MARGIN
        if on_new_page is not None:
            on_new_page()

    def close(self) -> None:
        self._finish_page()
        self.c.showPage()


class InvoiceRenderer:
    def __init__(self, currency_symbol: str | None = None, author: str | None = None):
        self.currency_symbol = currency_symbol if currency_symbol is not None else settings.currency_symbol
        self.author = author if author is not None else settings.pdf_author

    def money(self, value) -> str:
        return f"{self.currency_symbol} {_dec(value).quantize(CENTS, rounding=ROUND_HALF_UP):,.2f}"

    def render(self, view: AssembledInvoice) -> bytes:
        rows = resolve_rows(view.items, view.products)

        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=A4, invariant=1)
        c.setTitle(f"Invoice {view.invoice.invoice_number}")
        c.setAuthor(self.author)
        cur = _Cursor(c)

        self._header(cur, view)
        self._dates(cur, view)
        self._customer(cur, view)
        self._addresses(cur, view)
        self._table(cur, rows)
        self._total(cur, view)
        self._bank_details(cur, view)
        cur.close()
        c.save()

        data = buf.getvalue()
        logger.info(
            "invoice_rendered id=%s rows=%s pages=%s bytes=%s",
            view.invoice.id,
            len(rows),
            cur.page,
            len(data),
        )
        return data

    def _lines(self, cur: _Cursor, lines: list[str], x: float, leading: float, font: str = FONT, size: float = BODY_SIZE) -> None:
        for line in lines:
            cur.ensure(leading)
            cur.c.setFont(font, size)
            cur.c.setFillColor(INK)
            cur.c.drawString(x, cur.y - leading + 1.5 * mm, line)
            cur.y -= leading

    def _header(self, cur: _Cursor, view: AssembledInvoice) -> None:
        c = cur.c
        biz = view.business
        c.setFillColor(PRIMARY)
        c.setFont(FONT_BOLD, 18)
        c.drawCentredString(PAGE_W / 2, cur.y - 8 * mm, f"Invoice #{view.invoice.invoice_number}")
        cur.y -= 20 * mm

        c.setFillColor(INK)
        c.setFont(FONT_BOLD, 16)
        c.drawString(MARGIN, cur.y - 5 * mm, biz.name or "")
        cur.y -= 7 * mm

        region = ", ".join(part for part in (biz.city, biz.state, biz.zip_code, biz.country) if part)
        details = [f"GSTIN: {biz.gst_no or '-'}"]
        for raw in ((biz.address or "").splitlines() or [""]):
            details.extend(simpleSplit(raw, FONT, BODY_SIZE, CONTENT_W) or [""])
        details.extend([region, f"Phone: {biz.company_phone or '-'}", f"Email: {biz.company_email or '-'}"])
        self._lines(cur, details, MARGIN, 5 * mm)

    def _dates(self, cur: _Cursor, view: AssembledInvoice) -> None:
        inv = view.invoice
        cur.y -= 4 * mm
        cur.ensure(6 * mm)
        c = cur.c
        c.setFont(FONT_BOLD, BODY_SIZE)
        c.setFillColor(INK)
        c.drawString(MARGIN, cur.y - 4.5 * mm, f"Invoice Date: {inv.invoice_date.strftime('%d/%m/%Y')}")
        c.drawString(MARGIN + CONTENT_W / 2, cur.y - 4.5 * mm, f"Due Date: {inv.due_date.strftime('%d/%m/%Y')}")
        cur.y -= 11 * mm

    def _customer(self, cur: _Cursor, view: AssembledInvoice) -> None:
        cust = view.customer
        cur.ensure(16 * mm)
        cur.c.setFont(FONT_BOLD, BODY_SIZE)
        cur.c.drawString(MARGIN, cur.y - 4.5 * mm, "Customer Detail:")
        cur.y -= 6 * mm
        self._lines(cur, [f"Name: {cust.name or ''}", f"GSTIN: {cust.gst_no or '-'}"], MARGIN, 5 * mm)
        cur.y -= 2 * mm

    def _addresses(self, cur: _Cursor, view: AssembledInvoice) -> None:
        """Billing and shipping side by side; the next section starts under the taller column."""
        cust = view.customer
        right_x = MARGIN + ADDRESS_COL_W + 5 * mm
        billing = simpleSplit(cust.billing_address or "", FONT, BODY_SIZE, ADDRESS_COL_W)
        shipping = simpleSplit(cust.shipping_address or "", FONT, BODY_SIZE, ADDRESS_COL_W)
        billing_h = max(address_block_height(cust.billing_address), len(billing) * ADDRESS_LINE_H)
        shipping_h = max(address_block_height(cust.shipping_address), len(shipping) * ADDRESS_LINE_H)
        block_h = max(billing_h, shipping_h)

        cur.ensure(6 * mm + block_h)
        c = cur.c
        c.setFont(FONT_BOLD, BODY_SIZE)
        c.setFillColor(INK)
        c.drawString(MARGIN, cur.y - 4.5 * mm, "Billing Address:")
        c.drawString(right_x, cur.y - 4.5 * mm, "Shipping Address:")
        cur.y -= 6 * mm

        c.setFont(FONT, BODY_SIZE)
        top = cur.y
        for i, line in enumerate(billing):
            c.drawString(MARGIN, top - (i + 1) * ADDRESS_LINE_H + 2 * mm, line)
        for i, line in enumerate(shipping):
            c.drawString(right_x, top - (i + 1) * ADDRESS_LINE_H + 2 * mm, line)
        cur.y = top - block_h - 10 * mm

    def _table_header(self, cur: _Cursor) -> None:
        c = cur.c
        c.setFillColor(PRIMARY)
        c.rect(MARGIN, cur.y - ROW_H, CONTENT_W, ROW_H, fill=1, stroke=0)
        c.setFillColor(colors.white)
        c.setFont(FONT_BOLD, BODY_SIZE)
        x = MARGIN
        for title, width, _align in TABLE_COLUMNS:
            c.drawCentredString(x + width / 2, cur.y - ROW_H + 2.5 * mm, title)
            x += width
        cur.y -= ROW_H

    def _table(self, cur: _Cursor, rows: list[InvoiceRow]) -> None:
        cur.ensure(2 * ROW_H)
        self._table_header(cur)
        c = cur.c
        for row in rows:
            cur.ensure(ROW_H, on_new_page=lambda: self._table_header(cur))
            if row.position % 2:
                c.setFillColor(ROW_FILL)
                c.rect(MARGIN, cur.y - ROW_H, CONTENT_W, ROW_H, fill=1, stroke=0)
            cells = (
                str(row.position),
                row.product.name or "",
                self.money(row.item.unit_price),
                str(row.item.quantity),
                self.money(row.amounts.taxable_value),
                self.money(row.amounts.tax_amount),
                self.money(row.amounts.line_total),
            )
            c.setFillColor(INK)
            c.setFont(FONT, BODY_SIZE)
            baseline = cur.y - ROW_H + 2.5 * mm
            x = MARGIN
            for text, (_title, width, align) in zip(cells, TABLE_COLUMNS):
                text = fit_text(text, width - 2 * mm)
                if align == "C":
                    c.drawCentredString(x + width / 2, baseline, text)
                elif align == "R":
                    c.drawRightString(x + width - 1 * mm, baseline, text)
                else:
                    c.drawString(x + 1 * mm, baseline, text)
                x += width
            cur.y -= ROW_H
        c.setStrokeColor(INK)
        c.setLineWidth(0.5)
        c.line(MARGIN, cur.y - 0.5 * mm, MARGIN + CONTENT_W, cur.y - 0.5 * mm)
        cur.y -= 2 * mm

    def _total(self, cur: _Cursor, view: AssembledInvoice) -> None:
        # Stored total, printed as is; not the sum of the rows.
        cur.ensure(ROW_H)
        c = cur.c
        c.setFont(FONT_BOLD, BODY_SIZE)
        c.setFillColor(INK)
        baseline = cur.y - ROW_H + 2.5 * mm
        c.drawRightString(MARGIN + CONTENT_W - 40 * mm, baseline, "Total Amount")
        c.drawRightString(MARGIN + CONTENT_W - 1 * mm, baseline, self.money(view.invoice.total_amount))
        cur.y -= ROW_H

    def _bank_details(self, cur: _Cursor, view: AssembledInvoice) -> None:
        biz = view.business
        cur.y -= 10 * mm
        cur.ensure(6 * mm + 4 * 5 * mm)
        cur.c.setFont(FONT_BOLD, BODY_SIZE)
        cur.c.setFillColor(INK)
        cur.c.drawString(MARGIN, cur.y - 4.5 * mm, "Bank Details:")
        cur.y -= 6 * mm
        self._lines(
            cur,
            [
                f"Bank: {biz.bank_name or '-'}",
                f"Account No: {biz.account_no or '-'}",
                f"IFSC Code: {biz.ifsc or '-'}",
                f"Branch: {biz.bank_branch or '-'}",
            ],
            MARGIN,
            5 * mm,
        )
