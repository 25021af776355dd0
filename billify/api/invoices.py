from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from billify.core.auth import SessionUser, get_current_user
from billify.core.errors import NotFound
from billify.db.session import get_db
from billify.models.invoice import Invoice
from billify.models.invoice_item import InvoiceItem
from billify.schemas.invoice import (
    InvoiceCreate,
    InvoiceItemCreate,
    InvoiceRead,
    InvoiceUpdate,
    NextInvoiceNumber,
)
from billify.services.invoice_pdf import InvoiceRenderer
from billify.services.invoicing import (
    InvoiceItemRepository,
    InvoiceRepository,
    assemble_invoice,
    ensure_valid,
    next_invoice_number,
)
from billify.services.invoicing.directory import get_business, get_owned_business

router = APIRouter(prefix="/invoices", tags=["invoices"])
invoice_logger = logging.getLogger("billify.invoices")


def _to_read(row: Invoice) -> InvoiceRead:
    data = InvoiceRead.model_validate(row)
    data.pdf_url = f"/invoices/{row.id}/pdf"
    return data


def _owned_invoice(db: Session, invoice_id: UUID, current: SessionUser) -> Invoice:
    row = InvoiceRepository(db).get_by_id(invoice_id)
    if get_business(db, row.business_id).user_id != current.uuid:
        raise NotFound("Invoice")
    return row


def _build_invoice_items(payload_items: list[InvoiceItemCreate]) -> list[InvoiceItem]:
    return [
        InvoiceItem(product_id=raw.product_id, quantity=int(raw.quantity), unit_price=raw.unit_price)
        for raw in payload_items or []
    ]


@router.get("/next-number", response_model=NextInvoiceNumber)
def get_next_invoice_number(
    business_id: UUID = Query(...),
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> NextInvoiceNumber:
    get_owned_business(db, business_id, current.uuid)
    return NextInvoiceNumber(next_invoice_number=next_invoice_number(db, business_id))


@router.get("", response_model=list[InvoiceRead])
def list_invoices(
    business_id: UUID = Query(...),
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> list[InvoiceRead]:
    get_owned_business(db, business_id, current.uuid)
    rows = InvoiceRepository(db).get_by_business_id(business_id)
    return [_to_read(r) for r in rows]


@router.post("", response_model=InvoiceRead, status_code=201)
def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> InvoiceRead:
    ensure_valid(payload, require_items=True)
    get_owned_business(db, payload.business_id, current.uuid)
    row = Invoice(
        invoice_number=payload.invoice_number,
        business_id=payload.business_id,
        customer_id=payload.customer_id,
        total_amount=payload.total_amount,
        invoice_date=payload.invoice_date,
        due_date=payload.due_date,
        is_paid=payload.is_paid,
        paid_date=payload.paid_date,
    )
    repo = InvoiceRepository(db)
    repo.create(row, _build_invoice_items(payload.items))
    invoice_logger.info("invoice_create_done id=%s actor=%s", row.id, current.user_id)
    return _to_read(repo.get_by_id(row.id))


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> InvoiceRead:
    return _to_read(_owned_invoice(db, invoice_id, current))


@router.put("/{invoice_id}", status_code=204)
def update_invoice(
    invoice_id: UUID,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> Response:
    ensure_valid(payload)
    _owned_invoice(db, invoice_id, current)
    InvoiceRepository(db).update(
        Invoice(
            id=invoice_id,
            customer_id=payload.customer_id,
            total_amount=payload.total_amount,
            invoice_date=payload.invoice_date,
            due_date=payload.due_date,
            is_paid=payload.is_paid,
            paid_date=payload.paid_date,
        )
    )
    InvoiceItemRepository(db).replace_all(invoice_id, _build_invoice_items(payload.items))
    invoice_logger.info("invoice_update_done id=%s actor=%s", invoice_id, current.user_id)
    return Response(status_code=204)


@router.patch("/{invoice_id}/status", status_code=204)
def toggle_invoice_status(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> Response:
    _owned_invoice(db, invoice_id, current)
    InvoiceRepository(db).update_status(invoice_id)
    invoice_logger.info("invoice_status_done id=%s actor=%s", invoice_id, current.user_id)
    return Response(status_code=204)


@router.delete("/{invoice_id}", status_code=204)
def delete_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> Response:
    _owned_invoice(db, invoice_id, current)
    InvoiceRepository(db).delete(invoice_id)
    invoice_logger.info("invoice_delete_done id=%s actor=%s", invoice_id, current.user_id)
    return Response(status_code=204)


@router.get("/{invoice_id}/pdf")
def invoice_pdf(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> Response:
    _owned_invoice(db, invoice_id, current)
    view = assemble_invoice(db, invoice_id)
    content = InvoiceRenderer().render(view)
    headers = {"Content-Disposition": f'inline; filename="invoice-{view.invoice.invoice_number}.pdf"'}
    return Response(content=content, media_type="application/pdf", headers=headers)
