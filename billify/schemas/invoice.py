from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class InvoiceItemBase(BaseModel):
    # Optional here so a missing product surfaces as a 400 from the validation layer.
    product_id: UUID | None = None
    quantity: int = Field(default=1)
    unit_price: Decimal = Field(default=Decimal("0"))


class InvoiceItemCreate(InvoiceItemBase):
    pass


class InvoiceItemRead(BaseModel):
    id: UUID
    invoice_id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal

    model_config = {"from_attributes": True}


class InvoiceBase(BaseModel):
    invoice_number: int
    business_id: UUID
    customer_id: UUID
    total_amount: Decimal = Field(..., ge=0)
    invoice_date: date
    due_date: date
    is_paid: bool = False
    paid_date: datetime | None = None


class InvoiceCreate(InvoiceBase):
    items: list[InvoiceItemCreate] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    """Full replace of the mutable header fields plus the item set."""

    customer_id: UUID
    total_amount: Decimal = Field(..., ge=0)
    invoice_date: date
    due_date: date
    is_paid: bool = False
    paid_date: datetime | None = None
    items: list[InvoiceItemCreate] = Field(default_factory=list)


class InvoiceHeaderRead(InvoiceBase):
    id: UUID
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class InvoiceRead(InvoiceHeaderRead):
    items: list[InvoiceItemRead] = Field(default_factory=list)
    pdf_url: str | None = None


class NextInvoiceNumber(BaseModel):
    next_invoice_number: int
