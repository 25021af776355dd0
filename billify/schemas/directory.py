from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class BusinessBase(BaseModel):
    name: str = Field(..., min_length=1)
    gst_no: str = ""
    company_email: str = ""
    company_phone: str = ""
    address: str = ""
    city: str = ""
    zip_code: str = ""
    state: str = ""
    country: str = ""
    bank_name: str = ""
    account_no: str = ""
    ifsc: str = ""
    bank_branch: str = ""


class BusinessCreate(BusinessBase):
    pass


class BusinessRead(BusinessBase):
    id: UUID
    user_id: UUID

    model_config = {"from_attributes": True}


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1)
    gst_no: str = ""
    email: str = ""
    phone: str = ""
    billing_address: str = ""
    shipping_address: str = ""


class CustomerCreate(CustomerBase):
    pass


class CustomerRead(CustomerBase):
    id: UUID
    business_id: UUID

    model_config = {"from_attributes": True}


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    unit: str = "unit"
    hsn_code: str = ""


class ProductCreate(ProductBase):
    pass


class ProductRead(ProductBase):
    id: UUID
    business_id: UUID

    model_config = {"from_attributes": True}
