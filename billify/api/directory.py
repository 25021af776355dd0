"""Businesses, customers and products: the minimal surface invoicing needs."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from billify.core.auth import SessionUser, get_current_user
from billify.core.errors import NotFound
from billify.db.session import get_db
from billify.models.business import Business, Customer, Product
from billify.schemas.directory import (
    BusinessCreate,
    BusinessRead,
    CustomerCreate,
    CustomerRead,
    ProductCreate,
    ProductRead,
)
from billify.services.invoicing.common import reading, transaction
from billify.services.invoicing.directory import (
    get_customer,
    get_owned_business,
    list_businesses,
    list_customers,
    list_products,
)

router = APIRouter(prefix="/businesses", tags=["businesses"])


def _save(db: Session, row):
    with transaction(db):
        db.add(row)
    with reading(db):
        db.refresh(row)
    return row


@router.get("", response_model=list[BusinessRead])
def my_businesses(db: Session = Depends(get_db), current: SessionUser = Depends(get_current_user)) -> list[BusinessRead]:
    return [BusinessRead.model_validate(b) for b in list_businesses(db, current.uuid)]


@router.post("", response_model=BusinessRead, status_code=201)
def create_business(
    payload: BusinessCreate,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> BusinessRead:
    data = payload.model_dump()
    data["name"] = data["name"].strip()
    business = _save(db, Business(user_id=current.uuid, **data))
    return BusinessRead.model_validate(business)


@router.get("/{business_id}", response_model=BusinessRead)
def read_business(
    business_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> BusinessRead:
    return BusinessRead.model_validate(get_owned_business(db, business_id, current.uuid))


@router.get("/{business_id}/customers", response_model=list[CustomerRead])
def read_customers(
    business_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> list[CustomerRead]:
    get_owned_business(db, business_id, current.uuid)
    return [CustomerRead.model_validate(c) for c in list_customers(db, business_id)]


@router.post("/{business_id}/customers", response_model=CustomerRead, status_code=201)
def create_customer(
    business_id: UUID,
    payload: CustomerCreate,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> CustomerRead:
    get_owned_business(db, business_id, current.uuid)
    customer = _save(db, Customer(business_id=business_id, **payload.model_dump()))
    return CustomerRead.model_validate(customer)


@router.get("/{business_id}/customers/{customer_id}", response_model=CustomerRead)
def read_customer(
    business_id: UUID,
    customer_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> CustomerRead:
    get_owned_business(db, business_id, current.uuid)
    customer = get_customer(db, customer_id)
    if customer.business_id != business_id:
        raise NotFound("Customer")
    return CustomerRead.model_validate(customer)


@router.get("/{business_id}/products", response_model=list[ProductRead])
def read_products(
    business_id: UUID,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> list[ProductRead]:
    get_owned_business(db, business_id, current.uuid)
    return [ProductRead.model_validate(p) for p in list_products(db, business_id)]


@router.post("/{business_id}/products", response_model=ProductRead, status_code=201)
def create_product(
    business_id: UUID,
    payload: ProductCreate,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> ProductRead:
    get_owned_business(db, business_id, current.uuid)
    product = _save(db, Product(business_id=business_id, **payload.model_dump()))
    return ProductRead.model_validate(product)
