"""Read accessors for the business, customer and product directories."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from billify.core.errors import NotFound
from billify.models.business import Business, Customer, Product
from billify.services.invoicing.common import reading


def get_business(db: Session, business_id: UUID) -> Business:
    with reading(db):
        row = db.get(Business, business_id)
    if row is None:
        raise NotFound("Business")
    return row


def get_owned_business(db: Session, business_id: UUID, user_id: UUID) -> Business:
    """A business of another user is reported as missing, never as forbidden."""
    business = get_business(db, business_id)
    if business.user_id != user_id:
        raise NotFound("Business")
    return business


def list_businesses(db: Session, user_id: UUID) -> list[Business]:
    q = select(Business).where(Business.user_id == user_id).order_by(Business.name)
    with reading(db):
        return list(db.execute(q).scalars().all())


def get_customer(db: Session, customer_id: UUID) -> Customer:
    with reading(db):
        row = db.get(Customer, customer_id)
    if row is None:
        raise NotFound("Customer")
    return row


def list_customers(db: Session, business_id: UUID) -> list[Customer]:
    q = select(Customer).where(Customer.business_id == business_id).order_by(Customer.name)
    with reading(db):
        return list(db.execute(q).scalars().all())


def list_products(db: Session, business_id: UUID) -> list[Product]:
    q = select(Product).where(Product.business_id == business_id).order_by(Product.name, Product.id)
    with reading(db):
        return list(db.execute(q).scalars().all())
