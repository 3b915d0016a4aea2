from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import utcnow
from app.models import Customer, Purchase, PurchaseItem


async def get_customer(db: AsyncSession, phone: str) -> Optional[Customer]:
    result = await db.execute(select(Customer).where(Customer.phone == phone))
    return result.scalar_one_or_none()


async def get_customers_by_phone(db: AsyncSession, phones: Iterable[str]) -> Dict[str, Customer]:
    phones = list(phones)
    if not phones:
        return {}
    result = await db.execute(select(Customer).where(Customer.phone.in_(phones)))
    return {customer.phone: customer for customer in result.scalars().all()}


async def get_or_create_customer(db: AsyncSession, phone: str) -> Customer:
    """Lazily create the customer record on first contact."""
    customer = await get_customer(db, phone)
    if not customer:
        now = utcnow()
        customer = Customer(phone=phone, created_at=now, updated_at=now)
        db.add(customer)
        await db.flush()
    return customer


async def update_customer_notes(db: AsyncSession, phone: str, notes: str) -> Customer:
    customer = await get_or_create_customer(db, phone)
    customer.notes = notes
    customer.updated_at = utcnow()
    await db.flush()
    return customer


async def update_customer_name(db: AsyncSession, phone: str, name: str) -> Customer:
    customer = await get_or_create_customer(db, phone)
    customer.name = name
    customer.updated_at = utcnow()
    await db.flush()
    return customer


async def get_purchase_history(db: AsyncSession, phone: str, limit: Optional[int] = None) -> List[Purchase]:
    """Purchases with items and products, newest first. Empty for unknown phones."""
    query = (
        select(Purchase)
        .join(Customer, Customer.id == Purchase.customer_id)
        .where(Customer.phone == phone)
        .options(selectinload(Purchase.items).selectinload(PurchaseItem.product))
        .order_by(Purchase.created_at.desc(), Purchase.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
