"""Customer profile consumed by the promotion scorer, recommendation engine and templates."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import ensure_utc, utcnow
from app.models import Customer, Purchase
from app.services.customer_service import get_customer, get_purchase_history

RECENT_PURCHASES_LIMIT = 10
FAVORITES_LIMIT = 5


@dataclass
class FavoriteProduct:
    product: Any
    times_ordered: int = 0
    total_quantity: int = 0

    @property
    def product_id(self) -> int:
        return self.product.id


@dataclass
class OrderLine:
    product_id: int
    product_name: Optional[str]
    product_sku: Optional[str]
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass
class OrderSummary:
    order_number: str
    date: datetime
    amount: Decimal
    status: str
    items: List[OrderLine] = field(default_factory=list)


@dataclass
class CustomerContext:
    customer: Any
    is_new_customer: bool
    total_orders: int
    total_spent: str
    favorite_products: List[FavoriteProduct] = field(default_factory=list)
    last_purchase: Optional[OrderSummary] = None
    days_since_last_purchase: Optional[int] = None

    @property
    def favorite_product_ids(self) -> List[int]:
        return [favorite.product_id for favorite in self.favorite_products]

    @property
    def top_favorite(self) -> Optional[FavoriteProduct]:
        return self.favorite_products[0] if self.favorite_products else None


def rank_favorite_products(purchases: Sequence[Any], limit: int = FAVORITES_LIMIT) -> List[FavoriteProduct]:
    """
    Count every item across `purchases` per product and rank by total quantity.

    Quantity is the primary key, not the number of orders, so one large order
    can outrank several small repeat orders. Equal quantities keep first-seen
    order (newest purchase first).
    """
    counters: dict = {}
    for purchase in purchases:
        for item in purchase.items or []:
            favorite = counters.get(item.product_id)
            if favorite is None:
                favorite = counters[item.product_id] = FavoriteProduct(product=item.product)
            favorite.times_ordered += 1
            favorite.total_quantity += item.quantity

    ranked = sorted(counters.values(), key=lambda favorite: favorite.total_quantity, reverse=True)
    return ranked[:limit]


def summarize_order(purchase: Any) -> OrderSummary:
    return OrderSummary(
        order_number=purchase.order_number,
        date=ensure_utc(purchase.created_at),
        amount=purchase.total_amount,
        status=purchase.status,
        items=[
            OrderLine(
                product_id=item.product_id,
                product_name=getattr(item.product, "name", None),
                product_sku=getattr(item.product, "sku", None),
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for item in purchase.items or []
        ],
    )


def format_amount(value: Any) -> str:
    return f"{Decimal(str(value or 0)):.2f}"


def build_customer_context(
    customer: Any,
    recent_purchases: Sequence[Any],
    *,
    total_orders: Optional[int] = None,
    total_spent: Any = None,
    now: Optional[datetime] = None,
) -> CustomerContext:
    """
    Pure part of the context builder.

    `recent_purchases` must be newest first. Totals default to what the
    recent purchases add up to when the caller has no aggregate.
    """
    now = now or utcnow()
    if total_orders is None:
        total_orders = len(recent_purchases)
    if total_spent is None:
        total_spent = sum((Decimal(str(p.total_amount)) for p in recent_purchases), Decimal("0"))

    last = recent_purchases[0] if recent_purchases else None
    days_since = None
    if last is not None:
        days_since = (now - ensure_utc(last.created_at)).days

    return CustomerContext(
        customer=customer,
        is_new_customer=total_orders == 0,
        total_orders=total_orders,
        total_spent=format_amount(total_spent),
        favorite_products=rank_favorite_products(recent_purchases),
        last_purchase=summarize_order(last) if last is not None else None,
        days_since_last_purchase=days_since,
    )


async def load_customer_context(db: AsyncSession, phone: str, now: Optional[datetime] = None) -> CustomerContext:
    """Read-only: an unknown phone yields a transient, unsaved customer."""
    customer = await get_customer(db, phone)
    if customer is None:
        return build_customer_context(Customer(phone=phone), [], now=now)

    recent = await get_purchase_history(db, phone, limit=RECENT_PURCHASES_LIMIT)
    # Totals cover every purchase, not just the recent window used for favorites.
    totals = await db.execute(
        select(func.count(Purchase.id), func.coalesce(func.sum(Purchase.total_amount), 0)).where(
            Purchase.customer_id == customer.id
        )
    )
    total_orders, total_spent = totals.one()
    return build_customer_context(
        customer,
        recent,
        total_orders=int(total_orders),
        total_spent=total_spent,
        now=now,
    )
