from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import Product, ProductRelation
from app.services.customer_context import CustomerContext

MAX_RECOMMENDATIONS = 5
RELATION_LIMIT = 5
POPULAR_LIMIT = 3
DEFAULT_REORDER_AFTER_DAYS = 14

POPULAR_REASON = "Escolha popular entre nossos clientes"


@dataclass
class Recommendation:
    product: Any
    reason: str
    type: str  # complement, related, upgrade, popular, reorder


PopularityStrategy = Callable[[AsyncSession, int], Awaitable[List[Product]]]


async def popular_by_stock(db: AsyncSession, limit: int = POPULAR_LIMIT) -> List[Product]:
    """Stock level stands in for popularity until sales velocity is tracked."""
    result = await db.execute(
        select(Product)
        .where(Product.is_active.is_(True))
        .order_by(Product.stock.desc(), Product.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_relations_from(db: AsyncSession, product_ids: Sequence[int], limit: int = RELATION_LIMIT) -> List[ProductRelation]:
    if not product_ids:
        return []
    result = await db.execute(
        select(ProductRelation)
        .where(ProductRelation.product_from_id.in_(list(product_ids)))
        .options(selectinload(ProductRelation.product_to))
        .order_by(ProductRelation.strength.desc(), ProductRelation.id)
        .limit(limit)
    )
    return list(result.scalars().all())


def recommend_products(
    context: CustomerContext,
    relations: Sequence[Any],
    popular_products: Sequence[Any],
    *,
    reorder_after_days: int = DEFAULT_REORDER_AFTER_DAYS,
) -> List[Recommendation]:
    """
    Assemble recommendations from pre-fetched relations and popular products.

    Relation targets that are already favorites are skipped. The reorder
    nudge goes to the front after everything else is collected, and only
    then is the list cut to MAX_RECOMMENDATIONS.
    """
    recommendations: List[Recommendation] = []
    favorites = {favorite.product_id: favorite for favorite in context.favorite_products}

    if favorites:
        for relation in relations:
            if relation.product_to_id in favorites:
                continue
            source = favorites.get(relation.product_from_id)
            source_name = source.product.name if source else None
            recommendations.append(
                Recommendation(
                    product=relation.product_to,
                    reason=f"Combina com {source_name}",
                    type=relation.relation_type,
                )
            )

    if context.is_new_customer:
        for product in popular_products:
            recommendations.append(Recommendation(product=product, reason=POPULAR_REASON, type="popular"))

    days = context.days_since_last_purchase
    if days is not None and days > reorder_after_days and context.top_favorite is not None:
        recommendations.insert(
            0,
            Recommendation(
                product=context.top_favorite.product,
                reason=f"Faz {days} dias desde seu último pedido",
                type="reorder",
            ),
        )

    return recommendations[:MAX_RECOMMENDATIONS]


async def load_recommendations(
    db: AsyncSession,
    context: CustomerContext,
    *,
    popularity: PopularityStrategy = popular_by_stock,
    reorder_after_days: int = DEFAULT_REORDER_AFTER_DAYS,
) -> List[Recommendation]:
    relations = await get_relations_from(db, context.favorite_product_ids)
    popular = await popularity(db, POPULAR_LIMIT) if context.is_new_customer else []
    return recommend_products(context, relations, popular, reorder_after_days=reorder_after_days)
