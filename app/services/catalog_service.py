from datetime import datetime, timedelta
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import utcnow
from app.logging_config import get_logger
from app.models import Product, ProductRelation, Promotion, SuggestionTemplate

logger = get_logger("catalog_service")

DEMO_CATALOG_PATH = Path(__file__).resolve().parents[1] / "data" / "demo_catalog.yaml"
SEARCH_LIMIT = 10


@lru_cache(maxsize=4)
def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data if isinstance(data, dict) else {}


def _decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


async def search_products(db: AsyncSession, query: str, limit: int = SEARCH_LIMIT) -> List[Product]:
    """Active products whose name, description, category or sku contains `query`."""
    query = (query or "").strip()
    statement = select(Product).where(Product.is_active.is_(True))
    if query:
        statement = statement.where(
            or_(
                Product.name.icontains(query, autoescape=True),
                Product.description.icontains(query, autoescape=True),
                Product.category.icontains(query, autoescape=True),
                Product.sku.icontains(query, autoescape=True),
            )
        )
    result = await db.execute(statement.order_by(Product.id).limit(limit))
    return list(result.scalars().all())


async def get_products_by_category(db: AsyncSession, category: Optional[str] = None) -> Dict[str, List[Product]]:
    statement = select(Product).where(Product.is_active.is_(True))
    if category:
        statement = statement.where(Product.category == category)
    result = await db.execute(statement.order_by(Product.category, Product.id))

    grouped: Dict[str, List[Product]] = {}
    for product in result.scalars().all():
        grouped.setdefault(product.category, []).append(product)
    return grouped


async def get_active_promotions(db: AsyncSession, now: Optional[datetime] = None) -> List[Promotion]:
    """Active, in-window promotions with their targeted products, in id order."""
    now = now or utcnow()
    result = await db.execute(
        select(Promotion)
        .where(
            Promotion.is_active.is_(True),
            Promotion.valid_from <= now,
            Promotion.valid_until >= now,
        )
        .options(selectinload(Promotion.products))
        .order_by(Promotion.id)
    )
    return list(result.scalars().all())


async def seed_demo_catalog(
    db: AsyncSession,
    now: Optional[datetime] = None,
    path: Path = DEMO_CATALOG_PATH,
) -> dict:
    """
    Insert the demo products, relations, promotions and templates.

    Existing rows (same sku / promotion code / template trigger) are left
    untouched, so running it twice is harmless. Caller commits.
    """
    now = now or utcnow()
    data = _load_yaml(path)
    counts = {"products": 0, "relations": 0, "promotions": 0, "templates": 0}

    existing = await db.execute(select(Product))
    products_by_sku = {product.sku: product for product in existing.scalars().all()}
    for item in data.get("products") or []:
        if item["sku"] in products_by_sku:
            continue
        product = Product(
            sku=item["sku"],
            name=item["name"],
            description=item.get("description"),
            price=_decimal(item["price"]),
            category=item["category"],
            subcategory=item.get("subcategory"),
            stock=int(item.get("stock", 0)),
            is_active=bool(item.get("is_active", True)),
            created_at=now,
        )
        db.add(product)
        products_by_sku[product.sku] = product
        counts["products"] += 1
    await db.flush()

    existing = await db.execute(select(ProductRelation.product_from_id, ProductRelation.product_to_id))
    known_relations = {tuple(row) for row in existing.all()}
    for item in data.get("relations") or []:
        source = products_by_sku.get(item["from"])
        target = products_by_sku.get(item["to"])
        if source is None or target is None:
            logger.warning(f"Skipping relation with unknown sku: {item['from']} -> {item['to']}")
            continue
        if (source.id, target.id) in known_relations:
            continue
        db.add(
            ProductRelation(
                product_from_id=source.id,
                product_to_id=target.id,
                relation_type=item["type"],
                strength=int(item.get("strength", 1)),
            )
        )
        known_relations.add((source.id, target.id))
        counts["relations"] += 1

    existing = await db.execute(select(Promotion.code))
    known_codes = set(existing.scalars().all())
    for item in data.get("promotions") or []:
        code = str(item["code"]).upper()
        if code in known_codes:
            continue
        promotion = Promotion(
            code=code,
            name=item["name"],
            description=item.get("description"),
            discount_type=item["discount_type"],
            discount_value=_decimal(item["discount_value"]),
            min_purchase=_decimal(item.get("min_purchase")),
            max_discount=_decimal(item.get("max_discount")),
            usage_limit=item.get("usage_limit"),
            usage_count=0,
            valid_from=now + timedelta(days=int(item.get("valid_from_days", 0))),
            valid_until=now + timedelta(days=int(item.get("valid_until_days", 30))),
            is_active=bool(item.get("is_active", True)),
            target_type=item.get("target_type", "all"),
            products=[products_by_sku[sku] for sku in item.get("products") or [] if sku in products_by_sku],
        )
        db.add(promotion)
        known_codes.add(code)
        counts["promotions"] += 1

    existing = await db.execute(select(SuggestionTemplate.trigger))
    known_triggers = set(existing.scalars().all())
    for item in data.get("templates") or []:
        if item["trigger"] in known_triggers:
            continue
        db.add(
            SuggestionTemplate(
                trigger=item["trigger"],
                category=item["category"],
                template=item["template"],
                priority=int(item.get("priority", 0)),
                is_active=bool(item.get("is_active", True)),
            )
        )
        known_triggers.add(item["trigger"])
        counts["templates"] += 1

    await db.flush()
    logger.info("Demo catalog seeded", extra={"context": counts})
    return counts
