from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.services.catalog_service import get_active_promotions
from app.services.customer_context import CustomerContext

WELCOME_SCORE = 10
BULK_SCORE = 8
FAVORITE_OVERLAP_SCORE = 5
MAX_PROMOTIONS = 3


@dataclass(frozen=True)
class PromotionRules:
    welcome_codes: frozenset
    bulk_codes: frozenset
    bulk_spend_threshold: Decimal = Decimal("500")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PromotionRules":
        return cls(
            welcome_codes=frozenset(code.upper() for code in settings.welcome_promotion_codes),
            bulk_codes=frozenset(code.upper() for code in settings.bulk_promotion_codes),
            bulk_spend_threshold=Decimal(str(settings.bulk_spend_threshold)),
        )


@dataclass
class ScoredPromotion:
    promotion: Any
    score: int


def score_promotion(promotion: Any, context: CustomerContext, rules: PromotionRules) -> int:
    code = (promotion.code or "").upper()
    score = 0

    if code in rules.welcome_codes and context.is_new_customer:
        score += WELCOME_SCORE

    if code in rules.bulk_codes and Decimal(context.total_spent) > rules.bulk_spend_threshold:
        score += BULK_SCORE

    favorite_ids = set(context.favorite_product_ids)
    if favorite_ids:
        overlap = sum(1 for product in promotion.products or [] if product.id in favorite_ids)
        score += overlap * FAVORITE_OVERLAP_SCORE

    return score


def score_promotions(
    promotions: Sequence[Any],
    context: CustomerContext,
    rules: PromotionRules,
    limit: int = MAX_PROMOTIONS,
) -> List[ScoredPromotion]:
    """Highest score first; equal scores keep fetch order. Zero scores stay eligible."""
    scored = [ScoredPromotion(promotion=promotion, score=score_promotion(promotion, context, rules)) for promotion in promotions]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored[:limit]


async def load_relevant_promotions(
    db: AsyncSession,
    context: CustomerContext,
    rules: PromotionRules,
    now: Optional[datetime] = None,
) -> List[ScoredPromotion]:
    promotions = await get_active_promotions(db, now)
    return score_promotions(promotions, context, rules)
