"""Copilot orchestrator: customer context, promotions, recommendations and templates in one payload."""

import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.database import utcnow
from app.logging_config import get_logger
from app.schemas.copilot import (
    CustomerInfo,
    PromotionSummary,
    PurchaseHistoryEntry,
    QuickActionOut,
    RecommendationOut,
    SuggestionOut,
    SuggestionPayload,
)
from app.schemas.customer import Address, OrderSummaryOut
from app.services.ai_service import AIResponder
from app.services.customer_context import CustomerContext, load_customer_context
from app.services.promotion_service import PromotionRules, ScoredPromotion, load_relevant_promotions
from app.services.recommendation_service import (
    PopularityStrategy,
    Recommendation,
    load_recommendations,
    popular_by_stock,
)
from app.services.template_service import (
    TemplateContext,
    load_active_templates,
    match_templates,
    render_template,
)

logger = get_logger("copilot_service")

AI_SUGGESTION_PRIORITY = 100
MAX_SUGGESTIONS = 4
MAX_QUICK_ACTIONS = 4
PAYLOAD_RECOMMENDATIONS = 3
PAYLOAD_PROMOTIONS = 3
PAYLOAD_HISTORY = 5


@dataclass
class Suggestion:
    type: str
    category: str
    text: str
    priority: int


@dataclass
class QuickAction:
    label: str
    action: str


@dataclass
class CopilotResult:
    context: CustomerContext
    promotions: List[ScoredPromotion] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)
    quick_actions: List[QuickAction] = field(default_factory=list)

    @property
    def payload(self) -> SuggestionPayload:
        return build_payload(self)


def format_price(value) -> str:
    return f"R${Decimal(str(value)):.2f}"


def build_quick_actions(
    context: CustomerContext,
    recommendations: Sequence[Recommendation],
    promotions: Sequence[ScoredPromotion],
    welcome_code: str,
) -> List[QuickAction]:
    actions: List[QuickAction] = []

    if context.is_new_customer:
        actions.append(
            QuickAction(
                label="Oferecer desconto de boas-vindas",
                action=(
                    "Bem-vindo à ebeef! Como é sua primeira compra, "
                    f"use o código {welcome_code} para 10% de desconto!"
                ),
            )
        )

    if recommendations:
        top = recommendations[0]
        actions.append(
            QuickAction(
                label=f"Recomendar {top.product.name}",
                action=(
                    f"Baseado nas suas preferências, eu recomendo nosso {top.product.name} - "
                    f"{top.reason}. Está por {format_price(top.product.price)}."
                ),
            )
        )

    if promotions:
        promotion = promotions[0].promotion
        actions.append(
            QuickAction(
                label=f"Compartilhar {promotion.name}",
                action=f"Ótima notícia! {promotion.description or promotion.name} Use o código {promotion.code} no checkout!",
            )
        )

    return actions[:MAX_QUICK_ACTIONS]


def _address(value: Optional[dict]) -> Optional[Address]:
    return Address(**value) if value else None


def build_payload(result: CopilotResult) -> SuggestionPayload:
    context = result.context
    customer = context.customer
    return SuggestionPayload(
        customer_info=CustomerInfo(
            name=customer.name,
            phone=customer.phone,
            email=customer.email,
            birthdate=customer.birthdate,
            billing_address=_address(customer.billing_address),
            delivery_address=_address(customer.delivery_address),
            is_new=context.is_new_customer,
            total_orders=context.total_orders,
            total_spent=context.total_spent,
            notes=customer.notes,
        ),
        last_order=OrderSummaryOut(**asdict(context.last_purchase)) if context.last_purchase else None,
        suggestions=[SuggestionOut(**asdict(item)) for item in result.suggestions[:MAX_SUGGESTIONS]],
        quick_actions=[QuickActionOut(**asdict(item)) for item in result.quick_actions[:MAX_QUICK_ACTIONS]],
        recommendations=[
            RecommendationOut(
                id=item.product.id,
                name=item.product.name,
                price=item.product.price,
                reason=item.reason,
                type=item.type,
            )
            for item in result.recommendations[:PAYLOAD_RECOMMENDATIONS]
        ],
        promotions=[
            PromotionSummary.model_validate(item.promotion) for item in result.promotions[:PAYLOAD_PROMOTIONS]
        ],
        purchase_history=[
            PurchaseHistoryEntry(
                product_id=favorite.product_id,
                product_name=favorite.product.name,
                times_ordered=favorite.times_ordered,
                total_quantity=favorite.total_quantity,
            )
            for favorite in context.favorite_products[:PAYLOAD_HISTORY]
        ],
    )


class CopilotService:
    """
    Read-only suggestion generation.

    Each loader opens its own session so promotions, recommendations and
    templates can be fetched concurrently once the customer context is known.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        responder: Optional[AIResponder],
        settings: Settings,
        *,
        popularity: PopularityStrategy = popular_by_stock,
    ):
        self.session_factory = session_factory
        self.responder = responder
        self.rules = PromotionRules.from_settings(settings)
        self.welcome_code = settings.welcome_discount_code
        self.reorder_after_days = settings.reorder_after_days
        self.popularity = popularity

    async def build_context(self, phone_number: str, now: Optional[datetime] = None) -> CustomerContext:
        async with self.session_factory() as db:
            return await load_customer_context(db, phone_number, now)

    async def _promotions(self, context: CustomerContext, now: datetime) -> List[ScoredPromotion]:
        async with self.session_factory() as db:
            return await load_relevant_promotions(db, context, self.rules, now)

    async def _recommendations(self, context: CustomerContext) -> List[Recommendation]:
        async with self.session_factory() as db:
            return await load_recommendations(
                db,
                context,
                popularity=self.popularity,
                reorder_after_days=self.reorder_after_days,
            )

    async def _templates(self, message_text: str) -> list:
        if not (message_text or "").strip():
            return []
        async with self.session_factory() as db:
            templates = await load_active_templates(db)
        return match_templates(message_text, templates)

    async def _ai_suggestion(self, message_text: str, context: CustomerContext) -> Optional[str]:
        if self.responder is None or not self.responder.is_available() or not (message_text or "").strip():
            return None
        result = await self.responder.generate_operator_suggestion(message_text, context)
        if not result.ok:
            logger.info(f"AI suggestion skipped: {result.error_code}")
            return None
        return result.value

    async def generate(self, phone_number: str, message_text: str = "", now: Optional[datetime] = None) -> CopilotResult:
        now = now or utcnow()
        context = await self.build_context(phone_number, now)

        promotions, recommendations, templates = await asyncio.gather(
            self._promotions(context, now),
            self._recommendations(context),
            self._templates(message_text),
        )

        template_context = TemplateContext.from_copilot(context, recommendations, promotions)
        suggestions = [
            Suggestion(
                type="template",
                category=template.category,
                text=render_template(template.template, template_context, now),
                priority=template.priority,
            )
            for template in templates
        ]

        ai_text = await self._ai_suggestion(message_text, context)
        if ai_text:
            # Template priorities are admin-set; the AI suggestion always outranks them.
            priority = max([AI_SUGGESTION_PRIORITY] + [item.priority + 1 for item in suggestions])
            suggestions.insert(0, Suggestion(type="ai", category="ai_generated", text=ai_text, priority=priority))
        suggestions.sort(key=lambda item: item.priority, reverse=True)

        return CopilotResult(
            context=context,
            promotions=promotions,
            recommendations=recommendations,
            suggestions=suggestions,
            quick_actions=build_quick_actions(context, recommendations, promotions, self.welcome_code),
        )

    async def generate_suggestions(
        self, phone_number: str, message_text: str = "", now: Optional[datetime] = None
    ) -> SuggestionPayload:
        result = await self.generate(phone_number, message_text, now)
        return result.payload
