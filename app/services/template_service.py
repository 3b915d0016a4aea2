import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models import SuggestionTemplate

MAX_TEMPLATE_MATCHES = 3
PAST_PRODUCTS_LIMIT = 3

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

_WEEKDAYS_PT = (
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
)
_MONTHS_PT = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def format_long_date_pt(value: date) -> str:
    """e.g. 'terça-feira, 20 de outubro'."""
    return f"{_WEEKDAYS_PT[value.weekday()]}, {value.day} de {_MONTHS_PT[value.month - 1]}"


def trigger_variants(trigger: str) -> List[str]:
    return [variant.strip().lower() for variant in (trigger or "").split("|") if variant.strip()]


def match_templates(message_text: str, templates: Sequence[Any], limit: int = MAX_TEMPLATE_MATCHES) -> List[Any]:
    """Templates whose trigger variants occur in the message, in the given (priority) order."""
    lowered = (message_text or "").lower()
    if not lowered:
        return []
    matched = []
    for template in templates:
        if any(variant in lowered for variant in trigger_variants(template.trigger)):
            matched.append(template)
            if len(matched) >= limit:
                break
    return matched


async def load_active_templates(db: AsyncSession) -> List[SuggestionTemplate]:
    result = await db.execute(
        select(SuggestionTemplate)
        .where(SuggestionTemplate.is_active.is_(True))
        .order_by(SuggestionTemplate.priority.desc(), SuggestionTemplate.id)
    )
    return list(result.scalars().all())


@dataclass
class TemplateContext:
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    past_products: List[str] = field(default_factory=list)
    recommended_product: Optional[str] = None
    active_promotions: List[Tuple[str, str]] = field(default_factory=list)  # (name, code)
    order_number: Optional[str] = None
    order_status: Optional[str] = None

    @classmethod
    def from_copilot(cls, context, recommendations, promotions) -> "TemplateContext":
        last = context.last_purchase
        return cls(
            customer_name=getattr(context.customer, "name", None),
            customer_phone=getattr(context.customer, "phone", None),
            past_products=[favorite.product.name for favorite in context.favorite_products],
            recommended_product=recommendations[0].product.name if recommendations else None,
            active_promotions=[(item.promotion.name, item.promotion.code) for item in promotions],
            order_number=last.order_number if last else None,
            order_status=last.status if last else None,
        )


def render_template(template: str, context: TemplateContext, now: Optional[datetime] = None) -> str:
    """
    Fill `{placeholder}` tokens from `context`.

    Placeholders without a value (unknown name, no purchase history, no
    recommendation) are left in the text as-is.
    """
    now = now or utcnow()
    values = {
        "customer_name": context.customer_name or "cliente",
        "customer_phone": context.customer_phone or "",
        "delivery_date": format_long_date_pt((now + timedelta(days=1)).date()),
    }
    if context.past_products:
        values["past_products"] = ", ".join(context.past_products[:PAST_PRODUCTS_LIMIT])
    if context.recommended_product:
        values["recommended_product"] = context.recommended_product
    if context.active_promotions:
        values["active_promotions"] = "; ".join(f"{name} (code: {code})" for name, code in context.active_promotions)
    if context.order_number:
        values["order_number"] = context.order_number
        values["order_status"] = context.order_status or ""

    return _PLACEHOLDER_RE.sub(lambda match: values.get(match.group(1), match.group(0)), template)
