from datetime import date, datetime, timezone
from types import SimpleNamespace

from app.services.template_service import (
    TemplateContext,
    format_long_date_pt,
    load_active_templates,
    match_templates,
    render_template,
    trigger_variants,
)

NOW = datetime(2024, 10, 19, 15, 0, tzinfo=timezone.utc)  # a Saturday


def _template(trigger, category="geral", priority=0):
    return SimpleNamespace(trigger=trigger, category=category, template="...", priority=priority)


class TestFormatLongDate:
    def test_weekday_and_month_in_portuguese(self):
        assert format_long_date_pt(date(2024, 10, 20)) == "domingo, 20 de outubro"
        assert format_long_date_pt(date(2024, 3, 5)) == "terça-feira, 5 de março"


class TestMatchTemplates:
    def test_trigger_variants(self):
        assert trigger_variants("Oi| olá |") == ["oi", "olá"]

    def test_matches_any_variant_case_insensitive(self):
        templates = [_template("oi|olá"), _template("entrega|frete")]
        assert match_templates("OLÁ, tudo bem?", templates) == [templates[0]]

    def test_keeps_given_order_and_caps_at_three(self):
        templates = [_template("a", "t1"), _template("b", "t2"), _template("c", "t3"), _template("d", "t4")]
        matched = match_templates("a b c d", templates)
        assert [t.category for t in matched] == ["t1", "t2", "t3"]

    def test_empty_message_matches_nothing(self):
        assert match_templates("", [_template("oi")]) == []


class TestRenderTemplate:
    def test_known_customer_and_recommendation(self):
        context = TemplateContext(customer_name="Ana", recommended_product="Picanha Premium")
        text = render_template("Olá {customer_name}! Leve {recommended_product}.", context, NOW)
        assert text == "Olá Ana! Leve Picanha Premium."

    def test_missing_name_defaults_to_cliente(self):
        assert render_template("Olá {customer_name}!", TemplateContext(), NOW) == "Olá cliente!"

    def test_delivery_date_is_tomorrow(self):
        text = render_template("Chega {delivery_date}.", TemplateContext(), NOW)
        assert text == "Chega domingo, 20 de outubro."

    def test_past_products_top_three(self):
        context = TemplateContext(past_products=["A", "B", "C", "D"])
        assert render_template("{past_products}", context, NOW) == "A, B, C"

    def test_active_promotions(self):
        context = TemplateContext(active_promotions=[("Festival da Picanha", "PICANHA30"), ("Boas-Vindas", "BEMVINDO")])
        text = render_template("{active_promotions}", context, NOW)
        assert text == "Festival da Picanha (code: PICANHA30); Boas-Vindas (code: BEMVINDO)"

    def test_order_fields_only_with_last_purchase(self):
        template = "Pedido #{order_number} está {order_status}."
        assert render_template(template, TemplateContext(), NOW) == template
        context = TemplateContext(order_number="ORD-1", order_status="delivered")
        assert render_template(template, context, NOW) == "Pedido #ORD-1 está delivered."

    def test_unresolved_placeholders_stay_literal(self):
        text = render_template("Recomendo {recommended_product} e {unknown}", TemplateContext(), NOW)
        assert text == "Recomendo {recommended_product} e {unknown}"

    def test_values_are_not_reinterpreted(self):
        context = TemplateContext(customer_name="{order_number}", order_number="ORD-1")
        assert render_template("Oi {customer_name}", context, NOW) == "Oi {order_number}"

    def test_braces_without_identifier_untouched(self):
        assert render_template("{} {0 } {customer_name}", TemplateContext(), NOW) == "{} {0 } cliente"


class TestLoadActiveTemplates:
    async def test_priority_order(self, session_factory, seeded):
        async with session_factory() as db:
            templates = await load_active_templates(db)
        priorities = [t.priority for t in templates]
        assert priorities == sorted(priorities, reverse=True)
        assert len(templates) == 10

    async def test_greeting_and_order_match_demo_message(self, session_factory, seeded):
        async with session_factory() as db:
            templates = await load_active_templates(db)
        matched = match_templates("Oi, quero picanha", templates)
        assert [t.category for t in matched] == ["saudação", "pedido"]
