from decimal import Decimal
from types import SimpleNamespace

from app.services.customer_context import CustomerContext, FavoriteProduct
from app.services.recommendation_service import (
    MAX_RECOMMENDATIONS,
    POPULAR_REASON,
    get_relations_from,
    load_recommendations,
    popular_by_stock,
    recommend_products,
)


def _product(product_id, name):
    return SimpleNamespace(id=product_id, name=name, price=Decimal("10.00"))


PICANHA = _product(1, "Picanha Premium")
SAL = _product(2, "Sal Grosso")
CHIMI = _product(3, "Chimichurri")


def _relation(source, target, relation_type="complement"):
    return SimpleNamespace(
        product_from_id=source.id,
        product_to_id=target.id,
        product_to=target,
        relation_type=relation_type,
    )


def _context(favorites=(), *, is_new=False, days_since=None):
    return CustomerContext(
        customer=SimpleNamespace(phone="5511999991234", name=None),
        is_new_customer=is_new,
        total_orders=0 if is_new else 1,
        total_spent="0.00",
        favorite_products=[FavoriteProduct(product=p, times_ordered=1, total_quantity=1) for p in favorites],
        days_since_last_purchase=days_since,
    )


class TestRecommendProducts:
    def test_relations_of_favorites(self):
        recs = recommend_products(_context([PICANHA]), [_relation(PICANHA, SAL)], [])
        assert len(recs) == 1
        assert recs[0].product is SAL
        assert recs[0].reason == "Combina com Picanha Premium"
        assert recs[0].type == "complement"

    def test_skips_targets_already_favorite(self):
        recs = recommend_products(_context([PICANHA, SAL]), [_relation(PICANHA, SAL)], [])
        assert recs == []

    def test_new_customer_gets_popular_products(self):
        recs = recommend_products(_context(is_new=True), [], [SAL, CHIMI])
        assert [r.product for r in recs] == [SAL, CHIMI]
        assert all(r.type == "popular" and r.reason == POPULAR_REASON for r in recs)

    def test_returning_customer_gets_no_popular_products(self):
        assert recommend_products(_context([PICANHA]), [], [SAL]) == []

    def test_reorder_nudge_goes_first(self):
        recs = recommend_products(_context([PICANHA], days_since=21), [_relation(PICANHA, SAL)], [])
        assert recs[0].type == "reorder"
        assert recs[0].product is PICANHA
        assert recs[0].reason == "Faz 21 dias desde seu último pedido"
        assert recs[1].product is SAL

    def test_reorder_threshold_is_strict(self):
        recs = recommend_products(_context([PICANHA], days_since=14), [], [])
        assert recs == []

    def test_custom_reorder_threshold(self):
        recs = recommend_products(_context([PICANHA], days_since=8), [], [], reorder_after_days=7)
        assert recs[0].type == "reorder"

    def test_reorder_survives_the_cap(self):
        targets = [_product(10 + i, f"Alvo {i}") for i in range(6)]
        relations = [_relation(PICANHA, target) for target in targets]
        recs = recommend_products(_context([PICANHA], days_since=30), relations, [])
        assert len(recs) == MAX_RECOMMENDATIONS
        assert recs[0].type == "reorder"
        assert [r.product.name for r in recs[1:]] == ["Alvo 0", "Alvo 1", "Alvo 2", "Alvo 3"]


class TestRecommendationQueries:
    async def test_popular_by_stock(self, session_factory, seeded):
        async with session_factory() as db:
            products = await popular_by_stock(db)
        assert [p.sku for p in products] == ["ACC-SAL-001", "ACC-CHI-001", "BEEF-MOI-001"]

    async def test_relations_ordered_by_strength(self, session_factory, products_by_sku):
        products = await products_by_sku()
        async with session_factory() as db:
            relations = await get_relations_from(db, [products["BEEF-PIC-001"].id])
        assert [r.product_to.sku for r in relations] == ["ACC-SAL-001", "ACC-CHI-001"]
        assert [r.strength for r in relations] == [5, 4]

    async def test_no_favorites_no_relation_query(self, session_factory, seeded):
        async with session_factory() as db:
            assert await get_relations_from(db, []) == []

    async def test_load_recommendations_uses_strategy(self, session_factory, seeded):
        calls = []

        async def fixed_popularity(db, limit):
            calls.append(limit)
            return [CHIMI]

        async with session_factory() as db:
            recs = await load_recommendations(db, _context(is_new=True), popularity=fixed_popularity)
        assert calls == [3]
        assert [r.product for r in recs] == [CHIMI]
