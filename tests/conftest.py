import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from app.config import Settings
from app.database import create_all, create_session_factory, utcnow
from app.dependencies import build_container
from app.main import create_app
from app.models import Product, Purchase, PurchaseItem
from app.services.catalog_service import seed_demo_catalog
from app.services.customer_service import get_or_create_customer
from app.services.llm import LLMProvider, LLMResponse
from app.services.whatsapp_service import WhatsAppClient

PHONE = "5511999991234"


class FakeLLMProvider(LLMProvider):
    """Records calls; answers with `content`, raises `error` or sleeps `delay` seconds first."""

    def __init__(self, content="Resposta gerada pela IA", *, error=None, delay=None):
        self.content = content
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate(self, messages, model=None, temperature=0.7, max_tokens=1000):
        self.calls.append(
            {"messages": messages, "model": model, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return LLMResponse(content=self.content, model=model or "fake-model")


class FakeWebSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.closed = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def close(self, code=1000):
        self.closed = True

    @property
    def events(self):
        return [frame["event"] for frame in self.sent]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        app_mode="demo",
        operator_api_token=None,
        openai_api_key=None,
        redis_url=None,
        whatsapp_token=None,
        whatsapp_phone_number_id=None,
        whatsapp_verify_token="verify-me",
    )


@pytest.fixture
async def engine(tmp_path):
    """Temp-file SQLite so unique constraints behave like the real database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ebeef.db'}", poolclass=NullPool)
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def seeded(session_factory):
    async with session_factory() as db:
        counts = await seed_demo_catalog(db)
        await db.commit()
    return counts


@pytest.fixture
def products_by_sku(session_factory, seeded):
    async def _load():
        async with session_factory() as db:
            result = await db.execute(select(Product))
            return {product.sku: product for product in result.scalars().all()}

    return _load


@pytest.fixture
def create_purchase(session_factory):
    """Insert a purchase for `phone`: items are (sku, quantity) pairs."""

    async def _create(phone, order_number, items, *, days_ago=0, status="delivered"):
        async with session_factory() as db:
            customer = await get_or_create_customer(db, phone)
            result = await db.execute(select(Product))
            by_sku = {product.sku: product for product in result.scalars().all()}

            purchase_items = []
            total = Decimal("0")
            for sku, quantity in items:
                product = by_sku[sku]
                line_total = Decimal(str(product.price)) * quantity
                total += line_total
                purchase_items.append(
                    PurchaseItem(
                        product_id=product.id,
                        quantity=quantity,
                        unit_price=product.price,
                        total_price=line_total,
                    )
                )
            purchase = Purchase(
                customer_id=customer.id,
                order_number=order_number,
                status=status,
                total_amount=total,
                created_at=utcnow() - timedelta(days=days_ago),
                items=purchase_items,
            )
            db.add(purchase)
            await db.commit()
            return purchase

    return _create


@pytest.fixture
async def make_container(settings, engine):
    built = []

    def _make(llm_provider=None, **overrides):
        container_settings = settings.model_copy(update=overrides) if overrides else settings
        container = build_container(
            container_settings,
            engine=engine,
            llm_provider=llm_provider,
            whatsapp=WhatsAppClient(None, None),
        )
        built.append(container)
        return container

    yield _make
    for container in built:
        await container.whatsapp.aclose()


@pytest.fixture
def container(make_container):
    return make_container()


@pytest.fixture
async def client(container):
    app = create_app(container=container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
