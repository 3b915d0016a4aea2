from dataclasses import asdict
from typing import Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import ServiceContainer, get_container, require_operator
from app.schemas.base import PHONE_PATTERN
from app.schemas.catalog import ProductOut, PromotionOut
from app.schemas.copilot import SuggestionPayload
from app.schemas.customer import (
    CustomerContextOut,
    CustomerOut,
    FavoriteProductOut,
    NameUpdate,
    NotesUpdate,
    OrderSummaryOut,
    PurchaseHistoryResponse,
    PurchaseOut,
)
from app.services.catalog_service import get_active_promotions, get_products_by_category, search_products
from app.services.customer_context import CustomerContext
from app.services.customer_service import get_purchase_history, update_customer_name, update_customer_notes

router = APIRouter(prefix="/api", dependencies=[Depends(require_operator)])

PhoneNumberPath = Annotated[str, Path(pattern=PHONE_PATTERN)]


def context_to_schema(context: CustomerContext) -> CustomerContextOut:
    return CustomerContextOut(
        customer=CustomerOut.model_validate(context.customer),
        is_new_customer=context.is_new_customer,
        total_orders=context.total_orders,
        total_spent=context.total_spent,
        favorite_products=[
            FavoriteProductOut(
                product=ProductOut.model_validate(favorite.product),
                times_ordered=favorite.times_ordered,
                total_quantity=favorite.total_quantity,
            )
            for favorite in context.favorite_products
        ],
        last_purchase=OrderSummaryOut(**asdict(context.last_purchase)) if context.last_purchase else None,
        days_since_last_purchase=context.days_since_last_purchase,
    )


@router.get("/copilot/suggestions/{phone_number}", response_model=SuggestionPayload)
async def get_suggestions(
    phone_number: PhoneNumberPath,
    message: str = Query(default="", max_length=4096),
    container: ServiceContainer = Depends(get_container),
):
    return await container.copilot.generate_suggestions(phone_number, message)


@router.get("/copilot/customer/{phone_number}", response_model=CustomerContextOut)
async def get_customer_context(
    phone_number: PhoneNumberPath,
    container: ServiceContainer = Depends(get_container),
):
    context = await container.copilot.build_context(phone_number)
    return context_to_schema(context)


@router.get("/copilot/customer/{phone_number}/purchases", response_model=PurchaseHistoryResponse)
async def get_customer_purchases(phone_number: PhoneNumberPath, db: AsyncSession = Depends(get_db)):
    purchases = await get_purchase_history(db, phone_number)
    return PurchaseHistoryResponse(purchases=[PurchaseOut.model_validate(purchase) for purchase in purchases])


@router.post("/copilot/customer/{phone_number}/notes", response_model=CustomerOut)
async def set_customer_notes(
    request: NotesUpdate,
    phone_number: PhoneNumberPath,
    db: AsyncSession = Depends(get_db),
):
    customer = await update_customer_notes(db, phone_number, request.notes)
    await db.commit()
    return CustomerOut.model_validate(customer)


@router.post("/copilot/customer/{phone_number}/name", response_model=CustomerOut)
async def set_customer_name(
    request: NameUpdate,
    phone_number: PhoneNumberPath,
    db: AsyncSession = Depends(get_db),
):
    customer = await update_customer_name(db, phone_number, request.name)
    await db.commit()
    return CustomerOut.model_validate(customer)


@router.get("/products/search", response_model=List[ProductOut])
async def find_products(q: str = Query(default="", max_length=100), db: AsyncSession = Depends(get_db)):
    products = await search_products(db, q)
    return [ProductOut.model_validate(product) for product in products]


@router.get("/products", response_model=Dict[str, List[ProductOut]])
async def list_products(category: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    grouped = await get_products_by_category(db, category)
    return {name: [ProductOut.model_validate(product) for product in products] for name, products in grouped.items()}


@router.get("/promotions", response_model=List[PromotionOut])
async def list_promotions(db: AsyncSession = Depends(get_db)):
    promotions = await get_active_promotions(db)
    return [PromotionOut.model_validate(promotion) for promotion in promotions]
