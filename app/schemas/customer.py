from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field, StringConstraints

from app.schemas.base import CamelModel
from app.schemas.catalog import ProductOut


class Address(CamelModel):
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class CustomerOut(CamelModel):
    id: Optional[int] = None
    phone: str
    name: Optional[str] = None
    email: Optional[str] = None
    birthdate: Optional[date] = None
    notes: Optional[str] = None
    billing_address: Optional[Address] = None
    delivery_address: Optional[Address] = None


class FavoriteProductOut(CamelModel):
    product: ProductOut
    times_ordered: int
    total_quantity: int


class OrderLineOut(CamelModel):
    product_id: int
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderSummaryOut(CamelModel):
    order_number: str
    date: datetime
    amount: Decimal
    status: str
    items: List[OrderLineOut] = []


class CustomerContextOut(CamelModel):
    customer: CustomerOut
    is_new_customer: bool
    total_orders: int
    total_spent: str
    favorite_products: List[FavoriteProductOut] = []
    last_purchase: Optional[OrderSummaryOut] = None
    days_since_last_purchase: Optional[int] = None


class PurchaseItemOut(CamelModel):
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product: Optional[ProductOut] = None


class PurchaseOut(CamelModel):
    id: int
    order_number: str
    status: str
    total_amount: Decimal
    created_at: datetime
    items: List[PurchaseItemOut] = []


class PurchaseHistoryResponse(CamelModel):
    purchases: List[PurchaseOut]


class NotesUpdate(CamelModel):
    notes: str = Field(default="", max_length=10000)


class NameUpdate(CamelModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
