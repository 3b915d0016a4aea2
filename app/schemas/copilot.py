from datetime import date
from decimal import Decimal
from typing import List, Optional

from app.schemas.base import CamelModel
from app.schemas.customer import Address, OrderSummaryOut


class CustomerInfo(CamelModel):
    name: Optional[str] = None
    phone: str
    email: Optional[str] = None
    birthdate: Optional[date] = None
    billing_address: Optional[Address] = None
    delivery_address: Optional[Address] = None
    is_new: bool
    total_orders: int
    total_spent: str
    notes: Optional[str] = None


class SuggestionOut(CamelModel):
    type: str  # template, ai
    category: str
    text: str
    priority: int


class QuickActionOut(CamelModel):
    label: str
    action: str


class RecommendationOut(CamelModel):
    id: int
    name: str
    price: Decimal
    reason: str
    type: str


class PromotionSummary(CamelModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    discount_type: str
    discount_value: Decimal


class PurchaseHistoryEntry(CamelModel):
    product_id: int
    product_name: str
    times_ordered: int
    total_quantity: int


class SuggestionPayload(CamelModel):
    customer_info: CustomerInfo
    last_order: Optional[OrderSummaryOut] = None
    suggestions: List[SuggestionOut] = []
    quick_actions: List[QuickActionOut] = []
    recommendations: List[RecommendationOut] = []
    promotions: List[PromotionSummary] = []
    purchase_history: List[PurchaseHistoryEntry] = []
