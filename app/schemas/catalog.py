from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from app.schemas.base import CamelModel


class ProductOut(CamelModel):
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal
    category: str
    subcategory: Optional[str] = None
    stock: int
    is_active: bool


class PromotionOut(CamelModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    discount_type: str
    discount_value: Decimal
    min_purchase: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    usage_count: int
    valid_from: datetime
    valid_until: datetime
    target_type: str
    products: List[ProductOut] = []
