from app.models.conversation import Conversation
from app.models.customer import Customer
from app.models.message import Message
from app.models.product import Product, ProductRelation
from app.models.promotion import Promotion, promotion_products
from app.models.purchase import Purchase, PurchaseItem
from app.models.suggestion_template import SuggestionTemplate

__all__ = [
    "Conversation",
    "Message",
    "Customer",
    "Purchase",
    "PurchaseItem",
    "Product",
    "ProductRelation",
    "Promotion",
    "promotion_products",
    "SuggestionTemplate",
]
