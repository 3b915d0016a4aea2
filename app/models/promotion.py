from sqlalchemy import TIMESTAMP, Boolean, Column, ForeignKey, Integer, Numeric, Table, Text
from sqlalchemy.orm import relationship

from app.database import Base

promotion_products = Table(
    "promotion_products",
    Base.metadata,
    Column("promotion_id", Integer, ForeignKey("promotions.id"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id"), primary_key=True),
)


class Promotion(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(Text, nullable=False, unique=True)  # stored uppercased
    name = Column(Text, nullable=False)
    description = Column(Text)
    discount_type = Column(Text, nullable=False)  # percentage, fixed
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_purchase = Column(Numeric(10, 2))
    max_discount = Column(Numeric(10, 2))
    usage_limit = Column(Integer)
    usage_count = Column(Integer, nullable=False, default=0)
    valid_from = Column(TIMESTAMP(timezone=True), nullable=False)
    valid_until = Column(TIMESTAMP(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    target_type = Column(Text, nullable=False, default="all")  # products, all

    products = relationship("Product", secondary=promotion_products, order_by="Product.id")
