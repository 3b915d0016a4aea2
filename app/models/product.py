from sqlalchemy import TIMESTAMP, Boolean, Column, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import relationship

from app.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sku = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    description = Column(Text)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(Text, nullable=False)
    subcategory = Column(Text)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True))


class ProductRelation(Base):
    __tablename__ = "product_relations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_from_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_to_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    relation_type = Column(Text, nullable=False)  # complement, related, upgrade
    strength = Column(Integer, nullable=False, default=1)

    product_from = relationship("Product", foreign_keys=[product_from_id])
    product_to = relationship("Product", foreign_keys=[product_to_id])
