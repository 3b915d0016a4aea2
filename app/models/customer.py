from typing import Optional

from sqlalchemy import TIMESTAMP, Column, Date, Integer, Text
from sqlalchemy.orm import relationship

from app.database import Base

ADDRESS_FIELDS = ("street", "number", "complement", "neighborhood", "city", "state", "zip_code")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone = Column(Text, nullable=False, unique=True, index=True)
    name = Column(Text)
    email = Column(Text)
    birthdate = Column(Date)
    notes = Column(Text)

    billing_street = Column(Text)
    billing_number = Column(Text)
    billing_complement = Column(Text)
    billing_neighborhood = Column(Text)
    billing_city = Column(Text)
    billing_state = Column(Text)
    billing_zip_code = Column(Text)

    delivery_street = Column(Text)
    delivery_number = Column(Text)
    delivery_complement = Column(Text)
    delivery_neighborhood = Column(Text)
    delivery_city = Column(Text)
    delivery_state = Column(Text)
    delivery_zip_code = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

    purchases = relationship("Purchase", back_populates="customer")

    def _address(self, prefix: str) -> Optional[dict]:
        if not getattr(self, f"{prefix}_street"):
            return None
        return {field: getattr(self, f"{prefix}_{field}") for field in ADDRESS_FIELDS}

    @property
    def billing_address(self) -> Optional[dict]:
        return self._address("billing")

    @property
    def delivery_address(self) -> Optional[dict]:
        return self._address("delivery")
