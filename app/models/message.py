from sqlalchemy import TIMESTAMP, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from app.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(Text, ForeignKey("conversations.phone_number"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"))
    sender = Column(Text, nullable=False)  # user, ai, operator, system
    content = Column(Text, nullable=False)
    # WhatsApp message id; the unique index is what guarantees at-most-once processing
    external_message_id = Column(Text, unique=True)
    timestamp = Column(TIMESTAMP(timezone=True), nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
