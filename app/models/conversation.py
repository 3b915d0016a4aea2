from sqlalchemy import TIMESTAMP, Column, Integer, Text
from sqlalchemy.orm import relationship

from app.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(Text, nullable=False, unique=True, index=True)
    mode = Column(Text, nullable=False, default="AI")  # AI, OPERATOR
    status = Column(Text, nullable=False, default="active")  # active, resolved
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    last_message_at = Column(TIMESTAMP(timezone=True))

    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.timestamp",
    )
