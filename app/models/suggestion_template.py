from sqlalchemy import Boolean, Column, Integer, Text

from app.database import Base


class SuggestionTemplate(Base):
    __tablename__ = "suggestion_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trigger = Column(Text, nullable=False)  # pipe-separated keywords: "oi|olá|bom dia"
    category = Column(Text, nullable=False)
    template = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
