# tarot_app/models/database_models/tarot_reading_history.py
from sqlalchemy import JSON, Column, DateTime, String

from tarot_app.data.database import Base


class TarotReadingHistory(Base):
    __tablename__ = "tarot_readings"

    id = Column(String(36), primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=True)
    category = Column(String, nullable=False)
    cards = Column(JSON, nullable=False)
    card_orientations = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ai_interpretation = Column(JSON, nullable=True)
    interpretation_generated_at = Column(DateTime(timezone=True), nullable=True)
