from sqlalchemy import Column, Integer, String, Float, DateTime
from app.services.clock import utcnow
from app.database import Base

class Trade(Base):
    """Append-only audit row, one per processed alert."""
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True)
    bot_id = Column(String, index=True)
    symbol = Column(String)
    side = Column(String)
    order_type = Column(String)
    quantity = Column(Float)
    price = Column(Float, nullable=True)
    order_id = Column(String)
    status = Column(String)
    created_at = Column(DateTime, default=utcnow, index=True)
