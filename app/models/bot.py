import uuid
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime
from sqlalchemy.sql import func
from app.database import Base


class BotConfig(Base):
    """Default trading parameters for one symbol, owned by one user."""
    __tablename__ = "bots"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=True)
    symbol = Column(String)

    # Used when the alert payload leaves a field out
    default_side = Column(String, nullable=True, doc="Buy or Sell")
    default_order_type = Column(String, nullable=True, doc="Market or Limit")
    default_quantity = Column(Float, nullable=True)
    default_stop_loss = Column(Float, nullable=True)
    default_take_profit = Column(Float, nullable=True)

    test_mode = Column(Boolean, default=True, doc="If true, orders are simulated and metadata comes from testnet")

    trade_count = Column(Integer, default=0)
    last_trade_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
