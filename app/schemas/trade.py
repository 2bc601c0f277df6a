from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, field_serializer
from app.services.clock import to_iso

UNKNOWN_BOT = "Unknown"


class TradeOut(BaseModel):
    id: int
    userId: str
    botId: Optional[str] = None
    botName: str = UNKNOWN_BOT
    symbol: Optional[str] = None
    side: Optional[str] = None
    orderType: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    orderId: Optional[str] = None
    status: Optional[str] = None
    createdAt: Optional[datetime] = None

    @field_serializer("createdAt")
    def _serialize_created_at(self, value: Optional[datetime]):
        return to_iso(value) if value else None

    @classmethod
    def from_row(cls, trade, bot_name: Optional[str] = None) -> "TradeOut":
        return cls(
            id=trade.id,
            userId=trade.user_id,
            botId=trade.bot_id,
            botName=bot_name or UNKNOWN_BOT,
            symbol=trade.symbol,
            side=trade.side,
            orderType=trade.order_type,
            quantity=trade.quantity,
            price=trade.price,
            orderId=trade.order_id,
            status=trade.status,
            createdAt=trade.created_at,
        )


class TradeList(BaseModel):
    trades: List[TradeOut]
