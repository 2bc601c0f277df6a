from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class GenerateWebhookRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    # userId/botId are checked by the issuer so that a missing field is a 400, not a 422
    userId: Optional[str] = None
    botId: Optional[str] = None
    expirationDays: Optional[int] = None


class GenerateWebhookResponse(BaseModel):
    webhookUrl: str
    expiresAt: str


class AlertPayload(BaseModel):
    """TradingView alert body. Every field falls back to the bot's defaults."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    symbol: Optional[str] = None
    side: Optional[str] = None
    order_type: Optional[str] = Field(default=None, alias="orderType")
    quantity: Optional[float] = None
    price: Optional[float] = None
    stop_loss: Optional[float] = Field(default=None, alias="stopLoss")
    take_profit: Optional[float] = Field(default=None, alias="takeProfit")


class ProcessAlertResponse(BaseModel):
    success: bool
    orderId: str
    status: str
    testMode: bool
