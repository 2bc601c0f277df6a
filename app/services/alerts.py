# app/services/alerts.py
"""
Alert processing: token -> bot + credentials -> normalized order -> dispatch -> audit.

A single alert moves through
received -> token_resolved -> credentials_loaded -> quantity_normalized
-> dispatched -> logged -> responded.
Anything failing before dispatch aborts with no writes. The trade row and
the bot counters are written after dispatch on a best-effort basis: a failed
write is logged and the caller still gets the dispatch outcome.
"""
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError

from app.errors import BadRequestError, CredentialsNotFoundError, TokenNotFoundError
from app.schemas.webhook import AlertPayload
from app.services.clock import utcnow
from app.services.exchange import Credentials, ExchangeFactory, OrderRequest, order_result
from app.services.repository import BotRepository, CredentialRepository, TokenRepository, TradeRepository

logger = logging.getLogger(__name__)

TEST_ORDER_STATUS = "TEST_ORDER"
DEFAULT_SIDE = "Buy"
DEFAULT_ORDER_TYPE = "Market"


def parse_alert(raw: Any) -> AlertPayload:
    """Validate a decoded alert body; anything that is not an object counts as empty."""
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("Alert body is not a JSON object (%s), using bot defaults", type(raw).__name__)
        raw = {}
    try:
        return AlertPayload.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise BadRequestError(f"Invalid alert fields: {fields}")


def _first(*values):
    for v in values:
        if v is not None and v != "":
            return v
    return None


def simulate_order(order: OrderRequest) -> Dict[str, Any]:
    order_id = f"test-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
    return order_result(order, order_id, TEST_ORDER_STATUS)


class AlertProcessor:
    def __init__(self, tokens: TokenRepository, bots: BotRepository, credentials: CredentialRepository,
                 trades: TradeRepository, exchange_factory: ExchangeFactory, exchange_name: str = "bybit"):
        self.tokens = tokens
        self.bots = bots
        self.credentials = credentials
        self.trades = trades
        self.exchange_factory = exchange_factory
        self.exchange_name = exchange_name

    def process(self, token: str, raw_alert: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()

        webhook = self.tokens.find_valid(token, now)
        if webhook is None:
            logger.warning("Invalid or expired webhook token %s...", (token or "")[:5])
            raise TokenNotFoundError()
        bot = self.bots.get(webhook.bot_id)
        if bot is None:
            logger.error("Webhook %s... points at missing bot %s", token[:5], webhook.bot_id)
            raise TokenNotFoundError()

        alert = parse_alert(raw_alert)

        cred = self.credentials.find(webhook.user_id, self.exchange_name)
        if cred is None:
            logger.error("No %s API key for user %s", self.exchange_name, webhook.user_id)
            raise CredentialsNotFoundError()

        symbol = (_first(alert.symbol, bot.symbol) or "").strip().upper()
        if not symbol:
            raise BadRequestError("No symbol in alert or bot config")

        test_mode = bool(bot.test_mode)
        client = self.exchange_factory(Credentials(cred.api_key, cred.api_secret), test_mode)

        lot = client.get_lot_size_filter(symbol)
        raw_qty = _first(alert.quantity, bot.default_quantity, 0)
        try:
            quantity = lot.normalize(raw_qty)
        except ValueError as e:
            raise BadRequestError(f"Invalid quantity: {e}")
        logger.info("Adjusted quantity from %s -> %s (minQty=%s, step=%s)", raw_qty, quantity, lot.min_qty, lot.qty_step)

        order = OrderRequest(
            symbol=symbol,
            side=str(_first(alert.side, bot.default_side, DEFAULT_SIDE)).capitalize(),
            order_type=str(_first(alert.order_type, bot.default_order_type, DEFAULT_ORDER_TYPE)).capitalize(),
            quantity=quantity,
            price=alert.price,
            stop_loss=_first(alert.stop_loss, bot.default_stop_loss),
            take_profit=_first(alert.take_profit, bot.default_take_profit),
        )
        logger.info("Order parameters prepared: %s (testnet=%s)", order.to_log(), test_mode)

        if test_mode:
            logger.info("Test mode enabled, simulating order execution")
            result = simulate_order(order)
        else:
            logger.info("Executing order on %s", self.exchange_name)
            result = client.place_order(order)
        logger.info("Order result: %s", result)

        self._record(webhook, bot, result, now)

        return {
            "success": True,
            "orderId": result["orderId"],
            "status": result["status"],
            "testMode": test_mode,
        }

    def _record(self, webhook, bot, result: Dict[str, Any], now: datetime) -> None:
        try:
            trade = self.trades.append(
                user_id=webhook.user_id,
                bot_id=webhook.bot_id,
                symbol=result["symbol"],
                side=result["side"],
                order_type=result["orderType"],
                quantity=result["qty"],
                price=result["price"],
                order_id=result["orderId"],
                status=result["status"],
                created_at=now,
            )
            logger.info("Trade logged (id=%s) with status: %s", getattr(trade, "id", None), result["status"])
        except Exception:
            logger.exception("Error logging trade for order %s", result["orderId"])

        try:
            bot = self.bots.record_trade(bot, now)
            logger.info("Bot %s updated, trade_count=%s", webhook.bot_id, bot.trade_count)
        except Exception:
            logger.exception("Error updating bot %s", webhook.bot_id)
