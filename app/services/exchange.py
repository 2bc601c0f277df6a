# app/services/exchange.py
"""Exchange gateway: instrument lot-size lookup and order submission.

`BybitClient` talks to the Bybit v5 REST API through pybit. `StubExchangeClient`
is deterministic and never touches the network; it is selected with
EXCHANGE_BACKEND=stub and used by the tests.
"""
import itertools
import logging
from decimal import Decimal
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends
from pybit.exceptions import FailedRequestError, InvalidRequestError
from pybit.unified_trading import HTTP

from app.config import Settings, get_settings
from app.errors import ExchangeError
from app.services.quantity import LotSizeFilter

logger = logging.getLogger(__name__)

CATEGORY = "linear"


@dataclass
class Credentials:
    api_key: str
    api_secret: str

    def __repr__(self):
        return "Credentials(api_key=REDACTED, api_secret=REDACTED)"


@dataclass
class OrderRequest:
    symbol: str
    side: str
    order_type: str
    quantity: float
    price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    def to_log(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side,
            "orderType": self.order_type,
            "quantity": self.quantity,
            "price": self.price,
            "stopLoss": self.stop_loss,
            "takeProfit": self.take_profit,
        }


def order_result(order: OrderRequest, order_id: str, status: str) -> Dict[str, Any]:
    """Shape shared by real, stubbed and simulated dispatch."""
    return {
        "orderId": order_id,
        "symbol": order.symbol,
        "side": order.side,
        "orderType": order.order_type,
        "qty": order.quantity,
        "price": order.price or 0,
        "status": status,
    }


class ExchangeClient:
    """Interface for the two calls an alert needs."""

    def get_lot_size_filter(self, symbol: str) -> LotSizeFilter:
        raise NotImplementedError

    def place_order(self, order: OrderRequest) -> Dict[str, Any]:
        raise NotImplementedError


def _fmt(value: float) -> str:
    # Bybit wants plain decimal strings; str() of a small float can be 1e-05
    return format(Decimal(str(value)).normalize(), "f")


class BybitClient(ExchangeClient):
    def __init__(self, credentials: Optional[Credentials] = None, testnet: bool = False, session=None):
        self.testnet = testnet
        if session is None:
            session = HTTP(
                testnet=testnet,
                api_key=credentials.api_key if credentials else None,
                api_secret=credentials.api_secret if credentials else None,
                max_retries=1,  # single attempt; callers re-send alerts themselves
            )
        self.session = session

    def _call(self, what: str, fn: Callable[..., Dict[str, Any]], **kwargs) -> Dict[str, Any]:
        try:
            response = fn(**kwargs)
        except (InvalidRequestError, FailedRequestError) as e:
            raise ExchangeError(f"{what} error: {e.message}")
        if response.get("retCode") != 0:
            raise ExchangeError(f"{what} error: {response.get('retMsg')}")
        return response

    def get_lot_size_filter(self, symbol: str) -> LotSizeFilter:
        response = self._call("InstrumentsInfo", self.session.get_instruments_info, category=CATEGORY, symbol=symbol)
        instruments = (response.get("result") or {}).get("list") or []
        if not instruments:
            raise ExchangeError(f"InstrumentsInfo error: unknown symbol {symbol}")
        lot = LotSizeFilter.from_instrument(instruments[0])
        logger.info("Lot size for %s (%s): min=%s step=%s",
                    symbol, "testnet" if self.testnet else "mainnet", lot.min_qty, lot.qty_step)
        return lot

    def place_order(self, order: OrderRequest) -> Dict[str, Any]:
        params = {
            "category": CATEGORY,
            "symbol": order.symbol,
            "side": order.side,
            "orderType": order.order_type,
            "qty": _fmt(order.quantity),
        }
        if order.order_type == "Limit" and order.price:
            params["price"] = _fmt(order.price)
        if order.stop_loss:
            params["stopLoss"] = _fmt(order.stop_loss)
        if order.take_profit:
            params["takeProfit"] = _fmt(order.take_profit)

        response = self._call("PlaceOrder", self.session.place_order, **params)
        order_id = (response.get("result") or {}).get("orderId")
        if not order_id:
            raise ExchangeError("PlaceOrder error: no orderId in response")
        logger.info("Bybit accepted order %s for %s %s %s", order_id, order.side, order.quantity, order.symbol)
        # Bybit only acknowledges creation; fills arrive asynchronously
        return order_result(order, order_id, "SUBMITTED")


@dataclass
class StubExchangeClient(ExchangeClient):
    """Network-free exchange with fixed lot-size filters."""
    instruments: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    default_lot: Dict[str, str] = field(default_factory=lambda: {"minOrderQty": "0.001", "qtyStep": "0.001"})
    fail_orders: bool = False
    placed: List[OrderRequest] = field(default_factory=list)
    lookups: List[str] = field(default_factory=list)
    _ids: Any = field(default_factory=lambda: itertools.count(1), repr=False)

    def get_lot_size_filter(self, symbol: str) -> LotSizeFilter:
        self.lookups.append(symbol)
        lot = self.instruments.get(symbol, self.default_lot)
        if lot is None:
            raise ExchangeError(f"InstrumentsInfo error: unknown symbol {symbol}")
        return LotSizeFilter.from_instrument({"lotSizeFilter": lot})

    def place_order(self, order: OrderRequest) -> Dict[str, Any]:
        if self.fail_orders:
            raise ExchangeError("PlaceOrder error: rejected by stub exchange")
        self.placed.append(order)
        return order_result(order, f"stub-{next(self._ids)}", "SUBMITTED")


ExchangeFactory = Callable[[Optional[Credentials], bool], ExchangeClient]

_stub_client: Optional[StubExchangeClient] = None


def _stub_factory(credentials: Optional[Credentials], testnet: bool) -> ExchangeClient:
    global _stub_client
    if _stub_client is None:
        _stub_client = StubExchangeClient()
    return _stub_client


def _bybit_factory(credentials: Optional[Credentials], testnet: bool) -> ExchangeClient:
    return BybitClient(credentials, testnet=testnet)


EXCHANGE_FACTORIES: Dict[str, ExchangeFactory] = {
    "stub": _stub_factory,
    "bybit": _bybit_factory,
}


def check_exchange_backend(config: Settings) -> None:
    """Fail fast at startup when EXCHANGE_BACKEND names no known client."""
    if config.EXCHANGE_BACKEND.lower() not in EXCHANGE_FACTORIES:
        raise ValueError(
            f"Unknown EXCHANGE_BACKEND: {config.EXCHANGE_BACKEND} (expected one of {', '.join(EXCHANGE_FACTORIES)})"
        )


def _unknown_backend_factory(name: str) -> ExchangeFactory:
    def factory(credentials: Optional[Credentials], testnet: bool) -> ExchangeClient:
        raise ExchangeError(f"Unknown EXCHANGE_BACKEND: {name}")
    return factory


def get_exchange_factory(config: Settings = Depends(get_settings)) -> ExchangeFactory:
    """FastAPI dependency returning `(credentials, testnet) -> ExchangeClient`.

    An unknown backend only fails when a client is requested, after the
    token has been resolved, so bad tokens are still answered with a 404.
    """
    factory = EXCHANGE_FACTORIES.get(config.EXCHANGE_BACKEND.lower())
    if factory is None:
        return _unknown_backend_factory(config.EXCHANGE_BACKEND)
    return factory
