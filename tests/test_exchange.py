import pytest
from pybit.exceptions import InvalidRequestError

from app.config import Settings
from app.errors import ExchangeError
from app.services.exchange import (
    BybitClient, OrderRequest, StubExchangeClient, _bybit_factory, _stub_factory, check_exchange_backend,
    get_exchange_factory,
)


class FakeSession:
    def __init__(self, instruments=None, ret_code=0, ret_msg="OK", order_response=None, raise_exc=None):
        self.instruments = instruments if instruments is not None else []
        self.ret_code = ret_code
        self.ret_msg = ret_msg
        self.order_response = order_response or {"retCode": 0, "retMsg": "OK", "result": {"orderId": "1321003749386327552"}}
        self.raise_exc = raise_exc
        self.info_calls = []
        self.order_calls = []

    def get_instruments_info(self, **kwargs):
        self.info_calls.append(kwargs)
        if self.raise_exc:
            raise self.raise_exc
        return {"retCode": self.ret_code, "retMsg": self.ret_msg, "result": {"category": "linear", "list": self.instruments}}

    def place_order(self, **kwargs):
        self.order_calls.append(kwargs)
        return self.order_response


def test_lot_size_filter_from_instruments_info():
    session = FakeSession(instruments=[{"symbol": "BTCUSDT", "lotSizeFilter": {"minOrderQty": "0.001", "qtyStep": "0.001"}}])
    client = BybitClient(session=session)

    lot = client.get_lot_size_filter("BTCUSDT")

    assert session.info_calls == [{"category": "linear", "symbol": "BTCUSDT"}]
    assert lot.normalize(0.0105) == 0.01


def test_non_zero_ret_code_is_an_error():
    client = BybitClient(session=FakeSession(ret_code=10001, ret_msg="params error: symbol invalid"))
    with pytest.raises(ExchangeError) as exc:
        client.get_lot_size_filter("NOPE")
    assert "symbol invalid" in str(exc.value)
    assert exc.value.status_code == 500


def test_pybit_request_errors_are_wrapped():
    err = InvalidRequestError(request="GET /v5/market/instruments-info", message="Not supported symbols",
                              status_code=10001, time="12:00:00", resp_headers=None)
    client = BybitClient(session=FakeSession(raise_exc=err))
    with pytest.raises(ExchangeError) as exc:
        client.get_lot_size_filter("NOPE")
    assert "Not supported symbols" in str(exc.value)


def test_empty_instrument_list_is_an_error():
    client = BybitClient(session=FakeSession(instruments=[]))
    with pytest.raises(ExchangeError):
        client.get_lot_size_filter("BTCUSDT")


def test_market_order_params():
    session = FakeSession()
    client = BybitClient(session=session)
    order = OrderRequest(symbol="BTCUSDT", side="Buy", order_type="Market", quantity=0.01,
                         price=65000.0, stop_loss=60000.0, take_profit=70000.5)

    result = client.place_order(order)

    assert session.order_calls == [{
        "category": "linear",
        "symbol": "BTCUSDT",
        "side": "Buy",
        "orderType": "Market",
        "qty": "0.01",
        "stopLoss": "60000",
        "takeProfit": "70000.5",
    }]
    assert result == {
        "orderId": "1321003749386327552",
        "symbol": "BTCUSDT",
        "side": "Buy",
        "orderType": "Market",
        "qty": 0.01,
        "price": 65000.0,
        "status": "SUBMITTED",
    }


def test_limit_order_sends_price_and_plain_decimals():
    session = FakeSession()
    client = BybitClient(session=session)
    client.place_order(OrderRequest(symbol="ETHUSDT", side="Sell", order_type="Limit", quantity=0.00001, price=3500.25))

    params = session.order_calls[0]
    assert params["qty"] == "0.00001"
    assert params["price"] == "3500.25"
    assert "stopLoss" not in params


def test_rejected_order_is_an_error():
    session = FakeSession(order_response={"retCode": 110007, "retMsg": "ab not enough for new order", "result": {}})
    client = BybitClient(session=session)
    with pytest.raises(ExchangeError) as exc:
        client.place_order(OrderRequest(symbol="BTCUSDT", side="Buy", order_type="Market", quantity=1))
    assert "not enough" in str(exc.value)


def test_stub_exchange_is_deterministic():
    stub = StubExchangeClient(instruments={"ETHUSDT": {"minOrderQty": "0.01", "qtyStep": "0.01"}})
    assert stub.get_lot_size_filter("ETHUSDT").normalize(0.127) == 0.12
    # unknown symbols use the default filter
    assert stub.get_lot_size_filter("XRPUSDT").normalize(1.23456) == 1.234

    order = OrderRequest(symbol="ETHUSDT", side="Buy", order_type="Market", quantity=0.12)
    assert stub.place_order(order)["orderId"] == "stub-1"
    assert stub.place_order(order)["orderId"] == "stub-2"
    assert len(stub.placed) == 2
    assert stub.lookups == ["ETHUSDT", "XRPUSDT"]


def test_factory_follows_configured_backend():
    config = Settings()
    config.EXCHANGE_BACKEND = "stub"
    assert get_exchange_factory(config) is _stub_factory
    config.EXCHANGE_BACKEND = "Bybit"
    assert get_exchange_factory(config) is _bybit_factory
    config.EXCHANGE_BACKEND = "kraken"
    factory = get_exchange_factory(config)
    # resolving the dependency succeeds; asking for a client does not
    with pytest.raises(ExchangeError, match="kraken"):
        factory(None, True)


def test_check_exchange_backend():
    config = Settings()
    config.EXCHANGE_BACKEND = "BYBIT"
    check_exchange_backend(config)
    config.EXCHANGE_BACKEND = "kraken"
    with pytest.raises(ValueError, match="kraken"):
        check_exchange_backend(config)
