import os

# Keep the app's own engine off disk; tests use the engine below.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings
from app.database import Base, get_db
from app.main import app
from app.models.api_key import ApiCredential
from app.models.bot import BotConfig
from app.models.webhook_token import WebhookToken
from app.services.clock import utcnow
from app.services.exchange import StubExchangeClient, get_exchange_factory


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def test_settings():
    s = Settings()
    s.PUBLIC_BASE_URL = "https://relay.example.com"
    s.ALERT_PATH_PREFIX = "/processAlert"
    s.DEFAULT_EXPIRATION_DAYS = 30
    s.EXCHANGE_NAME = "bybit"
    s.EXCHANGE_BACKEND = "stub"
    return s


@pytest.fixture
def stub_exchange():
    return StubExchangeClient(instruments={
        "BTCUSDT": {"minOrderQty": "0.001", "qtyStep": "0.001"},
        "ETHUSDT": {"minOrderQty": "0.01", "qtyStep": "0.01"},
        "DOGEUSDT": {"minTrdAmt": "1", "stepSize": "1"},
        "BADUSDT": None,
    })


@pytest.fixture
def factory_calls():
    return []


@pytest.fixture
def client(db_session, test_settings, stub_exchange, factory_calls):
    def override_get_db():
        yield db_session

    def factory(credentials, testnet):
        factory_calls.append((credentials, testnet))
        return stub_exchange

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_exchange_factory] = lambda: factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_bot(db, **fields):
    values = dict(user_id="user-1", name="btc bot", symbol="BTCUSDT", default_side="Buy",
                  default_order_type="Market", default_quantity=0.0105, test_mode=True, trade_count=0)
    values.update(fields)
    bot = BotConfig(**values)
    db.add(bot)
    db.commit()
    db.refresh(bot)
    return bot


def make_api_key(db, user_id="user-1", exchange="bybit"):
    key = ApiCredential(user_id=user_id, exchange=exchange, api_key="key-123", api_secret="secret-456")
    db.add(key)
    db.commit()
    return key


def make_token(db, bot, token="tok_" + "a" * 28, expires_in=timedelta(days=1)):
    now = utcnow()
    row = WebhookToken(webhook_token=token, user_id=bot.user_id, bot_id=bot.id,
                       created_at=now, expires_at=now + expires_in)
    db.add(row)
    db.commit()
    return row
