# app/services/repository.py
"""Table access used by the handlers, one small repository per table.

Each repository wraps a SQLAlchemy Session. Reads never commit; writes commit
and roll back on failure before re-raising, so callers decide whether a failed
write is fatal (token issuing) or best-effort (trade audit, bot counters).
"""
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from app.models.api_key import ApiCredential
from app.models.bot import BotConfig
from app.models.trade import Trade
from app.models.webhook_token import WebhookToken


def _commit(db: Session, obj=None):
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    if obj is not None:
        db.refresh(obj)
    return obj


class TokenRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, token: str, user_id: str, bot_id: str, created_at: datetime, expires_at: datetime) -> WebhookToken:
        row = WebhookToken(
            webhook_token=token,
            user_id=user_id,
            bot_id=bot_id,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.db.add(row)
        return _commit(self.db, row)

    def find_valid(self, token: str, now: datetime) -> Optional[WebhookToken]:
        """The token row if it exists and expires strictly after `now`."""
        if not token:
            return None
        return self.db.query(WebhookToken).filter(
            WebhookToken.webhook_token == token,
            WebhookToken.expires_at > now,
        ).first()


class BotRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, bot_id: str) -> Optional[BotConfig]:
        return self.db.get(BotConfig, bot_id)

    def record_trade(self, bot: BotConfig, now: datetime) -> BotConfig:
        # Read-then-write: concurrent alerts for one bot can lose an increment.
        bot.last_trade_at = now
        bot.trade_count = (bot.trade_count or 0) + 1
        return _commit(self.db, bot)


class CredentialRepository:
    def __init__(self, db: Session):
        self.db = db

    def find(self, user_id: str, exchange: str) -> Optional[ApiCredential]:
        return self.db.query(ApiCredential).filter(
            ApiCredential.user_id == user_id,
            ApiCredential.exchange == exchange,
        ).first()


class TradeRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(self, **fields) -> Trade:
        trade = Trade(**fields)
        self.db.add(trade)
        return _commit(self.db, trade)

    def list(self, user_id: str, bot_id: Optional[str] = None, symbol: Optional[str] = None,
             side: Optional[str] = None, status: Optional[str] = None,
             limit: int = 100) -> List[Tuple[Trade, Optional[str]]]:
        """(trade, bot name) pairs for one user, newest first. The name is None once the bot is gone."""
        q = (
            self.db.query(Trade, BotConfig.name)
            .outerjoin(BotConfig, BotConfig.id == Trade.bot_id)
            .filter(Trade.user_id == user_id)
        )
        if bot_id is not None:
            q = q.filter(Trade.bot_id == bot_id)
        if symbol:
            q = q.filter(Trade.symbol == symbol.upper())
        if side:
            q = q.filter(Trade.side == side.capitalize())
        if status:
            q = q.filter(Trade.status == status)
        return q.order_by(Trade.created_at.desc(), Trade.id.desc()).limit(limit).all()
