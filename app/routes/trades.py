import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.errors import AlertRelayError, BadRequestError, error_response
from app.schemas.trade import TradeList, TradeOut
from app.services.repository import TradeRepository

router = APIRouter(tags=["Trades"])

MAX_LIMIT = 500


@router.get("/trades", response_model=TradeList)
def list_trades(
    userId: Optional[str] = None,
    botId: Optional[str] = None,
    symbol: Optional[str] = None,
    side: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(100, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
):
    """Trade history for one user, newest first."""
    if not userId:
        raise BadRequestError("Missing required fields")
    try:
        rows = TradeRepository(db).list(userId, bot_id=botId, symbol=symbol, side=side, status=status, limit=limit)
        return {"trades": [TradeOut.from_row(trade, bot_name) for trade, bot_name in rows]}
    except AlertRelayError:
        raise
    except Exception as e:
        logging.exception("Error listing trades")
        return error_response(500, str(e))
