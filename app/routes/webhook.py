# app/routes/webhook.py
from fastapi import APIRouter, Depends, Request
from concurrent.futures import ThreadPoolExecutor
from sqlalchemy.orm import Session
from app.config import Settings, get_settings
from app.database import get_db
from app.errors import AlertRelayError, error_response
from app.schemas.webhook import GenerateWebhookRequest, GenerateWebhookResponse, ProcessAlertResponse
from app.services.alerts import AlertProcessor
from app.services.exchange import ExchangeFactory, get_exchange_factory
from app.services.repository import BotRepository, CredentialRepository, TokenRepository, TradeRepository
from app.services.webhooks import issue_webhook
import asyncio
import logging
import json

router = APIRouter(tags=["Webhook"])

# exchange and database calls are blocking
executor = ThreadPoolExecutor(max_workers=4)


@router.post("/generateWebhook", response_model=GenerateWebhookResponse)
def generate_webhook(body: GenerateWebhookRequest, request: Request,
                     db: Session = Depends(get_db), config: Settings = Depends(get_settings)):
    """Create a callback URL that TradingView (or any caller) can POST alerts to."""
    logging.info("generateWebhook: userId=%s botId=%s expirationDays=%s", body.userId, body.botId, body.expirationDays)
    base_url = config.PUBLIC_BASE_URL or str(request.base_url)
    try:
        return issue_webhook(
            TokenRepository(db),
            body.userId,
            body.botId,
            base_url=base_url,
            path_prefix=config.ALERT_PATH_PREFIX,
            expiration_days=body.expirationDays,
            default_expiration_days=config.DEFAULT_EXPIRATION_DAYS,
        )
    except AlertRelayError:
        raise
    except Exception as e:
        logging.exception("Error generating webhook")
        return error_response(500, str(e))


@router.post("/processAlert/{token}", response_model=ProcessAlertResponse)
async def process_alert(token: str, request: Request, db: Session = Depends(get_db),
                        config: Settings = Depends(get_settings),
                        exchange_factory: ExchangeFactory = Depends(get_exchange_factory)):
    """
    Receives an alert for the bot bound to `token` and places (or simulates) the order.

    The body is optional JSON; missing fields fall back to the bot's defaults and
    a body that is not valid JSON is treated as empty.
    """
    raw = await request.body()
    alert = None
    if raw.strip():
        try:
            alert = json.loads(raw)
        except ValueError as e:
            logging.warning("Alert JSON parse error: %s", e)

    processor = AlertProcessor(
        TokenRepository(db),
        BotRepository(db),
        CredentialRepository(db),
        TradeRepository(db),
        exchange_factory,
        exchange_name=config.EXCHANGE_NAME,
    )

    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(executor, processor.process, token, alert)
    except AlertRelayError:
        raise
    except Exception as e:
        logging.exception("Error processing alert")
        return error_response(500, str(e))
