import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.database import Base, engine
from app.routes import webhook
from app.routes import trades
from app.config import settings
from app.errors import register_error_handlers
from app.services.exchange import check_exchange_backend
# Import all models to ensure they're registered with SQLAlchemy
from app.models.webhook_token import WebhookToken
from app.models.bot import BotConfig
from app.models.api_key import ApiCredential
from app.models.trade import Trade

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

check_exchange_backend(settings)
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.APP_NAME)

# TradingView posts from its own servers; allow any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
register_error_handlers(app)

app.include_router(webhook.router)
app.include_router(trades.router)

@app.get("/")
def root():
    return {"message": "Alert relay is running"}
