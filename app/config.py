import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME = "Alert Relay"
    ENV = os.getenv("ENV", "development")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./alerts.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Webhook issuing
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")
    ALERT_PATH_PREFIX = os.getenv("ALERT_PATH_PREFIX", "/processAlert")
    DEFAULT_EXPIRATION_DAYS = int(os.getenv("DEFAULT_EXPIRATION_DAYS", "30"))

    # Exchange
    EXCHANGE_NAME = os.getenv("EXCHANGE_NAME", "bybit")
    EXCHANGE_BACKEND = os.getenv("EXCHANGE_BACKEND", "bybit")  # bybit or stub

    CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency; override in tests to inject a different Settings."""
    return settings
