import logging
import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional

from app.errors import BadRequestError
from app.services.clock import to_iso, utcnow
from app.services.repository import TokenRepository

logger = logging.getLogger(__name__)

TOKEN_BYTES = 24  # token_urlsafe(24) -> 32 characters


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def issue_webhook(tokens: TokenRepository, user_id: Optional[str], bot_id: Optional[str],
                  base_url: str, path_prefix: str, expiration_days: Optional[int] = None,
                  default_expiration_days: int = 30, now: Optional[datetime] = None) -> Dict[str, str]:
    """Store a new token for (user_id, bot_id) and return its callback URL and expiry.

    No collision check is made against existing tokens; 192 random bits make
    one negligible.
    """
    if not user_id or not bot_id:
        raise BadRequestError("Missing required fields")
    if expiration_days is None:
        expiration_days = default_expiration_days
    if expiration_days <= 0:
        raise BadRequestError("expirationDays must be positive")

    now = now or utcnow()
    expires_at = now + timedelta(days=expiration_days)
    token = generate_token()
    logger.info("Issuing webhook token %s... for user=%s bot=%s, expires %s",
                token[:5], user_id, bot_id, to_iso(expires_at))

    tokens.create(token, user_id, bot_id, created_at=now, expires_at=expires_at)

    webhook_url = f"{base_url.rstrip('/')}/{path_prefix.strip('/')}/{token}"
    return {"webhookUrl": webhook_url, "expiresAt": to_iso(expires_at)}
