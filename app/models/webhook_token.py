from sqlalchemy import Column, Integer, String, DateTime
from app.services.clock import utcnow
from app.database import Base


class WebhookToken(Base):
    """Maps an opaque callback token to one (user, bot) pair until expiry."""
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, index=True)
    webhook_token = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    bot_id = Column(String, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
