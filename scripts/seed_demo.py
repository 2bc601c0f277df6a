import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.database import Base, engine, SessionLocal
from app.models.bot import BotConfig
from app.models.api_key import ApiCredential
# imported so create_all sees every table
from app.models.webhook_token import WebhookToken
from app.models.trade import Trade

USER_ID = os.getenv('DEMO_USER_ID', 'demo-user')


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        bot = BotConfig(
            user_id=USER_ID,
            name='BTC demo',
            symbol='BTCUSDT',
            default_side='Buy',
            default_order_type='Market',
            default_quantity=0.001,
            test_mode=True,
            trade_count=0,
        )
        db.add(bot)
        if not db.query(ApiCredential).filter(ApiCredential.user_id == USER_ID, ApiCredential.exchange == 'bybit').first():
            db.add(ApiCredential(
                user_id=USER_ID,
                exchange='bybit',
                api_key=os.getenv('BYBIT_API_KEY', 'demo-key'),
                api_secret=os.getenv('BYBIT_API_SECRET', 'demo-secret'),
            ))
        db.commit()
        print(f'Seeded bot id={bot.id} for user {USER_ID}')
    finally:
        db.close()


if __name__ == '__main__':
    main()
