from sqlalchemy import Column, Integer, String
from app.database import Base


class ApiCredential(Base):
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    exchange = Column(String, index=True, nullable=False)
    api_key = Column(String, nullable=False)
    api_secret = Column(String, nullable=False)
