from sqlalchemy import Column, Integer, String, DateTime, Boolean, func
from database import Base


class User(Base):
    """
    Customer account as seen by checkout.
    Registration and authentication live outside this service; the row only
    has to exist for orders and wallet entries to reference it.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firstname = Column(String(100), nullable=True)
    lastname = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
