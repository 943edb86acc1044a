from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, func
from database import Base


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    full_name = Column(String(150), nullable=False)
    phone = Column(String(20), nullable=True)
    street_address = Column(String(255), nullable=False)
    district = Column(String(100), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    pincode = Column(String(20), nullable=False, index=True)
    country = Column(String(100), nullable=False, default="India")

    is_deleted = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
