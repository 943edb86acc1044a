"""
Offer model - time-bounded discount attached to one product or one category.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum, Index, func
from database import Base
import enum


class OfferDiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class OfferTarget(str, enum.Enum):
    PRODUCT = "product"
    CATEGORY = "category"


class Offer(Base):
    __tablename__ = "offers"
    __table_args__ = (
        # Lookups always go through (target type, target id)
        Index("ix_offers_target", "applicable_to", "target_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    description = Column(String(500), nullable=True)

    discount_type = Column(Enum(OfferDiscountType), nullable=False)
    discount_value = Column(Numeric(12, 2), nullable=False)
    max_discount_amount = Column(Numeric(12, 2), nullable=True)  # Cap, PERCENTAGE offers only

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    applicable_to = Column(Enum(OfferTarget), nullable=False)
    target_id = Column(Integer, nullable=False)  # products.id or categories.id

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
