"""
Coupon model for code-activated checkout discounts.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, CheckConstraint, func
from database import Base


class Coupon(Base):
    """
    Percentage coupon with a cap, a minimum purchase and an optional usage cap.
    Codes are stored upper-case.
    """
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("usage_count >= 0", name="ck_coupons_usage_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)

    discount = Column(Numeric(5, 2), nullable=False)  # Percentage (0-100]
    minimum_purchase_amount = Column(Numeric(12, 2), nullable=False, default=0)
    maximum_discount_amount = Column(Numeric(12, 2), nullable=False)

    # Usage limits
    max_uses = Column(Integer, nullable=True)  # None = unlimited
    usage_count = Column(Integer, nullable=False, default=0)

    # Validity period
    start_date = Column(DateTime(timezone=True), nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
