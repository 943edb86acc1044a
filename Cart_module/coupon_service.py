"""
Coupon service for validating and redeeming coupons.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Tuple, Dict, Any
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from Utils.datetime_utils import now_ist, to_ist, within_window, to_ist_isoformat
from Utils.errors import (
    CouponNotFound, CouponExpired, CouponExhausted, MinimumPurchaseNotMet, InvalidCoupon, CouponCodeTaken
)
from Utils.money import to_decimal, round2, as_number
from .Coupon_model import Coupon

logger = logging.getLogger(__name__)


@dataclass
class CouponApplication:
    coupon_id: int
    code: str
    discount: Decimal  # Coupon percentage
    discount_amount: Decimal  # Amount taken off the subtotal (unrounded)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "discountAmount": float(round2(self.discount_amount)),
            "discount": float(self.discount),
            "couponId": self.coupon_id,
        }


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
    return db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()


def calculate_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    """Percentage of the subtotal, capped by the coupon and by the subtotal itself."""
    amount = subtotal * to_decimal(coupon.discount) / Decimal(100)
    return min(amount, to_decimal(coupon.maximum_discount_amount), subtotal)


def validate_coupon(
    db: Session,
    code: str,
    subtotal,
    now: Optional[datetime] = None
) -> Tuple[Coupon, Decimal]:
    """
    Check a coupon against a subtotal without redeeming it.

    Returns:
        Tuple of (Coupon, discount_amount)
    """
    now = now or now_ist()
    subtotal = to_decimal(subtotal)
    normalized_code = normalize_code(code)

    coupon = get_coupon_by_code(db, normalized_code)
    if not coupon:
        logger.warning(f"Coupon '{normalized_code}' not found")
        raise CouponNotFound(f"Invalid coupon code '{normalized_code}'")

    if not within_window(now, coupon.start_date, coupon.expiry_date):
        logger.warning(
            f"Coupon '{coupon.code}' used outside its validity window "
            f"({to_ist(coupon.start_date)} - {to_ist(coupon.expiry_date)})"
        )
        raise CouponExpired(f"Coupon '{coupon.code}' is not valid at this time")

    if coupon.max_uses is not None and coupon.usage_count >= coupon.max_uses:
        logger.warning(f"Coupon '{coupon.code}' usage limit reached. Used: {coupon.usage_count}/{coupon.max_uses}")
        raise CouponExhausted(f"Coupon '{coupon.code}' usage limit reached ({coupon.max_uses} uses)")

    minimum = to_decimal(coupon.minimum_purchase_amount)
    if subtotal < minimum:
        logger.warning(f"Coupon '{coupon.code}' requires minimum order of ₹{minimum}, but subtotal is ₹{subtotal}")
        raise MinimumPurchaseNotMet(
            f"Minimum purchase amount of ₹{minimum} required for coupon '{coupon.code}'. "
            f"Add items worth ₹{round2(minimum - subtotal)} more to apply this coupon."
        )

    return coupon, calculate_discount(coupon, subtotal)


def apply_coupon(
    db: Session,
    code: str,
    subtotal,
    now: Optional[datetime] = None
) -> CouponApplication:
    """
    Validate a coupon and consume one use of it.

    The usage counter is bumped with a conditional UPDATE so two concurrent
    redemptions cannot push usage_count past max_uses. The change is flushed
    only; the caller's transaction decides whether it is kept.
    """
    coupon, discount_amount = validate_coupon(db, code, subtotal, now)

    query = db.query(Coupon).filter(Coupon.id == coupon.id)
    if coupon.max_uses is not None:
        query = query.filter(Coupon.usage_count < Coupon.max_uses)
    updated = query.update(
        {Coupon.usage_count: Coupon.usage_count + 1},
        synchronize_session=False
    )
    if not updated:
        raise CouponExhausted(f"Coupon '{coupon.code}' usage limit reached ({coupon.max_uses} uses)")
    db.refresh(coupon)

    logger.info(
        f"Coupon '{coupon.code}' applied: discount ₹{round2(discount_amount)} "
        f"(usage {coupon.usage_count}/{coupon.max_uses if coupon.max_uses is not None else 'unlimited'})"
    )
    return CouponApplication(
        coupon_id=coupon.id,
        code=coupon.code,
        discount=to_decimal(coupon.discount),
        discount_amount=discount_amount,
    )


def available_coupons(db: Session, order_amount, now: Optional[datetime] = None) -> List[Coupon]:
    """
    Coupons a customer could apply to an order of `order_amount` right now.
    """
    now = now or now_ist()
    order_amount = to_decimal(order_amount)
    coupons = db.query(Coupon).filter(
        Coupon.minimum_purchase_amount <= order_amount,
        or_(Coupon.max_uses.is_(None), Coupon.usage_count < Coupon.max_uses)
    ).order_by(Coupon.id).all()
    return [c for c in coupons if within_window(now, c.start_date, c.expiry_date)]


# ---------------- Admin operations ---------------- #

def serialize_coupon(coupon: Coupon) -> Dict[str, Any]:
    return {
        "id": coupon.id,
        "code": coupon.code,
        "discount": as_number(coupon.discount),
        "minimumPurchaseAmount": as_number(coupon.minimum_purchase_amount),
        "maximumDiscountAmount": as_number(coupon.maximum_discount_amount),
        "maxUses": coupon.max_uses,
        "usageCount": coupon.usage_count,
        "startDate": to_ist_isoformat(coupon.start_date),
        "expiryDate": to_ist_isoformat(coupon.expiry_date),
    }


def create_coupon(
    db: Session,
    code: str,
    discount,
    start_date: datetime,
    expiry_date: datetime,
    minimum_purchase_amount,
    maximum_discount_amount,
    max_uses: Optional[int] = None,
    now: Optional[datetime] = None
) -> Coupon:
    now = now or now_ist()
    code = normalize_code(code)
    discount = to_decimal(discount)
    minimum = to_decimal(minimum_purchase_amount)
    maximum = to_decimal(maximum_discount_amount)

    if not code:
        raise InvalidCoupon("Coupon code is required")
    if discount <= 0 or discount > 100:
        raise InvalidCoupon("Discount must be between 0 and 100")
    if to_ist(start_date) > to_ist(expiry_date):
        raise InvalidCoupon("Start date must be before expiry date")
    if to_ist(expiry_date) < to_ist(now):
        raise InvalidCoupon("Expiry date must be in the future")
    if minimum < 0 or maximum < 0:
        raise InvalidCoupon("Minimum purchase and maximum discount amounts must be positive")
    if maximum > minimum:
        raise InvalidCoupon("Maximum discount cannot be greater than minimum purchase amount")
    if max_uses is not None and max_uses <= 0:
        raise InvalidCoupon("Max uses must be greater than 0")
    if get_coupon_by_code(db, code):
        raise CouponCodeTaken(f"Coupon code '{code}' already exists")

    coupon = Coupon(
        code=code,
        discount=discount,
        minimum_purchase_amount=minimum,
        maximum_discount_amount=maximum,
        max_uses=max_uses,
        usage_count=0,
        start_date=to_ist(start_date),
        expiry_date=to_ist(expiry_date),
    )
    db.add(coupon)
    db.flush()
    logger.info(f"Created coupon '{code}' ({discount}% up to ₹{maximum}, min ₹{minimum})")
    return coupon


def delete_coupon(db: Session, coupon_id: int) -> None:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise CouponNotFound("Coupon not found")
    db.delete(coupon)
    db.flush()
    logger.info(f"Deleted coupon '{coupon.code}'")


def list_coupons(db: Session) -> List[Coupon]:
    return db.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()
