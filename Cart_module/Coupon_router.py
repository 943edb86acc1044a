"""
Coupon router - admin coupon management and storefront coupon checks.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from deps import get_db
from Utils.errors import CommerceError, http_exception
from Utils.money import as_number
from .Coupon_schema import CouponCreate, ApplyCouponRequest
from .coupon_service import (
    create_coupon,
    delete_coupon,
    list_coupons,
    serialize_coupon,
    validate_coupon,
    available_coupons
)

router = APIRouter(prefix="/coupons", tags=["Coupons"])

logger = logging.getLogger(__name__)


@router.get("")
def get_coupons(db: Session = Depends(get_db)):
    return {
        "status": "success",
        "data": [serialize_coupon(c) for c in list_coupons(db)],
    }


@router.post("", status_code=201)
def add_coupon(payload: CouponCreate, db: Session = Depends(get_db)):
    try:
        coupon = create_coupon(
            db,
            code=payload.code,
            discount=payload.discount,
            start_date=payload.start_date,
            expiry_date=payload.expiry_date,
            minimum_purchase_amount=payload.minimum_purchase_amount,
            maximum_discount_amount=payload.maximum_discount_amount,
            max_uses=payload.max_uses,
        )
        db.commit()
        db.refresh(coupon)
    except CommerceError as e:
        db.rollback()
        logger.warning(f"Coupon creation failed: {e.message}")
        raise http_exception(e)

    return {
        "status": "success",
        "message": "Coupon created successfully",
        "data": serialize_coupon(coupon),
    }


@router.delete("/{coupon_id}")
def remove_coupon(coupon_id: int, db: Session = Depends(get_db)):
    try:
        delete_coupon(db, coupon_id)
        db.commit()
    except CommerceError as e:
        db.rollback()
        raise http_exception(e)

    return {"status": "success", "message": "Coupon deleted successfully"}


@router.get("/available")
def get_available_coupons(
    order_amount: float = Query(0, alias="orderAmount", ge=0),
    db: Session = Depends(get_db)
):
    """Coupons the customer can apply to an order of this amount."""
    return {
        "status": "success",
        "data": [serialize_coupon(c) for c in available_coupons(db, order_amount)],
    }


@router.post("/validate")
def check_coupon(payload: ApplyCouponRequest, db: Session = Depends(get_db)):
    """
    Check a coupon against a subtotal without using it up.
    The coupon is only redeemed when an order is priced or placed.
    """
    try:
        coupon, discount_amount = validate_coupon(db, payload.coupon_code, payload.subtotal)
    except CommerceError as e:
        raise http_exception(e)

    return {
        "status": "success",
        "message": "Coupon is valid",
        "data": {
            "code": coupon.code,
            "discount": as_number(coupon.discount),
            "discountAmount": as_number(discount_amount),
        },
    }
