"""
Order router - pricing, placement, cancellation, returns and admin views.
"""
from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from deps import get_db
from Utils.errors import CommerceError, http_exception
from .Order_schema import (
    PriceOrderRequest,
    PlaceOrderRequest,
    CancelOrderRequest,
    ReturnOrderRequest,
    ApproveReturnRequest,
    UpdateOrderStatusRequest,
    RateOrderRequest,
    PricingResponse,
    RefundResponse
)
from .Order_crud import (
    place_order,
    cancel_order,
    request_return,
    approve_return,
    update_order_status,
    rate_order,
    soft_delete_order,
    serialize_order,
    get_user_orders,
    get_order_detail,
    get_orders_admin,
    get_return_requests,
    sales_report
)
from .pricing_service import price_order

router = APIRouter(prefix="/orders", tags=["Orders"])

logger = logging.getLogger(__name__)


def _fail(db: Session, action: str, exc: CommerceError):
    db.rollback()
    if exc.status_code >= 500:
        logger.error(f"{action} failed: {exc.code} - {exc.message}")
    else:
        logger.warning(f"{action} rejected: {exc.code} - {exc.message}")
    return http_exception(exc)


@router.post("/price", response_model=PricingResponse)
def price_checkout(payload: PriceOrderRequest, db: Session = Depends(get_db)):
    """
    Price the requested lines. A coupon given here is redeemed, exactly as it
    would be when the order is placed.
    """
    try:
        result = price_order(db, payload.items, payload.coupon_code)
        db.commit()
    except CommerceError as e:
        raise _fail(db, "Pricing", e)
    return result.to_dict()


@router.post("", status_code=201)
def create_order(payload: PlaceOrderRequest, db: Session = Depends(get_db)):
    try:
        order = place_order(
            db,
            user_id=payload.user_id,
            address_id=payload.address_id,
            lines=payload.items,
            payment_method=payload.payment_method,
            coupon_code=payload.coupon_code,
            transaction_id=payload.transaction_id,
        )
    except CommerceError as e:
        raise _fail(db, "Order placement", e)

    return {
        "status": "success",
        "message": "Order placed successfully",
        "data": serialize_order(order),
    }


# ---------------- Admin views ---------------- #

@router.get("/admin/all")
def list_all_orders(db: Session = Depends(get_db)):
    return {"status": "success", "data": get_orders_admin(db)}


@router.get("/admin/returns")
def list_return_requests(db: Session = Depends(get_db)):
    return {"status": "success", "data": get_return_requests(db)}


@router.get("/admin/sales-report")
def get_sales_report(
    start: datetime = Query(..., description="Report start (IST if no offset given)"),
    end: datetime = Query(..., description="Report end (IST if no offset given)"),
    db: Session = Depends(get_db)
):
    return {"status": "success", "data": sales_report(db, start, end)}


# ---------------- Customer views ---------------- #

@router.get("/user/{user_id}")
def list_user_orders(user_id: int, db: Session = Depends(get_db)):
    return {"status": "success", "data": get_user_orders(db, user_id)}


@router.get("/{order_id}")
def get_order(order_id: int, user_id: Optional[int] = None, db: Session = Depends(get_db)):
    try:
        data = get_order_detail(db, order_id, user_id)
    except CommerceError as e:
        raise _fail(db, "Order lookup", e)
    return {"status": "success", "data": data}


@router.post("/{order_id}/cancel")
def cancel(order_id: int, payload: CancelOrderRequest, db: Session = Depends(get_db)):
    try:
        order = cancel_order(db, order_id, payload.reason, user_id=payload.user_id)
    except CommerceError as e:
        raise _fail(db, "Cancellation", e)
    return {
        "status": "success",
        "message": "Order cancelled successfully",
        "data": serialize_order(order),
    }


@router.post("/{order_id}/return")
def return_product(order_id: int, payload: ReturnOrderRequest, db: Session = Depends(get_db)):
    try:
        request_return(
            db,
            order_id,
            payload.product_id,
            payload.user_id,
            payload.reason,
            size=payload.size,
        )
    except CommerceError as e:
        raise _fail(db, "Return request", e)
    return {"status": "success", "message": "Return request submitted successfully"}


@router.post("/{order_id}/return/approve", response_model=RefundResponse)
def approve_product_return(order_id: int, payload: ApproveReturnRequest, db: Session = Depends(get_db)):
    try:
        refund = approve_return(db, order_id, payload.product_id, size=payload.size)
    except CommerceError as e:
        raise _fail(db, "Return approval", e)
    return refund.to_dict()


@router.put("/{order_id}/status")
def change_status(order_id: int, payload: UpdateOrderStatusRequest, db: Session = Depends(get_db)):
    try:
        order = update_order_status(db, order_id, payload.status, payload.changed_by, payload.notes)
    except CommerceError as e:
        raise _fail(db, "Status update", e)
    return {
        "status": "success",
        "message": f"Order status updated to {order.payment_status.value}",
        "data": serialize_order(order),
    }


@router.post("/{order_id}/rating")
def rate(order_id: int, payload: RateOrderRequest, db: Session = Depends(get_db)):
    try:
        order = rate_order(db, order_id, payload.user_id, payload.rating)
    except CommerceError as e:
        raise _fail(db, "Rating", e)
    return {"status": "success", "message": "Rating submitted successfully", "rating": order.rating}


@router.delete("/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db)):
    try:
        soft_delete_order(db, order_id)
    except CommerceError as e:
        raise _fail(db, "Order delete", e)
    return {"status": "success", "message": "Order deleted successfully"}
