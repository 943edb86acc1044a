"""
Order schemas for request/response models.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any

from .Order_model import OrderStatus, PaymentMethod


class LineItem(BaseModel):
    """One requested line: product, size and quantity (cart_item_id when it came from the cart)"""
    product: int = Field(..., description="Product ID", gt=0)
    size: str = Field(..., description="Variant size", min_length=1)
    quantity: int = Field(..., description="Units ordered", gt=0)
    cart_item_id: Optional[int] = Field(None, description="Cart item consumed by this line")

    @field_validator('size')
    @classmethod
    def strip_size(cls, v):
        if not v.strip():
            raise ValueError('Size is required')
        return v.strip()


def _normalize_coupon_code(v):
    if v is None:
        return None
    v = v.strip().upper()
    return v or None


class PriceOrderRequest(BaseModel):
    """Preview the price of a checkout"""
    items: List[LineItem]
    coupon_code: Optional[str] = None

    @field_validator('coupon_code')
    @classmethod
    def validate_coupon_code(cls, v):
        return _normalize_coupon_code(v)


class PlaceOrderRequest(BaseModel):
    """Place an order for the given lines"""
    user_id: int = Field(..., gt=0)
    address_id: int = Field(..., gt=0)
    items: List[LineItem]
    payment_method: PaymentMethod
    coupon_code: Optional[str] = None
    transaction_id: Optional[str] = Field(None, description="Gateway transaction for prepaid orders")

    @field_validator('coupon_code')
    @classmethod
    def validate_coupon_code(cls, v):
        return _normalize_coupon_code(v)


class CancelOrderRequest(BaseModel):
    reason: str
    user_id: Optional[int] = Field(None, description="Restrict to this user's orders")


class ReturnOrderRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    product_id: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1)
    size: Optional[str] = None


class ApproveReturnRequest(BaseModel):
    product_id: int = Field(..., gt=0)
    size: Optional[str] = None


class UpdateOrderStatusRequest(BaseModel):
    """Request to update order status"""
    status: OrderStatus = Field(..., description="New order status")
    notes: Optional[str] = Field(None, description="Notes about the status change")
    changed_by: str = "admin"


class RateOrderRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)


class PricingResponse(BaseModel):
    subtotal: float
    shippingFee: float
    discountAmount: float
    totalAmount: float
    couponDetails: Optional[Dict[str, Any]] = None
    productDetails: List[Dict[str, Any]]


class RefundResponse(BaseModel):
    orderId: int
    productId: int
    refundAmount: float
    walletTransactionId: int
    walletBalance: float
