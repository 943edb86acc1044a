"""
Error taxonomy for pricing and settlement.

Services raise these; routers translate them into HTTP responses using the
`status_code` and `code` carried by each class. They subclass ValueError so
existing `except ValueError` handlers keep working.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException


class CommerceError(ValueError):
    status_code = 400
    code = "commerce_error"
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"status": "error", "code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ---------------- Input errors (400) ---------------- #

class InvalidLineItem(CommerceError):
    code = "invalid_line_item"
    default_message = "Invalid product item structure. Ensure product, size, and quantity are provided."


class ProductUnavailable(CommerceError):
    code = "product_unavailable"
    default_message = "Product is no longer available"


class InsufficientStock(CommerceError):
    code = "insufficient_stock"
    default_message = "Insufficient stock"


class InvalidReason(CommerceError):
    code = "invalid_reason"
    default_message = "Please provide a reason of at least 10 characters"


class InvalidOffer(CommerceError):
    code = "invalid_offer"
    default_message = "Invalid offer"


class InvalidRating(CommerceError):
    code = "invalid_rating"
    default_message = "Rating must be between 1 and 5"


class InvalidCoupon(CommerceError):
    """Base class for every coupon rejection; pricing fails as a whole."""
    code = "invalid_coupon"
    default_message = "Invalid or expired coupon"


class CouponExpired(InvalidCoupon):
    code = "coupon_expired"
    default_message = "Coupon is not valid at this time"


class CouponExhausted(InvalidCoupon):
    code = "coupon_exhausted"
    default_message = "Coupon usage limit reached"


class MinimumPurchaseNotMet(InvalidCoupon):
    code = "minimum_purchase_not_met"
    default_message = "Minimum purchase amount not met for this coupon"


# ---------------- Not-found errors (404) ---------------- #

class NotFoundError(CommerceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class CouponNotFound(InvalidCoupon):
    status_code = 404
    code = "coupon_not_found"
    default_message = "Invalid coupon code"


class ProductNotFound(NotFoundError):
    code = "product_not_found"
    default_message = "Product not found"


class VariantNotFound(NotFoundError):
    code = "variant_not_found"
    default_message = "Selected size not available"


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    default_message = "Order not found"


class ProductNotInOrder(NotFoundError):
    code = "product_not_in_order"
    default_message = "Product not found in order"


class UserNotFound(NotFoundError):
    code = "user_not_found"
    default_message = "User not found"


class AddressNotFound(NotFoundError):
    code = "address_not_found"
    default_message = "Address not found"


class OfferNotFound(NotFoundError):
    code = "offer_not_found"
    default_message = "Offer not found"


class TargetNotFound(NotFoundError):
    code = "target_not_found"
    default_message = "Offer target not found"


# ---------------- State errors (409) ---------------- #

class ConflictError(CommerceError):
    status_code = 409
    code = "conflict"
    default_message = "Conflicting state"


class AlreadyApproved(ConflictError):
    code = "already_approved"
    default_message = "Return already approved"


class OrderNotCancellable(ConflictError):
    code = "order_not_cancellable"
    default_message = "Order can no longer be cancelled"


class ReturnNotAllowed(ConflictError):
    code = "return_not_allowed"
    default_message = "Order is not eligible for return"


class ReturnNotRequested(ConflictError):
    code = "return_not_requested"
    default_message = "No return request for this product"


class InvalidStatusTransition(ConflictError):
    code = "invalid_status_transition"
    default_message = "Order status change not allowed"


class OrderNotDelivered(ConflictError):
    code = "order_not_delivered"
    default_message = "Only delivered orders can be rated"


class CouponCodeTaken(ConflictError):
    code = "coupon_code_taken"
    default_message = "Coupon code already exists"


class OfferOverlap(ConflictError):
    code = "offer_overlap"
    default_message = "An offer already exists for this target during the specified date range"


# ---------------- Consistency errors (500) ---------------- #

class InconsistentState(CommerceError):
    status_code = 500
    code = "inconsistent_state"
    default_message = "Order references a product or size that no longer exists"


def http_exception(exc: CommerceError) -> HTTPException:
    """HTTP response for a service error, keeping its code and message."""
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())
