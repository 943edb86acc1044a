"""
Order pricing - turns requested line items into priced lines and totals.

Composition order is fixed: the product's (or its category's) offer is taken
off each unit price, the coupon is taken off the subtotal, and the flat
shipping fee is added last:

    totalAmount = round2(subtotal - discountAmount) + shippingFee

All arithmetic is Decimal; figures are rounded half-up to two places only when
they are aggregated or reported.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from sqlalchemy.orm import Session

from config import settings
from Utils.datetime_utils import now_ist
from Utils.errors import InvalidLineItem
from Utils.money import to_decimal, round2, as_number, ZERO
from Product_module.catalog_service import get_product, find_variant
from Offer_module.offer_service import resolve_offer, offer_discount, offer_summary
from Cart_module.coupon_service import apply_coupon, CouponApplication

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    size: str
    quantity: int
    cart_item_id: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Union["LineRequest", Mapping[str, Any], Any]) -> "LineRequest":
        """Accept a LineRequest, a JSON-shaped dict or any object with the same attributes."""
        if isinstance(data, LineRequest):
            return data
        if isinstance(data, Mapping):
            product_id = data.get("product", data.get("product_id"))
            size = data.get("size")
            quantity = data.get("quantity")
            cart_item_id = data.get("cartItemId", data.get("cart_item_id"))
        else:
            product_id = getattr(data, "product", None)
            size = getattr(data, "size", None)
            quantity = getattr(data, "quantity", None)
            cart_item_id = getattr(data, "cart_item_id", None)

        if product_id is None or not size or quantity is None:
            raise InvalidLineItem()
        try:
            product_id = _whole_number(product_id)
            quantity = _whole_number(quantity)
        except (TypeError, ValueError, OverflowError):
            raise InvalidLineItem(f"Invalid product or quantity in line for product {product_id}")
        if quantity <= 0:
            raise InvalidLineItem(f"Invalid quantity for product {product_id}")
        return cls(product_id=product_id, size=str(size), quantity=quantity, cart_item_id=cart_item_id)


def _whole_number(value: Any) -> int:
    """int() that refuses bools and fractional values instead of truncating them."""
    if isinstance(value, bool):
        raise TypeError("boolean is not a count")
    if isinstance(value, (float, Decimal)):
        if value != int(value):
            raise ValueError(f"{value} is not a whole number")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    return int(value)


@dataclass
class PricedLine:
    product_id: int
    name: str
    size: str
    quantity: int
    variant_id: int
    base_price: Decimal
    offer_discount: Decimal
    final_price: Decimal
    line_total: Decimal
    offer: Optional[Dict[str, Any]] = None
    cart_item_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "size": self.size,
            "quantity": self.quantity,
            "originalPrice": as_number(self.base_price),
            "offerDiscount": as_number(self.offer_discount),
            "finalPrice": as_number(self.final_price),
            "total": as_number(self.line_total),
            "variantId": self.variant_id,
            "offer": self.offer,
        }


@dataclass
class PricingResult:
    subtotal: Decimal
    shipping_fee: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    coupon: Optional[CouponApplication] = None
    lines: List[PricedLine] = field(default_factory=list)

    @property
    def goods_total(self) -> Decimal:
        """What the items cost after the coupon, shipping excluded."""
        return round2(self.subtotal - self.discount_amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": as_number(self.subtotal),
            "shippingFee": as_number(self.shipping_fee),
            "discountAmount": as_number(self.discount_amount),
            "totalAmount": as_number(self.total_amount),
            "couponDetails": self.coupon.to_dict() if self.coupon else None,
            "productDetails": [line.to_dict() for line in self.lines],
        }


def price_line(db: Session, request: LineRequest, now: datetime) -> PricedLine:
    product = get_product(db, request.product_id)
    variant = find_variant(product, request.size)

    base_price = to_decimal(variant.price)
    offer = resolve_offer(db, product, now)
    discount = offer_discount(offer, base_price)
    final_price = max(base_price - discount, ZERO)

    return PricedLine(
        product_id=product.id,
        name=product.name,
        size=variant.size,
        quantity=request.quantity,
        variant_id=variant.id,
        base_price=base_price,
        offer_discount=discount,
        final_price=final_price,
        line_total=final_price * request.quantity,
        offer=offer_summary(offer),
        cart_item_id=request.cart_item_id,
    )


def price_order(
    db: Session,
    lines: Iterable[Any],
    coupon_code: Optional[str] = None,
    now: Optional[datetime] = None
) -> PricingResult:
    """
    Price a list of requested lines, failing on the first invalid one.

    A supplied coupon must apply or the whole call fails; there is no
    fall back to a coupon-less price. Redeeming the coupon is the only write
    this function makes, and it is left to the caller to commit.
    """
    now = now or now_ist()
    requests = [LineRequest.from_mapping(line) for line in lines]
    if not requests:
        raise InvalidLineItem("No products selected")

    priced = [price_line(db, request, now) for request in requests]
    subtotal = round2(sum((line.line_total for line in priced), ZERO))
    shipping_fee = round2(settings.SHIPPING_FEE)

    coupon = None
    discount_amount = ZERO
    if coupon_code:
        coupon = apply_coupon(db, coupon_code, subtotal, now)
        discount_amount = round2(coupon.discount_amount)

    total_amount = round2(subtotal - discount_amount) + shipping_fee

    logger.info(
        f"Priced {len(priced)} line(s): subtotal ₹{subtotal}, discount ₹{discount_amount}, "
        f"shipping ₹{shipping_fee}, total ₹{total_amount}"
    )
    return PricingResult(
        subtotal=subtotal,
        shipping_fee=shipping_fee,
        discount_amount=discount_amount,
        total_amount=total_amount,
        coupon=coupon,
        lines=priced,
    )
