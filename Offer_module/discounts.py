"""
Discount shapes an offer can take.

Each variant knows how much it takes off a single unit price. The cap of an
offer applies to percentage discounts only; a fixed discount is taken as-is.
Neither variant ever takes off more than the base price.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from Utils.money import to_decimal, ZERO
from .Offer_model import Offer, OfferDiscountType


@dataclass(frozen=True)
class PercentageDiscount:
    value: Decimal
    cap: Optional[Decimal] = None

    def apply(self, base_price: Decimal) -> Decimal:
        amount = base_price * self.value / Decimal(100)
        if self.cap is not None:
            amount = min(amount, self.cap)
        return max(min(amount, base_price), ZERO)


@dataclass(frozen=True)
class FixedDiscount:
    value: Decimal

    def apply(self, base_price: Decimal) -> Decimal:
        return max(min(self.value, base_price), ZERO)


Discount = Union[PercentageDiscount, FixedDiscount]


def discount_for(offer: Offer) -> Discount:
    if offer.discount_type == OfferDiscountType.PERCENTAGE:
        cap = to_decimal(offer.max_discount_amount) if offer.max_discount_amount is not None else None
        return PercentageDiscount(value=to_decimal(offer.discount_value), cap=cap)
    return FixedDiscount(value=to_decimal(offer.discount_value))
