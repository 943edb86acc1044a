"""
Offer resolution and admin offer management.

The active offer of a product is looked up at read time from the offers table
by (target type, target id, now); nothing is cached on products or categories,
so an expired or deleted offer simply stops matching.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
import logging

from sqlalchemy.orm import Session

from Utils.datetime_utils import now_ist, to_ist, within_window, to_ist_isoformat
from Utils.errors import InvalidOffer, OfferOverlap, OfferNotFound, TargetNotFound
from Utils.money import to_decimal, as_number
from Product_module.Product_model import Product, Category
from .Offer_model import Offer, OfferDiscountType, OfferTarget
from .discounts import discount_for

logger = logging.getLogger(__name__)


def find_active_offer_for_target(
    db: Session,
    target_type: OfferTarget,
    target_id: int,
    now: Optional[datetime] = None
) -> Optional[Offer]:
    """
    Return the offer of a target whose [start_date, end_date] contains `now`.
    Overlapping offers are rejected at creation, so at most one can match;
    the earliest-starting one is returned if the data says otherwise.
    """
    if target_id is None:
        return None
    now = now or now_ist()
    candidates = (
        db.query(Offer)
        .filter(Offer.applicable_to == target_type, Offer.target_id == target_id)
        .order_by(Offer.start_date.asc(), Offer.id.asc())
        .all()
    )
    for offer in candidates:
        if within_window(now, offer.start_date, offer.end_date):
            return offer
    return None


def resolve_offer(db: Session, product: Product, now: Optional[datetime] = None) -> Optional[Offer]:
    """
    The single offer that applies to a product right now, or None.
    A product-level offer takes precedence over its category's offer; category
    offers only apply while the category is active.
    """
    now = now or now_ist()
    offer = find_active_offer_for_target(db, OfferTarget.PRODUCT, product.id, now)
    if offer:
        return offer

    category = product.category
    if category is not None and category.is_active:
        return find_active_offer_for_target(db, OfferTarget.CATEGORY, category.id, now)
    return None


def offer_discount(offer: Optional[Offer], base_price: Decimal) -> Decimal:
    """Per-unit discount an offer takes off `base_price` (0 without an offer)."""
    if offer is None:
        return Decimal("0")
    return discount_for(offer).apply(to_decimal(base_price))


def offer_summary(offer: Optional[Offer]) -> Optional[Dict[str, Any]]:
    if offer is None:
        return None
    return {
        "name": offer.name,
        "discountType": offer.discount_type.value,
        "discountValue": as_number(offer.discount_value),
    }


def serialize_offer(offer: Offer) -> Dict[str, Any]:
    return {
        "id": offer.id,
        "name": offer.name,
        "description": offer.description,
        "discountType": offer.discount_type.value,
        "discountValue": as_number(offer.discount_value),
        "maxDiscountAmount": as_number(offer.max_discount_amount) if offer.max_discount_amount is not None else None,
        "startDate": to_ist_isoformat(offer.start_date),
        "endDate": to_ist_isoformat(offer.end_date),
        "applicableTo": offer.applicable_to.value,
        "targetId": offer.target_id,
    }


# ---------------- Admin operations ---------------- #

def _validate_offer_fields(
    discount_type: OfferDiscountType,
    discount_value: Decimal,
    start_date: datetime,
    end_date: datetime,
    now: datetime
) -> None:
    if discount_type == OfferDiscountType.PERCENTAGE and (discount_value <= 0 or discount_value > 100):
        raise InvalidOffer("Percentage discount must be between 0 and 100")
    if discount_type == OfferDiscountType.FIXED and discount_value <= 0:
        raise InvalidOffer("Fixed discount must be greater than 0")
    if to_ist(start_date).date() < to_ist(now).date():
        raise InvalidOffer("Start date cannot be in the past")
    if to_ist(end_date) <= to_ist(start_date):
        raise InvalidOffer("End date must be after start date")


def _ensure_target_exists(db: Session, target_type: OfferTarget, target_id: int) -> None:
    if target_type == OfferTarget.PRODUCT:
        target = db.query(Product).filter(Product.id == target_id, Product.is_deleted == False).first()
    else:
        target = db.query(Category).filter(Category.id == target_id).first()
    if not target:
        raise TargetNotFound(f"{target_type.value} {target_id} not found")


def _find_overlapping_offer(
    db: Session,
    target_type: OfferTarget,
    target_id: int,
    start_date: datetime,
    end_date: datetime
) -> Optional[Offer]:
    existing = db.query(Offer).filter(
        Offer.applicable_to == target_type,
        Offer.target_id == target_id
    ).all()
    start, end = to_ist(start_date), to_ist(end_date)
    for offer in existing:
        if to_ist(offer.start_date) <= end and to_ist(offer.end_date) >= start:
            return offer
    return None


def create_offer(
    db: Session,
    name: str,
    discount_type: OfferDiscountType,
    discount_value: Any,
    start_date: datetime,
    end_date: datetime,
    applicable_to: OfferTarget,
    target_id: int,
    max_discount_amount: Any = None,
    description: Optional[str] = None,
    now: Optional[datetime] = None
) -> Offer:
    """
    Create an offer for a product or category.
    At most one offer may cover any instant for a given target.
    """
    now = now or now_ist()
    discount_value = to_decimal(discount_value)
    _validate_offer_fields(discount_type, discount_value, start_date, end_date, now)
    cap = to_decimal(max_discount_amount) if max_discount_amount is not None else None
    if cap is not None and cap <= 0:
        raise InvalidOffer("Maximum discount amount must be greater than 0")
    _ensure_target_exists(db, applicable_to, target_id)

    overlapping = _find_overlapping_offer(db, applicable_to, target_id, start_date, end_date)
    if overlapping:
        logger.warning(
            f"Offer '{name}' overlaps offer {overlapping.id} on {applicable_to.value} {target_id}"
        )
        raise OfferOverlap(existing_offer=serialize_offer(overlapping))

    offer = Offer(
        name=name,
        description=description,
        discount_type=discount_type,
        discount_value=discount_value,
        max_discount_amount=cap,
        start_date=to_ist(start_date),
        end_date=to_ist(end_date),
        applicable_to=applicable_to,
        target_id=target_id,
    )
    db.add(offer)
    db.flush()
    logger.info(f"Created offer {offer.id} '{name}' for {applicable_to.value} {target_id}")
    return offer


def delete_offer(db: Session, offer_id: int) -> None:
    offer = db.query(Offer).filter(Offer.id == offer_id).first()
    if not offer:
        raise OfferNotFound()
    db.delete(offer)
    db.flush()
    logger.info(f"Deleted offer {offer_id}")


def list_offers(db: Session) -> List[Offer]:
    return db.query(Offer).order_by(Offer.created_at.desc(), Offer.id.desc()).all()
