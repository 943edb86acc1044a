from datetime import timedelta
from decimal import Decimal

import pytest

from Offer_module.discounts import PercentageDiscount, FixedDiscount
from Offer_module.Offer_model import Offer, OfferDiscountType, OfferTarget
from Offer_module.offer_service import (
    resolve_offer, offer_discount, find_active_offer_for_target, create_offer, delete_offer
)
from Utils.errors import InvalidOffer, OfferOverlap, OfferNotFound, TargetNotFound

from conftest import NOW


def test_percentage_discount_without_cap():
    assert PercentageDiscount(Decimal("10")).apply(Decimal("1000")) == Decimal("100")


def test_percentage_discount_is_capped():
    assert PercentageDiscount(Decimal("10"), cap=Decimal("50")).apply(Decimal("1000")) == Decimal("50")


def test_fixed_discount_ignores_cap_and_never_exceeds_price():
    assert FixedDiscount(Decimal("300")).apply(Decimal("1000")) == Decimal("300")
    assert FixedDiscount(Decimal("1500")).apply(Decimal("1000")) == Decimal("1000")


@pytest.mark.parametrize("discount", [
    PercentageDiscount(Decimal("150")),
    PercentageDiscount(Decimal("0")),
    FixedDiscount(Decimal("2000")),
    FixedDiscount(Decimal("0.01")),
])
def test_final_price_stays_between_zero_and_base(discount):
    base = Decimal("499.99")
    applied = discount.apply(base)
    assert Decimal("0") <= base - applied <= base


def test_fixed_offer_is_not_capped(db, make_product, make_offer):
    product = make_product(price=1000)
    offer = make_offer(product, discount_type=OfferDiscountType.FIXED, value=200, cap=50)
    assert offer_discount(offer, Decimal("1000")) == Decimal("200")


def test_product_offer_takes_precedence_over_category_offer(db, make_category, make_product, make_offer):
    category = make_category()
    product = make_product(category=category)
    make_offer(category, value=20, name="Category sale")
    make_offer(product, value=10, name="Product sale")

    offer = resolve_offer(db, product, NOW)
    assert offer.name == "Product sale"


def test_category_offer_applies_when_product_has_none(db, make_category, make_product, make_offer):
    category = make_category()
    product = make_product(category=category)
    make_offer(category, value=20, name="Category sale")

    assert resolve_offer(db, product, NOW).name == "Category sale"


def test_inactive_category_offer_does_not_apply(db, make_category, make_product, make_offer):
    category = make_category(is_active=False)
    product = make_product(category=category)
    make_offer(category, value=20)

    assert resolve_offer(db, product, NOW) is None


def test_expired_offer_is_ignored_without_side_effects(db, make_product, make_offer):
    product = make_product()
    expired = make_offer(product, start=NOW - timedelta(days=10), end=NOW - timedelta(days=1))

    assert resolve_offer(db, product, NOW) is None
    # Still stored; a window covering "now" would match it again
    assert db.query(Offer).filter(Offer.id == expired.id).count() == 1
    assert resolve_offer(db, product, NOW - timedelta(days=5)).id == expired.id


def test_future_offer_is_not_active_yet(db, make_product, make_offer):
    product = make_product()
    make_offer(product, start=NOW + timedelta(days=1), end=NOW + timedelta(days=5))
    assert find_active_offer_for_target(db, OfferTarget.PRODUCT, product.id, NOW) is None


def test_window_bounds_are_inclusive(db, make_product, make_offer):
    product = make_product()
    start, end = NOW - timedelta(days=1), NOW + timedelta(days=1)
    offer = make_offer(product, start=start, end=end)

    assert resolve_offer(db, product, start).id == offer.id
    assert resolve_offer(db, product, end).id == offer.id
    assert resolve_offer(db, product, end + timedelta(seconds=1)) is None


def test_create_offer_rejects_overlapping_window(db, make_product):
    product = make_product()
    create_offer(
        db, "Summer", OfferDiscountType.PERCENTAGE, 10,
        NOW + timedelta(days=1), NOW + timedelta(days=10),
        OfferTarget.PRODUCT, product.id, now=NOW,
    )
    db.commit()

    with pytest.raises(OfferOverlap) as exc:
        create_offer(
            db, "Overlap", OfferDiscountType.FIXED, 100,
            NOW + timedelta(days=5), NOW + timedelta(days=20),
            OfferTarget.PRODUCT, product.id, now=NOW,
        )
    assert exc.value.details["existing_offer"]["name"] == "Summer"


def test_create_offer_allows_adjacent_windows_on_other_targets(db, make_product):
    first, second = make_product(), make_product()
    for product in (first, second):
        create_offer(
            db, "Sale", OfferDiscountType.PERCENTAGE, 10,
            NOW, NOW + timedelta(days=10),
            OfferTarget.PRODUCT, product.id, now=NOW,
        )
    db.commit()
    assert db.query(Offer).count() == 2


@pytest.mark.parametrize("discount_type,value,start_offset,end_offset", [
    (OfferDiscountType.PERCENTAGE, 0, 1, 5),
    (OfferDiscountType.PERCENTAGE, 101, 1, 5),
    (OfferDiscountType.FIXED, -5, 1, 5),
    (OfferDiscountType.PERCENTAGE, 10, -2, 5),
    (OfferDiscountType.PERCENTAGE, 10, 5, 5),
])
def test_create_offer_validates_fields(db, make_product, discount_type, value, start_offset, end_offset):
    product = make_product()
    with pytest.raises(InvalidOffer):
        create_offer(
            db, "Bad", discount_type, value,
            NOW + timedelta(days=start_offset), NOW + timedelta(days=end_offset),
            OfferTarget.PRODUCT, product.id, now=NOW,
        )


@pytest.mark.parametrize("cap", [0, -10])
def test_create_offer_rejects_non_positive_cap(db, make_product, cap):
    product = make_product()
    with pytest.raises(InvalidOffer):
        create_offer(
            db, "No cap really", OfferDiscountType.PERCENTAGE, 10,
            NOW, NOW + timedelta(days=3),
            OfferTarget.PRODUCT, product.id, max_discount_amount=cap, now=NOW,
        )
    assert db.query(Offer).count() == 0


def test_create_offer_keeps_cap(db, make_product):
    product = make_product(price=1000)
    offer = create_offer(
        db, "Capped", OfferDiscountType.PERCENTAGE, 10,
        NOW, NOW + timedelta(days=3),
        OfferTarget.PRODUCT, product.id, max_discount_amount=40, now=NOW,
    )
    db.commit()
    assert offer.max_discount_amount == Decimal("40")
    assert offer_discount(offer, Decimal("1000")) == Decimal("40")


def test_create_offer_requires_existing_target(db):
    with pytest.raises(TargetNotFound):
        create_offer(
            db, "Ghost", OfferDiscountType.PERCENTAGE, 10,
            NOW, NOW + timedelta(days=3),
            OfferTarget.CATEGORY, 999, now=NOW,
        )


def test_deleted_offer_stops_applying(db, make_product, make_offer):
    product = make_product()
    offer_id = make_offer(product).id
    delete_offer(db, offer_id)
    db.commit()

    assert resolve_offer(db, product, NOW) is None
    with pytest.raises(OfferNotFound):
        delete_offer(db, offer_id)
