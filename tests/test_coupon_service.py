from datetime import timedelta
from decimal import Decimal

import pytest

from Cart_module.Coupon_model import Coupon
from Cart_module.coupon_service import (
    apply_coupon, validate_coupon, available_coupons, create_coupon, delete_coupon
)
from Utils.errors import (
    CouponNotFound, CouponExpired, CouponExhausted, MinimumPurchaseNotMet,
    InvalidCoupon, CouponCodeTaken
)

from conftest import NOW


def test_discount_is_capped_by_maximum(db, make_coupon):
    make_coupon(discount=10, minimum=500, maximum=100)

    applied = apply_coupon(db, "SAVE10", Decimal("1800"), NOW)

    assert applied.discount_amount == Decimal("100")


def test_discount_below_cap_is_exact_percentage(db, make_coupon):
    make_coupon(discount=10, minimum=500, maximum=100)
    assert apply_coupon(db, "SAVE10", Decimal("750"), NOW).discount_amount == Decimal("75")


@pytest.mark.parametrize("subtotal", ["500", "999.99", "1000", "123456.78"])
def test_discount_respects_both_bounds(db, make_coupon, subtotal):
    coupon = make_coupon(discount=15, minimum=0, maximum=120)
    subtotal = Decimal(subtotal)

    _, discount = validate_coupon(db, "SAVE10", subtotal, NOW)

    assert discount <= min(subtotal * to_percent(coupon.discount), coupon.maximum_discount_amount)
    assert discount <= subtotal


def to_percent(value):
    return Decimal(value) / Decimal(100)


def test_code_lookup_is_case_insensitive(db, make_coupon):
    make_coupon(code="WELCOME")
    assert apply_coupon(db, "  welcome ", Decimal("600"), NOW).code == "WELCOME"


def test_unknown_code(db):
    with pytest.raises(CouponNotFound):
        apply_coupon(db, "MISSING", Decimal("600"), NOW)


@pytest.mark.parametrize("start_offset,expiry_offset", [(1, 10), (-10, -1)])
def test_outside_validity_window(db, make_coupon, start_offset, expiry_offset):
    make_coupon(start=NOW + timedelta(days=start_offset), expiry=NOW + timedelta(days=expiry_offset))
    with pytest.raises(CouponExpired):
        apply_coupon(db, "SAVE10", Decimal("600"), NOW)


def test_minimum_purchase(db, make_coupon):
    make_coupon(minimum=500)
    with pytest.raises(MinimumPurchaseNotMet):
        apply_coupon(db, "SAVE10", Decimal("499.99"), NOW)
    assert apply_coupon(db, "SAVE10", Decimal("500"), NOW).discount_amount == Decimal("50")


def test_usage_cap_is_enforced_after_n_uses(db, make_coupon):
    coupon = make_coupon(max_uses=3)

    for _ in range(3):
        apply_coupon(db, "SAVE10", Decimal("600"), NOW)
        db.commit()

    with pytest.raises(CouponExhausted):
        apply_coupon(db, "SAVE10", Decimal("600"), NOW)
    db.rollback()
    assert db.get(Coupon, coupon.id).usage_count == 3


def test_conditional_increment_rejects_stale_read(db, session_factory, make_coupon):
    """A redemption that validated against an old counter still cannot exceed max_uses."""
    coupon = make_coupon(max_uses=1)

    stale = session_factory()
    try:
        # Load the coupon while it still has a use left
        stale.get(Coupon, coupon.id).usage_count

        apply_coupon(db, "SAVE10", Decimal("600"), NOW)
        db.commit()

        with pytest.raises(CouponExhausted):
            apply_coupon(stale, "SAVE10", Decimal("600"), NOW)
    finally:
        stale.close()

    db.expire_all()
    assert db.get(Coupon, coupon.id).usage_count == 1


def test_unlimited_coupon_keeps_counting(db, make_coupon):
    coupon = make_coupon(max_uses=None)
    for _ in range(5):
        apply_coupon(db, "SAVE10", Decimal("600"), NOW)
    db.commit()
    assert db.get(Coupon, coupon.id).usage_count == 5


def test_available_coupons_filters_by_amount_window_and_usage(db, make_coupon):
    make_coupon(code="SMALL", minimum=100)
    make_coupon(code="BIG", minimum=5000)
    make_coupon(code="USEDUP", minimum=100, max_uses=1, usage_count=1)
    make_coupon(code="LATER", minimum=100, start=NOW + timedelta(days=2))

    codes = [c.code for c in available_coupons(db, 1000, NOW)]

    assert codes == ["SMALL"]


def test_create_coupon_normalizes_code(db):
    coupon = create_coupon(
        db, " diwali ", 20, NOW, NOW + timedelta(days=10),
        minimum_purchase_amount=1000, maximum_discount_amount=300, max_uses=50, now=NOW,
    )
    db.commit()
    assert coupon.code == "DIWALI"
    assert coupon.usage_count == 0


@pytest.mark.parametrize("kwargs", [
    {"discount": 0},
    {"discount": 120},
    {"start_date": NOW + timedelta(days=5), "expiry_date": NOW + timedelta(days=1)},
    {"expiry_date": NOW - timedelta(days=1), "start_date": NOW - timedelta(days=3)},
    {"maximum_discount_amount": 2000},
])
def test_create_coupon_validation(db, kwargs):
    values = {
        "code": "BAD",
        "discount": 10,
        "start_date": NOW,
        "expiry_date": NOW + timedelta(days=10),
        "minimum_purchase_amount": 1000,
        "maximum_discount_amount": 100,
    }
    values.update(kwargs)
    with pytest.raises(InvalidCoupon):
        create_coupon(db, now=NOW, **values)


def test_duplicate_code_and_delete(db, make_coupon):
    coupon_id = make_coupon(code="ONCE").id
    with pytest.raises(CouponCodeTaken):
        create_coupon(
            db, "once", 10, NOW, NOW + timedelta(days=1),
            minimum_purchase_amount=100, maximum_discount_amount=10, now=NOW,
        )

    delete_coupon(db, coupon_id)
    db.commit()
    with pytest.raises(CouponNotFound):
        delete_coupon(db, coupon_id)
