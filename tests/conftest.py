import itertools
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from tables import import_all_models
from Utils.datetime_utils import now_ist

import_all_models()

from Login_module.User.user_model import User
from Address_module.Address_model import Address
from Product_module.Product_model import Category, Product, ProductVariant
from Offer_module.Offer_model import Offer, OfferDiscountType, OfferTarget
from Cart_module.Coupon_model import Coupon
from Cart_module.Cart_model import CartItem

# Fixed "now" for explicit-time calls; factory windows are wide enough to
# also contain the wall clock used by the HTTP layer.
NOW = now_ist().replace(microsecond=0)

_sequence = itertools.count(1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    from main import app
    from deps import get_db

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(**overrides):
        n = next(_sequence)
        user = User(
            firstname=overrides.pop("firstname", "Asha"),
            lastname=overrides.pop("lastname", "Rao"),
            email=overrides.pop("email", f"user{n}@example.com"),
            **overrides
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_address(db):
    def _make(user, **overrides):
        address = Address(
            user_id=user.id,
            full_name=overrides.pop("full_name", "Asha Rao"),
            street_address=overrides.pop("street_address", "12 MG Road"),
            city=overrides.pop("city", "Bengaluru"),
            state=overrides.pop("state", "Karnataka"),
            pincode=overrides.pop("pincode", "560001"),
            **overrides
        )
        db.add(address)
        db.commit()
        return address
    return _make


@pytest.fixture
def make_category(db):
    def _make(name=None, is_active=True):
        category = Category(name=name or f"Category {next(_sequence)}", is_active=is_active)
        db.add(category)
        db.commit()
        return category
    return _make


@pytest.fixture
def make_product(db):
    def _make(price=1000, stock=10, size="M", category=None, variants=None, name=None):
        product = Product(
            name=name or f"Shirt {next(_sequence)}",
            images=["shirt.jpg"],
            category_id=category.id if category else None,
        )
        for v_size, v_price, v_stock in variants or [(size, price, stock)]:
            product.variants.append(
                ProductVariant(size=v_size, price=Decimal(str(v_price)), stock=v_stock)
            )
        db.add(product)
        db.commit()
        return product
    return _make


@pytest.fixture
def make_offer(db):
    def _make(target, discount_type=OfferDiscountType.PERCENTAGE, value=10, cap=None,
              start=None, end=None, name=None):
        applicable_to = OfferTarget.CATEGORY if isinstance(target, Category) else OfferTarget.PRODUCT
        offer = Offer(
            name=name or f"Offer {next(_sequence)}",
            discount_type=discount_type,
            discount_value=Decimal(str(value)),
            max_discount_amount=Decimal(str(cap)) if cap is not None else None,
            start_date=start or NOW - timedelta(days=30),
            end_date=end or NOW + timedelta(days=30),
            applicable_to=applicable_to,
            target_id=target.id,
        )
        db.add(offer)
        db.commit()
        return offer
    return _make


@pytest.fixture
def make_coupon(db):
    def _make(code="SAVE10", discount=10, minimum=500, maximum=100, max_uses=None,
              start=None, expiry=None, usage_count=0):
        coupon = Coupon(
            code=code,
            discount=Decimal(str(discount)),
            minimum_purchase_amount=Decimal(str(minimum)),
            maximum_discount_amount=Decimal(str(maximum)),
            max_uses=max_uses,
            usage_count=usage_count,
            start_date=start or NOW - timedelta(days=30),
            expiry_date=expiry or NOW + timedelta(days=30),
        )
        db.add(coupon)
        db.commit()
        return coupon
    return _make


@pytest.fixture
def make_cart_item(db):
    def _make(user, product, size="M", quantity=1):
        item = CartItem(user_id=user.id, product_id=product.id, size=size, quantity=quantity)
        db.add(item)
        db.commit()
        return item
    return _make


@pytest.fixture
def customer(make_user, make_address):
    """A user with one shipping address."""
    user = make_user()
    address = make_address(user)
    return user, address
