"""
Order model - immutable snapshot of a priced checkout.
After creation only the status, per-line return state and rating change.
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, func, Enum, ForeignKey, Text, Boolean
)
from sqlalchemy.orm import relationship
from database import Base
import enum


class OrderStatus(str, enum.Enum):
    """Order lifecycle: PENDING -> CONFIRMED -> ON THE ROAD -> DELIVERED"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ON_THE_ROAD = "ON THE ROAD"
    DELIVERED = "DELIVERED"
    CANCELED = "CANCELED"  # Terminal, reachable from PENDING/CONFIRMED
    FAILED = "FAILED"  # Terminal, payment or fulfilment failure


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    CREDIT_CARD = "credit-card"
    RAZORPAY = "razorpay"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    address_id = Column(Integer, ForeignKey("addresses.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Order totals (total_price excludes shipping; amount paid = total_price + shipping_fee)
    subtotal = Column(Numeric(12, 2), nullable=False)  # After offers, before coupon
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)  # Coupon discount
    total_price = Column(Numeric(12, 2), nullable=False)
    shipping_fee = Column(Numeric(12, 2), nullable=False, default=0)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="SET NULL"), nullable=True, index=True)

    # Payment info
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    transaction_id = Column(String(255), nullable=True)
    payment_status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING, index=True)

    expected_delivery_date = Column(DateTime(timezone=True), nullable=True)
    rating = Column(Integer, nullable=True)  # 1-5, after delivery
    cancellation_reason = Column(Text, nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User")
    address = relationship("Address")
    coupon = relationship("Coupon")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    """
    One priced line of an order. unit_price is the final per-unit price
    (after the offer) at the time the order was placed.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # RESTRICT keeps the product row around; soft deletion is the only way a product goes away
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    variant_size = Column(String(50), nullable=False)

    quantity = Column(Integer, nullable=False, default=1)
    base_price = Column(Numeric(12, 2), nullable=False)  # Variant price at order time
    offer_discount = Column(Numeric(12, 2), nullable=False, default=0)  # Per unit
    unit_price = Column(Numeric(12, 2), nullable=False)

    # Return state - requested once by the customer, approved once by an admin
    is_returned = Column(Boolean, nullable=False, default=False)
    return_reason = Column(Text, nullable=True)
    return_date = Column(DateTime(timezone=True), nullable=True)
    admin_approval = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class OrderStatusHistory(Base):
    """
    Order status history - tracks all status changes for an order.
    """
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(OrderStatus), nullable=False, index=True)
    previous_status = Column(Enum(OrderStatus), nullable=True)  # NULL for initial status
    notes = Column(Text, nullable=False)
    changed_by = Column(String(100), nullable=False)  # user_id or "system"/"admin"
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Relationships
    order = relationship("Order", backref="status_history")
