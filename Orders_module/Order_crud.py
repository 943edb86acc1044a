"""
Order CRUD operations - settlement of priced checkouts and their reversal.

Every write operation here runs as one transaction: it either commits all of
its effects (order rows, stock, coupon usage, cart, wallet) or rolls all of
them back.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, List, Dict, Any, Iterable
import secrets
import logging

from sqlalchemy.orm import Session, joinedload

from config import settings
from Utils.datetime_utils import now_ist, to_ist, to_ist_isoformat
from Utils.errors import (
    UserNotFound, AddressNotFound, OrderNotFound, ProductNotInOrder, InvalidReason,
    InsufficientStock, InconsistentState, OrderNotCancellable, ReturnNotAllowed,
    ReturnNotRequested, AlreadyApproved, InvalidStatusTransition, InvalidRating,
    OrderNotDelivered
)
from Utils.money import to_decimal, round2, floor_units, as_number, ZERO
from Login_module.User.user_session_crud import get_user_by_id, get_user_address
from Product_module.Product_model import Product, ProductVariant
from Product_module.catalog_service import describe_product
from Offer_module.offer_service import resolve_offer, offer_discount
from Cart_module.Cart_model import CartItem
from Wallet_module.Wallet_model import WalletTransactionType
from Wallet_module.wallet_service import credit
from .Order_model import Order, OrderItem, OrderStatusHistory, OrderStatus, PaymentMethod
from .pricing_service import price_order, PricedLine

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELED, OrderStatus.FAILED},
    OrderStatus.CONFIRMED: {OrderStatus.ON_THE_ROAD, OrderStatus.CANCELED, OrderStatus.FAILED},
    OrderStatus.ON_THE_ROAD: {OrderStatus.DELIVERED},
}

CANCELLABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Statuses counted as sales in admin reports
REPORTABLE_STATUSES = [
    OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.ON_THE_ROAD, OrderStatus.DELIVERED
]


@dataclass
class RefundResult:
    order_id: int
    product_id: int
    refund_amount: Decimal
    wallet_transaction_id: int
    wallet_balance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "productId": self.product_id,
            "refundAmount": as_number(self.refund_amount),
            "walletTransactionId": self.wallet_transaction_id,
            "walletBalance": as_number(self.wallet_balance),
        }


def generate_order_number(now: Optional[datetime] = None) -> str:
    """Generate unique order number"""
    timestamp = (now or now_ist()).strftime("%Y%m%d%H%M%S")
    random_part = secrets.token_hex(4).upper()
    return f"ORD{timestamp}{random_part}"


def _record_status(
    db: Session,
    order: Order,
    status: OrderStatus,
    previous_status: Optional[OrderStatus],
    notes: str,
    changed_by: str
) -> None:
    db.add(OrderStatusHistory(
        order_id=order.id,
        status=status,
        previous_status=previous_status,
        notes=notes,
        changed_by=changed_by,
        created_at=now_ist(),
    ))


def _get_order(db: Session, order_id: int, user_id: Optional[int] = None) -> Order:
    query = db.query(Order).options(joinedload(Order.items)).filter(
        Order.id == order_id,
        Order.is_deleted == False
    )
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    order = query.first()
    if not order:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def _decrement_stock(db: Session, lines: Iterable[PricedLine]) -> None:
    """
    Take each line's quantity off its variant. The guarded UPDATE only
    matches while enough stock is left, so stock never goes negative.
    """
    for line in lines:
        updated = db.query(ProductVariant).filter(
            ProductVariant.id == line.variant_id,
            ProductVariant.stock >= line.quantity
        ).update(
            {ProductVariant.stock: ProductVariant.stock - line.quantity},
            synchronize_session=False
        )
        if not updated:
            raise InsufficientStock(f"Insufficient stock for product {line.name} (size {line.size})")


def _restore_stock(db: Session, item: OrderItem) -> None:
    updated = db.query(ProductVariant).filter(
        ProductVariant.product_id == item.product_id,
        ProductVariant.size == item.variant_size
    ).update(
        {ProductVariant.stock: ProductVariant.stock + item.quantity},
        synchronize_session=False
    )
    if not updated:
        raise InconsistentState(
            f"Cannot restore stock: product {item.product_id} size {item.variant_size} no longer exists"
        )


def _clear_cart_items(db: Session, user_id: int, lines: Iterable[PricedLine]) -> int:
    """
    Soft-delete the cart entries consumed by an order: by cart item id when
    the request carried one, otherwise by product and size.
    """
    cleared = 0
    for line in lines:
        query = db.query(CartItem).filter(
            CartItem.user_id == user_id,
            CartItem.is_deleted == False
        )
        if line.cart_item_id:
            query = query.filter(CartItem.id == line.cart_item_id)
        else:
            query = query.filter(CartItem.product_id == line.product_id, CartItem.size == line.size)
        cleared += query.update({CartItem.is_deleted: True}, synchronize_session=False)
    return cleared


def place_order(
    db: Session,
    user_id: int,
    address_id: int,
    lines: Iterable[Any],
    payment_method: PaymentMethod,
    coupon_code: Optional[str] = None,
    payment_status: OrderStatus = OrderStatus.PENDING,
    transaction_id: Optional[str] = None,
    now: Optional[datetime] = None
) -> Order:
    """
    Price the requested lines and persist them as an order.

    In one transaction: validate user and address, price (redeeming the
    coupon if any), write the order and its lines, take stock, and clear the
    consumed cart entries. Any failure rolls every step back.
    """
    now = now or now_ist()
    try:
        if not get_user_by_id(db, user_id):
            raise UserNotFound(f"User {user_id} not found")
        if not get_user_address(db, user_id, address_id):
            raise AddressNotFound(f"Address {address_id} not found or does not belong to you")

        pricing = price_order(db, lines, coupon_code, now)

        order = Order(
            order_number=generate_order_number(now),
            user_id=user_id,
            address_id=address_id,
            subtotal=pricing.subtotal,
            discount_amount=pricing.discount_amount,
            total_price=pricing.goods_total,
            shipping_fee=pricing.shipping_fee,
            coupon_id=pricing.coupon.coupon_id if pricing.coupon else None,
            payment_method=payment_method,
            transaction_id=transaction_id,
            payment_status=payment_status,
            expected_delivery_date=now + timedelta(days=settings.DELIVERY_DAYS),
            created_at=now,
        )
        db.add(order)
        db.flush()  # Get order.id

        for line in pricing.lines:
            db.add(OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                variant_size=line.size,
                quantity=line.quantity,
                base_price=round2(line.base_price),
                offer_discount=round2(line.offer_discount),
                unit_price=round2(line.final_price),
                created_at=now,
            ))

        _record_status(db, order, payment_status, None, "Order placed", str(user_id))
        _decrement_stock(db, pricing.lines)
        cleared = _clear_cart_items(db, user_id, pricing.lines)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(
        f"Order {order.order_number} placed by user {user_id}: {len(pricing.lines)} line(s), "
        f"total ₹{pricing.total_amount} via {payment_method.value}, {cleared} cart item(s) cleared"
    )
    return order


def order_amount_due(order: Order) -> Decimal:
    """What the customer pays for an order: goods after coupon plus shipping."""
    return round2(to_decimal(order.total_price) + to_decimal(order.shipping_fee))


def cancel_order(
    db: Session,
    order_id: int,
    reason: str,
    user_id: Optional[int] = None,
    changed_by: Optional[str] = None
) -> Order:
    """
    Cancel an order that has not shipped yet: restore stock, record the
    reason and refund prepaid orders to the wallet.
    """
    reason = (reason or "").strip()
    if len(reason) < settings.MIN_CANCEL_REASON_LENGTH:
        raise InvalidReason(
            f"Please provide a reason of at least {settings.MIN_CANCEL_REASON_LENGTH} characters"
        )

    try:
        order = _get_order(db, order_id, user_id)
        if order.payment_status not in CANCELLABLE_STATUSES:
            raise OrderNotCancellable(
                f"Order {order.order_number} is {order.payment_status.value} and can no longer be cancelled"
            )

        for item in order.items:
            _restore_stock(db, item)

        previous_status = order.payment_status
        order.payment_status = OrderStatus.CANCELED
        order.cancellation_reason = reason
        order.updated_at = now_ist()
        _record_status(db, order, OrderStatus.CANCELED, previous_status, reason, changed_by or str(order.user_id))

        if order.payment_method != PaymentMethod.COD:
            credit(db, order.user_id, order.id, WalletTransactionType.CANCELLED, order_amount_due(order))

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(f"Order {order.order_number} cancelled: {reason}")
    return order


def request_return(
    db: Session,
    order_id: int,
    product_id: int,
    user_id: int,
    reason: str,
    size: Optional[str] = None,
    now: Optional[datetime] = None
) -> OrderItem:
    """
    Customer asks to return one product of a delivered order.
    """
    now = now or now_ist()
    reason = (reason or "").strip()
    if not reason:
        raise InvalidReason("Return reason is required")

    order = _get_order(db, order_id, user_id)
    if order.payment_status != OrderStatus.DELIVERED:
        raise ReturnNotAllowed("Only delivered orders can be returned")

    days_since_order = (to_ist(now) - to_ist(order.created_at)).days
    if days_since_order > settings.RETURN_WINDOW_DAYS:
        raise ReturnNotAllowed("Order is no longer eligible for return")

    lines = _lines_for_product(order, product_id, size)
    open_lines = [item for item in lines if not item.is_returned]
    if not open_lines:
        raise ReturnNotAllowed("Return already requested for this product")

    item = open_lines[0]
    item.is_returned = True
    item.return_reason = reason
    item.return_date = now
    item.admin_approval = False
    db.commit()
    db.refresh(item)

    logger.info(f"Return requested for product {product_id} on order {order.order_number}")
    return item


def _lines_for_product(order: Order, product_id: int, size: Optional[str] = None) -> List[OrderItem]:
    lines = [
        item for item in order.items
        if item.product_id == product_id and (size is None or item.variant_size == size)
    ]
    if not lines:
        raise ProductNotInOrder(f"Product {product_id} not found in order {order.order_number}")
    return lines


def compute_return_refund(db: Session, order: Order, item: OrderItem, now: Optional[datetime] = None) -> Decimal:
    """
    Refund for a returned line, floored to a whole currency unit.

    The unit price is recomputed from the current variant price and offer,
    then reduced by the line's share of the order's coupon discount:
        share = unit / order.subtotal * min(order.discount_amount, coupon cap)
    """
    now = now or now_ist()
    product = db.query(Product).options(joinedload(Product.variants)).filter(
        Product.id == item.product_id
    ).first()
    if product is None or product.is_deleted:
        raise InconsistentState(f"Product {item.product_id} of order {order.order_number} no longer exists")

    variant = next((v for v in product.variants if v.size == item.variant_size), None)
    if variant is None:
        raise InconsistentState(
            f"Size {item.variant_size} of product {product.name} no longer exists"
        )

    base_price = to_decimal(variant.price)
    unit_price = max(base_price - offer_discount(resolve_offer(db, product, now), base_price), ZERO)

    coupon_share = ZERO
    order_discount = to_decimal(order.discount_amount)
    subtotal = to_decimal(order.subtotal)
    if order_discount > 0 and subtotal > 0:
        effective_discount = order_discount
        if order.coupon is not None:
            effective_discount = min(order_discount, to_decimal(order.coupon.maximum_discount_amount))
        coupon_share = unit_price / subtotal * effective_discount

    final_price = max(unit_price - coupon_share, ZERO)
    return floor_units(final_price * item.quantity)


def approve_return(
    db: Session,
    order_id: int,
    product_id: int,
    size: Optional[str] = None,
    now: Optional[datetime] = None
) -> RefundResult:
    """
    Admin approves a requested return and the refund goes to the wallet.
    Approval happens once per line.
    """
    try:
        order = _get_order(db, order_id)
        lines = _lines_for_product(order, product_id, size)

        pending = [item for item in lines if item.is_returned and not item.admin_approval]
        if not pending:
            if any(item.admin_approval for item in lines):
                raise AlreadyApproved(f"Return of product {product_id} on order {order.order_number} already approved")
            raise ReturnNotRequested(f"No return requested for product {product_id} on order {order.order_number}")

        item = pending[0]
        refund_amount = compute_return_refund(db, order, item, now)
        item.admin_approval = True
        entry = credit(db, order.user_id, order.id, WalletTransactionType.RETURNED, refund_amount)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Return approved for product {product_id} on order {order.order_number}: refund ₹{refund_amount}"
    )
    return RefundResult(
        order_id=order.id,
        product_id=product_id,
        refund_amount=refund_amount,
        wallet_transaction_id=entry.id,
        wallet_balance=to_decimal(entry.balance),
    )


def update_order_status(
    db: Session,
    order_id: int,
    new_status: OrderStatus,
    changed_by: str = "admin",
    notes: Optional[str] = None
) -> Order:
    """
    Move an order along its lifecycle. Cancellation goes through
    cancel_order so stock and wallet are settled too.
    """
    order = _get_order(db, order_id)
    current = order.payment_status
    if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(
            f"Cannot change order {order.order_number} from {current.value} to {new_status.value}"
        )

    if new_status == OrderStatus.CANCELED:
        return cancel_order(db, order_id, notes or "Cancelled by admin", changed_by=changed_by)

    order.payment_status = new_status
    order.updated_at = now_ist()
    _record_status(db, order, new_status, current, notes or f"Status changed to {new_status.value}", changed_by)
    db.commit()
    db.refresh(order)

    logger.info(f"Order {order.order_number} status: {current.value} -> {new_status.value} by {changed_by}")
    return order


def rate_order(db: Session, order_id: int, user_id: int, rating: int) -> Order:
    if not isinstance(rating, int) or rating < 1 or rating > 5:
        raise InvalidRating()
    order = _get_order(db, order_id, user_id)
    if order.payment_status != OrderStatus.DELIVERED:
        raise OrderNotDelivered()
    order.rating = rating
    db.commit()
    db.refresh(order)
    return order


def soft_delete_order(db: Session, order_id: int) -> None:
    order = _get_order(db, order_id)
    order.is_deleted = True
    db.commit()
    logger.info(f"Order {order.order_number} soft-deleted")


# ---------------- Read paths ---------------- #

def serialize_order(order: Order) -> Dict[str, Any]:
    """
    JSON view of an order. Products deleted since the order was placed are
    shown as placeholders; the order's own prices are always available.
    """
    products = []
    for item in order.items:
        product = describe_product(item.product)
        products.append({
            **product,
            "productId": item.product_id,
            "size": item.variant_size,
            "quantity": item.quantity,
            "unitPrice": as_number(item.unit_price),
            "returnStatus": {
                "isReturned": item.is_returned,
                "returnReason": item.return_reason,
                "returnDate": to_ist_isoformat(item.return_date),
                "adminApproval": item.admin_approval,
            },
        })
    return {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "userId": order.user_id,
        "addressId": order.address_id,
        "status": order.payment_status.value,
        "paymentMethod": order.payment_method.value,
        "transactionId": order.transaction_id,
        "subtotal": as_number(order.subtotal),
        "discountAmount": as_number(order.discount_amount),
        "totalPrice": as_number(order.total_price),
        "shippingFee": as_number(order.shipping_fee),
        "totalAmount": as_number(order_amount_due(order)),
        "expectedDeliveryDate": to_ist_isoformat(order.expected_delivery_date),
        "rating": order.rating,
        "cancellationReason": order.cancellation_reason,
        "createdAt": to_ist_isoformat(order.created_at),
        "products": products,
    }


def get_user_orders(db: Session, user_id: int) -> List[Dict[str, Any]]:
    orders = (
        db.query(Order)
        .options(joinedload(Order.items).joinedload(OrderItem.product))
        .filter(Order.user_id == user_id, Order.is_deleted == False)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [serialize_order(order) for order in orders]


def get_order_detail(db: Session, order_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
    return serialize_order(_get_order(db, order_id, user_id))


def get_orders_admin(db: Session) -> List[Dict[str, Any]]:
    orders = (
        db.query(Order)
        .options(joinedload(Order.items).joinedload(OrderItem.product), joinedload(Order.user))
        .filter(Order.is_deleted == False)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    result = []
    for order in orders:
        data = serialize_order(order)
        if order.user is None:
            data["user"] = {"firstname": "Deleted", "lastname": "User"}
        else:
            data["user"] = {"firstname": order.user.firstname, "lastname": order.user.lastname}
        result.append(data)
    return result


def get_return_requests(db: Session) -> List[Dict[str, Any]]:
    items = (
        db.query(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .options(joinedload(OrderItem.product), joinedload(OrderItem.order))
        .filter(OrderItem.is_returned == True, Order.is_deleted == False)
        .order_by(OrderItem.return_date.desc())
        .all()
    )
    return [
        {
            "orderId": item.order_id,
            "productId": item.product_id,
            "size": item.variant_size,
            "product": describe_product(item.product),
            "userId": item.order.user_id,
            "returnReason": item.return_reason,
            "returnDate": to_ist_isoformat(item.return_date),
            "adminApproval": item.admin_approval,
        }
        for item in items
    ]


def sales_report(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
    """
    Orders placed in [start, end] that still count as sales: not cancelled or
    failed, no returned lines, and every product still available.
    """
    start, end = to_ist(start), to_ist(end)
    orders = (
        db.query(Order)
        .options(joinedload(Order.items).joinedload(OrderItem.product))
        .filter(
            Order.is_deleted == False,
            Order.payment_status.in_(REPORTABLE_STATUSES),
            Order.created_at >= start,
            Order.created_at <= end
        )
        .order_by(Order.created_at.asc())
        .all()
    )
    counted = [
        order for order in orders
        if not any(item.is_returned for item in order.items)
        and all(item.product is not None and not item.product.is_deleted for item in order.items)
    ]
    return {
        "orderCount": len(counted),
        "grossSales": as_number(sum((to_decimal(o.subtotal) for o in counted), ZERO)),
        "couponDiscounts": as_number(sum((to_decimal(o.discount_amount) for o in counted), ZERO)),
        "shippingFees": as_number(sum((to_decimal(o.shipping_fee) for o in counted), ZERO)),
        "netSales": as_number(sum((order_amount_due(o) for o in counted), ZERO)),
        "orders": [serialize_order(o) for o in counted],
    }
