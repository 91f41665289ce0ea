"""
Order service - checkout, status changes, cancellation and order queries.

create_order_from_cart is one transaction: order shell, line snapshots, stock
decrements, order number increment and cart clearing commit together or not
at all.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context
from sqlalchemy import func
from sqlalchemy.orm import Session

from pharmastore.models import (
    Order, OrderItem, OrderStatus, DeliveryType, Cart, StockMovementReason
)
from pharmastore.exceptions import (
    NotFoundError, ValidationError, OrderNotCancellableError
)
from pharmastore.services import order_state_machine
from pharmastore.services.cart_service import lock_cart, validate_cart, clear_cart
from pharmastore.services.inventory_service import lock_products, decrement_stock, restore_order_stock
from pharmastore.services.order_number_service import next_order_number
from pharmastore.services.cache_service import get_cache, invalidate

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
DEFAULT_SHIPPING_COURIER = Decimal('20.00')
DEFAULT_SHIPPING_OTHER = Decimal('35.00')
RECENT_ORDERS_LIMIT = 10
MAX_PAGE_SIZE = 100

SHIPPING_FIELDS = ('address', 'city', 'district', 'postal_code', 'phone')


def _utcnow():
    return datetime.now(timezone.utc)


def parse_delivery_type(value) -> DeliveryType:
    if isinstance(value, DeliveryType):
        return value
    try:
        return DeliveryType(str(value).upper())
    except ValueError:
        raise ValidationError(f'Invalid delivery type: {value}')


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).upper())
    except ValueError:
        raise ValidationError(f'Invalid order status: {value}')


def shipping_cost_for(delivery_type: DeliveryType) -> Decimal:
    """Flat fee: courier vs. everything else."""
    courier, other = DEFAULT_SHIPPING_COURIER, DEFAULT_SHIPPING_OTHER
    if has_app_context():
        courier = Decimal(str(current_app.config.get('SHIPPING_COST_COURIER', courier)))
        other = Decimal(str(current_app.config.get('SHIPPING_COST_DEFAULT', other)))
    cost = courier if delivery_type == DeliveryType.COURIER else other
    return cost.quantize(CENTS)


def _after_order_change(order: Order, stock_changed: bool = False) -> None:
    invalidate(order.pharmacy_id, 'orders')
    if stock_changed:
        invalidate(order.pharmacy_id, 'catalog')


def _record_transition(previous: OrderStatus, target: OrderStatus) -> None:
    from pharmastore.blueprints.metrics import order_status_transitions_total
    order_status_transitions_total.labels(from_status=previous.value, to_status=target.value).inc()


# =====================================================
# ORDER FACTORY
# =====================================================

def create_order_from_cart(
    session: Session,
    cart: Cart,
    delivery_type,
    shipping: Optional[Dict[str, Any]] = None,
    notes: Optional[str] = None
) -> Order:
    """
    Turn a cart into a PENDING order.

    1. Lock the cart and its products, then re-validate the cart.
    2. Snapshot prices into order items; subtotal + flat shipping = total.
    3. Decrement stock per item with a conditional update.
    4. Clear the cart and commit.

    Raises EmptyCartError, CartItemsUnavailableError or InsufficientStockError;
    nothing is persisted in that case.
    """
    delivery_type = parse_delivery_type(delivery_type)
    shipping = shipping or {}

    try:
        lock_cart(session, cart)
        lock_products(session, [item.product_id for item in cart.items], cart.pharmacy_id)
        validate_cart(cart)

        lines = []
        subtotal = Decimal('0.00')
        for item in cart.items:
            product = item.product
            unit_price = product.effective_price
            line_total = (unit_price * item.quantity).quantize(CENTS)
            lines.append((item, product, unit_price, line_total))
            subtotal += line_total

        subtotal = subtotal.quantize(CENTS)
        shipping_cost = shipping_cost_for(delivery_type)

        order = Order(
            pharmacy_id=cart.pharmacy_id,
            customer_id=cart.customer_id,
            order_number=next_order_number(session),
            status=OrderStatus.PENDING,
            delivery_type=delivery_type,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            total_amount=(subtotal + shipping_cost).quantize(CENTS),
            shipping_address=shipping.get('address'),
            shipping_city=shipping.get('city'),
            shipping_district=shipping.get('district'),
            shipping_postal_code=shipping.get('postal_code'),
            shipping_phone=shipping.get('phone'),
            notes=notes
        )
        session.add(order)
        session.flush()

        for item, product, unit_price, line_total in lines:
            order.items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                quantity=item.quantity,
                unit_price=unit_price,
                total_price=line_total
            ))
            decrement_stock(session, product, item.quantity, order_id=order.id)

        clear_cart(session, cart, commit=False)
        session.commit()

    except Exception:
        session.rollback()
        raise

    from pharmastore.blueprints.metrics import orders_created_total
    orders_created_total.labels(delivery_type=delivery_type.value).inc()
    _after_order_change(order, stock_changed=True)

    logger.info(
        f"Order {order.order_number} created for customer {order.customer_id} "
        f"at pharmacy {order.pharmacy_id}: total {order.total_amount}"
    )
    return order


# =====================================================
# STATUS CHANGES
# =====================================================

def _lock_order(session: Session, order: Order) -> Order:
    return (
        session.query(Order)
        .filter(Order.id == order.id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def update_status(
    session: Session,
    order: Order,
    new_status,
    tracking_number: str = None,
    cargo_company: str = None,
    note: str = None,
    actor_id: int = None
) -> Order:
    """
    Staff status change governed by the transition table.

    CANCELLED is routed through cancel_order so stock is always restored.
    Moving to SHIPPED also stores tracking data when provided.
    """
    target = parse_status(new_status)
    if target == OrderStatus.CANCELLED:
        return cancel_order(session, order, note or 'Cancelled by pharmacy', actor_id=actor_id)

    try:
        order = _lock_order(session, order)
        previous = order.status
        order_state_machine.apply_transition(order, target, _utcnow())

        if target == OrderStatus.SHIPPED:
            if tracking_number:
                order.tracking_number = tracking_number
            if cargo_company:
                order.cargo_company = cargo_company

        session.commit()
    except Exception:
        session.rollback()
        raise

    _record_transition(previous, target)
    _after_order_change(order)
    logger.info(f"Order {order.order_number}: {previous.value} -> {target.value}")
    return order


def set_tracking(session: Session, order: Order, tracking_number: str, cargo_company: str = None) -> Order:
    """Update shipment tracking data without touching the status."""
    try:
        order.tracking_number = tracking_number
        if cargo_company is not None:
            order.cargo_company = cargo_company
        session.commit()
    except Exception:
        session.rollback()
        raise

    _after_order_change(order)
    return order


def cancel_order(session: Session, order: Order, reason: str = None, actor_id: int = None) -> Order:
    """
    Cancel a PENDING or CONFIRMED order and give its stock back.

    Raises OrderNotCancellableError in any other status; nothing changes then.
    """
    try:
        order = _lock_order(session, order)
        if not order_state_machine.is_cancellable(order.status):
            raise OrderNotCancellableError(order.status)

        previous = order.status
        order_state_machine.apply_transition(order, OrderStatus.CANCELLED)
        order.cancellation_reason = reason
        order.cancelled_at = _utcnow()
        order.cancelled_by = actor_id

        restore_order_stock(session, order, StockMovementReason.CANCELLATION)
        session.commit()
    except Exception:
        session.rollback()
        raise

    _record_transition(previous, OrderStatus.CANCELLED)
    _after_order_change(order, stock_changed=True)
    logger.info(f"Order {order.order_number} cancelled by {actor_id}: {reason}")
    return order


# =====================================================
# QUERIES
# =====================================================

def _scoped(query, pharmacy_id=None, customer_id=None):
    if pharmacy_id is not None:
        query = query.filter(Order.pharmacy_id == pharmacy_id)
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    return query


def get_order_by_number(session: Session, order_number: str, pharmacy_id: int = None, customer_id: int = None) -> Order:
    """Order by number, restricted to a pharmacy and/or customer when given."""
    order = _scoped(
        session.query(Order).filter(Order.order_number == order_number),
        pharmacy_id, customer_id
    ).first()
    if order is None:
        raise NotFoundError('Order', order_number, field='orderNumber')
    return order


def get_order_by_id(session: Session, order_id: int, pharmacy_id: int = None, customer_id: int = None) -> Order:
    order = _scoped(session.query(Order).filter(Order.id == order_id), pharmacy_id, customer_id).first()
    if order is None:
        raise NotFoundError('Order', order_id)
    return order


def _paginate(query, page: int, size: int) -> Dict[str, Any]:
    page = max(int(page or 1), 1)
    size = min(max(int(size or 20), 1), MAX_PAGE_SIZE)
    total = query.order_by(None).count()
    items = query.limit(size).offset((page - 1) * size).all()
    return {
        'items': items,
        'page': page,
        'size': size,
        'total': total,
        'pages': (total + size - 1) // size,
    }


def list_customer_orders(session: Session, customer_id: int, page: int = 1, size: int = 20) -> Dict[str, Any]:
    """Customer's orders across pharmacies, newest first."""
    query = session.query(Order).filter(Order.customer_id == customer_id).order_by(Order.id.desc())
    return _paginate(query, page, size)


def list_pharmacy_orders(session: Session, pharmacy_id: int, status=None, page: int = 1, size: int = 20) -> Dict[str, Any]:
    query = session.query(Order).filter(Order.pharmacy_id == pharmacy_id)
    if status:
        query = query.filter(Order.status == parse_status(status))
    return _paginate(query.order_by(Order.id.desc()), page, size)


def list_pending_orders(session: Session, pharmacy_id: int) -> List[Order]:
    """Orders waiting for the pharmacy, oldest first."""
    return (
        session.query(Order)
        .filter(Order.pharmacy_id == pharmacy_id, Order.status == OrderStatus.PENDING)
        .order_by(Order.id.asc())
        .all()
    )


def list_recent_orders(session: Session, pharmacy_id: int, limit: int = RECENT_ORDERS_LIMIT) -> List[Order]:
    return (
        session.query(Order)
        .filter(Order.pharmacy_id == pharmacy_id)
        .order_by(Order.id.desc())
        .limit(limit)
        .all()
    )


def count_by_status(session: Session, pharmacy_id: int, status) -> int:
    return session.query(func.count(Order.id)).filter(
        Order.pharmacy_id == pharmacy_id,
        Order.status == parse_status(status)
    ).scalar() or 0


def count_today_orders(session: Session, pharmacy_id: int, now: datetime = None) -> int:
    start = (now or _utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
    return session.query(func.count(Order.id)).filter(
        Order.pharmacy_id == pharmacy_id,
        Order.created_at >= start
    ).scalar() or 0


def _load_order_stats(session: Session, pharmacy_id: int) -> Dict[str, Any]:
    rows = (
        session.query(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.pharmacy_id == pharmacy_id)
        .group_by(Order.status)
        .all()
    )
    by_status = {status.value: 0 for status in OrderStatus}
    revenue = Decimal('0.00')
    for status, count, amount in rows:
        by_status[status.value] = count
        if status == OrderStatus.DELIVERED:
            revenue += Decimal(str(amount))

    return {
        'byStatus': by_status,
        'totalOrders': sum(by_status.values()),
        'pendingOrders': by_status[OrderStatus.PENDING.value],
        'todayOrders': count_today_orders(session, pharmacy_id),
        'deliveredRevenue': revenue.quantize(CENTS),
    }


def get_order_stats(session: Session, pharmacy_id: int) -> Dict[str, Any]:
    """Dashboard counters for a pharmacy, memoized in Redis for a short TTL."""
    try:
        cache = get_cache()
    except RuntimeError:
        return _load_order_stats(session, pharmacy_id)

    ttl = current_app.config.get('CACHE_ORDER_STATS_TTL', 30) if has_app_context() else 30
    return cache.memoize(pharmacy_id, 'orders', 'stats', lambda: _load_order_stats(session, pharmacy_id), ttl)
