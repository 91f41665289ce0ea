"""Orders blueprint - customer checkout and order tracking, staff fulfilment."""
from flask import Blueprint, g, request

from pharmastore.database import get_session
from pharmastore.models import AuditAction, OrderStatus
from pharmastore.exceptions import AccessDeniedError, EmptyCartError
from pharmastore.middleware import require_login, require_pharmacy
from pharmastore.forms import (
    load_form, OrderCreateForm, OrderStatusUpdateForm, OrderCancelForm, TrackingUpdateForm
)
from pharmastore.services import order_service
from pharmastore.services.cart_service import get_cart
from pharmastore.services.catalog_service import get_open_pharmacy
from pharmastore.services.audit_service import log_action
from pharmastore.utils.responses import success
from pharmastore.utils.serializers import order_to_dict, page_to_dict

orders_bp = Blueprint('orders', __name__, url_prefix='/api')


def _page_args():
    return request.args.get('page', 1, type=int), request.args.get('size', 20, type=int)


def _customer_order(db_session, order_number):
    order = order_service.get_order_by_number(db_session, order_number)
    if order.customer_id != g.user.id:
        raise AccessDeniedError.resource_access('order')
    return order


def _staff_order(db_session, order_number):
    order = order_service.get_order_by_number(db_session, order_number)
    if order.pharmacy_id != g.pharmacy_id:
        raise AccessDeniedError.resource_access('order')
    return order


# =====================================================
# CUSTOMER
# =====================================================

@orders_bp.route('/customer/orders', methods=['POST'])
@require_login
def create_order():
    """Checkout: turn the customer's cart at a pharmacy into a PENDING order."""
    db_session = get_session()
    form = load_form(OrderCreateForm)
    pharmacy_id = form.pharmacy_id.data

    get_open_pharmacy(db_session, pharmacy_id)
    cart = get_cart(db_session, g.user.id, pharmacy_id)
    if cart is None:
        raise EmptyCartError()

    order = order_service.create_order_from_cart(
        db_session, cart, form.delivery_type.data,
        shipping=form.shipping(),
        notes=form.notes.data or None
    )

    log_action(
        db_session, AuditAction.ORDER_CREATED, 'order', order.id,
        {'orderNumber': order.order_number, 'totalAmount': str(order.total_amount), 'items': order.total_item_count},
        pharmacy_id=order.pharmacy_id
    )
    return success(order_to_dict(order), 'Order created successfully', 201)


@orders_bp.route('/customer/orders', methods=['GET'])
@require_login
def list_my_orders():
    page, size = _page_args()
    result = order_service.list_customer_orders(get_session(), g.user.id, page, size)
    return success(page_to_dict(result, lambda o: order_to_dict(o, include_items=False)), 'Orders retrieved')


@orders_bp.route('/customer/orders/<order_number>', methods=['GET'])
@require_login
def get_my_order(order_number):
    order = _customer_order(get_session(), order_number)
    return success(order_to_dict(order), 'Order retrieved')


@orders_bp.route('/customer/orders/<order_number>/cancel', methods=['POST'])
@require_login
def cancel_my_order(order_number):
    db_session = get_session()
    form = load_form(OrderCancelForm)
    order = _customer_order(db_session, order_number)

    order = order_service.cancel_order(db_session, order, form.reason.data, actor_id=g.user.id)

    log_action(
        db_session, AuditAction.ORDER_CANCELLED, 'order', order.id,
        {'orderNumber': order.order_number, 'reason': form.reason.data, 'by': 'customer'},
        pharmacy_id=order.pharmacy_id
    )
    return success(order_to_dict(order), 'Order cancelled')


# =====================================================
# STAFF
# =====================================================

@orders_bp.route('/staff/orders', methods=['GET'])
@require_login
@require_pharmacy
def list_orders():
    page, size = _page_args()
    result = order_service.list_pharmacy_orders(
        get_session(), g.pharmacy_id, status=request.args.get('status') or None, page=page, size=size
    )
    return success(page_to_dict(result, lambda o: order_to_dict(o, include_items=False)), 'Orders retrieved')


@orders_bp.route('/staff/orders/pending', methods=['GET'])
@require_login
@require_pharmacy
def pending_orders():
    orders = order_service.list_pending_orders(get_session(), g.pharmacy_id)
    return success([order_to_dict(o, include_items=False) for o in orders], 'Pending orders')


@orders_bp.route('/staff/orders/recent', methods=['GET'])
@require_login
@require_pharmacy
def recent_orders():
    orders = order_service.list_recent_orders(get_session(), g.pharmacy_id)
    return success([order_to_dict(o, include_items=False) for o in orders], 'Recent orders')


@orders_bp.route('/staff/orders/stats', methods=['GET'])
@require_login
@require_pharmacy
def order_stats():
    stats = order_service.get_order_stats(get_session(), g.pharmacy_id)
    stats = dict(stats, deliveredRevenue=str(stats['deliveredRevenue']))
    return success(stats, 'Order statistics')


@orders_bp.route('/staff/orders/<order_number>', methods=['GET'])
@require_login
@require_pharmacy
def get_order(order_number):
    order = _staff_order(get_session(), order_number)
    return success(order_to_dict(order), 'Order retrieved')


@orders_bp.route('/staff/orders/<order_number>/status', methods=['PATCH'])
@require_login
@require_pharmacy
def update_status(order_number):
    db_session = get_session()
    form = load_form(OrderStatusUpdateForm)
    order = _staff_order(db_session, order_number)
    previous = order.status

    order = order_service.update_status(
        db_session, order, form.status.data,
        tracking_number=form.tracking_number.data or None,
        cargo_company=form.cargo_company.data or None,
        note=form.note.data or None,
        actor_id=g.user.id
    )

    if order.status == OrderStatus.SHIPPED:
        action = AuditAction.ORDER_SHIPPED
    elif order.status == OrderStatus.CANCELLED:
        action = AuditAction.ORDER_CANCELLED
    else:
        action = AuditAction.ORDER_STATUS_CHANGED
    log_action(
        db_session, action, 'order', order.id,
        {'orderNumber': order.order_number, 'from': previous.value, 'to': order.status.value,
         'trackingNumber': order.tracking_number, 'note': form.note.data or None}
    )
    return success(order_to_dict(order), 'Order status updated')


@orders_bp.route('/staff/orders/<order_number>/cancel', methods=['POST'])
@require_login
@require_pharmacy
def cancel_order(order_number):
    db_session = get_session()
    form = load_form(OrderCancelForm)
    order = _staff_order(db_session, order_number)

    order = order_service.cancel_order(db_session, order, form.reason.data, actor_id=g.user.id)

    log_action(
        db_session, AuditAction.ORDER_CANCELLED, 'order', order.id,
        {'orderNumber': order.order_number, 'reason': form.reason.data, 'by': 'pharmacy'}
    )
    return success(order_to_dict(order), 'Order cancelled')


@orders_bp.route('/staff/orders/<order_number>/tracking', methods=['PATCH'])
@require_login
@require_pharmacy
def update_tracking(order_number):
    db_session = get_session()
    form = load_form(TrackingUpdateForm)
    order = _staff_order(db_session, order_number)

    order = order_service.set_tracking(db_session, order, form.tracking_number.data, form.cargo_company.data or None)

    log_action(
        db_session, AuditAction.ORDER_TRACKING_UPDATED, 'order', order.id,
        {'orderNumber': order.order_number, 'trackingNumber': order.tracking_number, 'cargoCompany': order.cargo_company}
    )
    return success(order_to_dict(order), 'Tracking information updated')
