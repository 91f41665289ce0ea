"""Payments blueprint - payment initiation, lookups and staff refunds."""
from flask import Blueprint, g

from pharmastore.database import get_session
from pharmastore.models import AuditAction
from pharmastore.exceptions import AccessDeniedError, NotFoundError
from pharmastore.middleware import require_login, require_pharmacy, require_role
from pharmastore.forms import load_form, PaymentInitForm, RefundForm
from pharmastore.services import payment_service, order_service
from pharmastore.services.audit_service import log_action
from pharmastore.utils.responses import success
from pharmastore.utils.serializers import payment_to_dict

payments_bp = Blueprint('payments', __name__, url_prefix='/api')


def _payment_for_order(db_session, order):
    payment = payment_service.find_payment_by_order(db_session, order.id)
    if payment is None:
        raise NotFoundError('Payment', order.order_number, field='orderNumber')
    return payment


@payments_bp.route('/customer/payments/init', methods=['POST'])
@require_login
def init_payment():
    """Open a payment for a PENDING order; the client continues at redirectUrl."""
    db_session = get_session()
    form = load_form(PaymentInitForm)

    order = order_service.get_order_by_id(db_session, form.order_id.data)
    if order.customer_id != g.user.id:
        raise AccessDeniedError.resource_access('order')

    payment = payment_service.create_payment(db_session, order)

    log_action(
        db_session, AuditAction.PAYMENT_INITIATED, 'payment', payment.id,
        {'orderNumber': order.order_number, 'amount': str(payment.amount), 'conversationId': payment.conversation_id},
        pharmacy_id=order.pharmacy_id
    )

    data = payment_to_dict(payment)
    data['redirectUrl'] = f'/payment/checkout?conversationId={payment.conversation_id}'
    return success(data, 'Payment initialized')


@payments_bp.route('/customer/payments/<int:payment_id>', methods=['GET'])
@require_login
def get_payment(payment_id):
    payment = payment_service.get_payment_by_id(get_session(), payment_id)
    if payment.order.customer_id != g.user.id:
        raise AccessDeniedError.resource_access('payment')
    return success(payment_to_dict(payment), 'Payment retrieved')


@payments_bp.route('/customer/payments/order/<order_number>', methods=['GET'])
@require_login
def get_payment_by_order(order_number):
    db_session = get_session()
    order = order_service.get_order_by_number(db_session, order_number)
    if order.customer_id != g.user.id:
        raise AccessDeniedError.resource_access('order')
    return success(payment_to_dict(_payment_for_order(db_session, order)), 'Payment retrieved')


@payments_bp.route('/staff/payments/order/<order_number>', methods=['GET'])
@require_login
@require_pharmacy
def staff_payment_for_order(order_number):
    db_session = get_session()
    order = order_service.get_order_by_number(db_session, order_number)
    if order.pharmacy_id != g.pharmacy_id:
        raise AccessDeniedError.resource_access('order')
    return success(payment_to_dict(_payment_for_order(db_session, order)), 'Payment retrieved')


@payments_bp.route('/staff/payments/refund', methods=['POST'])
@require_login
@require_pharmacy
@require_role('OWNER')
def refund():
    """Full or partial refund (pharmacy owners only)."""
    db_session = get_session()
    form = load_form(RefundForm)

    payment = payment_service.get_payment_by_id(db_session, form.payment_id.data)
    if payment.order.pharmacy_id != g.pharmacy_id:
        raise AccessDeniedError.resource_access('payment')

    if form.full_refund.data:
        payment = payment_service.process_full_refund(db_session, payment)
        action = AuditAction.REFUND_FULL
    else:
        payment = payment_service.process_partial_refund(db_session, payment, form.amount.data)
        action = AuditAction.REFUND_PARTIAL

    log_action(
        db_session, action, 'payment', payment.id,
        {'refundedAmount': str(payment.refunded_amount), 'requested': str(form.amount.data), 'reason': form.reason.data}
    )
    return success(payment_to_dict(payment), 'Refund processed successfully')
