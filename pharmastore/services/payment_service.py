"""
Payment service - payment records and the provider result handler.

The provider itself is external: this module only creates the PENDING
payment, applies the callback outcome to payment and order, and handles
refunds. Callbacks for a payment that is no longer PENDING change nothing.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy.orm import Session

from pharmastore.models import Payment, PaymentStatus, Order, OrderStatus, StockMovementReason
from pharmastore.exceptions import (
    BusinessLogicError, DuplicateResourceError, NotFoundError, ValidationError,
    RefundNotAllowedError, RefundExceedsPaymentError
)
from pharmastore.services import order_state_machine
from pharmastore.services.inventory_service import restore_order_stock
from pharmastore.services.cache_service import invalidate

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def _utcnow():
    return datetime.now(timezone.utc)


def generate_conversation_id() -> str:
    return f"CONV-{uuid.uuid4().hex[:8].upper()}"


def _restore_stock_on_failure() -> bool:
    if has_app_context():
        return current_app.config.get('RESTORE_STOCK_ON_PAYMENT_FAILURE', True)
    return True


def to_amount(value) -> Decimal:
    """Parse a money amount (string, int, float or Decimal) to cents."""
    try:
        return Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'Invalid amount: {value}')


# =====================================================
# LOOKUPS
# =====================================================

def get_payment_by_id(session: Session, payment_id: int) -> Payment:
    payment = session.get(Payment, payment_id)
    if payment is None:
        raise NotFoundError('Payment', payment_id)
    return payment


def get_payment_by_conversation_id(session: Session, conversation_id: str, for_update: bool = False) -> Payment:
    query = session.query(Payment).filter(Payment.conversation_id == conversation_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    payment = query.first()
    if payment is None:
        raise NotFoundError('Payment', conversation_id, field='conversationId')
    return payment


def find_payment_by_order(session: Session, order_id: int) -> Optional[Payment]:
    return session.query(Payment).filter(Payment.order_id == order_id).first()


def find_payment_by_transaction_id(session: Session, transaction_id: str) -> Optional[Payment]:
    return session.query(Payment).filter(Payment.transaction_id == transaction_id).first()


def _lock_payment(session: Session, payment: Payment) -> Payment:
    return (
        session.query(Payment)
        .filter(Payment.id == payment.id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def _lock_order(session: Session, order_id: int) -> Order:
    return (
        session.query(Order)
        .filter(Order.id == order_id)
        .with_for_update()
        .populate_existing()
        .one()
    )


# =====================================================
# PAYMENT CREATION
# =====================================================

def create_payment(session: Session, order: Order) -> Payment:
    """Open a PENDING payment for the full order total. One payment per order."""
    if order.status != OrderStatus.PENDING:
        raise BusinessLogicError('Order is not in pending status', error_code='ORDER_NOT_PENDING')
    if find_payment_by_order(session, order.id) is not None:
        raise DuplicateResourceError(f'Payment already exists for order: {order.order_number}')

    payment = Payment(
        order_id=order.id,
        amount=order.total_amount,
        refunded_amount=Decimal('0.00'),
        status=PaymentStatus.PENDING,
        conversation_id=generate_conversation_id()
    )
    try:
        session.add(payment)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Payment {payment.conversation_id} created for order {order.order_number}: {payment.amount}")
    return payment


# =====================================================
# PROVIDER RESULT HANDLER
# =====================================================

def process_successful_payment(
    session: Session,
    conversation_id: str,
    transaction_id: str = None,
    payment_id: str = None,
    card_last_four: str = None,
    card_brand: str = None
) -> Tuple[Payment, bool]:
    """
    Mark the payment SUCCESS and confirm its PENDING order.

    Returns (payment, applied). applied is False when the payment had already
    left PENDING; nothing is changed then.
    """
    try:
        payment = get_payment_by_conversation_id(session, conversation_id, for_update=True)
        if payment.status != PaymentStatus.PENDING:
            logger.info(f"Payment {conversation_id} already {payment.status.value}, ignoring success callback")
            session.rollback()
            return payment, False

        now = _utcnow()
        payment.status = PaymentStatus.SUCCESS
        payment.transaction_id = transaction_id
        payment.payment_id = payment_id
        payment.card_last_four = card_last_four
        payment.card_brand = card_brand
        payment.paid_at = now

        order = _lock_order(session, payment.order_id)
        if order_state_machine.can_apply_payment(order.status, True):
            order_state_machine.apply_payment_transition(order, True, now)
        else:
            logger.warning(
                f"Payment {conversation_id} succeeded but order {order.order_number} is {order.status.value}"
            )

        session.commit()
    except Exception:
        session.rollback()
        raise

    invalidate(order.pharmacy_id, 'orders')
    logger.info(f"Payment {conversation_id} succeeded for order {order.order_number}")
    return payment, True


def process_failed_payment(
    session: Session,
    conversation_id: str,
    error_code: str = None,
    error_message: str = None
) -> Tuple[Payment, bool]:
    """
    Mark the payment FAILED and move its order to PAYMENT_FAILED.

    Applies to PENDING and staff-CONFIRMED orders. The order's stock is given
    back unless RESTORE_STOCK_ON_PAYMENT_FAILURE is turned off. Returns
    (payment, applied) like process_successful_payment.
    """
    try:
        payment = get_payment_by_conversation_id(session, conversation_id, for_update=True)
        if payment.status != PaymentStatus.PENDING:
            logger.info(f"Payment {conversation_id} already {payment.status.value}, ignoring failure callback")
            session.rollback()
            return payment, False

        payment.status = PaymentStatus.FAILED
        payment.error_code = error_code
        payment.error_message = (error_message or '')[:500] or None

        order = _lock_order(session, payment.order_id)
        previous = order.status
        stock_restored = False
        if order_state_machine.can_apply_payment(order.status, False):
            order_state_machine.apply_payment_transition(order, False)
            if _restore_stock_on_failure():
                stock_restored = restore_order_stock(session, order, StockMovementReason.PAYMENT_FAILED)
        else:
            logger.warning(
                f"Payment {conversation_id} failed but order {order.order_number} is {order.status.value}"
            )

        session.commit()
    except Exception:
        session.rollback()
        raise

    if order.status != previous:
        from pharmastore.blueprints.metrics import order_status_transitions_total
        order_status_transitions_total.labels(from_status=previous.value, to_status=order.status.value).inc()
    invalidate(order.pharmacy_id, 'orders')
    if stock_restored:
        invalidate(order.pharmacy_id, 'catalog')
    logger.warning(f"Payment {conversation_id} failed for order {order.order_number}: {error_code} {error_message}")
    return payment, True


# =====================================================
# REFUNDS
# =====================================================

def process_full_refund(session: Session, payment: Payment) -> Payment:
    try:
        payment = _lock_payment(session, payment)
        if payment.status != PaymentStatus.SUCCESS:
            raise RefundNotAllowedError()

        payment.refunded_amount = payment.amount
        payment.status = PaymentStatus.REFUNDED
        payment.refunded_at = _utcnow()
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Payment {payment.id} fully refunded: {payment.amount}")
    return payment


def process_partial_refund(session: Session, payment: Payment, amount) -> Payment:
    """
    Refund part of a successful payment.

    The running refunded total may never exceed the payment amount; the
    payment becomes REFUNDED once the total reaches it.
    """
    amount = to_amount(amount)
    if amount <= 0:
        raise ValidationError('Refund amount must be greater than 0')

    try:
        payment = _lock_payment(session, payment)
        if payment.status != PaymentStatus.SUCCESS:
            raise RefundNotAllowedError()

        already_refunded = Decimal(payment.refunded_amount or 0)
        new_total = already_refunded + amount
        if new_total > payment.amount:
            raise RefundExceedsPaymentError(amount, payment.amount - already_refunded)

        payment.refunded_amount = new_total
        payment.refunded_at = _utcnow()
        if new_total == payment.amount:
            payment.status = PaymentStatus.REFUNDED
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"Payment {payment.id} refunded {amount}, total refunded {payment.refunded_amount}")
    return payment
