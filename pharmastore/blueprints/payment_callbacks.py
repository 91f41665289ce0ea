"""
Payment provider callback.

Public, CSRF-exempt endpoint receiving the 3-D Secure result as form or query
parameters. When PAYMENT_CALLBACK_SECRET is set the raw body must carry a
matching HMAC-SHA256 hex digest in X-Signature.
"""
import hashlib
import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from pharmastore.database import get_session
from pharmastore.models import AuditAction
from pharmastore.exceptions import NotFoundError
from pharmastore.services import payment_service
from pharmastore.services.audit_service import log_action
from pharmastore.blueprints.metrics import payment_callbacks_total

logger = logging.getLogger(__name__)

payment_callbacks_bp = Blueprint('payment_callbacks', __name__, url_prefix='/api/public/payments')


def verify_signature(body: bytes, signature: str) -> bool:
    secret = current_app.config.get('PAYMENT_CALLBACK_SECRET')
    if not secret:
        return True
    if not signature:
        logger.warning("Payment callback without X-Signature header")
        return False
    expected = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature, expected)


@payment_callbacks_bp.route('/callback', methods=['POST'])
def payment_callback():
    # Raw body must be read before form parsing consumes the stream
    body = request.get_data(cache=True)
    params = request.values
    logger.info(f"Payment callback received with params: {sorted(params.keys())}")

    if not verify_signature(body, request.headers.get('X-Signature', '')):
        payment_callbacks_total.labels(outcome='rejected').inc()
        return jsonify({'success': False, 'message': 'Invalid signature'}), 401

    conversation_id = params.get('conversationId')
    if not conversation_id:
        payment_callbacks_total.labels(outcome='rejected').inc()
        return jsonify({'success': False, 'message': 'Missing conversationId'}), 400

    db_session = get_session()
    try:
        if (params.get('status') or '').lower() == 'success':
            payment, applied = payment_service.process_successful_payment(
                db_session, conversation_id,
                transaction_id=params.get('transactionId'),
                payment_id=params.get('paymentId'),
                card_last_four=params.get('cardLastFour'),
                card_brand=params.get('cardBrand')
            )
            outcome = 'success'
        else:
            payment, applied = payment_service.process_failed_payment(
                db_session, conversation_id,
                error_code=params.get('errorCode'),
                error_message=params.get('errorMessage')
            )
            outcome = 'failure'
    except NotFoundError as e:
        payment_callbacks_total.labels(outcome='unknown').inc()
        logger.warning(f"Payment callback for unknown conversation {conversation_id}")
        return jsonify({'success': False, 'message': e.message}), 404
    except Exception:
        payment_callbacks_total.labels(outcome='error').inc()
        logger.exception(f"Error processing payment callback {conversation_id}")
        return jsonify({'success': False, 'message': 'Error processing payment'}), 500

    payment_callbacks_total.labels(outcome=outcome if applied else 'duplicate').inc()
    order = payment.order
    order_number = order.order_number

    if payment.is_successful:
        if applied:
            log_action(
                db_session, AuditAction.PAYMENT_SUCCEEDED, 'payment', payment.id,
                {'orderNumber': order_number, 'transactionId': payment.transaction_id,
                 'cardLastFour': payment.card_last_four},
                pharmacy_id=order.pharmacy_id
            )
        return jsonify({
            'success': True,
            'message': 'Payment successful',
            'orderNumber': order_number,
            'redirectUrl': f'/orders/{order_number}/success'
        })

    if payment.is_failed:
        if applied:
            log_action(
                db_session, AuditAction.PAYMENT_FAILED, 'payment', payment.id,
                {'orderNumber': order_number, 'errorCode': payment.error_code,
                 'errorMessage': payment.error_message},
                pharmacy_id=order.pharmacy_id
            )
        return jsonify({
            'success': False,
            'message': payment.error_message or 'Payment failed',
            'errorCode': payment.error_code or 'UNKNOWN',
            'orderNumber': order_number,
            'redirectUrl': f'/orders/{order_number}/failed'
        })

    # Already refunded
    return jsonify({
        'success': False,
        'message': f'Payment already {payment.status.value.lower()}',
        'orderNumber': order_number
    })
