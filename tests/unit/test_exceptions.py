"""
Unit tests for application error payloads.
"""

from decimal import Decimal
from pharmastore.models import OrderStatus
from pharmastore.exceptions import (
    NotFoundError, InsufficientStockError, CartItemsUnavailableError, OrderNotCancellableError,
    RefundExceedsPaymentError, EmptyCartError, DuplicateResourceError, AccessDeniedError
)


def test_not_found_message_and_status():
    """NotFoundError is a 404 with the resource in the message."""
    error = NotFoundError('Order', 'ORD-2024-00001', field='orderNumber')
    assert error.status_code == 404
    assert error.to_dict() == {
        'status': 'error',
        'errorCode': 'RESOURCE_NOT_FOUND',
        'message': 'Order not found with orderNumber: ORD-2024-00001',
    }


def test_insufficient_stock_payload():
    """InsufficientStockError reports requested and available quantities."""
    data = InsufficientStockError('Paracetamol', 3, 1).to_dict()
    assert data['errorCode'] == 'INSUFFICIENT_STOCK'
    assert data['requested'] == 3
    assert data['available'] == 1
    assert InsufficientStockError('x', 1, 0).status_code == 409


def test_cart_errors():
    """Cart errors carry their codes and unavailable product ids."""
    assert EmptyCartError().to_dict()['errorCode'] == 'EMPTY_CART'
    data = CartItemsUnavailableError([4, 7]).to_dict()
    assert data['unavailableProductIds'] == [4, 7]
    assert CartItemsUnavailableError().status_code == 400


def test_order_not_cancellable_reports_status():
    """OrderNotCancellableError reports the current status."""
    data = OrderNotCancellableError(OrderStatus.SHIPPED).to_dict()
    assert data['currentStatus'] == 'SHIPPED'


def test_refund_exceeds_payment_amounts_as_strings():
    """Refund amounts are serialised as strings."""
    data = RefundExceedsPaymentError(Decimal('150.00'), Decimal('120.00')).to_dict()
    assert data['errorCode'] == 'REFUND_EXCEEDS_PAYMENT'
    assert data['requested'] == '150.00'
    assert data['refundable'] == '120.00'


def test_http_statuses():
    """Duplicate is 409 and access denied is 403."""
    assert DuplicateResourceError('dup').status_code == 409
    assert AccessDeniedError.resource_access('order').message == 'You do not have access to this order'
    assert AccessDeniedError().status_code == 403
