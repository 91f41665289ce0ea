"""Custom exceptions for the pharmacy storefront application."""


class PharmacyError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, error_code='INTERNAL_ERROR', payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['errorCode'] = self.error_code
        rv['status'] = 'error'
        return rv


class BusinessLogicError(PharmacyError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, error_code='BUSINESS_ERROR', payload=None):
        super().__init__(message, status_code, error_code, payload)


class ValidationError(BusinessLogicError):
    """Request body failed form validation."""
    def __init__(self, message='Invalid request', errors=None):
        payload = {'errors': errors} if errors else None
        super().__init__(message, error_code='VALIDATION_ERROR', payload=payload)


class NotFoundError(PharmacyError):
    """Exception raised when a resource is not found."""
    def __init__(self, resource='Resource', identifier=None, field='id'):
        if identifier is None:
            message = f'{resource} not found'
        else:
            message = f'{resource} not found with {field}: {identifier}'
        super().__init__(message, 404, 'RESOURCE_NOT_FOUND')


class DuplicateResourceError(PharmacyError):
    """A unique resource already exists (payment per order, SKU, slug)."""
    def __init__(self, message):
        super().__init__(message, 409, 'DUPLICATE_RESOURCE')


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, required, available):
        message = f'Insufficient stock for {product_name}: requested {required}, available {available}'
        super().__init__(
            message,
            status_code=409,
            error_code='INSUFFICIENT_STOCK',
            payload={'productName': product_name, 'requested': required, 'available': available}
        )


class ProductUnavailableError(BusinessLogicError):
    """Product is inactive and cannot be added to a cart."""
    def __init__(self, product_name):
        super().__init__(f'Product is not available: {product_name}', error_code='PRODUCT_UNAVAILABLE')


class EmptyCartError(BusinessLogicError):
    def __init__(self):
        super().__init__('Cart is empty', error_code='EMPTY_CART')


class CartItemsUnavailableError(BusinessLogicError):
    """One or more cart items are inactive or exceed current stock."""
    def __init__(self, product_ids=None):
        super().__init__(
            'Some items in cart are no longer available',
            error_code='CART_ITEMS_UNAVAILABLE',
            payload={'unavailableProductIds': list(product_ids or [])}
        )


class InvalidStatusTransitionError(BusinessLogicError):
    def __init__(self, current, target):
        current_name = getattr(current, 'value', current)
        target_name = getattr(target, 'value', target)
        self.current = current
        self.target = target
        super().__init__(
            f'Invalid status transition: {current_name} -> {target_name}',
            error_code='INVALID_STATUS_TRANSITION',
            payload={'from': current_name, 'to': target_name}
        )


class OrderNotCancellableError(BusinessLogicError):
    def __init__(self, status=None):
        status_name = getattr(status, 'value', status)
        super().__init__(
            'Order cannot be cancelled in current status',
            error_code='ORDER_NOT_CANCELLABLE',
            payload={'currentStatus': status_name} if status_name else None
        )


class RefundNotAllowedError(BusinessLogicError):
    def __init__(self):
        super().__init__('Refund is not allowed for this payment', error_code='REFUND_NOT_ALLOWED')


class RefundExceedsPaymentError(BusinessLogicError):
    def __init__(self, requested, refundable):
        super().__init__(
            'Refund amount exceeds payment amount',
            error_code='REFUND_EXCEEDS_PAYMENT',
            payload={'requested': str(requested), 'refundable': str(refundable)}
        )


class UnauthorizedError(PharmacyError):
    """Raised when no authenticated user is present."""
    def __init__(self, message="Authentication required"):
        super().__init__(message, 401, 'UNAUTHORIZED')


class AccessDeniedError(PharmacyError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Access denied"):
        super().__init__(message, 403, 'ACCESS_DENIED')

    @classmethod
    def resource_access(cls, resource):
        return cls(f'You do not have access to this {resource}')
