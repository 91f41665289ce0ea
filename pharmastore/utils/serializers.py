"""
JSON representations of models (camelCase keys).

Money is rendered as a string with two decimals so no precision is lost on
the wire; timestamps are ISO 8601.
"""
from decimal import Decimal
from typing import Any, Dict, Optional

CENTS = Decimal('0.01')


def money(value) -> Optional[str]:
    if value is None:
        return None
    return str(Decimal(str(value)).quantize(CENTS))


def iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def enum_value(value) -> Optional[str]:
    return getattr(value, 'value', value)


def product_to_dict(product) -> Dict[str, Any]:
    return {
        'id': product.id,
        'pharmacyId': product.pharmacy_id,
        'categoryId': product.category_id,
        'name': product.name,
        'slug': product.slug,
        'sku': product.sku,
        'brand': product.brand,
        'price': money(product.price),
        'discountedPrice': money(product.discounted_price),
        'effectivePrice': money(product.effective_price),
        'hasDiscount': product.has_discount,
        'discountPercentage': money(product.discount_percentage),
        'stockQuantity': product.stock_quantity,
        'inStock': product.is_in_stock,
        'lowStock': product.is_low_stock,
        'featured': bool(product.featured),
        'active': bool(product.active),
    }


def cart_to_dict(cart, totals: Dict[str, Any]) -> Dict[str, Any]:
    """Cart with live totals from cart_service.calculate_cart_totals."""
    return {
        'id': cart.id if cart is not None else None,
        'pharmacyId': cart.pharmacy_id if cart is not None else None,
        'items': [
            {
                'id': line['item_id'],
                'productId': line['product_id'],
                'productName': line['product_name'],
                'productSku': line['product_sku'],
                'quantity': line['quantity'],
                'unitPrice': money(line['unit_price']),
                'originalPrice': money(line['original_price']),
                'totalPrice': money(line['total_price']),
                'available': line['available'],
                'stockQuantity': line['stock_quantity'],
            }
            for line in totals['lines']
        ],
        'subtotal': money(totals['subtotal']),
        'itemCount': totals['item_count'],
        'lineCount': totals['line_count'],
        'hasUnavailableItems': totals['has_unavailable_items'],
    }


def order_item_to_dict(item) -> Dict[str, Any]:
    return {
        'id': item.id,
        'productId': item.product_id,
        'productName': item.product_name,
        'productSku': item.product_sku,
        'quantity': item.quantity,
        'unitPrice': money(item.unit_price),
        'totalPrice': money(item.total_price),
    }


def order_to_dict(order, include_items: bool = True) -> Dict[str, Any]:
    data = {
        'id': order.id,
        'orderNumber': order.order_number,
        'pharmacyId': order.pharmacy_id,
        'customerId': order.customer_id,
        'status': enum_value(order.status),
        'deliveryType': enum_value(order.delivery_type),
        'subtotal': money(order.subtotal),
        'shippingCost': money(order.shipping_cost),
        'totalAmount': money(order.total_amount),
        'shippingAddress': order.shipping_address,
        'shippingCity': order.shipping_city,
        'shippingDistrict': order.shipping_district,
        'shippingPostalCode': order.shipping_postal_code,
        'shippingPhone': order.shipping_phone,
        'notes': order.notes,
        'trackingNumber': order.tracking_number,
        'cargoCompany': order.cargo_company,
        'cancellationReason': order.cancellation_reason,
        'cancelledAt': iso(order.cancelled_at),
        'confirmedAt': iso(order.confirmed_at),
        'preparingAt': iso(order.preparing_at),
        'shippedAt': iso(order.shipped_at),
        'deliveredAt': iso(order.delivered_at),
        'createdAt': iso(order.created_at),
        'cancellable': order.is_cancellable,
        'totalItemCount': order.total_item_count,
    }
    if include_items:
        data['items'] = [order_item_to_dict(item) for item in order.items]
    return data


def payment_to_dict(payment) -> Dict[str, Any]:
    order = payment.order
    return {
        'id': payment.id,
        'orderId': payment.order_id,
        'orderNumber': order.order_number if order is not None else None,
        'amount': money(payment.amount),
        'refundedAmount': money(payment.refunded_amount),
        'netAmount': money(payment.net_amount),
        'status': enum_value(payment.status),
        'transactionId': payment.transaction_id,
        'paymentId': payment.payment_id,
        'conversationId': payment.conversation_id,
        'cardLastFour': payment.card_last_four,
        'cardBrand': payment.card_brand,
        'errorCode': payment.error_code,
        'errorMessage': payment.error_message,
        'paidAt': iso(payment.paid_at),
        'refundedAt': iso(payment.refunded_at),
        'createdAt': iso(payment.created_at),
    }


def page_to_dict(page: Dict[str, Any], serializer) -> Dict[str, Any]:
    return {
        'content': [serializer(item) for item in page['items']],
        'page': page['page'],
        'size': page['size'],
        'totalElements': page['total'],
        'totalPages': page['pages'],
    }
