"""Customer cart blueprint - one cart per customer per pharmacy."""
from flask import Blueprint, g

from pharmastore.database import get_session
from pharmastore.models import AuditAction
from pharmastore.middleware import require_login
from pharmastore.forms import load_form, CartItemForm, CartItemUpdateForm
from pharmastore.services import cart_service
from pharmastore.services.audit_service import log_action
from pharmastore.services.catalog_service import get_open_pharmacy, get_pharmacy_product
from pharmastore.utils.responses import success
from pharmastore.utils.serializers import cart_to_dict

cart_bp = Blueprint('cart', __name__, url_prefix='/api/customer/cart')


def _cart_payload(cart):
    if cart is None:
        return {
            'id': None, 'pharmacyId': None, 'items': [], 'subtotal': '0.00',
            'itemCount': 0, 'lineCount': 0, 'hasUnavailableItems': False,
        }
    return cart_to_dict(cart, cart_service.calculate_cart_totals(cart))


@cart_bp.route('/<int:pharmacy_id>', methods=['GET'])
@require_login
def get_cart(pharmacy_id):
    """Current cart with live prices. An absent cart reads as empty."""
    db_session = get_session()
    get_open_pharmacy(db_session, pharmacy_id)
    cart = cart_service.get_cart(db_session, g.user.id, pharmacy_id)
    payload = _cart_payload(cart)
    if cart is None:
        payload['pharmacyId'] = pharmacy_id
    return success(payload, 'Cart retrieved')


@cart_bp.route('/<int:pharmacy_id>/items', methods=['POST'])
@require_login
def add_item(pharmacy_id):
    db_session = get_session()
    form = load_form(CartItemForm)

    get_open_pharmacy(db_session, pharmacy_id)
    product = get_pharmacy_product(db_session, form.product_id.data, pharmacy_id)

    cart = cart_service.get_or_create_cart(db_session, g.user.id, pharmacy_id)
    item = cart_service.add_item(db_session, cart, product, form.quantity.data)

    log_action(
        db_session, AuditAction.CART_ITEM_ADDED, 'cart', cart.id,
        {'productId': product.id, 'quantity': form.quantity.data, 'lineQuantity': item.quantity},
        pharmacy_id=pharmacy_id
    )
    return success(_cart_payload(cart), 'Item added to cart')


@cart_bp.route('/<int:pharmacy_id>/items/<int:item_id>', methods=['PUT'])
@require_login
def update_item(pharmacy_id, item_id):
    db_session = get_session()
    form = load_form(CartItemUpdateForm)

    get_open_pharmacy(db_session, pharmacy_id)
    cart = cart_service.get_cart_or_404(db_session, g.user.id, pharmacy_id)
    item = cart_service.update_quantity(db_session, cart, item_id, form.quantity.data)

    action = AuditAction.CART_ITEM_UPDATED if item is not None else AuditAction.CART_ITEM_REMOVED
    log_action(db_session, action, 'cart', cart.id, {'itemId': item_id, 'quantity': form.quantity.data}, pharmacy_id=pharmacy_id)
    return success(_cart_payload(cart), 'Cart updated')


@cart_bp.route('/<int:pharmacy_id>/items/<int:item_id>', methods=['DELETE'])
@require_login
def remove_item(pharmacy_id, item_id):
    db_session = get_session()
    cart = cart_service.get_cart_or_404(db_session, g.user.id, pharmacy_id)
    cart_service.remove_item(db_session, cart, item_id)

    log_action(db_session, AuditAction.CART_ITEM_REMOVED, 'cart', cart.id, {'itemId': item_id}, pharmacy_id=pharmacy_id)
    return success(_cart_payload(cart), 'Item removed from cart')


@cart_bp.route('/<int:pharmacy_id>', methods=['DELETE'])
@require_login
def clear_cart(pharmacy_id):
    db_session = get_session()
    cart = cart_service.get_cart_or_404(db_session, g.user.id, pharmacy_id)
    cart_service.clear_cart(db_session, cart)

    log_action(db_session, AuditAction.CART_CLEARED, 'cart', cart.id, pharmacy_id=pharmacy_id)
    return success(_cart_payload(cart), 'Cart cleared')


@cart_bp.route('/<int:pharmacy_id>/count', methods=['GET'])
@require_login
def item_count(pharmacy_id):
    cart = cart_service.get_cart(get_session(), g.user.id, pharmacy_id)
    count = sum(item.quantity for item in cart.items) if cart is not None else 0
    return success({'count': count}, 'Cart item count')


@cart_bp.route('/<int:pharmacy_id>/validate', methods=['GET'])
@require_login
def validate(pharmacy_id):
    """Checkout pre-flight: 400 with the offending product ids when not orderable."""
    db_session = get_session()
    get_open_pharmacy(db_session, pharmacy_id)
    cart = cart_service.get_cart(db_session, g.user.id, pharmacy_id)
    cart_service.validate_cart(cart)
    return success(_cart_payload(cart), 'Cart is valid for checkout')
