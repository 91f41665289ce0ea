"""
Cart aggregate - one persistent cart per (customer, pharmacy).

Carts store quantities only; prices are read live from products and are
snapshotted only when an order is created. Mutations lock the cart row so
two requests for the same cart apply one after the other.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pharmastore.models import Cart, CartItem, Product
from pharmastore.exceptions import (
    NotFoundError, ValidationError, InsufficientStockError,
    ProductUnavailableError, EmptyCartError, CartItemsUnavailableError
)

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def get_cart(session: Session, customer_id: int, pharmacy_id: int) -> Optional[Cart]:
    return session.query(Cart).filter(
        Cart.customer_id == customer_id,
        Cart.pharmacy_id == pharmacy_id
    ).first()


def get_cart_or_404(session: Session, customer_id: int, pharmacy_id: int) -> Cart:
    cart = get_cart(session, customer_id, pharmacy_id)
    if cart is None:
        raise NotFoundError('Cart', pharmacy_id, field='pharmacyId')
    return cart


def get_or_create_cart(session: Session, customer_id: int, pharmacy_id: int) -> Cart:
    """
    Return the customer's cart at a pharmacy, creating an empty one if needed.

    A new cart is flushed, not committed. If a concurrent request inserted the
    same cart first, the unique constraint fires and the winner is re-read.
    """
    cart = get_cart(session, customer_id, pharmacy_id)
    if cart is not None:
        return cart

    cart = Cart(customer_id=customer_id, pharmacy_id=pharmacy_id)
    session.add(cart)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        logger.info(f"Cart for customer {customer_id} at pharmacy {pharmacy_id} created concurrently, re-reading")
        cart = get_cart(session, customer_id, pharmacy_id)
        if cart is None:
            raise
    return cart


def lock_cart(session: Session, cart: Cart) -> Cart:
    """SELECT ... FOR UPDATE on the cart row."""
    return session.query(Cart).filter(Cart.id == cart.id).with_for_update().one()


def _ensure_stock(product: Product, quantity: int) -> None:
    if product.stock_quantity < quantity:
        raise InsufficientStockError(product.name, quantity, product.stock_quantity)


def _find_item(session: Session, cart: Cart, item_id: int) -> CartItem:
    item = session.query(CartItem).filter(
        CartItem.id == item_id,
        CartItem.cart_id == cart.id
    ).first()
    if item is None:
        raise NotFoundError('Cart item', item_id)
    return item


def add_item(session: Session, cart: Cart, product: Product, quantity: int) -> CartItem:
    """
    Add quantity of product to the cart.

    An existing line for the same product is merged and the combined quantity
    re-validated against current stock.
    """
    if quantity is None or quantity < 1:
        raise ValidationError('Quantity must be at least 1')
    if product.pharmacy_id != cart.pharmacy_id:
        raise NotFoundError('Product', product.id)

    try:
        lock_cart(session, cart)

        if not product.active:
            raise ProductUnavailableError(product.name)

        item = session.query(CartItem).filter(
            CartItem.cart_id == cart.id,
            CartItem.product_id == product.id
        ).first()

        if item is not None:
            new_quantity = item.quantity + quantity
            _ensure_stock(product, new_quantity)
            item.quantity = new_quantity
        else:
            _ensure_stock(product, quantity)
            item = CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity)
            cart.items.append(item)

        session.commit()
        logger.info(f"Cart {cart.id}: product {product.id} quantity now {item.quantity}")
        return item

    except Exception:
        session.rollback()
        raise


def update_quantity(session: Session, cart: Cart, item_id: int, new_quantity: int) -> Optional[CartItem]:
    """Set an item's quantity. Zero or less removes the item and returns None."""
    try:
        lock_cart(session, cart)
        item = _find_item(session, cart, item_id)

        if new_quantity is None or new_quantity <= 0:
            cart.items.remove(item)
            session.commit()
            logger.info(f"Cart {cart.id}: item {item_id} removed by zero quantity")
            return None

        _ensure_stock(item.product, new_quantity)
        item.quantity = new_quantity
        session.commit()
        return item

    except Exception:
        session.rollback()
        raise


def remove_item(session: Session, cart: Cart, item_id: int) -> None:
    try:
        lock_cart(session, cart)
        item = _find_item(session, cart, item_id)
        cart.items.remove(item)
        session.commit()
    except Exception:
        session.rollback()
        raise


def clear_cart(session: Session, cart: Cart, commit: bool = True) -> None:
    """Remove every item. Checkout calls this with commit=False inside its own transaction."""
    if commit:
        try:
            lock_cart(session, cart)
            cart.items.clear()
            session.commit()
        except Exception:
            session.rollback()
            raise
    else:
        cart.items.clear()
        session.flush()


def unavailable_items(cart: Cart) -> List[CartItem]:
    """Items whose product is inactive or short on stock. Reported, never corrected."""
    return [item for item in cart.items if not item.is_available]


def validate_cart(cart: Cart) -> None:
    if cart is None or cart.is_empty:
        raise EmptyCartError()
    unavailable = unavailable_items(cart)
    if unavailable:
        raise CartItemsUnavailableError([item.product_id for item in unavailable])


def calculate_cart_totals(cart: Cart) -> Dict[str, Any]:
    """Live totals from current product prices."""
    lines = []
    subtotal = Decimal('0.00')
    item_count = 0

    for item in cart.items:
        product = item.product
        line_total = (product.effective_price * item.quantity).quantize(CENTS)
        lines.append({
            'item_id': item.id,
            'product_id': product.id,
            'product_name': product.name,
            'product_sku': product.sku,
            'quantity': item.quantity,
            'unit_price': product.effective_price,
            'original_price': product.price,
            'total_price': line_total,
            'available': item.is_available,
            'stock_quantity': product.stock_quantity,
        })
        subtotal += line_total
        item_count += item.quantity

    return {
        'lines': lines,
        'subtotal': subtotal.quantize(CENTS),
        'item_count': item_count,
        'line_count': len(lines),
        'has_unavailable_items': any(not line['available'] for line in lines),
    }
