"""
Inventory ledger - every change to Product.stock_quantity goes through here.

Decrements are a single conditional UPDATE so concurrent checkouts can never
drive stock below zero; increments are unconditional. Each operation writes a
StockMovement row. Functions only flush: the caller owns the transaction.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from sqlalchemy import update
from sqlalchemy.orm import Session

from pharmastore.models import Product, StockMovement, StockMovementReason
from pharmastore.exceptions import InsufficientStockError, NotFoundError, ValidationError
from pharmastore.services.cache_service import invalidate

logger = logging.getLogger(__name__)


def lock_products(session: Session, product_ids: Iterable[int], pharmacy_id: int) -> Dict[int, Product]:
    """
    Lock product rows FOR UPDATE in ascending id order.

    A fixed lock order keeps two checkouts touching the same products from
    deadlocking each other.
    """
    ids = sorted(set(int(pid) for pid in product_ids))
    if not ids:
        return {}
    products = (
        session.query(Product)
        .filter(Product.id.in_(ids), Product.pharmacy_id == pharmacy_id)
        .order_by(Product.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {p.id: p for p in products}


def _current_stock(session: Session, product_id: int) -> int:
    return session.query(Product.stock_quantity).filter(Product.id == product_id).scalar() or 0


def decrement_stock(session: Session, product: Product, quantity: int, order_id: int = None) -> None:
    """
    Take quantity units out of stock, or raise InsufficientStockError.

    UPDATE product SET stock_quantity = stock_quantity - :n
    WHERE id = :id AND stock_quantity >= :n
    """
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')

    result = session.execute(
        update(Product)
        .where(
            Product.id == product.id,
            Product.pharmacy_id == product.pharmacy_id,
            Product.stock_quantity >= quantity
        )
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        available = _current_stock(session, product.id)
        logger.warning(
            f"Stock conflict on product {product.id}: requested {quantity}, available {available}"
        )
        from pharmastore.blueprints.metrics import stock_conflicts_total
        stock_conflicts_total.inc()
        raise InsufficientStockError(product.name, quantity, available)

    session.expire(product, ['stock_quantity'])
    session.add(StockMovement(
        pharmacy_id=product.pharmacy_id,
        product_id=product.id,
        order_id=order_id,
        delta=-quantity,
        reason=StockMovementReason.ORDER
    ))


def increment_stock(session: Session, product_id: int, quantity: int, reason: StockMovementReason, order_id: int = None) -> None:
    """Give quantity units back. No upper bound; inactive products included."""
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')

    pharmacy_id = session.query(Product.pharmacy_id).filter(Product.id == product_id).scalar()
    if pharmacy_id is None:
        raise NotFoundError('Product', product_id)

    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity + quantity)
        .execution_options(synchronize_session=False)
    )

    product = session.get(Product, product_id)
    if product is not None:
        session.expire(product, ['stock_quantity'])

    session.add(StockMovement(
        pharmacy_id=pharmacy_id,
        product_id=product_id,
        order_id=order_id,
        delta=quantity,
        reason=reason
    ))


def restore_order_stock(session: Session, order, reason: StockMovementReason) -> bool:
    """
    Return every order line's quantity to stock, once per order.

    Returns False when the order's stock was already restored.
    """
    if order.stock_restored_at is not None:
        logger.info(f"Stock for order {order.order_number} already restored, skipping")
        return False

    for item in sorted(order.items, key=lambda i: i.product_id):
        increment_stock(session, item.product_id, item.quantity, reason, order_id=order.id)

    order.stock_restored_at = datetime.now(timezone.utc)
    logger.info(f"Restored stock for order {order.order_number} ({reason.value})")
    return True


def restock_product(session: Session, product: Product, quantity: int) -> Product:
    """Staff restock: add units and commit."""
    try:
        increment_stock(session, product.id, quantity, StockMovementReason.RESTOCK)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(product)
    invalidate(product.pharmacy_id, 'catalog')
    logger.info(f"Product {product.id} restocked by {quantity}, now {product.stock_quantity}")
    return product


def get_movements(session: Session, product_id: int, limit: int = 50) -> List[StockMovement]:
    return (
        session.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.id.desc())
        .limit(limit)
        .all()
    )
