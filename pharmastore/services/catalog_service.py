"""Catalog lookups used by the storefront (pharmacies and their products)."""
import logging
from typing import Any, Dict, List

from flask import current_app, has_app_context
from sqlalchemy.orm import Session

from pharmastore.models import Pharmacy, Product
from pharmastore.exceptions import NotFoundError
from pharmastore.services.cache_service import get_cache
from pharmastore.utils.serializers import product_to_dict

logger = logging.getLogger(__name__)


def get_open_pharmacy(session: Session, pharmacy_id: int) -> Pharmacy:
    """Pharmacy that accepts carts and orders (active, not suspended)."""
    pharmacy = session.get(Pharmacy, pharmacy_id)
    if pharmacy is None or not pharmacy.is_open:
        raise NotFoundError('Pharmacy', pharmacy_id)
    return pharmacy


def get_pharmacy_product(session: Session, product_id: int, pharmacy_id: int) -> Product:
    """Product by id, only if it belongs to the pharmacy."""
    product = session.query(Product).filter(
        Product.id == product_id,
        Product.pharmacy_id == pharmacy_id
    ).first()
    if product is None:
        raise NotFoundError('Product', product_id)
    return product


def _load_public_products(session: Session, pharmacy_id: int) -> List[Dict[str, Any]]:
    products = (
        session.query(Product)
        .filter(Product.pharmacy_id == pharmacy_id, Product.active.is_(True))
        .order_by(Product.featured.desc(), Product.name)
        .all()
    )
    return [product_to_dict(p) for p in products]


def list_public_products(session: Session, pharmacy_id: int) -> List[Dict[str, Any]]:
    """Active products of an open pharmacy, served from cache when possible."""
    get_open_pharmacy(session, pharmacy_id)
    try:
        cache = get_cache()
    except RuntimeError:
        return _load_public_products(session, pharmacy_id)

    ttl = current_app.config.get('CACHE_PRODUCTS_TTL', 60) if has_app_context() else 60
    return cache.memoize(pharmacy_id, 'catalog', 'products', lambda: _load_public_products(session, pharmacy_id), ttl)
