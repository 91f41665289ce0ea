"""Catalog blueprint - public product listing and staff restock."""
from flask import Blueprint, g

from pharmastore.database import get_session
from pharmastore.models import AuditAction
from pharmastore.middleware import require_login, require_pharmacy
from pharmastore.forms import load_form, RestockForm
from pharmastore.services.catalog_service import list_public_products, get_pharmacy_product
from pharmastore.services.inventory_service import restock_product
from pharmastore.services.audit_service import log_action
from pharmastore.utils.responses import success
from pharmastore.utils.serializers import product_to_dict

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


@catalog_bp.route('/public/pharmacies/<int:pharmacy_id>/products', methods=['GET'])
def public_products(pharmacy_id):
    products = list_public_products(get_session(), pharmacy_id)
    return success(products, 'Products retrieved')


@catalog_bp.route('/staff/products/<int:product_id>/restock', methods=['POST'])
@require_login
@require_pharmacy
def restock(product_id):
    db_session = get_session()
    form = load_form(RestockForm)
    product = get_pharmacy_product(db_session, product_id, g.pharmacy_id)

    product = restock_product(db_session, product, form.quantity.data)

    log_action(
        db_session, AuditAction.PRODUCT_RESTOCKED, 'product', product.id,
        {'quantity': form.quantity.data, 'stockQuantity': product.stock_quantity}
    )
    return success(product_to_dict(product), 'Stock updated')
