"""Models package - exports all SQLAlchemy models."""
# Tenancy and users
from pharmastore.models.pharmacy import Pharmacy
from pharmastore.models.app_user import AppUser
from pharmastore.models.pharmacy_member import PharmacyMember, MemberRole

# Catalog
from pharmastore.models.category import Category
from pharmastore.models.product import Product

# Cart and orders
from pharmastore.models.cart import Cart
from pharmastore.models.cart_item import CartItem
from pharmastore.models.order import Order, OrderStatus, DeliveryType
from pharmastore.models.order_item import OrderItem
from pharmastore.models.order_sequence import OrderSequence
from pharmastore.models.payment import Payment, PaymentStatus

# Ledgers
from pharmastore.models.stock_movement import StockMovement, StockMovementReason
from pharmastore.models.audit_log import AuditLog, AuditAction

__all__ = [
    'Pharmacy', 'AppUser', 'PharmacyMember', 'MemberRole',
    'Category', 'Product',
    'Cart', 'CartItem', 'Order', 'OrderStatus', 'DeliveryType', 'OrderItem',
    'OrderSequence', 'Payment', 'PaymentStatus',
    'StockMovement', 'StockMovementReason', 'AuditLog', 'AuditAction',
]
