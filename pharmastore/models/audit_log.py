"""
Audit Log model for tracking order, cart and payment actions.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from pharmastore.database import Base, BigId


class AuditAction(enum.Enum):
    """Enumeration of auditable actions."""
    # Orders
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    ORDER_SHIPPED = "ORDER_SHIPPED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_TRACKING_UPDATED = "ORDER_TRACKING_UPDATED"

    # Cart
    CART_ITEM_ADDED = "CART_ITEM_ADDED"
    CART_ITEM_UPDATED = "CART_ITEM_UPDATED"
    CART_ITEM_REMOVED = "CART_ITEM_REMOVED"
    CART_CLEARED = "CART_CLEARED"

    # Payments
    PAYMENT_INITIATED = "PAYMENT_INITIATED"
    PAYMENT_SUCCEEDED = "PAYMENT_SUCCEEDED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    REFUND_FULL = "REFUND_FULL"
    REFUND_PARTIAL = "REFUND_PARTIAL"

    # Catalog
    PRODUCT_RESTOCKED = "PRODUCT_RESTOCKED"


class AuditLog(Base):
    """
    Audit log for tracking user actions.
    Multi-tenant: filtered by pharmacy_id. user_id is empty for provider callbacks.
    """
    __tablename__ = 'audit_log'

    id = Column(BigId, primary_key=True, autoincrement=True)
    pharmacy_id = Column(BigId, ForeignKey('pharmacy.id'), nullable=False, index=True)
    user_id = Column(BigId, ForeignKey('app_user.id'), nullable=True)
    action = Column(SQLEnum(AuditAction, name='audit_action'), nullable=False, index=True)
    resource_type = Column(String(50))  # e.g., 'order', 'cart', 'payment'
    resource_id = Column(BigId)
    details = Column(Text)  # JSON
    ip_address = Column(String(45))  # IPv4 or IPv6
    user_agent = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    # Relationships
    pharmacy = relationship('Pharmacy')
    user = relationship('AppUser')

    def __repr__(self):
        return f"<AuditLog {self.action.value} by user {self.user_id} at {self.created_at}>"
