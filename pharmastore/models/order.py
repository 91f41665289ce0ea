"""Order model."""
import enum
from sqlalchemy import Column, String, Text, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class OrderStatus(enum.Enum):
    """Order lifecycle states."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    PAYMENT_FAILED = "PAYMENT_FAILED"


class DeliveryType(enum.Enum):
    """How the order reaches the customer."""
    COURIER = "COURIER"
    CARGO = "CARGO"


class Order(Base):
    """
    Order placed from a cart.

    Totals and items are a snapshot taken at checkout. After creation only
    status, tracking and cancellation fields change.
    """

    __tablename__ = 'customer_order'

    id = Column(BigId, primary_key=True, autoincrement=True)
    pharmacy_id = Column(BigId, ForeignKey('pharmacy.id'), nullable=False, index=True)
    customer_id = Column(BigId, ForeignKey('app_user.id'), nullable=False, index=True)
    order_number = Column(String(30), nullable=False, unique=True, index=True)
    status = Column(Enum(OrderStatus, name='order_status'), nullable=False, default=OrderStatus.PENDING)
    delivery_type = Column(Enum(DeliveryType, name='delivery_type'), nullable=False)

    subtotal = Column(Numeric(10, 2), nullable=False)
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')
    total_amount = Column(Numeric(10, 2), nullable=False)

    shipping_address = Column(String(500), nullable=True)
    shipping_city = Column(String(100), nullable=True)
    shipping_district = Column(String(100), nullable=True)
    shipping_postal_code = Column(String(20), nullable=True)
    shipping_phone = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    tracking_number = Column(String(100), nullable=True)
    cargo_company = Column(String(100), nullable=True)

    cancellation_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(BigId, nullable=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    preparing_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    # Set once when the inventory ledger gives this order's stock back
    stock_restored_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    pharmacy = relationship('Pharmacy')
    customer = relationship('AppUser')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan', order_by='OrderItem.id')
    payment = relationship('Payment', back_populates='order', uselist=False)

    @property
    def is_cancellable(self):
        from pharmastore.services.order_state_machine import is_cancellable
        return is_cancellable(self.status)

    @property
    def is_completed(self):
        return self.status == OrderStatus.DELIVERED

    @property
    def is_cancelled(self):
        return self.status == OrderStatus.CANCELLED

    @property
    def total_item_count(self):
        return sum(item.quantity for item in self.items)

    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', status={self.status.value})>"
