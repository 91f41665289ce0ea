"""Payment model - one payment attempt per order."""
import enum
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class PaymentStatus(enum.Enum):
    """Payment status reported by the provider (plus refunds)."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Payment(Base):
    """Payment for an order, correlated with the provider by conversation_id."""

    __tablename__ = 'payment'

    id = Column(BigId, primary_key=True, autoincrement=True)
    order_id = Column(BigId, ForeignKey('customer_order.id'), nullable=False, unique=True)
    transaction_id = Column(String(100), nullable=True, index=True)
    payment_id = Column(String(100), nullable=True)
    conversation_id = Column(String(50), nullable=False, unique=True)
    status = Column(Enum(PaymentStatus, name='payment_status'), nullable=False, default=PaymentStatus.PENDING)
    amount = Column(Numeric(10, 2), nullable=False)
    refunded_amount = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')

    card_last_four = Column(String(4), nullable=True)
    card_brand = Column(String(30), nullable=True)

    error_code = Column(String(50), nullable=True)
    error_message = Column(String(500), nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    order = relationship('Order', back_populates='payment')

    @property
    def is_successful(self):
        return self.status == PaymentStatus.SUCCESS

    @property
    def is_failed(self):
        return self.status == PaymentStatus.FAILED

    @property
    def is_refunded(self):
        return self.status == PaymentStatus.REFUNDED

    @property
    def is_partially_refunded(self):
        refunded = self.refunded_amount or Decimal('0')
        return Decimal('0') < refunded < self.amount

    @property
    def net_amount(self):
        return self.amount - (self.refunded_amount or Decimal('0'))

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, status={self.status.value})>"
