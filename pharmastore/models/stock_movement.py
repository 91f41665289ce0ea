"""Stock Movement model - one row per inventory ledger operation."""
import enum
from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class StockMovementReason(enum.Enum):
    """Why the stock changed."""
    ORDER = "ORDER"
    CANCELLATION = "CANCELLATION"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    RESTOCK = "RESTOCK"


class StockMovement(Base):
    """Signed stock delta applied to a product."""

    __tablename__ = 'stock_movement'

    id = Column(BigId, primary_key=True, autoincrement=True)
    pharmacy_id = Column(BigId, ForeignKey('pharmacy.id'), nullable=False, index=True)
    product_id = Column(BigId, ForeignKey('product.id'), nullable=False, index=True)
    order_id = Column(BigId, ForeignKey('customer_order.id'), nullable=True, index=True)
    delta = Column(Integer, nullable=False)
    reason = Column(Enum(StockMovementReason, name='stock_movement_reason'), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product')

    def __repr__(self):
        return f"<StockMovement(id={self.id}, product_id={self.product_id}, delta={self.delta}, reason={self.reason.value})>"
