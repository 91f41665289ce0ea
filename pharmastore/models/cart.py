"""Cart model - one persistent cart per customer per pharmacy."""
from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class Cart(Base):
    """
    Cart - customer's basket at one pharmacy.

    One cart per customer per pharmacy (enforced by UNIQUE constraint).
    Holds no prices: totals are always computed from live products.
    """

    __tablename__ = 'cart'
    __table_args__ = (
        UniqueConstraint('customer_id', 'pharmacy_id', name='uq_cart_customer_pharmacy'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    pharmacy_id = Column(BigId, ForeignKey('pharmacy.id'), nullable=False, index=True)
    customer_id = Column(BigId, ForeignKey('app_user.id'), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    pharmacy = relationship('Pharmacy')
    customer = relationship('AppUser')
    items = relationship(
        'CartItem', back_populates='cart', cascade='all, delete-orphan',
        order_by='CartItem.id'
    )

    @property
    def is_empty(self):
        return not self.items

    def __repr__(self):
        return f"<Cart(id={self.id}, pharmacy_id={self.pharmacy_id}, customer_id={self.customer_id})>"
