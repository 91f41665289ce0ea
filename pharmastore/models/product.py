"""Product model."""
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import (
    Column, String, Text, Boolean, Integer, Numeric, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class Product(Base):
    """Product model."""

    __tablename__ = 'product'
    __table_args__ = (
        UniqueConstraint('pharmacy_id', 'sku', name='uq_product_pharmacy_sku'),
        # Last line of defense behind the ledger's conditional decrement
        CheckConstraint('stock_quantity >= 0', name='ck_product_stock_non_negative'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    pharmacy_id = Column(BigId, ForeignKey('pharmacy.id'), nullable=False, index=True)
    category_id = Column(BigId, ForeignKey('category.id'), nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(280), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    sku = Column(String(80), nullable=False)
    barcode = Column(String(80), nullable=True)
    brand = Column(String(120), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    discounted_price = Column(Numeric(10, 2), nullable=True)
    stock_quantity = Column(Integer, nullable=False, default=0, server_default='0')
    low_stock_threshold = Column(Integer, nullable=False, default=10, server_default='10')
    active = Column(Boolean, nullable=False, default=True)
    featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    pharmacy = relationship('Pharmacy')
    category = relationship('Category', foreign_keys=[category_id])

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}')>"

    @property
    def has_discount(self):
        """A discounted price only counts when it is lower than the list price."""
        return self.discounted_price is not None and self.discounted_price < self.price

    @property
    def effective_price(self):
        """Price the customer pays right now."""
        return self.discounted_price if self.has_discount else self.price

    @property
    def discount_percentage(self):
        if not self.has_discount:
            return Decimal('0')
        ratio = (self.price - self.discounted_price) / self.price
        return (ratio.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP) * 100)

    @property
    def is_in_stock(self):
        return (self.stock_quantity or 0) > 0

    @property
    def is_low_stock(self):
        return (self.stock_quantity or 0) <= (self.low_stock_threshold or 0)
