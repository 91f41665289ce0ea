"""Cart Item model."""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from pharmastore.database import Base, BigId


class CartItem(Base):
    """Cart Item - a product and a quantity; price is read from the product."""

    __tablename__ = 'cart_item'
    __table_args__ = (
        UniqueConstraint('cart_id', 'product_id', name='uq_cart_item_cart_product'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    cart_id = Column(BigId, ForeignKey('cart.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigId, ForeignKey('product.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    # Relationships
    cart = relationship('Cart', back_populates='items')
    product = relationship('Product')

    @property
    def unit_price(self):
        return self.product.effective_price

    @property
    def total_price(self):
        return self.product.effective_price * self.quantity

    @property
    def is_available(self):
        """Active product with enough stock for the requested quantity."""
        return bool(self.product.active) and self.product.stock_quantity >= self.quantity

    def __repr__(self):
        return f"<CartItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
