"""Category model."""
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class Category(Base):
    """Product Category."""

    __tablename__ = 'category'
    __table_args__ = (
        UniqueConstraint('pharmacy_id', 'slug', name='uq_category_pharmacy_slug'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    pharmacy_id = Column(BigId, ForeignKey('pharmacy.id'), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    slug = Column(String(140), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    pharmacy = relationship('Pharmacy')

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
