"""Pharmacy model - the tenant that owns a storefront, its catalog and orders."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class Pharmacy(Base):
    """Pharmacy model - each storefront."""

    __tablename__ = 'pharmacy'

    id = Column(BigId, primary_key=True, autoincrement=True)
    slug = Column(String(80), nullable=False, unique=True)  # URL-safe identifier
    name = Column(String(200), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    is_suspended = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    members = relationship('PharmacyMember', back_populates='pharmacy')

    @property
    def is_open(self):
        """Storefront accepts carts and orders."""
        return bool(self.active) and not self.is_suspended

    def __repr__(self):
        return f"<Pharmacy(id={self.id}, slug='{self.slug}', name='{self.name}')>"
