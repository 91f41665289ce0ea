"""PharmacyMember model - links staff users to a pharmacy with a role."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmastore.database import Base, BigId


class MemberRole(enum.Enum):
    """Staff roles within a pharmacy."""
    OWNER = 'OWNER'
    STAFF = 'STAFF'


class PharmacyMember(Base):
    """PharmacyMember model - staff access to one pharmacy."""

    __tablename__ = 'pharmacy_member'
    __table_args__ = (
        UniqueConstraint('user_id', 'pharmacy_id', name='uq_pharmacy_member_user_pharmacy'),
    )

    id = Column(BigId, primary_key=True, autoincrement=True)
    user_id = Column(BigId, ForeignKey('app_user.id'), nullable=False)
    pharmacy_id = Column(BigId, ForeignKey('pharmacy.id'), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=MemberRole.STAFF.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    user = relationship('AppUser', back_populates='memberships')
    pharmacy = relationship('Pharmacy', back_populates='members')

    def __repr__(self):
        return f"<PharmacyMember(user_id={self.user_id}, pharmacy_id={self.pharmacy_id}, role='{self.role}')>"

    def is_owner(self):
        """Check if member owns the pharmacy."""
        return self.role == MemberRole.OWNER.value
