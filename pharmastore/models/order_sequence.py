"""Order number sequence - one counter row per calendar year."""
from sqlalchemy import Column, Integer, BigInteger
from pharmastore.database import Base


class OrderSequence(Base):
    """Last order number issued in a year. Incremented under a row lock."""

    __tablename__ = 'order_sequence'

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(BigInteger, nullable=False, default=0)

    def __repr__(self):
        return f"<OrderSequence(year={self.year}, last_value={self.last_value})>"
