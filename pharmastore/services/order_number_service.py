"""Order number generation: ORD-<year>-<5-digit sequence>."""
import logging
from datetime import datetime, timezone

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pharmastore.models import Order, OrderSequence

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = 'ORD'
MAX_ATTEMPTS = 5


def _prefix():
    if has_app_context():
        return current_app.config.get('ORDER_NUMBER_PREFIX', DEFAULT_PREFIX)
    return DEFAULT_PREFIX


def format_order_number(year: int, value: int, prefix: str = None) -> str:
    return f"{prefix or _prefix()}-{year}-{value:05d}"


def _lock_sequence(session: Session, year: int):
    return (
        session.query(OrderSequence)
        .filter(OrderSequence.year == year)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _create_sequence_row(session: Session, year: int) -> None:
    """Insert the year's counter row unless a concurrent checkout already did."""
    dialect = session.get_bind().dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == 'sqlite':
        from sqlalchemy.dialects.sqlite import insert
    else:
        try:
            with session.begin_nested():
                session.add(OrderSequence(year=year, last_value=0))
        except IntegrityError:
            logger.info(f"Order sequence for {year} created concurrently")
        return
    session.execute(
        insert(OrderSequence)
        .values(year=year, last_value=0)
        .on_conflict_do_nothing(index_elements=['year'])
    )


def _next_sequence_value(session: Session, year: int) -> int:
    """Increment the year's counter under a row lock (created on first use)."""
    sequence = _lock_sequence(session, year)
    if sequence is None:
        _create_sequence_row(session, year)
        sequence = _lock_sequence(session, year)
    sequence.last_value = (sequence.last_value or 0) + 1
    session.flush()
    return sequence.last_value


def next_order_number(session: Session, now: datetime = None) -> str:
    """
    Issue the next order number inside the caller's transaction.

    The counter row lock serializes concurrent checkouts; the increment rolls
    back with the order if the checkout fails. Numbers already taken (e.g.
    imported orders) are skipped.
    """
    year = (now or datetime.now(timezone.utc)).year
    for _ in range(MAX_ATTEMPTS):
        candidate = format_order_number(year, _next_sequence_value(session, year))
        exists = session.query(Order.id).filter(Order.order_number == candidate).first()
        if exists is None:
            return candidate
        logger.warning(f"Order number {candidate} already in use, advancing sequence")
    raise RuntimeError(f'Could not allocate a free order number for {year}')
