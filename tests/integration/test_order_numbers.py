"""
Integration tests for the yearly order number sequence.
"""
from datetime import datetime, timezone

from pharmastore.models import OrderSequence
from pharmastore.services import order_number_service


def _at(year):
    return datetime(year, 3, 1, tzinfo=timezone.utc)


def test_first_number_of_year_creates_sequence(session):
    """The first checkout of a year starts the counter at 1."""
    number = order_number_service.next_order_number(session, now=_at(2030))
    session.commit()

    assert number.endswith('-2030-00001')
    assert session.get(OrderSequence, 2030).last_value == 1


def test_numbers_increase_within_year(session):
    """Consecutive numbers in one year use the next counter value."""
    first = order_number_service.next_order_number(session, now=_at(2031))
    second = order_number_service.next_order_number(session, now=_at(2031))

    assert first.endswith('-2031-00001')
    assert second.endswith('-2031-00002')


def test_sequence_row_created_concurrently(session, monkeypatch):
    """A year row inserted by another checkout after our lookup is reused, not duplicated."""
    session.add(OrderSequence(year=2032, last_value=41))
    session.commit()

    real_lock = order_number_service._lock_sequence
    calls = []

    def lock_missing_first(sess, year):
        calls.append(year)
        if len(calls) == 1:
            return None
        return real_lock(sess, year)

    monkeypatch.setattr(order_number_service, '_lock_sequence', lock_missing_first)

    number = order_number_service.next_order_number(session, now=_at(2032))
    session.commit()

    assert number.endswith('-2032-00042')
    assert len(calls) == 2
    assert session.query(OrderSequence).filter(OrderSequence.year == 2032).count() == 1
    assert session.get(OrderSequence, 2032).last_value == 42
