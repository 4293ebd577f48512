from datetime import date

import pytest

import standing
from exceptions import ValidationError
from models import Member

TODAY = date(2025, 3, 1)


@pytest.fixture
def member():
    return Member(id=1, name="Bob", email="bob@example.com", password_hash="x")


def test_no_suspension_by_default(member):
    assert standing.is_suspended(member, TODAY) is False


def test_suspended_strictly_before_end_date(member):
    member.suspend_until = date(2025, 3, 5)
    assert standing.is_suspended(member, date(2025, 3, 4)) is True
    assert standing.is_suspended(member, date(2025, 3, 5)) is False


def test_suspend_from_today(member):
    standing.suspend(member, 20, TODAY)
    assert member.suspend_until == date(2025, 3, 21)


def test_suspensions_stack(member):
    standing.suspend(member, 10, TODAY)
    standing.suspend(member, 5, TODAY)
    assert member.suspend_until == date(2025, 3, 16)


def test_expired_suspension_restarts_from_today(member):
    member.suspend_until = date(2025, 2, 1)
    standing.suspend(member, 3, TODAY)
    assert member.suspend_until == date(2025, 3, 4)


def test_zero_days_is_noop(member):
    standing.suspend(member, 0, TODAY)
    assert member.suspend_until is None


def test_negative_days_rejected(member):
    with pytest.raises(ValidationError):
        standing.suspend(member, -1, TODAY)
    assert member.suspend_until is None


def test_remaining_days(member):
    assert standing.remaining_days(member, TODAY) == 0
    member.suspend_until = date(2025, 3, 8)
    assert standing.remaining_days(member, TODAY) == 7
    assert standing.remaining_days(member, date(2025, 3, 8)) == 0
