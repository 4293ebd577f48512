from datetime import timedelta

import pytest

from conftest import TODAY
from exceptions import SuspendedError


def test_sweep_suspends_for_overdue_days(engine, user, book):
    rental = engine.rent(book.id, user)
    rental.due_at = TODAY - timedelta(days=6)

    assert engine.check_overdue_and_apply_suspension(user) == 6
    assert user.suspend_until == TODAY + timedelta(days=6)
    assert rental.penalized_days == 6


def test_repeated_sweeps_do_not_double_penalize(engine, user, book):
    rental = engine.rent(book.id, user)
    rental.due_at = TODAY - timedelta(days=6)

    engine.check_overdue_and_apply_suspension(user)
    assert engine.check_overdue_and_apply_suspension(user) == 0
    assert user.suspend_until == TODAY + timedelta(days=6)


def test_sweep_charges_only_new_days(engine, clock, user, book):
    rental = engine.rent(book.id, user)
    rental.due_at = TODAY - timedelta(days=6)
    engine.check_overdue_and_apply_suspension(user)

    clock.advance(2)
    assert engine.check_overdue_and_apply_suspension(user) == 2
    assert rental.penalized_days == 8
    assert user.suspend_until == TODAY + timedelta(days=8)


def test_return_after_sweep_suspends_for_full_overdue_days(engine, clock, user, book):
    rental = engine.rent(book.id, user)
    rental.due_at = TODAY - timedelta(days=20)
    engine.check_overdue_and_apply_suspension(user)

    clock.advance(1)
    engine.return_book(rental.id)

    # 21 days late on return; 19 days of the sweep suspension still running
    assert rental.penalized_days == 21
    assert user.suspend_until == clock.today + timedelta(days=21)


def test_daily_sweeps_then_late_return(engine, clock, user, book):
    rental = engine.rent(book.id, user)
    for _ in range(34):
        clock.advance(1)
        engine.check_overdue_and_apply_suspension(user)
    assert rental.overdue_days(clock.today) == 20
    assert user.suspend_until == clock.today + timedelta(days=1)

    engine.return_book(rental.id)

    assert user.suspend_until == clock.today + timedelta(days=20)
    clock.advance(19)
    with pytest.raises(SuspendedError):
        engine.rent(book.id, user)


def test_late_return_keeps_other_suspensions(engine, user, book):
    rental = engine.rent(book.id, user)
    rental.due_at = TODAY - timedelta(days=4)
    user.suspend_until = TODAY + timedelta(days=10)

    engine.return_book(rental.id)

    assert user.suspend_until == TODAY + timedelta(days=14)


def test_sweep_ignores_returned_and_current_rentals(engine, user, book):
    on_time = engine.rent(book.id, user)
    done = engine.rent(book.id, user)
    engine.return_book(done.id)
    done.due_at = TODAY - timedelta(days=30)

    assert engine.check_overdue_and_apply_suspension(user) == 0
    assert user.suspend_until is None
    assert on_time.penalized_days == 0


def test_sweep_overdue_covers_all_members(engine, user, admin, book):
    late = engine.rent(book.id, user)
    engine.rent(book.id, admin)
    late.due_at = TODAY - timedelta(days=4)

    assert engine.sweep_overdue() == {user.id: 4}
    assert engine.sweep_overdue() == {}
    assert admin.suspend_until is None
