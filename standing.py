"""Member standing: the suspension-until date that blocks borrowing."""

import logging
from datetime import date, timedelta

from exceptions import ValidationError

logger = logging.getLogger(__name__)


def is_suspended(member, as_of=None):
    as_of = as_of or date.today()
    return member.suspend_until is not None and member.suspend_until > as_of


def remaining_days(member, as_of=None):
    """Days of suspension still ahead of ``as_of``; 0 when not suspended."""
    as_of = as_of or date.today()
    if not is_suspended(member, as_of):
        return 0
    return (member.suspend_until - as_of).days


def suspend(member, days, today=None):
    """Suspend ``member`` for ``days`` more days.

    Penalties stack: an active suspension is pushed back by ``days``
    instead of being restarted from today.
    """
    if days < 0:
        raise ValidationError("Suspension days must not be negative.")
    if days == 0:
        return member
    today = today or date.today()
    if is_suspended(member, today):
        member.suspend_until = member.suspend_until + timedelta(days=days)
    else:
        member.suspend_until = today + timedelta(days=days)
    logger.warning("Member suspended | member=%s days=%d until=%s", member.id, days, member.suspend_until)
    return member
