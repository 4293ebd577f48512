"""Rental lifecycle: rent, return, extend and overdue penalties.

All cross-entity policy lives in :class:`RentalEngine`. Each public
operation is one unit of work: it runs under the engine lock and inside
the transaction supplied by the caller, and it finishes every check
before it mutates anything.

Penalties are tracked per rental in ``penalized_days``. The periodic
sweep charges only days not yet charged, so repeated sweeps never
stack. Returning a late book settles the rental: the member ends up
suspended until at least ``today + overdue_days``, and earlier sweep
charges only count for the part of the suspension still running.
"""

import logging
import threading
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Optional

import standing
from exceptions import (
    BorrowLimitError,
    ExtensionLimitError,
    NotFoundError,
    OverdueBlockError,
    SuspendedError,
)
from inventory import BookInventory
from models import Rental, RentalStatus, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RentalPolicy:
    loan_days: int = 14
    extension_days: int = 14
    max_rentals: int = 7
    max_extensions: Optional[int] = None

    @classmethod
    def from_config(cls, config):
        return cls(
            loan_days=config.get("LOAN_DAYS", cls.loan_days),
            extension_days=config.get("EXTENSION_DAYS", cls.extension_days),
            max_rentals=config.get("MAX_RENTALS_PER_USER", cls.max_rentals),
            max_extensions=config.get("MAX_EXTENSIONS", cls.max_extensions),
        )


class RentalEngine:
    def __init__(
        self,
        books,
        members,
        rentals,
        policy: Optional[RentalPolicy] = None,
        clock: Callable[[], date] = date.today,
        transaction=None,
    ):
        self.members = members
        self.rentals = rentals
        self.policy = policy or RentalPolicy()
        self.clock = clock
        self._transaction = transaction or nullcontext
        self.inventory = BookInventory(books, transaction=self._transaction)
        self._lock = threading.RLock()

    @contextmanager
    def _unit_of_work(self):
        # lock first so transactions never interleave
        with self._lock:
            with self._transaction():
                yield

    # queries

    def rentals_for(self, member):
        return self.rentals.find_by_member_id(member.id)

    def active_rentals(self, member):
        return [r for r in self.rentals_for(member) if r.status == RentalStatus.RENTED]

    def has_overdue(self, member_id, today=None):
        today = today or self.clock()
        return any(r.is_overdue(today) for r in self.rentals.find_by_member_id(member_id))

    def get_rental(self, rental_id):
        rental = self.rentals.find_by_id(rental_id)
        if rental is None:
            raise NotFoundError(f"No rental with id {rental_id}.")
        return rental

    def _get_member(self, member_id):
        member = self.members.find_by_id(member_id)
        if member is None:
            raise NotFoundError(f"No member with id {member_id}.")
        return member

    # operations

    def rent(self, book_id, member):
        """Lend one copy of ``book_id`` to ``member``.

        Raises SuspendedError, OverdueBlockError or BorrowLimitError when
        policy forbids it, and NotFoundError/OutOfStockError from the
        inventory. Stock is taken before the rental is recorded, so a
        stock failure leaves no rental behind.
        """
        with self._unit_of_work():
            today = self.clock()
            if standing.is_suspended(member, today):
                raise SuspendedError(f"Member {member.id} is suspended until {member.suspend_until}.")

            held = self.rentals.find_by_member_id(member.id)
            if any(r.is_overdue(today) for r in held):
                raise OverdueBlockError(f"Member {member.id} has overdue rentals and cannot rent.")

            if member.role == Role.USER:
                active = sum(1 for r in held if r.status == RentalStatus.RENTED)
                if active >= self.policy.max_rentals:
                    raise BorrowLimitError(
                        f"Members may hold at most {self.policy.max_rentals} rentals at a time."
                    )

            self.inventory.decrement_available(book_id)
            rental = self.rentals.save(
                Rental(
                    book_id=book_id,
                    member_id=member.id,
                    rented_at=today,
                    due_at=today + timedelta(days=self.policy.loan_days),
                    status=RentalStatus.RENTED,
                    extension_count=0,
                    penalized_days=0,
                )
            )
        logger.info("Rented | rental=%s book=%s member=%s due=%s", rental.id, book_id, member.id, rental.due_at)
        return rental

    def return_book(self, rental_id):
        """Close a rental, penalize lateness and put the copy back on the shelf."""
        with self._unit_of_work():
            today = self.clock()
            rental = self.get_rental(rental_id)
            book = self.inventory.get(rental.book_id)
            member = self._get_member(rental.member_id)

            # must be read before the rental stops being RENTED
            if rental.is_overdue(today):
                self._settle_penalty(member, rental, today)

            rental.mark_returned(today)
            self.inventory.increment_available(book.id)
            self.rentals.save(rental)
        logger.info("Returned | rental=%s book=%s member=%s", rental.id, rental.book_id, rental.member_id)
        return rental

    def extend_rental(self, rental_id):
        with self._unit_of_work():
            today = self.clock()
            rental = self.get_rental(rental_id)
            member = self._get_member(rental.member_id)

            if self.has_overdue(member.id, today):
                raise OverdueBlockError(f"Member {member.id} has overdue rentals and cannot extend.")
            if standing.is_suspended(member, today):
                raise SuspendedError(f"Member {member.id} is suspended until {member.suspend_until}.")
            limit = self.policy.max_extensions
            if limit is not None and (rental.extension_count or 0) >= limit:
                raise ExtensionLimitError(f"Rental {rental.id} was already extended {limit} times.")

            rental.extend(self.policy.extension_days)
            self.rentals.save(rental)
        logger.info("Extended | rental=%s due=%s count=%d", rental.id, rental.due_at, rental.extension_count)
        return rental

    def check_overdue_and_apply_suspension(self, member):
        """Suspend ``member`` for every overdue day not yet charged.

        Returns the number of suspension days applied by this call.
        """
        applied = 0
        with self._unit_of_work():
            today = self.clock()
            for rental in self.rentals.find_by_member_id(member.id):
                if rental.is_overdue(today):
                    applied += self._penalize(member, rental, today)
        return applied

    def sweep_overdue(self):
        """Run the overdue check over every member; returns {member_id: days}."""
        results = {}
        with self._unit_of_work():
            for member in self.members.find_all():
                days = self.check_overdue_and_apply_suspension(member)
                if days:
                    results[member.id] = days
        logger.info("Overdue sweep done | members_penalized=%d", len(results))
        return results

    def _penalize(self, member, rental, today):
        days = rental.outstanding_penalty_days(today)
        if days == 0:
            return 0
        standing.suspend(member, days, today)
        rental.penalized_days = (rental.penalized_days or 0) + days
        self.members.save(member)
        self.rentals.save(rental)
        logger.warning(
            "Overdue penalty | member=%s rental=%s days=%d until=%s",
            member.id,
            rental.id,
            days,
            member.suspend_until,
        )
        return days

    def _settle_penalty(self, member, rental, today):
        """Final penalty on a late return.

        Afterwards the member is suspended until at least
        ``today + overdue_days``. Sweep charges for this rental count only
        for the part of the suspension that is still running.
        """
        overdue = rental.overdue_days(today)
        credit = min(rental.penalized_days or 0, standing.remaining_days(member, today))
        days = max(0, overdue - credit)
        standing.suspend(member, days, today)
        rental.penalized_days = overdue
        self.members.save(member)
        self.rentals.save(rental)
        logger.warning(
            "Late return penalty | member=%s rental=%s overdue=%d charged=%d until=%s",
            member.id,
            rental.id,
            overdue,
            days,
            member.suspend_until,
        )
        return days
