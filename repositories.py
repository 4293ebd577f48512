"""Keyed storage for books, members and rentals.

Two flavours share the same methods: an in-memory store for tests and
scripts, and one backed by the Flask-SQLAlchemy session. Both give
read-your-writes visibility inside a single operation.
"""

import itertools
from contextlib import contextmanager

from sqlalchemy import func

from models import Book, Member, Rental, db


def counter():
    """Default id generator for the in-memory stores."""
    return itertools.count(1).__next__


class InMemoryRepository:
    def __init__(self, next_id=None):
        self._store = {}
        self._next_id = next_id or counter()

    def save(self, obj):
        if obj.id is None:
            obj.id = self._next_id()
        self._store[obj.id] = obj
        return obj

    def find_by_id(self, obj_id):
        return self._store.get(obj_id)

    def find_all(self):
        return list(self._store.values())


class InMemoryBookRepository(InMemoryRepository):
    def find_by_isbn(self, isbn):
        isbn = isbn.lower()
        return next((b for b in self._store.values() if b.isbn.lower() == isbn), None)


class InMemoryMemberRepository(InMemoryRepository):
    def find_by_email(self, email):
        email = email.lower()
        return next((m for m in self._store.values() if m.email.lower() == email), None)


class InMemoryRentalRepository(InMemoryRepository):
    def find_by_member_id(self, member_id):
        return [r for r in self._store.values() if r.member_id == member_id]


class SqlRepository:
    model = None

    def save(self, obj):
        db.session.add(obj)
        db.session.flush()
        return obj

    def find_by_id(self, obj_id):
        return db.session.get(self.model, obj_id)

    def find_all(self):
        return self.model.query.order_by(self.model.id).all()


class SqlBookRepository(SqlRepository):
    model = Book

    def find_by_isbn(self, isbn):
        return Book.query.filter(func.lower(Book.isbn) == isbn.lower()).first()


class SqlMemberRepository(SqlRepository):
    model = Member

    def find_by_email(self, email):
        return Member.query.filter(func.lower(Member.email) == email.lower()).first()


class SqlRentalRepository(SqlRepository):
    model = Rental

    def find_by_member_id(self, member_id):
        return Rental.query.filter_by(member_id=member_id).order_by(Rental.id).all()


@contextmanager
def sql_transaction():
    """Commit the session on success, roll it back on any error.

    Nested blocks join the outermost one, so only the outermost block
    commits or rolls back.
    """
    info = db.session().info
    depth = info.get("transaction_depth", 0)
    info["transaction_depth"] = depth + 1
    try:
        yield
        if depth == 0:
            db.session.commit()
    except Exception:
        if depth == 0:
            db.session.rollback()
        raise
    finally:
        info["transaction_depth"] = depth
