import enum
from datetime import date, datetime, timedelta

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import check_password_hash, generate_password_hash

from exceptions import AlreadyReturnedError

db = SQLAlchemy()

DEFAULT_LOAN_DAYS = 14


class Role(enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class RentalStatus(enum.Enum):
    RENTED = "RENTED"
    RETURNED = "RETURNED"


class Book(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    isbn = db.Column(db.String(50), unique=True, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    author = db.Column(db.String(255), nullable=False)
    total_copies = db.Column(db.Integer, nullable=False, default=0)
    available_copies = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault("total_copies", 0)
        kwargs.setdefault("available_copies", kwargs["total_copies"])
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<Book {self.id} {self.isbn} {self.available_copies}/{self.total_copies}>"


class Member(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(Role), nullable=False, default=Role.USER)
    suspend_until = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault("role", Role.USER)
        password = kwargs.pop("password", None)
        super().__init__(**kwargs)
        if password is not None:
            self.set_password(password)

    def set_password(self, raw):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw):
        return check_password_hash(self.password_hash, raw)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    def __repr__(self):
        return f"<Member {self.id} {self.email} {self.role.value}>"


class Rental(db.Model):
    """One borrow transaction.

    A rental starts RENTED and ends RETURNED; there is no way back. The
    record never touches book stock itself, the engine pairs every
    transition with the matching inventory change.
    """

    id = db.Column(db.Integer, primary_key=True)
    book_id = db.Column(db.Integer, db.ForeignKey("book.id"), nullable=False)
    member_id = db.Column(db.Integer, db.ForeignKey("member.id"), nullable=False)
    rented_at = db.Column(db.Date, nullable=False)
    due_at = db.Column(db.Date, nullable=False)
    returned_at = db.Column(db.Date)
    status = db.Column(db.Enum(RentalStatus), nullable=False, default=RentalStatus.RENTED)
    extension_count = db.Column(db.Integer, nullable=False, default=0)
    # overdue days already converted into a suspension
    penalized_days = db.Column(db.Integer, nullable=False, default=0)

    def __init__(self, **kwargs):
        kwargs.setdefault("rented_at", date.today())
        kwargs.setdefault("due_at", kwargs["rented_at"] + timedelta(days=DEFAULT_LOAN_DAYS))
        kwargs.setdefault("status", RentalStatus.RENTED)
        kwargs.setdefault("extension_count", 0)
        kwargs.setdefault("penalized_days", 0)
        super().__init__(**kwargs)

    @property
    def is_returned(self):
        return self.status == RentalStatus.RETURNED

    def is_overdue(self, as_of=None):
        as_of = as_of or date.today()
        return self.status == RentalStatus.RENTED and self.due_at < as_of

    def overdue_days(self, as_of=None):
        as_of = as_of or date.today()
        if not self.is_overdue(as_of):
            return 0
        return (as_of - self.due_at).days

    def outstanding_penalty_days(self, as_of=None):
        return max(0, self.overdue_days(as_of) - (self.penalized_days or 0))

    def mark_returned(self, on=None):
        if self.is_returned:
            raise AlreadyReturnedError(f"Rental {self.id} was already returned on {self.returned_at}.")
        self.returned_at = on or date.today()
        self.status = RentalStatus.RETURNED
        return self

    def extend(self, days=DEFAULT_LOAN_DAYS):
        if self.is_returned:
            raise AlreadyReturnedError(f"Rental {self.id} was already returned and cannot be extended.")
        self.due_at = self.due_at + timedelta(days=days)
        self.extension_count = (self.extension_count or 0) + 1
        return self

    def __repr__(self):
        return f"<Rental {self.id} book={self.book_id} member={self.member_id} {self.status.value}>"
