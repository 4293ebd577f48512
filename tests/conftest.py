from datetime import date, timedelta

import pytest

from app import create_app
from config import TestConfig
from members import MemberRegistry
from models import Role, db
from rentals import RentalEngine
from repositories import InMemoryBookRepository, InMemoryMemberRepository, InMemoryRentalRepository

TODAY = date(2025, 3, 1)


class Clock:
    """Settable stand-in for date.today."""

    def __init__(self, today=TODAY):
        self.today = today

    def __call__(self):
        return self.today

    def advance(self, days):
        self.today += timedelta(days=days)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def engine(clock):
    return RentalEngine(
        InMemoryBookRepository(),
        InMemoryMemberRepository(),
        InMemoryRentalRepository(),
        clock=clock,
    )


@pytest.fixture
def registry(engine):
    return MemberRegistry(engine.members)


@pytest.fixture
def user(registry):
    return registry.sign_up("Alice", "alice@example.com", "secret")


@pytest.fixture
def admin(registry):
    return registry.sign_up("Admin", "admin@example.com", "secret", Role.ADMIN)


@pytest.fixture
def book(engine):
    return engine.inventory.register("978-0-13-235088-4", "Clean Code", "Robert C. Martin", 2)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
