import pytest

from exceptions import ConflictError, NotFoundError, ValidationError
from members import MemberRegistry
from models import Role
from repositories import InMemoryMemberRepository


@pytest.fixture
def registry():
    return MemberRegistry(InMemoryMemberRepository())


def test_sign_up_hashes_password(registry):
    m = registry.sign_up("Alice", "alice@example.com", "secret")
    assert m.id == 1
    assert m.role == Role.USER
    assert m.password_hash != "secret"
    assert m.check_password("secret")
    assert not m.check_password("wrong")


def test_sign_up_accepts_role_name(registry):
    m = registry.sign_up("Root", "root@example.com", "pw", "admin")
    assert m.role == Role.ADMIN
    assert m.is_admin


def test_duplicate_email_is_case_insensitive(registry):
    registry.sign_up("Alice", "alice@example.com", "secret")
    with pytest.raises(ConflictError):
        registry.sign_up("Alice Two", "ALICE@Example.com", "other")


@pytest.mark.parametrize(
    "name,email,password",
    [
        ("", "a@b.com", "pw"),
        ("A", "", "pw"),
        ("A", "not-an-email", "pw"),
        ("A", "a@b", "pw"),
        ("A", "a@b.com", ""),
    ],
)
def test_sign_up_validation(registry, name, email, password):
    with pytest.raises(ValidationError):
        registry.sign_up(name, email, password)


def test_unknown_role_rejected(registry):
    with pytest.raises(ValidationError):
        registry.sign_up("A", "a@b.com", "pw", "librarian")


def test_get_unknown_member(registry):
    with pytest.raises(NotFoundError):
        registry.get(42)
