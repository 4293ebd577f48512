import logging
import re
from contextlib import nullcontext

from exceptions import ConflictError, NotFoundError, ValidationError
from models import Member, Role

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class MemberRegistry:
    def __init__(self, members, transaction=None):
        self.members = members
        self._transaction = transaction or nullcontext

    def sign_up(self, name, email, password, role=Role.USER):
        """Create a member with a hashed password.

        Raises:
            ValidationError: blank name/email/password or malformed email.
            ConflictError: email already registered (case-insensitive).
        """
        name = (name or "").strip()
        email = (email or "").strip()
        if not name:
            raise ValidationError("Name is required.")
        if not email:
            raise ValidationError("Email is required.")
        if not EMAIL_RE.match(email):
            raise ValidationError(f"Invalid email address: {email}")
        if not password:
            raise ValidationError("Password is required.")
        if isinstance(role, str):
            try:
                role = Role(role.upper())
            except ValueError as e:
                raise ValidationError(f"Unknown role: {role}") from e

        with self._transaction():
            if self.members.find_by_email(email) is not None:
                raise ConflictError(f"Email {email} is already registered.")
            member = self.members.save(Member(name=name, email=email, password=password, role=role))
        logger.info("Member signed up | id=%s email=%s role=%s", member.id, member.email, role.value)
        return member

    def get(self, member_id):
        member = self.members.find_by_id(member_id)
        if member is None:
            raise NotFoundError(f"No member with id {member_id}.")
        return member

    def list_members(self):
        return self.members.find_all()
