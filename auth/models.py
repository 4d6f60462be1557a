"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these types only own the domain shape.

Layer rule: no imports from api/, sensors/, or parcels/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of roles a user can hold.

    Role checks compare enum members, never raw strings, so a typo in a route
    declaration fails at import time instead of silently matching nobody.
    Roles are not ordered: admin does not imply user.
    """

    admin = "admin"
    user = "user"

    @classmethod
    def parse(cls, value: str) -> Role:
        """Return the Role for value. Raises ValueError for unknown roles."""
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(r.value for r in cls)
            raise ValueError(f"Unknown role {value!r}; expected one of: {allowed}") from None


@dataclass
class User:
    """A registered identity.

    hashed_password is a bcrypt hash; the plaintext is never stored.
    id is None before the record is written to the database.
    """

    username: str
    role: Role
    hashed_password: str = ""
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Claims:
    """Identity carried inside a verified token. Has no storage of its own."""

    username: str
    role: Role
    issued_at: datetime
    expires_at: datetime

    def as_profile(self) -> dict:
        return {"username": self.username, "role": self.role.value}
