"""Fundamental user data model for app."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4


class Role(StrEnum):
    """Well-known roles, ordered from most to least privileged."""

    ADMIN = "Admin"
    REGISTERED = "Registered"

    def check_permission(self, required_role: Role) -> bool:
        """Check if the current role has permission for the required role.

        :param required_role: The least privileged role allowed through
        :return: True if the current role has permission, False otherwise
        """
        members = list(Role)
        return members.index(self) <= members.index(required_role)


@dataclass
class User:
    """Identity record as held by the credential store.

    ``password_hash`` never leaves the store boundary; use
    :class:`movie_catalog.identity.models.UserResponse` for anything returned
    to a caller.
    """

    login_name: str
    display_name: str
    email: str = ""
    normalized_email: str = ""
    id: str = field(default_factory=lambda: str(uuid4()))
    password_hash: bytes | None = field(default=None, repr=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def for_registration(cls, login_name: str, display_name: str) -> User:
        """Build a new user whose email doubles as the login name."""
        return cls(
            login_name=login_name,
            display_name=display_name,
            email=login_name,
            normalized_email=login_name.upper(),
        )
