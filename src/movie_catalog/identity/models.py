"""Models for identity-related requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from movie_catalog.common import User


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserResponse(CamelModel):
    """Public view of a user; never carries the password verifier.

    Every field defaults to empty so that a failed registration can return
    an empty view.

    :param id: Opaque user identifier
    :param login_name: The login name
    :param display_name: The display name
    """

    id: str = ""
    login_name: str = ""
    display_name: str = ""

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        """Create UserResponse from a stored User.

        :param user: User instance
        :return: UserResponse instance
        """
        return cls(
            id=user.id,
            login_name=user.login_name,
            display_name=user.display_name,
        )

    @property
    def is_empty(self) -> bool:
        """True for the default-valued view."""
        return not (self.id or self.login_name or self.display_name)


class RegisterRequest(CamelModel):
    """Registration payload."""

    login_name: str = Field(min_length=1)
    password: str = Field(min_length=1)
    display_name: str = Field(min_length=1)


class LoginRequest(CamelModel):
    """Login payload."""

    login_name: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(CamelModel):
    """Response model for login requests.

    An empty ``token`` and a null ``user`` signal failure; the two failure
    causes (unknown user, wrong password) look identical.

    :param token: The session token, empty on failure
    :param user: The authenticated user information
    """

    token: str = ""
    user: UserResponse | None = None


class AccountResponse(CamelModel):
    """Claims of the caller's current session token."""

    name: str
    role: str
