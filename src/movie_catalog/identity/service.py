"""Registration and login orchestration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from movie_catalog.common import Role, User

from .errors import (
    InvalidCredentialError,
    RoleProvisioningError,
    StoreUnavailableError,
)
from .models import LoginResponse, UserResponse

if TYPE_CHECKING:
    from datetime import datetime

    from .credential_store import CredentialStore
    from .role_registry import RoleRegistry
    from .token_issuer import TokenIssuer

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

WELL_KNOWN_ROLES = frozenset({Role.ADMIN, Role.REGISTERED})


class IdentityService:
    """Composes the credential store, role registry and token issuer."""

    def __init__(
        self,
        credential_store: CredentialStore,
        role_registry: RoleRegistry,
        token_issuer: TokenIssuer,
    ) -> None:
        """Create an IdentityService instance.

        :param credential_store: User records and password verification
        :param role_registry: Role provisioning and default assignment
        :param token_issuer: Session token minting
        """
        self.credential_store = credential_store
        self.role_registry = role_registry
        self.token_issuer = token_issuer

    async def register(
        self,
        login_name: str,
        password: str,
        display_name: str,
    ) -> UserResponse:
        """Register a new user and give them the default role.

        :param login_name: Login name, also stored as the email
        :param password: Plaintext password
        :param display_name: Display name
        :return: Public view of the stored user
        :raises DuplicateLoginError: If the login name is taken
        :raises WeakCredentialError: If the password fails the policy
        :raises RoleProvisioningError: If the user was created but no role
            could be assigned
        :raises StoreUnavailableError: On backing store failure
        """
        user = User.for_registration(login_name, display_name)
        await self.credential_store.create(user, password)

        try:
            await self.role_registry.ensure_roles_exist(WELL_KNOWN_ROLES)
            await self.role_registry.assign_default(user)
        except (RoleProvisioningError, StoreUnavailableError) as e:
            LOGGER.error(
                "User %s was created without a role; registration must be retried",
                login_name,
            )
            msg = f"Role provisioning failed for {login_name}"
            raise RoleProvisioningError(msg) from e

        stored = await self.credential_store.find_by_login_name(login_name)
        if stored is None:
            msg = f"User {login_name} not found after creation"
            raise StoreUnavailableError(msg)

        LOGGER.info("Registered user %s", stored.login_name)
        return UserResponse.from_user(stored)

    async def login(
        self,
        login_name: str,
        password: str,
        now: datetime | None = None,
    ) -> LoginResponse:
        """Verify credentials and mint a session token.

        Unknown users and wrong passwords give the same empty response.

        :param login_name: Login name, matched ignoring case
        :param password: Plaintext password
        :param now: Issue time for the token, defaults to the current time
        :return: Token and public user view, or an empty response
        :raises RoleProvisioningError: If the user has no role to claim
        :raises StoreUnavailableError: On backing store failure
        """
        try:
            user = await self._authenticate(login_name, password)
        except InvalidCredentialError as e:
            LOGGER.debug("Failed login attempt for %s: %s", login_name, e)
            return LoginResponse(token="", user=None)

        roles = await self.credential_store.get_roles(user)
        if not roles:
            msg = f"User {user.login_name} has no role to claim"
            raise RoleProvisioningError(msg)

        token = self.token_issuer.issue(user.login_name, roles[0], now=now)
        LOGGER.debug("User %s logged in with role %s", user.login_name, roles[0])
        return LoginResponse(token=token, user=UserResponse.from_user(user))

    async def _authenticate(self, login_name: str, password: str) -> User:
        """Return the user if the password matches.

        Verification runs even when the lookup found nothing.

        :raises InvalidCredentialError: With the internal reason for failure
        """
        user = await self.credential_store.find_by_login_name(login_name)
        valid = await self.credential_store.verify_password(user, password)

        if user is None:
            msg = "unknown login name"
            raise InvalidCredentialError(msg)
        if not valid:
            msg = "wrong password"
            raise InvalidCredentialError(msg)
        return user
