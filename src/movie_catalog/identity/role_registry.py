"""Lazy, idempotent provisioning of the well-known roles."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite

from movie_catalog.common import Role

from .errors import RoleProvisioningError, StoreUnavailableError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aiosqlite import Connection

    from movie_catalog.common import User

    from .credential_store import CredentialStore

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


class RoleRegistry:
    """Guarantees roles exist before first use and assigns the default role."""

    ADD_ROLE = """
        INSERT OR IGNORE INTO roles (name) VALUES (?);
        """

    GET_ROLE = """
        SELECT name FROM roles WHERE name = ?;
        """

    LIST_ROLES = """
        SELECT name FROM roles ORDER BY name;
        """

    def __init__(
        self,
        connection: Connection,
        credential_store: CredentialStore,
        default_role: str = Role.ADMIN,
    ) -> None:
        """Create a RoleRegistry instance.

        :param connection: Database connection shared with the credential store
        :param credential_store: Store that records role assignments
        :param default_role: Role given to every new registrant
        """
        self.connection = connection
        self.credential_store = credential_store
        self.default_role = default_role

    async def ensure_roles_exist(self, names: Iterable[str]) -> None:
        """Create each named role unless it already exists.

        Concurrent callers may race on the same name; ``INSERT OR IGNORE``
        lets exactly one insert land and the rest become no-ops.

        :param names: Role names to provision
        :raises RoleProvisioningError: If a role could not be created
        """
        for name in sorted({str(name) for name in names}):
            try:
                result = await self.connection.execute(RoleRegistry.ADD_ROLE, (name,))
                await self.connection.commit()
            except aiosqlite.Error as e:
                LOGGER.exception("Error creating role %s", name)
                msg = f"Could not create role {name}"
                raise RoleProvisioningError(msg) from e

            if result.rowcount:
                LOGGER.info("Created role %s", name)

    async def role_exists(self, name: str) -> bool:
        """Return True if the named role exists."""
        try:
            result = await self.connection.execute(RoleRegistry.GET_ROLE, (name,))
            row = await result.fetchone()
        except aiosqlite.Error as e:
            msg = "Could not read roles"
            raise StoreUnavailableError(msg) from e
        return row is not None

    async def list_roles(self) -> list[str]:
        """Return every role name in alphabetical order."""
        try:
            result = await self.connection.execute(RoleRegistry.LIST_ROLES)
            rows = await result.fetchall()
        except aiosqlite.Error as e:
            msg = "Could not read roles"
            raise StoreUnavailableError(msg) from e
        return [row[0] for row in rows]

    async def assign_default(self, user: User) -> None:
        """Assign the default role to a newly created user.

        :param user: The freshly created user
        :raises RoleProvisioningError: If the assignment fails for any reason
        """
        try:
            await self.credential_store.assign_role(user, self.default_role)
        except StoreUnavailableError as e:
            msg = f"Could not assign default role to {user.login_name}"
            raise RoleProvisioningError(msg) from e
