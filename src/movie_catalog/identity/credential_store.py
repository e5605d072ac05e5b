"""User credential storage backed by SQLite.

The CredentialStore class is the repository for user records, password
verifiers and role assignment rows.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

import aiosqlite
from bcrypt import checkpw, gensalt, hashpw

from movie_catalog.common import User

from .errors import (
    DuplicateLoginError,
    RoleProvisioningError,
    StoreUnavailableError,
    WeakCredentialError,
)
from .password_policy import BCRYPT_MAX_PASSWORD_BYTES, PasswordPolicy

if TYPE_CHECKING:
    from aiosqlite import Connection

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

_DUMMY_PASSWORD = b"no-such-user-placeholder"


def normalize_login_name(login_name: str) -> str:
    """Fold a login name so that names differing only in case compare equal.

    Uses Unicode case folding, so non-ASCII letters fold as well.
    """
    return login_name.casefold()


class CredentialStore:
    """Repository for user records and password verification."""

    DEFAULT_BCRYPT_ROUNDS = 12

    CREATE_USERS_TABLE = """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            login_name TEXT NOT NULL,
            normalized_login_name TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL,
            normalized_email TEXT NOT NULL,
            display_name TEXT NOT NULL,
            password_hash BLOB NOT NULL,
            created_at TIMESTAMP NOT NULL
        );
        """

    CREATE_ROLES_TABLE = """
        CREATE TABLE IF NOT EXISTS roles (
            name TEXT PRIMARY KEY
        );
        """

    CREATE_USER_ROLES_TABLE = """
        CREATE TABLE IF NOT EXISTS user_roles (
            position INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            role_name TEXT NOT NULL,
            UNIQUE (user_id, role_name),
            FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE,
            FOREIGN KEY (role_name) REFERENCES roles (name)
        );
        """

    USER_COLUMNS = (
        "id, login_name, email, normalized_email, display_name, "
        "password_hash, created_at"
    )

    GET_USER_BY_LOGIN_NAME = f"""
        SELECT {USER_COLUMNS} FROM users WHERE normalized_login_name = ?;
        """  # noqa: S608

    GET_USER_BY_ID = f"""
        SELECT {USER_COLUMNS} FROM users WHERE id = ?;
        """  # noqa: S608

    LIST_USERS = f"""
        SELECT {USER_COLUMNS} FROM users ORDER BY normalized_login_name;
        """  # noqa: S608

    ADD_USER = f"""
        INSERT INTO users ({USER_COLUMNS}, normalized_login_name)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?);
        """  # noqa: S608

    GET_USER_ROLES = """
        SELECT role_name FROM user_roles WHERE user_id = ? ORDER BY position;
        """

    ADD_USER_ROLE = """
        INSERT OR IGNORE INTO user_roles (user_id, role_name) VALUES (?, ?);
        """

    def __init__(
        self,
        connection: Connection,
        password_policy: PasswordPolicy | None = None,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ) -> None:
        """Create a CredentialStore instance.

        :param connection: Database connection, ideally in autocommit mode
        :param password_policy: Policy checked before a password is hashed
        :param bcrypt_rounds: bcrypt cost factor for new password hashes
        """
        self.connection = connection
        self.password_policy = password_policy or PasswordPolicy()
        self.bcrypt_rounds = bcrypt_rounds
        self._dummy_hash = hashpw(_DUMMY_PASSWORD, gensalt(bcrypt_rounds))

    async def initialize_tables(self) -> None:
        """Create the users, roles and user_roles tables if they do not exist.

        This method should be called during application startup.
        """
        try:
            await self.connection.execute("PRAGMA foreign_keys = ON;")
            await self.connection.execute(CredentialStore.CREATE_USERS_TABLE)
            await self.connection.execute(CredentialStore.CREATE_ROLES_TABLE)
            await self.connection.execute(CredentialStore.CREATE_USER_ROLES_TABLE)
            await self.connection.commit()
        except aiosqlite.Error as e:
            LOGGER.exception("Error initializing identity tables")
            msg = "Could not initialize identity tables"
            raise StoreUnavailableError(msg) from e

    @staticmethod
    def _row_to_user(row: tuple) -> User:
        return User(
            id=row[0],
            login_name=row[1],
            email=row[2],
            normalized_email=row[3],
            display_name=row[4],
            password_hash=row[5],
            created_at=datetime.fromisoformat(row[6]),
        )

    async def _fetch_one_user(self, query: str, value: str) -> User | None:
        try:
            result = await self.connection.execute(query, (value,))
            row = await result.fetchone()
        except aiosqlite.Error as e:
            LOGGER.exception("Error reading user record")
            msg = "Could not read user record"
            raise StoreUnavailableError(msg) from e
        return self._row_to_user(row) if row else None

    async def find_by_login_name(self, login_name: str) -> User | None:
        """Look up a user by login name, ignoring case.

        :param login_name: The login name to look up
        :return: The matching user, or None if there is none
        """
        return await self._fetch_one_user(
            CredentialStore.GET_USER_BY_LOGIN_NAME,
            normalize_login_name(login_name),
        )

    async def get_user(self, user_id: str) -> User | None:
        """Look up a user by identifier.

        :param user_id: The opaque user identifier
        :return: The matching user, or None if there is none
        """
        return await self._fetch_one_user(CredentialStore.GET_USER_BY_ID, user_id)

    async def list_users(self) -> list[User]:
        """Return every user ordered by login name."""
        try:
            result = await self.connection.execute(CredentialStore.LIST_USERS)
            rows = await result.fetchall()
        except aiosqlite.Error as e:
            LOGGER.exception("Error listing users")
            msg = "Could not list users"
            raise StoreUnavailableError(msg) from e
        return [self._row_to_user(row) for row in rows]

    async def create(self, user: User, password: str) -> User:
        """Persist a new user with the password irreversibly hashed.

        Uniqueness of the login name is enforced by the database, not by a
        lookup beforehand.

        :param user: The user to persist
        :param password: The plaintext password
        :return: The persisted user, with its password hash set
        :raises WeakCredentialError: If the password fails the policy
        :raises DuplicateLoginError: If the login name is already registered
        :raises StoreUnavailableError: On any other database failure
        """
        error = self.password_policy.validate(password)
        if error:
            raise WeakCredentialError(error)

        hashed_password = await asyncio.to_thread(
            hashpw,
            password.encode(),
            gensalt(self.bcrypt_rounds),
        )

        try:
            await self.connection.execute(
                CredentialStore.ADD_USER,
                (
                    user.id,
                    user.login_name,
                    user.email,
                    user.normalized_email,
                    user.display_name,
                    hashed_password,
                    user.created_at.isoformat(),
                    normalize_login_name(user.login_name),
                ),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            LOGGER.debug("Login name %s is already registered", user.login_name)
            raise DuplicateLoginError(user.login_name) from e
        except aiosqlite.Error as e:
            LOGGER.exception("Error creating user %s", user.login_name)
            msg = "Could not create user"
            raise StoreUnavailableError(msg) from e

        user.password_hash = hashed_password
        LOGGER.debug("Created user %s", user.login_name)
        return user

    async def verify_password(self, user: User | None, password: str) -> bool:
        """Check a plaintext password against the stored verifier.

        A bcrypt check runs even when ``user`` is None so that the time taken
        does not tell unknown users apart from wrong passwords.

        :param user: The user to check, or None if the lookup found nothing
        :param password: The plaintext password
        :return: True if the password matches, False otherwise
        """
        hashed = self._dummy_hash
        if user is not None and user.password_hash:
            hashed = user.password_hash

        candidate = password.encode()
        if len(candidate) > BCRYPT_MAX_PASSWORD_BYTES:
            candidate = candidate[:BCRYPT_MAX_PASSWORD_BYTES]
            hashed = self._dummy_hash

        try:
            matches = await asyncio.to_thread(checkpw, candidate, hashed)
        except ValueError:
            LOGGER.debug("Stored password verifier is malformed")
            return False

        return matches and hashed is not self._dummy_hash

    async def get_roles(self, user: User) -> list[str]:
        """Return the role names assigned to a user, oldest first.

        :param user: The user whose roles to read
        :return: Role names in assignment order
        """
        try:
            result = await self.connection.execute(
                CredentialStore.GET_USER_ROLES,
                (user.id,),
            )
            rows = await result.fetchall()
        except aiosqlite.Error as e:
            LOGGER.exception("Error reading roles for %s", user.login_name)
            msg = "Could not read user roles"
            raise StoreUnavailableError(msg) from e
        return [row[0] for row in rows]

    async def assign_role(self, user: User, role_name: str) -> None:
        """Assign a role to a user; assigning it twice is a no-op.

        :param user: The user to assign the role to
        :param role_name: Name of an existing role
        :raises RoleProvisioningError: If the role or the user does not exist
        :raises StoreUnavailableError: On any other database failure
        """
        try:
            await self.connection.execute(
                CredentialStore.ADD_USER_ROLE,
                (user.id, str(role_name)),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            LOGGER.warning(
                "Could not assign role %s to %s",
                role_name,
                user.login_name,
            )
            msg = f"Could not assign role {role_name}"
            raise RoleProvisioningError(msg) from e
        except aiosqlite.Error as e:
            LOGGER.exception("Error assigning role %s", role_name)
            msg = "Could not assign role"
            raise StoreUnavailableError(msg) from e

        LOGGER.debug("Assigned role %s to %s", role_name, user.login_name)
