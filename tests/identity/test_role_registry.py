"""Tests for role provisioning."""

import asyncio

import aiosqlite
import pytest

from movie_catalog.common import Role, User
from movie_catalog.identity import CredentialStore, RoleProvisioningError, RoleRegistry

WELL_KNOWN = {Role.ADMIN, Role.REGISTERED}


@pytest.mark.asyncio
async def test_ensure_roles_exist_twice(role_registry: RoleRegistry) -> None:
    """Running the bootstrap twice leaves exactly one of each role."""
    await role_registry.ensure_roles_exist(WELL_KNOWN)
    await role_registry.ensure_roles_exist(WELL_KNOWN)

    assert await role_registry.list_roles() == ["Admin", "Registered"]


@pytest.mark.asyncio
async def test_ensure_roles_exist_concurrently(role_registry: RoleRegistry) -> None:
    """Concurrent bootstraps race safely to the same result."""
    await asyncio.gather(
        *(role_registry.ensure_roles_exist(WELL_KNOWN) for _ in range(5)),
    )

    assert await role_registry.list_roles() == ["Admin", "Registered"]


@pytest.mark.asyncio
async def test_role_exists(role_registry: RoleRegistry) -> None:
    """Roles exist only once provisioned."""
    assert not await role_registry.role_exists("Admin")

    await role_registry.ensure_roles_exist(["Admin"])

    assert await role_registry.role_exists("Admin")
    assert not await role_registry.role_exists("Registered")


@pytest.mark.asyncio
async def test_assign_default(
    credential_store: CredentialStore,
    role_registry: RoleRegistry,
) -> None:
    """New users get the Admin role by default."""
    await role_registry.ensure_roles_exist(WELL_KNOWN)
    user = await credential_store.create(
        User.for_registration("ana@example.com", "Ana"),
        "Secr3t!",
    )

    await role_registry.assign_default(user)

    assert await credential_store.get_roles(user) == ["Admin"]


@pytest.mark.asyncio
async def test_configured_default_role(
    connection: aiosqlite.Connection,
    credential_store: CredentialStore,
) -> None:
    """The default role can be changed."""
    registry = RoleRegistry(connection, credential_store, Role.REGISTERED)
    await registry.ensure_roles_exist(WELL_KNOWN)
    user = await credential_store.create(
        User.for_registration("ana@example.com", "Ana"),
        "Secr3t!",
    )

    await registry.assign_default(user)

    assert await credential_store.get_roles(user) == ["Registered"]


@pytest.mark.asyncio
async def test_assign_default_without_roles(
    credential_store: CredentialStore,
    role_registry: RoleRegistry,
) -> None:
    """Assigning a role that was never provisioned fails loudly."""
    user = await credential_store.create(
        User.for_registration("ana@example.com", "Ana"),
        "Secr3t!",
    )

    with pytest.raises(RoleProvisioningError):
        await role_registry.assign_default(user)
