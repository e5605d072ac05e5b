"""Tests for registration and login orchestration."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import aiosqlite
import pytest

from movie_catalog.identity import (
    CredentialStore,
    DuplicateLoginError,
    IdentityService,
    RoleProvisioningError,
    RoleRegistry,
    StoreUnavailableError,
    TokenIssuer,
    WeakCredentialError,
)
from movie_catalog.identity.models import LoginResponse


@pytest.mark.asyncio
async def test_register_and_login_scenario(
    identity_service: IdentityService,
    credential_store: CredentialStore,
    token_issuer: TokenIssuer,
) -> None:
    """Register Ana, log in, then fail to log in with a wrong password."""
    registered = await identity_service.register(
        "ana@example.com",
        "Secr3t!",
        "Ana",
    )

    assert registered.display_name == "Ana"
    assert registered.login_name == "ana@example.com"
    assert registered.id

    stored = await credential_store.find_by_login_name("ana@example.com")
    assert stored is not None
    assert await credential_store.get_roles(stored) == ["Admin"]

    result = await identity_service.login("ana@example.com", "Secr3t!")

    assert result.token
    assert result.user is not None
    assert result.user.display_name == "Ana"

    claims = token_issuer.verify(result.token)
    assert claims is not None
    assert claims.name == "ana@example.com"
    assert claims.role == "Admin"

    failed = await identity_service.login("ana@example.com", "wrong")

    assert failed == LoginResponse(token="", user=None)


@pytest.mark.asyncio
async def test_register_result_hides_password(
    identity_service: IdentityService,
) -> None:
    """The public view carries no password verifier."""
    registered = await identity_service.register(
        "ana@example.com",
        "Secr3t!",
        "Ana",
    )

    dumped = registered.model_dump(by_alias=True)

    assert set(dumped) == {"id", "loginName", "displayName"}


@pytest.mark.asyncio
async def test_duplicate_register_keeps_one_user(
    identity_service: IdentityService,
    credential_store: CredentialStore,
) -> None:
    """A second registration with the same login name creates nothing."""
    await identity_service.register("ana@example.com", "Secr3t!", "Ana")

    with pytest.raises(DuplicateLoginError):
        await identity_service.register("ana@example.com", "0ther!Pass", "Other")

    users = await credential_store.list_users()
    assert len(users) == 1
    assert users[0].display_name == "Ana"


@pytest.mark.asyncio
async def test_concurrent_duplicate_register(
    identity_service: IdentityService,
    credential_store: CredentialStore,
) -> None:
    """Exactly one of two racing registrations succeeds."""
    results = await asyncio.gather(
        identity_service.register("ana@example.com", "Secr3t!", "Ana"),
        identity_service.register("ana@example.com", "Secr3t!", "Ana"),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], DuplicateLoginError)
    assert len(await credential_store.list_users()) == 1


@pytest.mark.asyncio
async def test_register_weak_password(
    identity_service: IdentityService,
    credential_store: CredentialStore,
) -> None:
    """A weak password is reported separately from a duplicate."""
    with pytest.raises(WeakCredentialError):
        await identity_service.register("ana@example.com", "weak", "Ana")

    assert await credential_store.list_users() == []


@pytest.mark.asyncio
async def test_wrong_password_and_unknown_user_look_the_same(
    identity_service: IdentityService,
) -> None:
    """Both login failures give identical results."""
    await identity_service.register("ana@example.com", "Secr3t!", "Ana")

    wrong_password = await identity_service.login("ana@example.com", "Wr0ng!")
    unknown_user = await identity_service.login("nobody@example.com", "Secr3t!")

    assert wrong_password == unknown_user
    assert wrong_password.model_dump() == {"token": "", "user": None}


@pytest.mark.asyncio
async def test_login_ignores_login_name_case(
    identity_service: IdentityService,
) -> None:
    """Login matches the login name without regard to case."""
    await identity_service.register("ana@example.com", "Secr3t!", "Ana")

    result = await identity_service.login("ANA@EXAMPLE.COM", "Secr3t!")

    assert result.token
    assert result.user is not None
    assert result.user.login_name == "ana@example.com"


@pytest.mark.asyncio
async def test_login_folds_non_ascii_case(
    identity_service: IdentityService,
) -> None:
    """A user registered in upper case can log in with accented lower case."""
    await identity_service.register("ÉLODIE@example.com", "Secr3t!", "Élodie")

    result = await identity_service.login("élodie@example.com", "Secr3t!")

    assert result.token
    assert result.user is not None
    assert result.user.display_name == "Élodie"


@pytest.mark.asyncio
async def test_login_token_expires_after_seven_days(
    identity_service: IdentityService,
    token_issuer: TokenIssuer,
) -> None:
    """A login token carries the issue time it was given."""
    await identity_service.register("ana@example.com", "Secr3t!", "Ana")
    issued_at = datetime(2024, 3, 1, tzinfo=UTC)

    result = await identity_service.login(
        "ana@example.com",
        "Secr3t!",
        now=issued_at,
    )

    valid_until = issued_at + timedelta(days=6, hours=23)
    expired_at = issued_at + timedelta(days=7, minutes=1)
    assert token_issuer.verify(result.token, now=valid_until) is not None
    assert token_issuer.verify(result.token, now=expired_at) is None


@pytest.mark.asyncio
async def test_register_role_failure_is_fatal(
    credential_store: CredentialStore,
    role_registry: RoleRegistry,
    token_issuer: TokenIssuer,
) -> None:
    """A user left without a role makes registration fail."""
    role_registry.assign_default = AsyncMock(
        side_effect=RoleProvisioningError("boom"),
    )
    service = IdentityService(credential_store, role_registry, token_issuer)

    with pytest.raises(RoleProvisioningError):
        await service.register("ana@example.com", "Secr3t!", "Ana")


@pytest.mark.asyncio
async def test_login_without_role_is_fatal(
    credential_store: CredentialStore,
    role_registry: RoleRegistry,
    token_issuer: TokenIssuer,
) -> None:
    """A user with no role cannot get a token."""
    role_registry.assign_default = AsyncMock(
        side_effect=RoleProvisioningError("boom"),
    )
    service = IdentityService(credential_store, role_registry, token_issuer)
    with pytest.raises(RoleProvisioningError):
        await service.register("ana@example.com", "Secr3t!", "Ana")

    with pytest.raises(RoleProvisioningError):
        await service.login("ana@example.com", "Secr3t!")


@pytest.mark.asyncio
async def test_store_failure_propagates(
    identity_service: IdentityService,
    connection: aiosqlite.Connection,
) -> None:
    """A broken store is a hard failure, not an empty result."""
    await connection.execute("DROP TABLE user_roles;")
    await connection.execute("DROP TABLE users;")

    with pytest.raises(StoreUnavailableError):
        await identity_service.register("ana@example.com", "Secr3t!", "Ana")
    with pytest.raises(StoreUnavailableError):
        await identity_service.login("ana@example.com", "Secr3t!")
