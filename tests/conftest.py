"""Shared fixtures: in-memory databases and fast bcrypt settings."""

import os
from collections.abc import AsyncGenerator, Iterator

import aiosqlite
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from movie_catalog.app import configure_fastapi_app
from movie_catalog.catalog import CatalogQueries
from movie_catalog.config import AppConfig
from movie_catalog.identity import (
    CredentialStore,
    IdentityService,
    RoleRegistry,
    TokenIssuer,
)

TEST_SECRET = "test-signing-secret-that-is-long-enough"
TEST_BCRYPT_ROUNDS = 4

CONFIG_VARIABLES = frozenset(
    {
        "DATABASE_PATH",
        "LOGGING_LEVEL",
        "ROOT_PATH",
        "SECRET_KEY",
        "TOKEN_EXPIRE_DAYS",
        "PASSWORD_MIN_LENGTH",
        "BCRYPT_ROUNDS",
        "DEFAULT_ROLE",
    },
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give each test its own environment without any application settings.

    Loading a dotenv file writes to the environment directly, so a copy keeps
    those writes from leaking between tests.
    """
    environment = {
        name: value
        for name, value in os.environ.items()
        if name not in CONFIG_VARIABLES
    }
    monkeypatch.setattr(os, "environ", environment)


@pytest_asyncio.fixture
async def connection() -> AsyncGenerator[aiosqlite.Connection, None]:
    """Open an in-memory database in autocommit mode."""
    async with aiosqlite.connect(":memory:", isolation_level=None) as db:
        yield db


@pytest_asyncio.fixture
async def credential_store(connection: aiosqlite.Connection) -> CredentialStore:
    """Create a credential store with its tables."""
    store = CredentialStore(connection, bcrypt_rounds=TEST_BCRYPT_ROUNDS)
    await store.initialize_tables()
    return store


@pytest.fixture
def role_registry(
    connection: aiosqlite.Connection,
    credential_store: CredentialStore,
) -> RoleRegistry:
    """Create a role registry sharing the credential store's connection."""
    return RoleRegistry(connection, credential_store)


@pytest.fixture
def token_issuer() -> TokenIssuer:
    """Create a token issuer with a fixed secret."""
    return TokenIssuer(secret=TEST_SECRET)


@pytest.fixture
def identity_service(
    credential_store: CredentialStore,
    role_registry: RoleRegistry,
    token_issuer: TokenIssuer,
) -> IdentityService:
    """Create an identity service over the in-memory stores."""
    return IdentityService(credential_store, role_registry, token_issuer)


@pytest_asyncio.fixture
async def catalog_queries(connection: aiosqlite.Connection) -> CatalogQueries:
    """Create catalog queries with their tables."""
    queries = CatalogQueries(connection)
    await queries.initialize_tables()
    return queries


@pytest.fixture
def app_config() -> AppConfig:
    """Create an application config backed by an in-memory database."""
    return AppConfig(
        database_path=":memory:",
        logging_level="DEBUG",
        root_path="",
        secret_key=TEST_SECRET,
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
    )


@pytest.fixture
def client(app_config: AppConfig) -> Iterator[TestClient]:
    """Run the application, lifespan included, behind a test client."""
    app = configure_fastapi_app(app_config)
    with TestClient(app) as test_client:
        yield test_client


def register_and_login(
    client: TestClient,
    login_name: str = "ana@example.com",
    password: str = "Secr3t!",  # noqa: S107
    display_name: str = "Ana",
) -> str:
    """Register a user through the API and return their bearer token."""
    client.post(
        "/register",
        json={
            "loginName": login_name,
            "password": password,
            "displayName": display_name,
        },
    )
    response = client.post(
        "/login",
        json={"loginName": login_name, "password": password},
    )
    return response.json()["token"]


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    """Authorization headers for a freshly registered Admin user."""
    return {"Authorization": f"Bearer {register_and_login(client)}"}
