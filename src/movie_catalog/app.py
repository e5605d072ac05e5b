"""FastAPI application factory for the movie catalog API."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from aiosqlite import connect as aiosqlite_connect
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from movie_catalog.catalog import CatalogQueries, configure_catalog_router
from movie_catalog.config import AppConfig, configure_logging, load_config_from_env
from movie_catalog.identity import (
    CredentialStore,
    IdentityService,
    RoleRegistry,
    Validate,
    configure_identity_router,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

LOGGER = logging.getLogger(__name__)

IN_MEMORY_DATABASE = ":memory:"


def _prepare_database_path(database_path: str) -> None:
    if database_path == IN_MEMORY_DATABASE:
        return

    parent = Path(database_path).parent
    if not parent.exists():
        parent.mkdir(parents=True, exist_ok=True)
        LOGGER.info("Created directory for database at %s", parent)

    if not Path(database_path).exists():
        LOGGER.info("Database file does not exist at %s", database_path)


def configure_fastapi_app(config: AppConfig) -> FastAPI:
    """Configure and return the FastAPI application.

    Routers are attached once, here. Each startup opens a fresh database
    connection and publishes the stores built on it through ``app.state``,
    where the route dependencies look them up.

    :param config: Application configuration
    :return: Configured FastAPI application
    """
    _prepare_database_path(config.database_path)
    validate = Validate(config.token_issuer)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[Any, Any]:
        """Application lifespan manager.

        Opens the shared database connection and creates the tables.
        """
        LOGGER.info("Movie Catalog API is starting")

        async with aiosqlite_connect(
            config.database_path,
            isolation_level=None,
        ) as db_connection:
            credential_store = CredentialStore(
                db_connection,
                config.password_policy,
                config.bcrypt_rounds,
            )
            role_registry = RoleRegistry(
                db_connection,
                credential_store,
                config.default_role,
            )
            catalog_queries = CatalogQueries(db_connection)

            await credential_store.initialize_tables()
            await catalog_queries.initialize_tables()

            app.state.identity_service = IdentityService(
                credential_store,
                role_registry,
                config.token_issuer,
            )
            app.state.catalog_queries = catalog_queries

            yield

            LOGGER.info("Movie Catalog API is shutting down")

    app = FastAPI(
        title="Movie Catalog API",
        version="0.1.0",
        lifespan=lifespan,
        root_path=config.root_path,
    )

    app.include_router(
        configure_identity_router(APIRouter(), validate),
        tags=["identity"],
    )
    app.include_router(
        configure_catalog_router(APIRouter(), validate),
        tags=["catalog"],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def read_root() -> str:
        return "Movie Catalog API"

    return app


def create_app(env_file: str | None = os.environ.get("ENV_FILE", ".env")) -> FastAPI:
    """Create and configure the FastAPI application.

    The default here is for uvicorn command line usage, in which case the user
    should set ENV_FILE environment variable if they want a different file.

    :param env_file: Optional path to the environment configuration file
    :return: Configured FastAPI application
    """
    config = load_config_from_env(env_file)
    configure_logging(config)
    return configure_fastapi_app(config)
