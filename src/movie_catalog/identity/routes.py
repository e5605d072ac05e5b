"""Registration, login and user lookup routes for the FastAPI application."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from movie_catalog.common import Role

from .credential_store import CredentialStore
from .errors import (
    DuplicateLoginError,
    RoleProvisioningError,
    StoreUnavailableError,
    WeakCredentialError,
)
from .models import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from .service import IdentityService
from .token_issuer import SessionClaims
from .validation import Validate

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


def get_identity_service(request: Request) -> IdentityService:
    """Return the identity service opened by the application lifespan."""
    return request.app.state.identity_service


ServiceDependency = Annotated[IdentityService, Depends(get_identity_service)]


def _store_unavailable(e: StoreUnavailableError) -> HTTPException:
    LOGGER.error("Backing store failure: %s", e)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Service temporarily unavailable",
    )


async def _register(
    service: IdentityService,
    request: RegisterRequest,
) -> UserResponse | JSONResponse:
    try:
        return await service.register(
            request.login_name,
            request.password,
            request.display_name,
        )
    except (DuplicateLoginError, WeakCredentialError) as e:
        LOGGER.debug("Registration rejected for %s: %s", request.login_name, e)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=UserResponse().model_dump(by_alias=True),
        )
    except RoleProvisioningError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration could not be completed",
        ) from e
    except StoreUnavailableError as e:
        raise _store_unavailable(e) from e


async def _login(
    service: IdentityService,
    request: LoginRequest,
) -> LoginResponse | JSONResponse:
    try:
        result = await service.login(request.login_name, request.password)
    except RoleProvisioningError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login could not be completed",
        ) from e
    except StoreUnavailableError as e:
        raise _store_unavailable(e) from e

    if not result.token:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=result.model_dump(by_alias=True),
        )
    return result


async def _list_users(credential_store: CredentialStore) -> list[UserResponse]:
    try:
        users = await credential_store.list_users()
    except StoreUnavailableError as e:
        raise _store_unavailable(e) from e
    return [UserResponse.from_user(user) for user in users]


async def _get_user(credential_store: CredentialStore, user_id: str) -> UserResponse:
    try:
        user = await credential_store.get_user(user_id)
    except StoreUnavailableError as e:
        raise _store_unavailable(e) from e

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return UserResponse.from_user(user)


def configure_identity_router(router: APIRouter, validate: Validate) -> APIRouter:
    """Configure the identity router.

    Routes resolve the IdentityService per request through
    :func:`get_identity_service`.

    :param router: The APIRouter to configure
    :param validate: Validator dependencies for protected routes
    :return: The configured APIRouter
    """
    @router.post(
        "/register",
        response_model=UserResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def register(
        request: RegisterRequest,
        service: ServiceDependency,
    ) -> UserResponse | JSONResponse:
        return await _register(service, request)

    @router.post("/login", response_model=LoginResponse)
    async def login(
        request: LoginRequest,
        service: ServiceDependency,
    ) -> LoginResponse | JSONResponse:
        return await _login(service, request)

    @router.get("/account", response_model=AccountResponse)
    def get_account_info(
        claims: Annotated[SessionClaims, Depends(validate.session_token)],
    ) -> AccountResponse:
        return AccountResponse(name=claims.name, role=claims.role)

    @router.get("/users", response_model=list[UserResponse])
    async def list_users(
        _admin: Annotated[SessionClaims, Depends(validate.role(Role.ADMIN))],
        service: ServiceDependency,
    ) -> list[UserResponse]:
        return await _list_users(service.credential_store)

    @router.get("/users/{user_id}", response_model=UserResponse)
    async def get_user(
        user_id: str,
        _admin: Annotated[SessionClaims, Depends(validate.role(Role.ADMIN))],
        service: ServiceDependency,
    ) -> UserResponse:
        return await _get_user(service.credential_store, user_id)

    return router
