"""Identity and session management: registration, login, roles and tokens."""

from .credential_store import CredentialStore
from .errors import (
    DuplicateLoginError,
    IdentityError,
    InvalidCredentialError,
    RoleProvisioningError,
    StoreUnavailableError,
    WeakCredentialError,
)
from .password_policy import PasswordPolicy
from .role_registry import RoleRegistry
from .routes import configure_identity_router, get_identity_service
from .service import IdentityService
from .token_issuer import SessionClaims, TokenIssuer
from .validation import Validate

__all__ = [
    "CredentialStore",
    "DuplicateLoginError",
    "IdentityError",
    "IdentityService",
    "InvalidCredentialError",
    "PasswordPolicy",
    "RoleProvisioningError",
    "RoleRegistry",
    "SessionClaims",
    "StoreUnavailableError",
    "TokenIssuer",
    "Validate",
    "WeakCredentialError",
    "configure_identity_router",
    "get_identity_service",
]
