"""Exceptions raised by the identity subsystem."""


class IdentityError(Exception):
    """Base exception for identity and session failures."""


class DuplicateLoginError(IdentityError):
    """Raised when a login name is already registered."""

    def __init__(self, login_name: str) -> None:
        super().__init__(f"Login name already registered: {login_name}")
        self.login_name = login_name


class WeakCredentialError(IdentityError):
    """Raised when a password does not satisfy the password policy."""


class InvalidCredentialError(IdentityError):
    """Unknown user or wrong password.

    Only used internally; callers of ``login`` get an empty result instead.
    """


class StoreUnavailableError(IdentityError):
    """Raised when the backing store fails."""


class RoleProvisioningError(IdentityError):
    """Raised when role creation or assignment fails after user creation."""
