"""FastAPI dependency validators for authentication and authorization."""

import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from movie_catalog.common import Role

from .token_issuer import SessionClaims, TokenIssuer

bearer_scheme = HTTPBearer(auto_error=False)

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


class Validate:
    """Holds validator dependencies for FastAPI authentication/authorization."""

    def __init__(self, token_issuer: TokenIssuer) -> None:
        """Create a new validator instance.

        :param token_issuer: Issuer whose secret verifies session tokens
        """
        self.token_issuer = token_issuer

    def session_token(
        self,
        credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
    ) -> SessionClaims:
        """Validate a bearer session token and return its claims."""
        claims = None
        if credentials is not None:
            claims = self.token_issuer.verify(credentials.credentials)

        if claims is None:
            LOGGER.debug("Session token validation failed")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )

        LOGGER.debug("Session token validated for user: %s", claims.name)
        return claims

    def role(self, required_role: Role) -> Callable[..., SessionClaims]:
        """Return a role-based dependency validator."""

        def validator(
            claims: SessionClaims = Depends(self.session_token),  # noqa: B008
        ) -> SessionClaims:
            try:
                granted = Role(claims.role).check_permission(required_role)
            except ValueError:
                granted = False

            if not granted:
                LOGGER.debug("Role validation failed for user: %s", claims.name)
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Forbidden",
                )
            LOGGER.debug("Role validated for user: %s", claims.name)
            return claims

        return validator
