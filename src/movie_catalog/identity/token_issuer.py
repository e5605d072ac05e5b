"""Signed session token issuance and verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import jwt

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


@dataclass(frozen=True)
class SessionClaims:
    """Claims carried by a verified session token.

    :param name: Login name of the subject
    :param role: The single role claim
    :param issued_at: When the token was minted
    :param expires_at: When the token stops being accepted
    """

    name: str
    role: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class TokenIssuer:
    """Mints and verifies HMAC-SHA-256 session tokens.

    The secret is injected at construction and treated as immutable; it is
    never logged or included in a repr.

    :param secret: Shared signing secret, at least 32 bytes
    :param lifetime: How long a token stays valid after it is issued
    """

    ALGORITHM = "HS256"
    DEFAULT_LIFETIME = timedelta(days=7)
    MINIMUM_SECRET_LENGTH = 32
    REQUIRED_CLAIMS = ("name", "role", "iat", "exp")

    secret: str | bytes = field(repr=False)
    lifetime: timedelta = DEFAULT_LIFETIME

    def __post_init__(self) -> None:
        """Reject secrets too short for HMAC-SHA-256."""
        secret = self.secret.encode() if isinstance(self.secret, str) else self.secret
        if len(secret) < self.MINIMUM_SECRET_LENGTH:
            msg = (
                f"Token signing secret must be at least "
                f"{self.MINIMUM_SECRET_LENGTH} bytes long"
            )
            raise ValueError(msg)
        if self.lifetime <= timedelta(0):
            msg = "Token lifetime must be positive"
            raise ValueError(msg)

    def issue(
        self,
        subject_name: str,
        role_claim: str,
        now: datetime | None = None,
    ) -> str:
        """Create a signed token for the subject.

        Identical inputs and ``now`` give byte-identical tokens.

        :param subject_name: Login name to put in the ``name`` claim
        :param role_claim: Role name to put in the ``role`` claim
        :param now: Issue time, defaults to the current time
        :return: The compact encoded token
        """
        issued_at = now or datetime.now(UTC)
        expires_at = issued_at + self.lifetime

        payload = {
            "name": subject_name,
            "role": role_claim,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }

        return jwt.encode(payload, self.secret, algorithm=self.ALGORITHM)

    def verify(self, token: str, now: datetime | None = None) -> SessionClaims | None:
        """Verify a token's signature and expiry.

        :param token: The compact encoded token
        :param now: Time to check expiry against, defaults to the current time
        :return: The token's claims if it is valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.ALGORITHM],
                options={
                    "require": list(self.REQUIRED_CLAIMS),
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            LOGGER.debug("Rejected session token: %s", type(e).__name__)
            return None

        checked_at = now or datetime.now(UTC)
        if checked_at.timestamp() >= payload["exp"]:
            LOGGER.debug("Rejected expired session token for %s", payload["name"])
            return None

        return SessionClaims(
            name=payload["name"],
            role=payload["role"],
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )
