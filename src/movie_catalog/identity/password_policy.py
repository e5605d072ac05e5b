"""Password requirement checks applied before a credential is stored."""

from dataclasses import dataclass

BCRYPT_MAX_PASSWORD_BYTES = 72

RULES = [
    (
        lambda x: not any(c.isupper() for c in x),
        "at least one uppercase letter",
    ),
    (
        lambda x: not any(c.islower() for c in x),
        "at least one lowercase letter",
    ),
    (lambda x: not any(c.isdigit() for c in x), "at least one digit"),
    (
        lambda x: all(c.isalnum() for c in x),
        "at least one non-alphanumeric character",
    ),
]


@dataclass(frozen=True)
class PasswordPolicy:
    """Password requirements for new credentials.

    :param min_length: Minimum number of characters
    """

    DEFAULT_MIN_LENGTH = 6

    min_length: int = DEFAULT_MIN_LENGTH

    def validate(self, password: str) -> str | None:
        """Validate a password against the policy.

        :param password: The plaintext password to validate
        :return: An error message if the password does not meet the
            requirements, None otherwise
        """
        if len(password) < self.min_length:
            return f"Password must be at least {self.min_length} characters long"

        if len(password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            return f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes long"

        for rule, error_message in RULES:
            if rule(password):
                return f"Password must contain {error_message}"

        return None
