"""Configuration management for the movie catalog application.

This module provides utilities for loading and validating configuration
from environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from movie_catalog.common import Role
from movie_catalog.identity import PasswordPolicy, TokenIssuer

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

_DEFAULT_TOKEN_EXPIRE_DAYS = 7
_DEFAULT_BCRYPT_ROUNDS = 12
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31


def configure_logging(app_config: AppConfig) -> None:
    """Configure logging based on the application configuration.

    :param app_config: The application configuration instance
    """
    if not app_config.logging_level:
        logging.basicConfig(level=logging.INFO, force=True)
        return

    numeric_level = getattr(logging, app_config.logging_level.upper(), None)
    if not isinstance(numeric_level, int):
        LOGGER.warning("Invalid log level: %s, using INFO", app_config.logging_level)
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, force=True)


@dataclass
class AppConfig:
    """Holds application configuration loaded from environment variables."""

    database_path: str
    logging_level: str | None
    root_path: str

    secret_key: str = field(repr=False)
    token_expire_days: int = _DEFAULT_TOKEN_EXPIRE_DAYS
    password_min_length: int = PasswordPolicy.DEFAULT_MIN_LENGTH
    bcrypt_rounds: int = _DEFAULT_BCRYPT_ROUNDS
    default_role: str = Role.ADMIN

    def __post_init__(self) -> None:
        """Initialize derived configuration attributes."""
        self.token_issuer = TokenIssuer(
            secret=self.secret_key,
            lifetime=timedelta(days=self.token_expire_days),
        )
        self.password_policy = PasswordPolicy(min_length=self.password_min_length)


def get_env_str(
    var_name: str,
    default: str | None,
    value_checker: Callable[[str], bool] | None = None,
) -> str:
    """Get an environment variable as a string with optional constraints.

    The offending value is left out of the error message, since some
    variables hold secrets.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value
    :raises ValueError: If the value does not meet the constraints
    """
    value = os.getenv(var_name, default)
    if value is None:
        msg = f"Environment variable {var_name} is required"
        raise ValueError(msg)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has an invalid value"
        raise ValueError(msg)

    return value


def get_env_int(
    var_name: str,
    default: int,
    value_checker: Callable[[int], bool] | None = None,
) -> int:
    """Get an environment variable as an integer with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value as an integer
    :raises ValueError: If the value does not meet the constraints or is not an integer
    """
    value_str = os.getenv(var_name)
    if value_str is None or value_str == "":
        return default

    if not value_str.isnumeric():
        msg = f"Environment variable {var_name} must be an integer, got: {value_str}"
        raise ValueError(msg)

    value = int(value_str)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def _get_secret_key() -> str:
    secret_key = os.getenv("SECRET_KEY")
    if secret_key is None:
        LOGGER.warning(
            "SECRET_KEY is not set; using a random key, so tokens will not "
            "survive a restart",
        )
        return os.urandom(32).hex()

    return get_env_str(
        "SECRET_KEY",
        None,
        lambda key: len(key.encode()) >= TokenIssuer.MINIMUM_SECRET_LENGTH,
    )


def load_config_from_env(env_file: str | Path | None) -> AppConfig:
    """Load application configuration from environment variables.

    :param env_file: Optional path to a .env file loaded first
    :return: An AppConfig instance populated with environment variable values
    """
    if env_file:
        load_dotenv(dotenv_path=env_file)

    return AppConfig(
        database_path=get_env_str("DATABASE_PATH", "./movie_catalog.db"),
        logging_level=get_env_str("LOGGING_LEVEL", "INFO"),
        root_path=get_env_str("ROOT_PATH", ""),
        secret_key=_get_secret_key(),
        token_expire_days=get_env_int(
            "TOKEN_EXPIRE_DAYS",
            _DEFAULT_TOKEN_EXPIRE_DAYS,
            lambda days: days > 0,
        ),
        password_min_length=get_env_int(
            "PASSWORD_MIN_LENGTH",
            PasswordPolicy.DEFAULT_MIN_LENGTH,
            lambda length: length > 0,
        ),
        bcrypt_rounds=get_env_int(
            "BCRYPT_ROUNDS",
            _DEFAULT_BCRYPT_ROUNDS,
            lambda rounds: _MIN_BCRYPT_ROUNDS <= rounds <= _MAX_BCRYPT_ROUNDS,
        ),
        default_role=get_env_str(
            "DEFAULT_ROLE",
            Role.ADMIN,
            lambda role: role in set(Role),
        ),
    )
