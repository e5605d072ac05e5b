"""Configuration module for the movie catalog.

Handles loading and getting of configuration values from the environment.
"""

from .config import (
    AppConfig,
    configure_logging,
    get_env_int,
    get_env_str,
    load_config_from_env,
)

__all__ = [
    "AppConfig",
    "configure_logging",
    "get_env_int",
    "get_env_str",
    "load_config_from_env",
]
