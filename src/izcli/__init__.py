"""iz CLI - profile, session, worker and client-key configuration for Izanami."""

from izcli.exceptions import (
    ConfigError,
    IzError,
    LoginError,
    NotFoundError,
    ValidationError,
)
from izcli.resolver import ConfigOverrides, ResolvedConfig, load_config_with_profile

__all__ = [
    "ConfigError",
    "ConfigOverrides",
    "IzError",
    "LoginError",
    "NotFoundError",
    "ResolvedConfig",
    "ValidationError",
    "load_config_with_profile",
]
