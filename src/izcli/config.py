"""Persisted configuration for the iz CLI.

This module owns the on-disk shapes and their locations:
- Config file (~/.config/iz/config.json, or $XDG_CONFIG_HOME/iz/config.json)
  holding global defaults, the profiles and the active profile pointer.
- Sessions file (~/.izsessions), see izcli.sessions.

Environment variables (IZ_*) are read through IzSettings. They never touch
the files; izcli.resolver layers them on top of the persisted values.

Usage:
    from izcli.config import load_config_file

    config = load_config_file()
    print(config.active_profile)
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from izcli.exceptions import ConfigError

logger = logging.getLogger(__name__)

# --- Constants ---

DEFAULT_TIMEOUT = 30
CONFIG_FILE_NAME = "config.json"
SESSIONS_FILE_NAME = ".izsessions"
FILE_MODE = 0o600
DIR_MODE = 0o700


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


class ColorMode(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


# --- Path utilities ---


def get_config_dir() -> Path:
    """Get the iz config directory ($XDG_CONFIG_HOME/iz or ~/.config/iz)."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "iz"
    return Path.home() / ".config" / "iz"


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / CONFIG_FILE_NAME


def get_sessions_path() -> Path:
    """Get the path to the sessions file (~/.izsessions)."""
    return Path.home() / SESSIONS_FILE_NAME


# --- JSON file helpers ---


def load_json_file(path: Path) -> dict[str, Any]:
    """Load a JSON object from disk.

    A missing file is not an error and yields an empty dict. Unreadable or
    malformed files are, since silently dropping stored profiles or tokens
    would hide the problem from the user.

    Raises:
        ConfigError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError("failed to parse file", path, e) from e
    except OSError as e:
        raise ConfigError("failed to read file", path, e) from e
    if not isinstance(data, dict):
        raise ConfigError("expected a JSON object", path)
    return data


def write_json_file(path: Path, data: dict[str, Any]) -> None:
    """Atomically write a JSON object readable only by its owner (0600).

    The data goes to a temporary file in the same directory which then
    replaces the target, so readers never see a half-written file.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        # Make file readable only by owner (0600)
        path.chmod(FILE_MODE)
    except OSError as e:
        raise ConfigError("failed to write file", path, e) from e


def repair_permissions(path: Path, dir_mode: int | None = DIR_MODE) -> None:
    """Tighten permissions on an existing file (0600) and its directory."""
    try:
        if dir_mode is not None and path.parent.exists():
            if stat.S_IMODE(path.parent.stat().st_mode) != dir_mode:
                path.parent.chmod(dir_mode)
        if path.exists() and stat.S_IMODE(path.stat().st_mode) != FILE_MODE:
            logger.debug(f"Restricting permissions of {path} to 0600")
            path.chmod(FILE_MODE)
    except OSError as e:
        logger.debug(f"Could not repair permissions of {path}: {e}")


# --- Pydantic Config Models ---


class ProjectClientKeysConfig(BaseModel):
    """Client credentials scoped to a single project."""

    client_id: str | None = None
    client_secret: str | None = None


class TenantClientKeysConfig(BaseModel):
    """Client credentials for a tenant, with optional per-project overrides.

    Attributes:
        client_id: Tenant-wide client id.
        client_secret: Tenant-wide client secret.
        projects: Project name to project-scoped credentials. A project
            entry takes precedence over the tenant-wide pair for that project.
    """

    client_id: str | None = None
    client_secret: str | None = None
    projects: dict[str, ProjectClientKeysConfig] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.client_id and not self.projects


ClientKeys = dict[str, TenantClientKeysConfig]


class WorkerConfig(BaseModel):
    """A profile-scoped URL (and credentials) for client-facing operations."""

    url: str
    client_id: str | None = None
    client_secret: str | None = None
    client_keys: ClientKeys = Field(default_factory=dict)


class Profile(BaseModel):
    """A named bundle of environment defaults.

    ``session`` and ``base_url`` are mutually exclusive in normal use: the
    URL either comes directly from ``base_url`` or from the referenced
    session.
    """

    session: str | None = None
    base_url: str | None = None
    tenant: str | None = None
    project: str | None = None
    context: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    personal_access_token: str | None = None
    personal_access_token_username: str | None = None
    insecure_skip_verify: bool = False
    client_keys: ClientKeys = Field(default_factory=dict)
    workers: dict[str, WorkerConfig] = Field(default_factory=dict)
    default_worker: str | None = None


class ConfigFile(BaseModel):
    """Contents of the config file.

    Attributes:
        timeout: Default request timeout in seconds.
        verbose: Default verbosity.
        output_format: Default output format (table or json).
        color: Colour mode (auto, always, never).
        active_profile: Name of the active profile, if any.
        profiles: All stored profiles by name.
    """

    timeout: int = Field(default=DEFAULT_TIMEOUT, gt=0)
    verbose: bool = False
    output_format: OutputFormat = OutputFormat.TABLE
    color: ColorMode = ColorMode.AUTO
    active_profile: str | None = None
    profiles: dict[str, Profile] = Field(default_factory=dict)


class IzSettings(BaseSettings):
    """Settings loaded from environment variables.

    This uses pydantic-settings to read from IZ_* environment variables.
    """

    # Profile selection
    profile: str | None = None

    # Connection
    leader_url: str | None = None
    worker: str | None = None
    worker_url: str | None = None
    timeout: int | None = None
    insecure_skip_verify: bool | None = None

    # Defaults
    tenant: str | None = None
    project: str | None = None
    context: str | None = None

    # Credentials
    client_id: str | None = None
    client_secret: str | None = None
    personal_access_token: str | None = None
    personal_access_token_username: str | None = None
    jwt_token: str | None = None

    # Output
    verbose: bool | None = None
    output_format: OutputFormat | None = None
    color: ColorMode | None = None

    model_config = SettingsConfigDict(
        env_prefix="IZ_",
        env_ignore_empty=True,
        extra="ignore",
    )


SENSITIVE_SETTINGS = frozenset(
    {"client_secret", "personal_access_token", "jwt_token"}
)


# --- Config file loading ---


def config_exists() -> bool:
    return get_config_path().exists()


def load_config_file() -> ConfigFile:
    """Load the config file, returning defaults when it does not exist.

    Each load also restores owner-only permissions on the file and its
    directory.

    Raises:
        ConfigError: If the file is unreadable or does not match the schema.
    """
    path = get_config_path()
    repair_permissions(path)
    data = load_json_file(path)
    try:
        return ConfigFile.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError("invalid config file", path, e) from e


def save_config_file(config: ConfigFile) -> None:
    """Write the whole config file (0600, directory 0700)."""
    path = get_config_path()
    write_json_file(path, config.model_dump(mode="json", exclude_none=True))
    repair_permissions(path)


def init_config_file() -> Path:
    """Create a config file holding the default global settings.

    Returns:
        Path of the created file.

    Raises:
        ConfigError: If a config file already exists.
    """
    path = get_config_path()
    if path.exists():
        raise ConfigError("config file already exists", path)
    save_config_file(ConfigFile())
    return path
