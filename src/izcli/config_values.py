"""Single configuration values for `iz config get/set/unset/list/validate`.

Global keys (timeout, verbose, output-format, color) live at the top of the
config file and are the only keys ``set_config_value`` accepts. Profile keys
(see izcli.profiles.PROFILE_KEYS) can be read here, but are changed with
`iz profiles set`.

A value's source is one of: env (an IZ_* variable), file (the config
file), profile (the selected profile), default, or not set.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from izcli.client_keys import redact
from izcli.config import (
    ConfigFile,
    IzSettings,
    get_config_path,
    load_config_file,
    load_json_file,
    save_config_file,
    write_json_file,
)
from izcli.exceptions import ConfigError, IzError, ValidationError
from izcli.profiles import PROFILE_KEYS, SENSITIVE_PROFILE_KEYS
from izcli.sessions import SessionStore

logger = logging.getLogger(__name__)

# CLI key -> ConfigFile attribute
GLOBAL_KEYS: dict[str, str] = {
    "timeout": "timeout",
    "verbose": "verbose",
    "output-format": "output_format",
    "color": "color",
}

# Profile attribute -> IzSettings attribute, where the two differ
_PROFILE_ENV_FIELDS = {"base_url": "leader_url"}


class ValueSource(str, Enum):
    ENV = "env"
    FILE = "file"
    PROFILE = "profile"
    DEFAULT = "default"
    NOT_SET = "not set"


class ConfigValue(BaseModel):
    """One configuration value and where it comes from."""

    key: str
    value: str | None = None
    source: ValueSource = ValueSource.NOT_SET
    sensitive: bool = False

    def display(self, show_secrets: bool = False) -> str:
        if self.value is None:
            return "(not set)"
        if self.sensitive:
            return redact(self.value, show_secrets)
        return self.value


class ConfigIssue(BaseModel):
    """A problem found by ``validate_config``."""

    field: str
    message: str


def valid_keys() -> list[str]:
    return sorted({*GLOBAL_KEYS, *PROFILE_KEYS})


def _format(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _invalid_key(key: str) -> ValidationError:
    return ValidationError(f"invalid config key '{key}'. Valid keys: {', '.join(valid_keys())}")


def _global_attribute(key: str, command: str) -> str:
    attribute = GLOBAL_KEYS.get(key)
    if attribute is not None:
        return attribute
    if key in PROFILE_KEYS:
        raise ValidationError(
            f"'{key}' is a profile-specific setting. "
            f"Use 'iz profiles {command} <profile> {key}' instead"
        )
    raise _invalid_key(key)


def get_config_value(
    key: str, settings: IzSettings | None = None, profile_name: str | None = None
) -> ConfigValue:
    """Look up one value: environment first, then the file or profile, then defaults.

    Args:
        key: A global or profile key.
        settings: IZ_* settings of this invocation.
        profile_name: Profile to read profile keys from (defaults to
            IZ_PROFILE, then the active profile).

    Raises:
        ValidationError: If ``key`` is unknown.
        ConfigError: If the config file cannot be read.
    """
    settings = settings or IzSettings()
    config = load_config_file()

    if key in GLOBAL_KEYS:
        attribute = GLOBAL_KEYS[key]
        env_value = getattr(settings, attribute)
        if env_value is not None:
            return ConfigValue(key=key, value=_format(env_value), source=ValueSource.ENV)
        raw = load_json_file(get_config_path())
        source = ValueSource.FILE if attribute in raw else ValueSource.DEFAULT
        return ConfigValue(key=key, value=_format(getattr(config, attribute)), source=source)

    attribute = PROFILE_KEYS.get(key)
    if attribute is None:
        raise _invalid_key(key)
    sensitive = key in SENSITIVE_PROFILE_KEYS
    env_value = getattr(settings, _PROFILE_ENV_FIELDS.get(attribute, attribute), None)
    if env_value is not None:
        return ConfigValue(key=key, value=env_value, source=ValueSource.ENV, sensitive=sensitive)
    name = profile_name or settings.profile or config.active_profile
    profile = config.profiles.get(name) if name else None
    value = getattr(profile, attribute) if profile else None
    if value:
        return ConfigValue(
            key=key, value=value, source=ValueSource.PROFILE, sensitive=sensitive
        )
    return ConfigValue(key=key, sensitive=sensitive)


def list_config_values(
    settings: IzSettings | None = None, profile_name: str | None = None
) -> list[ConfigValue]:
    """All known keys with their values and sources, sorted by key."""
    settings = settings or IzSettings()
    return [get_config_value(key, settings, profile_name) for key in valid_keys()]


def set_config_value(key: str, value: str) -> None:
    """Store a global setting in the config file.

    The value is validated against the config file schema, so "30" is
    accepted for timeout and "soon" is not.

    Raises:
        ValidationError: If the key is not a global key or the value is invalid.
    """
    attribute = _global_attribute(key, "set")
    data = load_config_file().model_dump(mode="json")
    data[attribute] = value
    try:
        config = ConfigFile.model_validate(data)
    except PydanticValidationError as e:
        reason = e.errors()[0]["msg"]
        raise ValidationError(f"invalid value '{value}' for {key}: {reason}") from e
    save_config_file(config)
    logger.debug(f"Set {key} in {get_config_path()}")


def unset_config_value(key: str) -> bool:
    """Remove a global setting from the config file, restoring its default.

    Environment variables may still provide a value.

    Returns:
        Whether the key was present in the file.

    Raises:
        ConfigError: If there is no config file.
    """
    attribute = _global_attribute(key, "unset")
    path = get_config_path()
    if not path.exists():
        raise ConfigError("config file does not exist", path)
    data = load_json_file(path)
    if attribute not in data:
        return False
    del data[attribute]
    write_json_file(path, data)
    return True


def validate_config() -> list[ConfigIssue]:
    """Check the config file without changing it.

    Reports schema errors (bad timeout, output format or colour, malformed
    profiles) and references to things that do not exist: the active
    profile, a profile's session and a profile's default worker.

    Returns:
        The problems found; empty when the file is valid or absent.
    """
    path = get_config_path()
    try:
        data = load_json_file(path)
    except ConfigError as e:
        return [ConfigIssue(field="general", message=str(e))]
    try:
        config = ConfigFile.model_validate(data)
    except PydanticValidationError as e:
        return [
            ConfigIssue(
                field=".".join(str(part) for part in error["loc"]) or "general",
                message=error["msg"],
            )
            for error in e.errors()
        ]

    issues = []
    if config.active_profile and config.active_profile not in config.profiles:
        issues.append(
            ConfigIssue(
                field="active_profile",
                message=f"profile '{config.active_profile}' does not exist",
            )
        )

    try:
        sessions = SessionStore.load().sessions
    except IzError as e:
        issues.append(ConfigIssue(field="sessions", message=str(e)))
        sessions = None

    for name, profile in sorted(config.profiles.items()):
        if profile.session and sessions is not None and profile.session not in sessions:
            issues.append(
                ConfigIssue(
                    field=f"profiles.{name}.session",
                    message=f"session '{profile.session}' not found (run 'iz login')",
                )
            )
        if profile.default_worker and profile.default_worker not in profile.workers:
            available = ", ".join(sorted(profile.workers)) or "none"
            issues.append(
                ConfigIssue(
                    field=f"profiles.{name}.default_worker",
                    message=(
                        f"worker '{profile.default_worker}' not found "
                        f"(available: {available})"
                    ),
                )
            )
    return issues
