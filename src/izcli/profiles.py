"""Profile storage for the iz CLI.

Profiles are stored in the config file together with the active profile
pointer. Every mutation loads the whole file, changes one profile and
writes the whole file back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from izcli.config import ConfigFile, Profile, load_config_file, save_config_file
from izcli.exceptions import NoActiveProfileError, NotFoundError, ValidationError
from izcli.sessions import get_session_url

logger = logging.getLogger(__name__)

# CLI key -> Profile attribute, for `iz profiles set/unset`
PROFILE_KEYS: dict[str, str] = {
    "base-url": "base_url",
    "tenant": "tenant",
    "project": "project",
    "context": "context",
    "session": "session",
    "personal-access-token": "personal_access_token",
    "personal-access-token-username": "personal_access_token_username",
    "client-id": "client_id",
    "client-secret": "client_secret",
}

SENSITIVE_PROFILE_KEYS = frozenset({"personal-access-token", "client-secret"})

# Settings applied by `iz profiles init <template>`. A None base_url means
# the user is asked for it.
PROFILE_TEMPLATES: dict[str, dict[str, str | None]] = {
    "sandbox": {
        "base_url": "http://localhost:9000",
        "tenant": "sandbox-tenant",
        "project": "test",
        "context": "dev",
    },
    "build": {
        "base_url": None,
        "tenant": "build-tenant",
        "project": "integration",
        "context": "staging",
    },
    "prod": {
        "base_url": None,
        "tenant": "production",
        "project": "main",
        "context": "prod",
    },
}


def lookup_profile(config: ConfigFile, name: str) -> Profile:
    if not config.profiles:
        raise NotFoundError("profile", name, message="no profiles defined")
    profile = config.profiles.get(name)
    if profile is None:
        raise NotFoundError("profile", name, available=config.profiles)
    return profile


def list_profiles() -> tuple[dict[str, Profile], str]:
    """List all profiles.

    Returns:
        Tuple of (profiles by name, active profile name or "").
    """
    config = load_config_file()
    return dict(sorted(config.profiles.items())), config.active_profile or ""


def get_profile(name: str) -> Profile:
    """Get a profile by name.

    Raises:
        NotFoundError: "no profiles defined" if the store is empty,
            otherwise "profile 'name' not found".
    """
    return lookup_profile(load_config_file(), name)


def get_active_profile_name() -> str:
    """Get the active profile name, or "" when none is set."""
    return load_config_file().active_profile or ""


def add_profile(name: str, profile: Profile) -> bool:
    """Create or replace a profile.

    The very first profile added to an empty store becomes active.

    Returns:
        True if the profile was made active.
    """
    if not name:
        raise ValidationError("profile name is required")
    config = load_config_file()
    config.profiles[name] = profile
    activated = False
    if len(config.profiles) == 1 and not config.active_profile:
        config.active_profile = name
        activated = True
        logger.debug(f"Profile '{name}' is the first profile; set as active")
    save_config_file(config)
    return activated


def set_active_profile(name: str) -> None:
    """Make ``name`` the active profile.

    Raises:
        NotFoundError: If the profile does not exist.
    """
    config = load_config_file()
    if name not in config.profiles:
        raise NotFoundError(
            "profile",
            name,
            available=config.profiles,
            message=f"profile '{name}' does not exist",
        )
    config.active_profile = name
    save_config_file(config)


def delete_profile(name: str) -> bool:
    """Delete a profile.

    If it was the active profile the active pointer is cleared; no other
    profile is promoted.

    Returns:
        True if the deleted profile was the active one.
    """
    config = load_config_file()
    lookup_profile(config, name)
    del config.profiles[name]
    was_active = config.active_profile == name
    if was_active:
        config.active_profile = None
    save_config_file(config)
    return was_active


def normalize_url(url: str) -> str:
    """Normalize a URL for comparison (no scheme, no trailing slash, lower case)."""
    url = url.strip().lower()
    for scheme in ("https://", "http://"):
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    return url.rstrip("/")


def profile_url(profile: Profile) -> str | None:
    """The URL a profile points at: its base URL, else its session's URL."""
    if profile.base_url:
        return profile.base_url
    if profile.session:
        return get_session_url(profile.session)
    return None


def find_profile_by_base_url(url: str) -> str | None:
    """Return the name of the first profile pointing at ``url``, if any."""
    target = normalize_url(url)
    profiles, _ = list_profiles()
    for name, profile in profiles.items():
        candidate = profile_url(profile)
        if candidate and normalize_url(candidate) == target:
            return name
    return None


@contextmanager
def editing_profile(name: str | None = None) -> Iterator[tuple[str, Profile]]:
    """Load a profile for in-place mutation and save it on exit.

    Defaults to the active profile. Nothing is written if the block raises.

    Usage:
        with editing_profile() as (name, profile):
            profile.tenant = "dev"

    Raises:
        NoActiveProfileError: If no name is given and no profile is active.
        NotFoundError: If the profile does not exist.
    """
    config = load_config_file()
    name = name or config.active_profile
    if not name:
        raise NoActiveProfileError()
    profile = lookup_profile(config, name)
    yield name, profile
    save_config_file(config)


def get_active_profile() -> tuple[str, Profile]:
    """Get the active profile.

    Raises:
        NoActiveProfileError: If no profile is active.
    """
    config = load_config_file()
    if not config.active_profile:
        raise NoActiveProfileError()
    return config.active_profile, lookup_profile(config, config.active_profile)


def _attribute_for(key: str) -> str:
    attribute = PROFILE_KEYS.get(key)
    if attribute is None:
        raise ValidationError(
            f"invalid key '{key}'. Valid keys: {', '.join(PROFILE_KEYS)}"
        )
    return attribute


def set_profile_value(name: str, key: str, value: str) -> None:
    """Set one profile setting.

    Setting ``session`` clears ``base-url`` and vice versa.

    Raises:
        ValidationError: If ``key`` is not a settable key.
    """
    attribute = _attribute_for(key)
    with editing_profile(name) as (_, profile):
        setattr(profile, attribute, value)
        if attribute == "session":
            profile.base_url = None
        elif attribute == "base_url":
            profile.session = None


def unset_profile_value(name: str, key: str) -> None:
    """Clear one profile setting."""
    attribute = _attribute_for(key)
    with editing_profile(name) as (_, profile):
        setattr(profile, attribute, None)


def profile_from_template(template: str, base_url: str | None = None) -> Profile:
    """Build a profile from one of PROFILE_TEMPLATES.

    Raises:
        ValidationError: If the template is unknown, or needs a URL and none
            was given.
    """
    settings = PROFILE_TEMPLATES.get(template)
    if settings is None:
        raise ValidationError(
            f"invalid template '{template}'. Valid templates: "
            + ", ".join(PROFILE_TEMPLATES)
        )
    values = dict(settings)
    if values["base_url"] is None:
        if not base_url:
            raise ValidationError(
                f"template '{template}' requires a server URL (use --url)"
            )
        values["base_url"] = base_url
    elif base_url:
        values["base_url"] = base_url
    return Profile(**values)
