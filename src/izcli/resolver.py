"""Effective configuration for one iz invocation.

Configuration is resolved from the following sources, highest priority
first:
1. Command-line flags
2. Environment variables (IZ_*)
3. The selected profile (explicit --profile / IZ_PROFILE, else the active one)
4. The session referenced by that profile (URL, username, token)
5. Global defaults from the config file

Client credentials are picked as one pair from the first source that has
both an id and a secret:
flags > worker client-keys > worker > environment > profile client-keys > profile.

Usage:
    from izcli.resolver import load_config_with_profile

    config = load_config_with_profile("prod")
    print(config.base_url, config.effective_worker_url)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from izcli.client_keys import REDACTED, resolve_client_credentials_from_keys
from izcli.config import (
    SENSITIVE_SETTINGS,
    ColorMode,
    IzSettings,
    OutputFormat,
    Profile,
    load_config_file,
)
from izcli.exceptions import NotFoundError, ValidationError
from izcli.profiles import lookup_profile
from izcli.sessions import AuthMethod, SessionStore
from izcli.workers import ResolvedWorker, WorkerSource, resolve_worker

logger = logging.getLogger(__name__)

T = TypeVar("T")

MSG_TENANT_REQUIRED = "tenant is required (use --tenant flag or set IZ_TENANT)"


class CredentialSource(str, Enum):
    """Where the effective client credentials came from."""

    FLAGS = "flags"
    WORKER_KEYS = "worker client-keys"
    WORKER = "worker"
    ENVIRONMENT = "environment"
    PROFILE_KEYS = "profile client-keys"
    PROFILE = "profile"
    NONE = "not configured"


class ConfigOverrides(BaseModel):
    """Values given as command-line flags for this invocation."""

    leader_url: str | None = None
    tenant: str | None = None
    project: str | None = None
    context: str | None = None
    worker: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    personal_access_token: str | None = None
    personal_access_token_username: str | None = None
    jwt_token: str | None = None
    timeout: int | None = None
    verbose: bool = False
    output_format: OutputFormat | None = None
    color: ColorMode | None = None
    insecure_skip_verify: bool = False


class ResolvedConfig(BaseModel):
    """The merged configuration every command works from.

    Rebuilt on each invocation and never persisted.

    Attributes:
        profile_name: Profile that was applied, if any.
        base_url: Leader URL for admin operations.
        worker_url: URL of the selected worker (None in standalone mode).
        worker_name: Name of the selected worker, if it has one.
        worker_source: How the worker was selected.
        credential_source: Where client_id/client_secret came from.
        sources: Setting name to the layer that supplied it (for --verbose).
    """

    model_config = ConfigDict(frozen=True)

    profile_name: str | None = None
    base_url: str | None = None
    worker_url: str | None = None
    worker_name: str | None = None
    worker_source: WorkerSource = WorkerSource.STANDALONE
    tenant: str | None = None
    project: str | None = None
    context: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    credential_source: CredentialSource = CredentialSource.NONE
    personal_access_token: str | None = None
    personal_access_token_username: str | None = None
    jwt_token: str | None = None
    username: str | None = None
    auth_method: AuthMethod | None = None
    timeout: int = 30
    verbose: bool = False
    output_format: OutputFormat = OutputFormat.TABLE
    color: ColorMode = ColorMode.AUTO
    insecure_skip_verify: bool = False
    sources: dict[str, str] = Field(default_factory=dict)

    @property
    def effective_worker_url(self) -> str | None:
        """URL for client operations: the worker's, else the leader's."""
        return self.worker_url or self.base_url

    def validate_tenant(self) -> None:
        if not self.tenant:
            raise ValidationError(MSG_TENANT_REQUIRED)

    def validate_client_auth(self) -> None:
        """Check that client operations (feature checks, events) can run."""
        if not self.effective_worker_url:
            raise ValidationError(
                "URL is required: set IZ_LEADER_URL, IZ_WORKER_URL, or configure a worker"
            )
        if not self.client_id or not self.client_secret:
            raise ValidationError(
                "client credentials required: set IZ_CLIENT_ID and IZ_CLIENT_SECRET "
                "(or --client-id/--client-secret), or configure client-keys in your profile"
            )

    def validate_admin_auth(self) -> None:
        """Check that admin operations against the leader can run."""
        if not self.base_url:
            raise ValidationError("leader URL is required (set IZ_LEADER_URL or --url)")
        if not self.personal_access_token and not self.jwt_token:
            raise ValidationError(
                "admin operations require authentication: use 'iz login' for JWT, "
                "or set IZ_JWT_TOKEN, or set IZ_PERSONAL_ACCESS_TOKEN "
                "(with IZ_PERSONAL_ACCESS_TOKEN_USERNAME)"
            )
        if self.personal_access_token and not self.personal_access_token_username:
            raise ValidationError(
                "personal-access-token-username required when using personal access "
                "token (set IZ_PERSONAL_ACCESS_TOKEN_USERNAME or "
                "--personal-access-token-username)"
            )


def _first(
    sources: dict[str, str], key: str, *candidates: tuple[str, T | None]
) -> T | None:
    """Pick the first set candidate and remember which layer supplied it."""
    for layer, value in candidates:
        if value is not None and value != "":
            sources[key] = layer
            return value
    return None


def resolve_credentials(
    candidates: list[tuple[CredentialSource, tuple[str | None, str | None]]],
) -> tuple[str | None, str | None, CredentialSource]:
    """Return the first complete (client_id, client_secret) pair and its source.

    Pairs are never mixed: a source counts only if it has both values.
    """
    for source, (client_id, client_secret) in candidates:
        if client_id and client_secret:
            return client_id, client_secret, source
    return None, None, CredentialSource.NONE


def _load_referenced_session(profile_name: str, session_name: str):
    try:
        return SessionStore.load().get_session(session_name)
    except NotFoundError as e:
        raise NotFoundError(
            "session",
            session_name,
            message=(
                f"session '{session_name}' referenced by profile '{profile_name}' "
                "not found (use 'iz login' to authenticate)"
            ),
        ) from e


def load_config_with_profile(
    profile_name: str | None = None,
    overrides: ConfigOverrides | None = None,
    settings: IzSettings | None = None,
) -> ResolvedConfig:
    """Resolve the configuration for one invocation.

    Args:
        profile_name: Profile to apply. If None, uses IZ_PROFILE or the
            active profile. With no profile at all, only flags, environment
            and global defaults apply.
        overrides: Command-line flag values.
        settings: Environment settings. Read from IZ_* if None.

    Returns:
        Fully resolved, frozen ResolvedConfig.

    Raises:
        ConfigError: If the config or sessions file cannot be read.
        NotFoundError: If the selected profile, its session or an explicitly
            selected worker does not exist.
    """
    overrides = overrides or ConfigOverrides()
    settings = settings or IzSettings()
    config_file = load_config_file()
    sources: dict[str, str] = {}

    # 1. Select the profile
    effective_profile = profile_name or settings.profile or config_file.active_profile
    profile: Profile | None = None
    if effective_profile:
        try:
            profile = lookup_profile(config_file, effective_profile)
        except NotFoundError as e:
            raise NotFoundError(
                "profile",
                effective_profile,
                message=f"failed to load profile '{effective_profile}': {e}",
            ) from e
    profile = profile or Profile()

    # 2. Profile/session derived values
    profile_url: str | None = None
    session_url: str | None = None
    username: str | None = None
    session_token: str | None = None
    auth_method: AuthMethod | None = None
    if profile.base_url:
        profile_url = profile.base_url
    elif profile.session:
        session = _load_referenced_session(effective_profile or "", profile.session)
        session_url = session.url
        username = session.username
        session_token = session.jwt_token or None
        auth_method = session.auth_method

    # 3. Flags > environment > profile
    base_url = _first(
        sources,
        "base_url",
        ("flag", overrides.leader_url),
        ("env", settings.leader_url),
        ("profile", profile_url),
        ("session", session_url),
    )
    tenant = _first(
        sources, "tenant",
        ("flag", overrides.tenant), ("env", settings.tenant), ("profile", profile.tenant),
    )
    project = _first(
        sources, "project",
        ("flag", overrides.project), ("env", settings.project), ("profile", profile.project),
    )
    context = _first(
        sources, "context",
        ("flag", overrides.context), ("env", settings.context), ("profile", profile.context),
    )
    timeout = _first(
        sources, "timeout",
        ("flag", overrides.timeout), ("env", settings.timeout), ("config", config_file.timeout),
    )
    verbose = _first(
        sources, "verbose",
        ("flag", overrides.verbose or None), ("env", settings.verbose),
        ("config", config_file.verbose),
    )
    output_format = _first(
        sources, "output_format",
        ("flag", overrides.output_format), ("env", settings.output_format),
        ("config", config_file.output_format),
    )
    color = _first(
        sources, "color",
        ("flag", overrides.color), ("env", settings.color), ("config", config_file.color),
    )
    insecure = _first(
        sources, "insecure_skip_verify",
        ("flag", overrides.insecure_skip_verify or None),
        ("env", settings.insecure_skip_verify),
        ("profile", profile.insecure_skip_verify),
    )
    personal_access_token = _first(
        sources, "personal_access_token",
        ("flag", overrides.personal_access_token),
        ("env", settings.personal_access_token),
        ("profile", profile.personal_access_token),
    )
    personal_access_token_username = _first(
        sources, "personal_access_token_username",
        ("flag", overrides.personal_access_token_username),
        ("env", settings.personal_access_token_username),
        ("profile", profile.personal_access_token_username),
    )
    jwt_token = _first(
        sources, "jwt_token",
        ("flag", overrides.jwt_token), ("env", settings.jwt_token), ("session", session_token),
    )

    # 4. Worker
    worker: ResolvedWorker = resolve_worker(
        explicit_name=overrides.worker or settings.worker,
        workers=profile.workers,
        default_worker=profile.default_worker,
        env_url=settings.worker_url,
    )
    sources["worker"] = worker.source.value

    # 5. Client credentials, scoped to the effective tenant/project
    projects = [project] if project else []
    client_id, client_secret, credential_source = resolve_credentials(
        [
            (CredentialSource.FLAGS, (overrides.client_id, overrides.client_secret)),
            (
                CredentialSource.WORKER_KEYS,
                resolve_client_credentials_from_keys(worker.client_keys, tenant, projects),
            ),
            (CredentialSource.WORKER, (worker.client_id, worker.client_secret)),
            (CredentialSource.ENVIRONMENT, (settings.client_id, settings.client_secret)),
            (
                CredentialSource.PROFILE_KEYS,
                resolve_client_credentials_from_keys(profile.client_keys, tenant, projects),
            ),
            (CredentialSource.PROFILE, (profile.client_id, profile.client_secret)),
        ]
    )
    sources["client_id"] = credential_source.value

    return ResolvedConfig(
        profile_name=effective_profile or None,
        base_url=base_url,
        worker_url=worker.url,
        worker_name=worker.name,
        worker_source=worker.source,
        tenant=tenant,
        project=project,
        context=context,
        client_id=client_id,
        client_secret=client_secret,
        credential_source=credential_source,
        personal_access_token=personal_access_token,
        personal_access_token_username=personal_access_token_username,
        jwt_token=jwt_token,
        username=username,
        auth_method=auth_method,
        timeout=timeout,
        verbose=bool(verbose),
        output_format=output_format,
        color=color,
        insecure_skip_verify=bool(insecure),
        sources=sources,
    )


def describe_settings(settings: IzSettings) -> dict[str, Any]:
    """Environment variables that are set, with sensitive values redacted."""
    described = {}
    for key, value in settings.model_dump(exclude_none=True).items():
        env_name = f"IZ_{key.upper()}"
        described[env_name] = REDACTED if key in SENSITIVE_SETTINGS else value
    return described


def log_resolution(config: ResolvedConfig, settings: IzSettings) -> None:
    """Log the environment and each effective value with its source (debug level)."""
    for env_name, value in describe_settings(settings).items():
        logger.debug(f"env {env_name}={value}")
    shown = (
        "base_url", "tenant", "project", "context", "timeout", "verbose",
        "output_format", "color", "insecure_skip_verify",
    )
    logger.debug(f"profile: {config.profile_name or '(none)'}")
    for key in shown:
        value = getattr(config, key)
        if isinstance(value, Enum):
            value = value.value
        source = config.sources.get(key, "default")
        logger.debug(f"{key}: {value if value not in (None, '') else '(not set)'} [{source}]")
    logger.debug(
        f"worker: {config.worker_name or '-'} "
        f"({config.effective_worker_url or 'no URL'}) [{config.worker_source.value}]"
    )
    logger.debug(
        f"client credentials: {'set' if config.client_id else 'not set'} "
        f"[{config.credential_source.value}]"
    )
    for key in ("personal_access_token", "jwt_token"):
        if getattr(config, key):
            logger.debug(f"{key}: {REDACTED} [{config.sources.get(key, 'default')}]")
