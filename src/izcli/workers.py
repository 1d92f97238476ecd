"""Worker selection and management.

A worker is a profile-scoped URL (plus optional credentials) used for
client-facing calls such as feature checks, while admin calls keep going
to the leader URL. ``resolve_worker`` picks the worker for an invocation;
the remaining functions edit the workers of the active profile.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel, Field

from izcli.config import ClientKeys, WorkerConfig
from izcli.exceptions import NotFoundError, ValidationError
from izcli.profiles import editing_profile, get_active_profile

logger = logging.getLogger(__name__)


class WorkerSource(str, Enum):
    """Where the selected worker came from, highest precedence first."""

    EXPLICIT = "explicit"
    ENV_URL = "env-url"
    DEFAULT = "default"
    STANDALONE = "standalone"


class ResolvedWorker(BaseModel):
    """The worker chosen for an invocation.

    For ``standalone`` the URL is None and callers fall back to the leader
    URL; for ``env-url`` there is no name and no profile credentials.
    """

    source: WorkerSource
    name: str | None = None
    url: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    client_keys: ClientKeys = Field(default_factory=dict)

    @classmethod
    def from_config(
        cls, name: str, worker: WorkerConfig, source: WorkerSource
    ) -> ResolvedWorker:
        return cls(
            source=source,
            name=name,
            url=worker.url,
            client_id=worker.client_id,
            client_secret=worker.client_secret,
            client_keys=worker.client_keys,
        )


def worker_names(workers: Mapping[str, WorkerConfig] | None) -> list[str]:
    return sorted(workers or {})


def _missing_worker(name: str, workers: Mapping[str, WorkerConfig] | None) -> NotFoundError:
    if not workers:
        return NotFoundError(
            "worker",
            name,
            message=(
                f"worker '{name}' not found: no workers configured. "
                "Add workers with: iz profiles workers add <name> --url <url>"
            ),
        )
    names = worker_names(workers)
    return NotFoundError(
        "worker",
        name,
        available=names,
        message=f"worker '{name}' not found; available workers: {', '.join(names)}",
    )


def resolve_worker(
    explicit_name: str | None,
    workers: Mapping[str, WorkerConfig] | None,
    default_worker: str | None,
    env_url: str | None,
) -> ResolvedWorker:
    """Pick the worker for client-facing calls.

    Precedence, first match wins:
    1. ``explicit_name`` (--worker or IZ_WORKER), which must exist.
    2. ``env_url`` (IZ_WORKER_URL), used as-is.
    3. ``default_worker`` if it names an existing worker. A dangling
       default is treated as absent.
    4. Standalone: no worker, callers use the leader URL.

    Args:
        explicit_name: Worker name selected for this invocation.
        workers: The profile's workers.
        default_worker: The profile's default worker name.
        env_url: Direct worker URL from the environment.

    Raises:
        NotFoundError: If ``explicit_name`` is not a configured worker.
    """
    workers = workers or {}

    if explicit_name:
        worker = workers.get(explicit_name)
        if worker is None:
            raise _missing_worker(explicit_name, workers)
        return ResolvedWorker.from_config(explicit_name, worker, WorkerSource.EXPLICIT)

    if env_url:
        return ResolvedWorker(source=WorkerSource.ENV_URL, url=env_url)

    if default_worker:
        worker = workers.get(default_worker)
        if worker is not None:
            return ResolvedWorker.from_config(default_worker, worker, WorkerSource.DEFAULT)
        available = ", ".join(worker_names(workers)) or "none"
        logger.info(
            f"default-worker '{default_worker}' not found in profile "
            f"(available: {available}); falling back to standalone mode"
        )

    return ResolvedWorker(source=WorkerSource.STANDALONE)


# --- Worker management (active profile) ---


def add_worker(name: str, worker: WorkerConfig, force: bool = False) -> tuple[str, bool]:
    """Add a worker to the active profile.

    A worker added to a profile without a default worker becomes the default.

    Args:
        name: Worker name.
        worker: Worker settings.
        force: Overwrite an existing worker with the same name.

    Returns:
        Tuple of (profile name, whether the worker became the default).

    Raises:
        ValidationError: If the name or URL is missing, or the worker exists
            and ``force`` is not set.
    """
    if not name:
        raise ValidationError("worker name is required")
    if not worker.url:
        raise ValidationError("worker URL is required (use --url)")
    with editing_profile() as (profile_name, profile):
        if name in profile.workers and not force:
            raise ValidationError(
                f"worker '{name}' already exists in profile '{profile_name}' "
                "(use --force to overwrite)"
            )
        profile.workers[name] = worker
        became_default = False
        if not profile.default_worker:
            profile.default_worker = name
            became_default = True
    return profile_name, became_default


def delete_worker(name: str) -> tuple[str, bool]:
    """Delete a worker from the active profile.

    Returns:
        Tuple of (profile name, whether the default worker was cleared).
    """
    with editing_profile() as (profile_name, profile):
        if name not in profile.workers:
            raise _missing_worker(name, profile.workers)
        del profile.workers[name]
        cleared_default = profile.default_worker == name
        if cleared_default:
            profile.default_worker = None
    return profile_name, cleared_default


def set_default_worker(name: str) -> str:
    """Set the default worker of the active profile.

    Returns:
        The profile name.
    """
    with editing_profile() as (profile_name, profile):
        if name not in profile.workers:
            raise _missing_worker(name, profile.workers)
        profile.default_worker = name
    return profile_name


def get_worker(name: str) -> tuple[str, WorkerConfig]:
    """Get a worker of the active profile.

    Returns:
        Tuple of (profile name, worker).
    """
    profile_name, profile = get_active_profile()
    worker = profile.workers.get(name)
    if worker is None:
        raise _missing_worker(name, profile.workers)
    return profile_name, worker


def select_worker_name(name: str | None, default_worker: str | None) -> str:
    """The worker a `workers client-keys` command targets (``name`` or the default).

    Raises:
        ValidationError: If neither is set.
    """
    selected = name or default_worker
    if not selected:
        raise ValidationError(
            "no worker specified and no default-worker set. "
            "Use --worker <name> or set a default worker"
        )
    return selected
