"""Client keys: client-id/client-secret pairs per tenant and per project.

Keys live either on a profile or on one of its workers, in the same
two-level structure (tenant entry with optional project entries). A
project entry overrides the tenant-wide pair for that project.

Empty entries are never stored: a project entry without a client id is
removed, and so is a tenant entry with no client id and no projects.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from izcli.config import ClientKeys, ProjectClientKeysConfig, TenantClientKeysConfig
from izcli.exceptions import NotFoundError, ValidationError
from izcli.profiles import editing_profile, get_active_profile
from izcli.workers import select_worker_name, worker_names

logger = logging.getLogger(__name__)

REDACTED = "<redacted>"
TENANT_SCOPE = "(tenant)"


def redact(value: str | None, show_secrets: bool = False) -> str:
    """Return the redaction marker for a set secret unless ``show_secrets``."""
    if not value:
        return ""
    return value if show_secrets else REDACTED


def format_client_keys_count(keys: ClientKeys | None) -> str:
    count = len(keys or {})
    if count == 0:
        return "(none)"
    return f"{count} tenant(s) configured"


def resolve_client_credentials_from_keys(
    keys: ClientKeys | None,
    tenant: str | None,
    projects: Sequence[str] = (),
) -> tuple[str | None, str | None]:
    """Look up the credentials for a tenant and (optionally) projects.

    The first project with a complete pair wins, then the tenant-wide pair.
    A pair is only returned when both id and secret are set.

    Returns:
        Tuple of (client_id, client_secret), (None, None) if nothing matches.
    """
    if not keys or not tenant:
        return None, None
    tenant_keys = keys.get(tenant)
    if tenant_keys is None:
        return None, None
    for project in projects:
        project_keys = tenant_keys.projects.get(project)
        if project_keys and project_keys.client_id and project_keys.client_secret:
            return project_keys.client_id, project_keys.client_secret
    if tenant_keys.client_id and tenant_keys.client_secret:
        return tenant_keys.client_id, tenant_keys.client_secret
    return None, None


def _validate_new_keys(tenant: str, client_id: str, client_secret: str) -> None:
    if not tenant:
        raise ValidationError("tenant is required (use --tenant)")
    if not client_id or not client_secret:
        raise ValidationError(
            "both client-id and client-secret are required "
            "(use --client-id and --client-secret)"
        )


def set_client_keys(
    keys: ClientKeys,
    tenant: str,
    projects: Sequence[str],
    client_id: str,
    client_secret: str,
) -> None:
    """Write credentials into ``keys`` in place.

    With no projects the tenant-wide pair is written. Otherwise a project
    entry is written for each project and the tenant-wide pair is left as is.
    """
    _validate_new_keys(tenant, client_id, client_secret)
    tenant_keys = keys.setdefault(tenant, TenantClientKeysConfig())
    if not projects:
        tenant_keys.client_id = client_id
        tenant_keys.client_secret = client_secret
        return
    for project in projects:
        tenant_keys.projects[project] = ProjectClientKeysConfig(
            client_id=client_id, client_secret=client_secret
        )


def remove_client_keys(
    keys: ClientKeys,
    tenant: str,
    project: str | None,
    client_id: str,
    owner: str,
) -> None:
    """Remove one credential pair from ``keys`` in place.

    The pair is only removed when its stored client id equals ``client_id``;
    on any error ``keys`` is left untouched. Emptied entries are pruned.

    Args:
        keys: Client keys to edit.
        tenant: Tenant name.
        project: Project name, or None for the tenant-wide pair.
        client_id: Client id expected at that location.
        owner: Description of the keys' owner for error messages,
            e.g. "profile 'dev'".

    Raises:
        NotFoundError: If the tenant has no entry.
        ValidationError: If the stored client id differs or is absent.
    """
    if not tenant:
        raise ValidationError("tenant is required (use --tenant)")
    if not client_id:
        raise ValidationError("client-id is required (use --client-id)")
    tenant_keys = keys.get(tenant)
    if tenant_keys is None:
        raise NotFoundError(
            "tenant", tenant, message=f"tenant '{tenant}' not found in {owner}"
        )

    if project:
        project_keys = tenant_keys.projects.get(project)
        if project_keys is None or project_keys.client_id != client_id:
            raise ValidationError(
                f"client-id '{client_id}' not found for project '{tenant}/{project}'"
            )
        del tenant_keys.projects[project]
    else:
        if tenant_keys.client_id != client_id:
            raise ValidationError(
                f"client-id '{client_id}' not found at tenant level for '{tenant}'"
            )
        tenant_keys.client_id = None
        tenant_keys.client_secret = None

    prune_client_keys(keys)


def prune_client_keys(keys: ClientKeys) -> None:
    """Drop project entries without a client id, then empty tenant entries."""
    for tenant in list(keys):
        tenant_keys = keys[tenant]
        for project in list(tenant_keys.projects):
            if not tenant_keys.projects[project].client_id:
                del tenant_keys.projects[project]
        if tenant_keys.is_empty():
            logger.debug(f"Pruning empty client-keys entry for tenant '{tenant}'")
            del keys[tenant]


def client_key_rows(
    keys: ClientKeys, show_secrets: bool = False
) -> list[tuple[str, str, str, str]]:
    """Flatten keys into (tenant, scope, client id, secret) rows for display."""
    rows = []
    for tenant, tenant_keys in sorted(keys.items()):
        if tenant_keys.client_id:
            rows.append(
                (
                    tenant,
                    TENANT_SCOPE,
                    tenant_keys.client_id,
                    redact(tenant_keys.client_secret, show_secrets),
                )
            )
        for project, project_keys in sorted(tenant_keys.projects.items()):
            rows.append(
                (
                    tenant,
                    project,
                    project_keys.client_id or "",
                    redact(project_keys.client_secret, show_secrets),
                )
            )
    return rows


# --- Profile-level keys (active profile) ---


def add_client_keys(
    tenant: str, projects: Sequence[str], client_id: str, client_secret: str
) -> str:
    """Store credentials on the active profile.

    Returns:
        The profile name.
    """
    _validate_new_keys(tenant, client_id, client_secret)
    with editing_profile() as (profile_name, profile):
        set_client_keys(profile.client_keys, tenant, projects, client_id, client_secret)
    return profile_name


def delete_client_keys(tenant: str, project: str | None, client_id: str) -> str:
    """Remove credentials from the active profile.

    Returns:
        The profile name.
    """
    with editing_profile() as (profile_name, profile):
        remove_client_keys(
            profile.client_keys, tenant, project, client_id, f"profile '{profile_name}'"
        )
    return profile_name


def list_client_keys() -> tuple[str, ClientKeys]:
    """Returns tuple of (active profile name, its client keys)."""
    profile_name, profile = get_active_profile()
    return profile_name, profile.client_keys


# --- Worker-level keys (active profile) ---


def _worker_of(profile_name, profile, worker_name):
    name = select_worker_name(worker_name, profile.default_worker)
    worker = profile.workers.get(name)
    if worker is None:
        raise NotFoundError(
            "worker",
            name,
            available=worker_names(profile.workers),
            message=f"worker '{name}' not found in profile '{profile_name}'",
        )
    return name, worker


def add_worker_client_keys(
    worker_name: str | None,
    tenant: str,
    projects: Sequence[str],
    client_id: str,
    client_secret: str,
) -> str:
    """Store credentials on a worker of the active profile.

    ``worker_name`` defaults to the profile's default worker.

    Returns:
        The worker name.
    """
    _validate_new_keys(tenant, client_id, client_secret)
    with editing_profile() as (profile_name, profile):
        name, worker = _worker_of(profile_name, profile, worker_name)
        set_client_keys(worker.client_keys, tenant, projects, client_id, client_secret)
    return name


def delete_worker_client_keys(
    worker_name: str | None, tenant: str, project: str | None, client_id: str
) -> str:
    """Remove credentials from a worker of the active profile.

    Returns:
        The worker name.
    """
    with editing_profile() as (profile_name, profile):
        name, worker = _worker_of(profile_name, profile, worker_name)
        remove_client_keys(worker.client_keys, tenant, project, client_id, f"worker '{name}'")
    return name


def list_worker_client_keys(worker_name: str | None) -> tuple[str, ClientKeys]:
    """Returns tuple of (worker name, its client keys)."""
    profile_name, profile = get_active_profile()
    name, worker = _worker_of(profile_name, profile, worker_name)
    return name, worker.client_keys
