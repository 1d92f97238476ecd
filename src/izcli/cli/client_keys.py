"""Client-keys commands (profile level and worker level).

Client keys are client-id/client-secret pairs stored per tenant, with
optional per-project overrides. They are used for feature evaluation calls.
"""

from typing import List, Optional

import typer

from izcli.cli.context import get_context
from izcli.cli.output import handle_errors, print_json, print_table
from izcli.client_keys import (
    add_client_keys,
    add_worker_client_keys,
    client_key_rows,
    delete_client_keys,
    delete_worker_client_keys,
    list_client_keys,
    list_worker_client_keys,
)
from izcli.config import ClientKeys, OutputFormat
from izcli.prompter import confirm_delete

app = typer.Typer(help="Manage client keys of the active profile", no_args_is_help=True)
worker_app = typer.Typer(help="Manage client keys of a worker", no_args_is_help=True)

COLUMNS = ["TENANT", "SCOPE", "CLIENT-ID", "CLIENT-SECRET"]


def _secret(ctx: typer.Context, client_secret: Optional[str]) -> str:
    if client_secret:
        return client_secret
    return get_context(ctx).prompter.prompt_secret("Client secret")


def _describe_scope(tenant: str, projects: List[str]) -> str:
    if projects:
        return ", ".join(f"{tenant}/{project}" for project in projects)
    return f"{tenant} (tenant level)"


def _show_keys(ctx: typer.Context, owner: str, keys: ClientKeys, show_secrets: bool) -> None:
    rows = client_key_rows(keys, show_secrets)
    if get_context(ctx).output_format == OutputFormat.JSON:
        print_json([dict(zip(COLUMNS, row)) for row in rows])
        return
    if not rows:
        typer.echo(f"No client keys configured for {owner}.")
        return
    print_table(COLUMNS, rows, get_context(ctx).color)


# --- Profile level ---


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    tenant: str = typer.Option(..., "--tenant", help="Tenant name"),
    project: List[str] = typer.Option(
        [], "--project", help="Project name (repeatable); omit for tenant-level keys"
    ),
    client_id: str = typer.Option(..., "--client-id", help="Client id"),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret (prompted if omitted)"
    ),
) -> None:
    """Add client keys to the active profile."""
    with handle_errors():
        secret = _secret(ctx, client_secret)
        profile_name = add_client_keys(tenant, project, client_id, secret)
        typer.echo(
            f"Client keys for {_describe_scope(tenant, project)} "
            f"saved in profile '{profile_name}'"
        )


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Show secrets instead of redacting them"
    ),
) -> None:
    """List client keys of the active profile."""
    with handle_errors():
        profile_name, keys = list_client_keys()
        _show_keys(ctx, f"profile '{profile_name}'", keys, show_secrets)


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    tenant: str = typer.Option(..., "--tenant", help="Tenant name"),
    project: Optional[str] = typer.Option(
        None, "--project", help="Project name; omit for the tenant-level keys"
    ),
    client_id: str = typer.Option(..., "--client-id", help="Client id to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete without confirmation"),
) -> None:
    """Delete client keys from the active profile."""
    with handle_errors():
        confirm_delete(get_context(ctx).prompter, "client keys", client_id, force)
        profile_name = delete_client_keys(tenant, project, client_id)
        typer.echo(f"Deleted client-id '{client_id}' from profile '{profile_name}'")


# --- Worker level ---

WORKER_OPTION_HELP = "Worker name (defaults to the profile's default worker)"


@worker_app.command("add")
def worker_add_cmd(
    ctx: typer.Context,
    tenant: str = typer.Option(..., "--tenant", help="Tenant name"),
    project: List[str] = typer.Option(
        [], "--project", help="Project name (repeatable); omit for tenant-level keys"
    ),
    client_id: str = typer.Option(..., "--client-id", help="Client id"),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret (prompted if omitted)"
    ),
    worker: Optional[str] = typer.Option(None, "--worker", "-w", help=WORKER_OPTION_HELP),
) -> None:
    """Add client keys to a worker."""
    with handle_errors():
        secret = _secret(ctx, client_secret)
        worker_name = add_worker_client_keys(worker, tenant, project, client_id, secret)
        typer.echo(
            f"Client keys for {_describe_scope(tenant, project)} "
            f"saved in worker '{worker_name}'"
        )


@worker_app.command("list")
def worker_list_cmd(
    ctx: typer.Context,
    worker: Optional[str] = typer.Option(None, "--worker", "-w", help=WORKER_OPTION_HELP),
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Show secrets instead of redacting them"
    ),
) -> None:
    """List client keys of a worker."""
    with handle_errors():
        worker_name, keys = list_worker_client_keys(worker)
        _show_keys(ctx, f"worker '{worker_name}'", keys, show_secrets)


@worker_app.command("delete")
def worker_delete_cmd(
    ctx: typer.Context,
    tenant: str = typer.Option(..., "--tenant", help="Tenant name"),
    project: Optional[str] = typer.Option(
        None, "--project", help="Project name; omit for the tenant-level keys"
    ),
    client_id: str = typer.Option(..., "--client-id", help="Client id to delete"),
    worker: Optional[str] = typer.Option(None, "--worker", "-w", help=WORKER_OPTION_HELP),
    force: bool = typer.Option(False, "--force", "-f", help="Delete without confirmation"),
) -> None:
    """Delete client keys from a worker."""
    with handle_errors():
        confirm_delete(get_context(ctx).prompter, "client keys", client_id, force)
        worker_name = delete_worker_client_keys(worker, tenant, project, client_id)
        typer.echo(f"Deleted client-id '{client_id}' from worker '{worker_name}'")
