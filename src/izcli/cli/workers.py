"""Worker management commands for the iz CLI.

Workers are named URLs (with optional credentials) inside a profile,
used for client-facing calls instead of the leader URL.
"""

from typing import Optional

import typer

from izcli.cli import client_keys
from izcli.cli.context import get_context
from izcli.cli.output import handle_errors, print_json, print_table
from izcli.client_keys import format_client_keys_count, redact
from izcli.config import OutputFormat, WorkerConfig
from izcli.profiles import get_active_profile
from izcli.prompter import confirm_delete
from izcli.resolver import CredentialSource
from izcli.workers import (
    WorkerSource,
    add_worker,
    delete_worker,
    get_worker,
    set_default_worker,
)

app = typer.Typer(help="Manage workers of the active profile", no_args_is_help=True)

app.add_typer(client_keys.worker_app, name="client-keys")

CREDENTIAL_SOURCE_LABELS = {
    CredentialSource.FLAGS: "flags (--client-id/--client-secret)",
    CredentialSource.WORKER_KEYS: "per-worker client-keys",
    CredentialSource.WORKER: "per-worker client-id/client-secret",
    CredentialSource.ENVIRONMENT: "env (IZ_CLIENT_ID/IZ_CLIENT_SECRET)",
    CredentialSource.PROFILE_KEYS: "profile-level client-keys",
    CredentialSource.PROFILE: "profile-level client-id/client-secret",
    CredentialSource.NONE: "not configured",
}


@app.command("add")
def add_cmd(
    name: str = typer.Argument(..., help="Worker name"),
    url: str = typer.Option(..., "--url", "-u", help="Worker URL"),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Client id"),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing worker"),
) -> None:
    """Add a worker to the active profile."""
    with handle_errors():
        profile_name, became_default = add_worker(
            name,
            WorkerConfig(url=url, client_id=client_id, client_secret=client_secret),
            force=force,
        )
        typer.echo(f"Worker '{name}' added to profile '{profile_name}'")
        if became_default:
            typer.echo(f"Set as default worker of '{profile_name}'")


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Worker name"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete without confirmation"),
) -> None:
    """Delete a worker from the active profile."""
    with handle_errors():
        get_worker(name)
        confirm_delete(get_context(ctx).prompter, "worker", name, force)
        profile_name, cleared_default = delete_worker(name)
        typer.echo(f"Deleted worker '{name}' from profile '{profile_name}'")
        if cleared_default:
            typer.echo("Default worker cleared. Set one with: iz profiles workers use <name>")


@app.command("list")
def list_cmd(ctx: typer.Context) -> None:
    """List workers of the active profile."""
    with handle_errors():
        profile_name, profile = get_active_profile()
        rows = [
            (
                "*" if name == profile.default_worker else "",
                name,
                worker.url,
                format_client_keys_count(worker.client_keys),
            )
            for name, worker in sorted(profile.workers.items())
        ]
        if get_context(ctx).output_format == OutputFormat.JSON:
            print_json(
                [
                    {"name": name, "url": url, "default": bool(marker)}
                    for marker, name, url, _ in rows
                ]
            )
            return
        if not rows:
            typer.echo(f"No workers configured in profile '{profile_name}'.")
            typer.echo("Add one with: iz profiles workers add <name> --url <url>")
            return
        print_table(
            ["DEFAULT", "NAME", "URL", "CLIENT-KEYS"],
            rows,
            get_context(ctx).color,
        )


@app.command("use")
def use_cmd(name: str = typer.Argument(..., help="Worker name")) -> None:
    """Set the default worker of the active profile."""
    with handle_errors():
        profile_name = set_default_worker(name)
        typer.echo(f"Default worker of profile '{profile_name}' set to '{name}'")


@app.command("show")
def show_cmd(
    name: str = typer.Argument(..., help="Worker name"),
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Show secrets instead of redacting them"
    ),
) -> None:
    """Show a worker of the active profile."""
    with handle_errors():
        profile_name, worker = get_worker(name)
        _, profile = get_active_profile()
        typer.echo(f"Worker: {name} (profile '{profile_name}')")
        typer.echo(f"  URL: {worker.url}")
        typer.echo(f"  Default: {'yes' if profile.default_worker == name else 'no'}")
        if worker.client_id:
            typer.echo(f"  Client ID: {worker.client_id}")
            typer.echo(f"  Client Secret: {redact(worker.client_secret, show_secrets)}")
        typer.echo(f"  Client Keys: {format_client_keys_count(worker.client_keys)}")


@app.command("current")
def current_cmd(ctx: typer.Context) -> None:
    """Show which worker client operations would use, and why."""
    with handle_errors():
        config = get_context(ctx).resolve()
        if config.worker_source == WorkerSource.STANDALONE:
            typer.echo(
                f"Worker: standalone (using leader URL: {config.base_url or '(not set)'})"
            )
        elif config.worker_source == WorkerSource.ENV_URL:
            typer.echo(f"Worker: <direct> ({config.worker_url}) [source: IZ_WORKER_URL]")
        else:
            typer.echo(
                f"Worker: {config.worker_name} ({config.worker_url}) "
                f"[source: {config.worker_source.value}]"
            )
        typer.echo(f"Credentials: {CREDENTIAL_SOURCE_LABELS[config.credential_source]}")
