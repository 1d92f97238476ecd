"""iz CLI - command line configuration for Izanami.

Usage:
    iz login [url] [username] [--oidc] [--token <jwt>] [--name <session>]
    iz logout [session]

    iz profiles list|current|show|use|add|set|unset|delete|init
    iz profiles client-keys add|list|delete
    iz profiles workers add|delete|list|use|show|current
    iz profiles workers client-keys add|list|delete

    iz sessions list|use|delete
    iz config path|show|init|get|set|unset|list|validate
    iz reset [--force]
    iz version

Configuration:
    Set IZ_PROFILE=<profile-name> to use a specific profile.
    Set IZ_LEADER_URL, IZ_TENANT, IZ_PROJECT, IZ_CONTEXT to override the
    profile defaults, IZ_WORKER / IZ_WORKER_URL to pick a worker, and
    IZ_CLIENT_ID / IZ_CLIENT_SECRET for client credentials.
    Command-line flags take precedence over environment variables, which
    take precedence over the profile.
"""

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Optional

import typer
from pydantic import ValidationError as PydanticValidationError

from izcli.cli import auth, config, profiles, sessions
from izcli.cli.context import CommandContext
from izcli.config import ColorMode, IzSettings, OutputFormat
from izcli.resolver import ConfigOverrides

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Main CLI app
app = typer.Typer(name="iz", no_args_is_help=True)

# Add subcommands
app.add_typer(profiles.app, name="profiles")
app.add_typer(sessions.app, name="sessions")
app.add_typer(config.app, name="config")
app.command("login")(auth.login)
app.command("logout")(auth.logout)
app.command("reset")(config.reset)


@app.command()
def version() -> None:
    """Show the iz CLI version."""
    try:
        ver = get_version("izcli")
    except PackageNotFoundError:
        ver = "unknown"

    typer.echo(f"iz {ver}")


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile to use (overrides IZ_PROFILE and the active profile)"
    ),
    url: Optional[str] = typer.Option(None, "--url", help="Leader URL"),
    tenant: Optional[str] = typer.Option(None, "--tenant", help="Tenant"),
    project: Optional[str] = typer.Option(None, "--project", help="Project"),
    context: Optional[str] = typer.Option(None, "--context", help="Context"),
    worker: Optional[str] = typer.Option(None, "--worker", help="Worker name"),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Client id"),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret"
    ),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log configuration details"),
    output: Optional[OutputFormat] = typer.Option(
        None, "--output", "-o", help="Output format", case_sensitive=False
    ),
    color: Optional[ColorMode] = typer.Option(None, "--color", help="Colour mode"),
    insecure: bool = typer.Option(
        False, "--insecure", "-k", help="Skip TLS certificate verification"
    ),
) -> None:
    """iz CLI - manage Izanami profiles, sessions, workers and client keys.

    Use 'iz login' to authenticate and create your first profile.
    Use 'iz profiles' commands to manage profiles.

    Environment variables, overridden by flags and overriding the profile:
    IZ_PROFILE (profile to use), IZ_LEADER_URL, IZ_TENANT, IZ_PROJECT,
    IZ_CONTEXT, IZ_WORKER (worker name), IZ_WORKER_URL (direct worker URL),
    IZ_CLIENT_ID, IZ_CLIENT_SECRET, IZ_PERSONAL_ACCESS_TOKEN,
    IZ_PERSONAL_ACCESS_TOKEN_USERNAME, IZ_JWT_TOKEN, IZ_TIMEOUT, IZ_VERBOSE,
    IZ_OUTPUT_FORMAT, IZ_COLOR, IZ_INSECURE_SKIP_VERIFY.
    """
    try:
        settings = IzSettings()
    except PydanticValidationError as e:
        typer.echo(f"Error: invalid IZ_* environment variable: {e}", err=True)
        raise typer.Exit(1)

    setup_logging(verbose or bool(settings.verbose))

    overrides = ConfigOverrides(
        leader_url=url,
        tenant=tenant,
        project=project,
        context=context,
        worker=worker,
        client_id=client_id,
        client_secret=client_secret,
        timeout=timeout,
        verbose=verbose,
        output_format=output,
        color=color,
        insecure_skip_verify=insecure,
    )
    # Keep a prompter injected by the caller (tests pass one via obj=)
    prompter = ctx.obj.prompter if isinstance(ctx.obj, CommandContext) else None
    ctx.obj = CommandContext(
        profile_name=profile,
        overrides=overrides,
        settings=settings,
        prompter=prompter,
    )


if __name__ == "__main__":
    app()
