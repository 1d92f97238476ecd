"""Config file commands for the iz CLI."""

import shutil
from datetime import datetime
from pathlib import Path

import typer

from izcli.cli.context import get_context
from izcli.cli.output import handle_errors, print_json, print_table
from izcli.config import (
    OutputFormat,
    config_exists,
    get_config_path,
    get_sessions_path,
    init_config_file,
    load_config_file,
)
from izcli.config_values import (
    ConfigValue,
    get_config_value,
    list_config_values,
    set_config_value,
    unset_config_value,
    validate_config,
)
from izcli.exceptions import ConfigError
from izcli.prompter import confirm_delete
from izcli.resolver import describe_settings

app = typer.Typer(help="Inspect and edit the iz config file", no_args_is_help=True)


@app.command("path")
def path_cmd() -> None:
    """Show where the config and sessions files live."""
    typer.echo(f"Config file: {get_config_path()}")
    typer.echo(f"Sessions file: {get_sessions_path()}")


@app.command("show")
def show_cmd(ctx: typer.Context) -> None:
    """Show global settings, profiles and the IZ_* environment."""
    with handle_errors():
        state = get_context(ctx)
        config = load_config_file()
        env = describe_settings(state.settings)
        if state.output_format == OutputFormat.JSON:
            print_json(
                {
                    "path": str(get_config_path()),
                    "timeout": config.timeout,
                    "verbose": config.verbose,
                    "output_format": config.output_format.value,
                    "color": config.color.value,
                    "active_profile": config.active_profile,
                    "profiles": sorted(config.profiles),
                    "environment": env,
                }
            )
            return

        typer.echo(f"Config file: {get_config_path()}")
        if not config_exists():
            typer.echo("  (not created yet; run 'iz config init')")
        typer.echo("")
        typer.echo("Global settings:")
        typer.echo(f"  timeout: {config.timeout}")
        typer.echo(f"  verbose: {str(config.verbose).lower()}")
        typer.echo(f"  output-format: {config.output_format.value}")
        typer.echo(f"  color: {config.color.value}")
        typer.echo("")
        typer.echo(f"Active profile: {config.active_profile or '(none)'}")
        typer.echo(f"Profiles: {', '.join(sorted(config.profiles)) or '(none)'}")
        if env:
            typer.echo("")
            typer.echo("Environment:")
            for key, value in env.items():
                typer.echo(f"  {key}={value}")


@app.command("init")
def init_cmd() -> None:
    """Create a config file with default settings."""
    with handle_errors():
        path = init_config_file()
        typer.echo(f"Created config file: {path}")


def _value_json(value: ConfigValue, show_secrets: bool) -> dict:
    shown = value.display(show_secrets) if value.value is not None else None
    return {"key": value.key, "value": shown, "source": value.source.value}


@app.command("get")
def get_cmd(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Config key (e.g. timeout, tenant)"),
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Show secrets instead of redacting them"
    ),
) -> None:
    """Show one configuration value and its source (env, file, profile or default)."""
    with handle_errors():
        state = get_context(ctx)
        value = get_config_value(key, state.settings, state.profile_name)
        if state.output_format == OutputFormat.JSON:
            print_json(_value_json(value, show_secrets))
            return
        if value.value is None:
            typer.echo(f"{key}: (not set)")
        else:
            typer.echo(f"{key}: {value.display(show_secrets)} (source: {value.source.value})")


@app.command("set")
def set_cmd(
    key: str = typer.Argument(..., help="Global key: timeout, verbose, output-format or color"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Set a global default in the config file."""
    with handle_errors():
        set_config_value(key, value)
        typer.echo(f"Set {key} = {value}")


@app.command("unset")
def unset_cmd(key: str = typer.Argument(..., help="Global key")) -> None:
    """Remove a global default from the config file.

    Environment variables may still provide a value.
    """
    with handle_errors():
        if unset_config_value(key):
            typer.echo(f"Removed {key} from config file")
        else:
            typer.echo(f"{key} is not set in the config file")


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Show secrets instead of redacting them"
    ),
) -> None:
    """List every configuration key with its value and source."""
    with handle_errors():
        state = get_context(ctx)
        values = list_config_values(state.settings, state.profile_name)
        if state.output_format == OutputFormat.JSON:
            print_json([_value_json(value, show_secrets) for value in values])
            return
        print_table(
            ["KEY", "VALUE", "SOURCE"],
            [(value.key, value.display(show_secrets), value.source.value) for value in values],
            state.color,
        )
        typer.echo("")
        typer.echo("Client keys are profile-specific; use 'iz profiles client-keys'.")


@app.command("validate")
def validate_cmd() -> None:
    """Check the config file for invalid values and dangling references."""
    with handle_errors():
        issues = validate_config()
        if not issues:
            typer.echo(f"Configuration is valid: {get_config_path()}")
            return
        typer.echo(f"Configuration has {len(issues)} problem(s):", err=True)
        for issue in issues:
            typer.echo(f"  {issue.field}: {issue.message}", err=True)
        raise typer.Exit(1)


def _backup(path: Path, stamp: str) -> Path:
    backup = path.with_name(f"{path.name}.backup.{stamp}")
    try:
        shutil.copy2(path, backup)
        path.unlink()
    except OSError as e:
        raise ConfigError("failed to reset file", path, e) from e
    return backup


def reset(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Reset without confirmation"),
) -> None:
    """Remove the config and sessions files, keeping timestamped backups."""
    with handle_errors():
        paths = [path for path in (get_config_path(), get_sessions_path()) if path.exists()]
        if not paths:
            typer.echo("Nothing to reset.")
            return
        typer.echo("This removes all profiles, workers, client keys and sessions:")
        for path in paths:
            typer.echo(f"  {path}")
        confirm_delete(get_context(ctx).prompter, "configuration", "all", force)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        for path in paths:
            backup = _backup(path, stamp)
            typer.echo(f"Backed up {path.name} to {backup}")
        typer.echo("Configuration reset.")
