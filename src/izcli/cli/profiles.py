"""Profile management commands for the iz CLI.

Profiles allow switching between Izanami environments (e.g. a local
sandbox vs. production), each with its own URL or session, default
tenant/project/context and credentials.
"""

import typer

from izcli.cli import client_keys, workers
from izcli.cli.context import get_context
from izcli.cli.output import handle_errors, print_json, print_table
from izcli.client_keys import format_client_keys_count, redact
from izcli.config import OutputFormat, Profile, get_config_path
from izcli.exceptions import ValidationError
from izcli.profiles import (
    PROFILE_KEYS,
    PROFILE_TEMPLATES,
    SENSITIVE_PROFILE_KEYS,
    add_profile,
    delete_profile,
    get_active_profile,
    get_profile,
    list_profiles,
    profile_from_template,
    profile_url,
    set_active_profile,
    set_profile_value,
    unset_profile_value,
)
from izcli.prompter import confirm_delete

app = typer.Typer(help="Manage iz profiles", no_args_is_help=True)

app.add_typer(client_keys.app, name="client-keys")
app.add_typer(workers.app, name="workers")


def _print_profile(name: str, profile: Profile, show_secrets: bool = False) -> None:
    typer.echo(f"Profile: {name}")
    if profile.session:
        typer.echo(f"  Session: {profile.session}")
        typer.echo(f"  URL: {profile_url(profile) or '-'} (from session)")
    else:
        typer.echo(f"  URL: {profile.base_url or '(not set)'}")
    typer.echo(f"  Tenant: {profile.tenant or '(not set)'}")
    typer.echo(f"  Project: {profile.project or '(not set)'}")
    typer.echo(f"  Context: {profile.context or '(not set)'}")
    if profile.client_id:
        typer.echo(f"  Client ID: {profile.client_id}")
        typer.echo(f"  Client Secret: {redact(profile.client_secret, show_secrets)}")
    if profile.personal_access_token:
        typer.echo(
            f"  Personal Access Token: "
            f"{redact(profile.personal_access_token, show_secrets)}"
        )
        typer.echo(
            f"  Personal Access Token Username: "
            f"{profile.personal_access_token_username or '(not set)'}"
        )
    if profile.insecure_skip_verify:
        typer.echo("  Insecure Skip Verify: true")
    typer.echo(f"  Client Keys: {format_client_keys_count(profile.client_keys)}")
    if profile.workers:
        typer.echo(f"  Workers: {', '.join(sorted(profile.workers))}")
        typer.echo(f"  Default Worker: {profile.default_worker or '(not set)'}")


def _profile_json(name: str, profile: Profile, active: bool, show_secrets: bool) -> dict:
    data = profile.model_dump(mode="json", exclude_none=True)
    if not show_secrets:
        for key in ("client_secret", "personal_access_token"):
            if key in data:
                data[key] = redact(data[key])
        for tenant_keys in data.get("client_keys", {}).values():
            if "client_secret" in tenant_keys:
                tenant_keys["client_secret"] = redact(tenant_keys["client_secret"])
            for project_keys in tenant_keys.get("projects", {}).values():
                if "client_secret" in project_keys:
                    project_keys["client_secret"] = redact(project_keys["client_secret"])
        for worker in data.get("workers", {}).values():
            if "client_secret" in worker:
                worker["client_secret"] = redact(worker["client_secret"])
            worker.pop("client_keys", None)
    return {"name": name, "active": active, **data}


@app.command("list")
def list_profiles_cmd(ctx: typer.Context) -> None:
    """List all profiles."""
    with handle_errors():
        profiles, active = list_profiles()
        if get_context(ctx).output_format == OutputFormat.JSON:
            print_json(
                [
                    _profile_json(name, profile, name == active, show_secrets=False)
                    for name, profile in profiles.items()
                ]
            )
            return

        if not profiles:
            typer.echo("No profiles configured.")
            typer.echo("")
            typer.echo("Create a profile with: iz profiles add <name> --url <url>")
            typer.echo("Or log in with: iz login <url> <username>")
            return

        rows = []
        for name, profile in profiles.items():
            # Display only: an unreadable session shows as "-"
            rows.append(
                (
                    "*" if name == active else "",
                    name,
                    profile_url(profile) or "-",
                    profile.session or "-",
                    profile.tenant or "-",
                    profile.default_worker or "-",
                )
            )
        print_table(
            ["ACTIVE", "NAME", "URL", "SESSION", "TENANT", "WORKER"],
            rows,
            get_context(ctx).color,
        )


@app.command("current")
def current_profile(
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Show secrets instead of redacting them"
    ),
) -> None:
    """Show the active profile."""
    with handle_errors():
        name, profile = get_active_profile()
        typer.echo(f"Active profile: {name}")
        _print_profile(name, profile, show_secrets)


@app.command("show")
def show_profile(
    ctx: typer.Context,
    name: str = typer.Argument(None, help="Profile name (defaults to the active profile)"),
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Show secrets instead of redacting them"
    ),
) -> None:
    """Show the settings of a profile."""
    with handle_errors():
        if name:
            profile = get_profile(name)
            _, active = list_profiles()
        else:
            name, profile = get_active_profile()
            active = name
        if get_context(ctx).output_format == OutputFormat.JSON:
            print_json(_profile_json(name, profile, name == active, show_secrets))
            return
        _print_profile(name, profile, show_secrets)


@app.command("use")
def use_profile(
    name: str = typer.Argument(..., help="Profile name to switch to"),
) -> None:
    """Switch to a different profile."""
    with handle_errors():
        set_active_profile(name)
        profile = get_profile(name)
        typer.echo(f"Switched to profile '{name}'")
        typer.echo(f"URL: {profile_url(profile) or '(not set)'}")


@app.command("add")
def add_profile_cmd(
    name: str = typer.Argument(..., help="Profile name (e.g. 'local', 'prod')"),
    url: str = typer.Option(None, "--url", "-u", help="Server URL for this profile"),
    session: str = typer.Option(None, "--session", help="Use a saved session instead of a URL"),
    tenant: str = typer.Option(None, "--tenant", help="Default tenant"),
    project: str = typer.Option(None, "--project", help="Default project"),
    context: str = typer.Option(None, "--context", help="Default context"),
    client_id: str = typer.Option(None, "--client-id", help="Client id"),
    client_secret: str = typer.Option(None, "--client-secret", help="Client secret"),
    insecure: bool = typer.Option(
        False, "--insecure", help="Skip TLS certificate verification"
    ),
) -> None:
    """Create a new profile."""
    with handle_errors():
        profiles, _ = list_profiles()
        if name in profiles:
            raise ValidationError(
                f"profile '{name}' already exists. "
                f"Use 'iz profiles set {name} <key> <value>' to change it"
            )
        if url and session:
            raise ValidationError("use either --url or --session, not both")
        activated = add_profile(
            name,
            Profile(
                base_url=url,
                session=session,
                tenant=tenant,
                project=project,
                context=context,
                client_id=client_id,
                client_secret=client_secret,
                insecure_skip_verify=insecure,
            ),
        )
        typer.echo(f"Created profile '{name}'")
        if activated:
            typer.echo("Set as active profile (first profile created)")
        else:
            typer.echo("")
            typer.echo(f"Switch to this profile with: iz profiles use {name}")


@app.command("init")
def init_profile(
    ctx: typer.Context,
    template: str = typer.Argument(..., help="Template: sandbox, build or prod"),
    name: str = typer.Argument(None, help="Profile name (defaults to the template name)"),
    url: str = typer.Option(None, "--url", "-u", help="Server URL"),
) -> None:
    """Create a profile from a template."""
    with handle_errors():
        if template not in PROFILE_TEMPLATES:
            raise ValidationError(
                f"invalid template '{template}'. "
                f"Valid templates: {', '.join(PROFILE_TEMPLATES)}"
            )
        name = name or template
        if not url and PROFILE_TEMPLATES[template]["base_url"] is None:
            url = get_context(ctx).prompter.prompt(f"{template.capitalize()} server URL")
        profile = profile_from_template(template, url.strip() if url else None)
        activated = add_profile(name, profile)
        typer.echo(f"Profile '{name}' created from template '{template}'")
        if activated:
            typer.echo("Set as active profile (first profile created)")
        typer.echo("")
        _print_profile(name, profile)


@app.command("set")
def set_value(
    name: str = typer.Argument(..., help="Profile name"),
    key: str = typer.Argument(..., help=f"Setting: {', '.join(PROFILE_KEYS)}"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Update a profile setting."""
    with handle_errors():
        set_profile_value(name, key, value)
        shown = redact(value) if key in SENSITIVE_PROFILE_KEYS else value
        typer.echo(f"Set {key} = {shown} in profile '{name}'")
        if key == "session":
            typer.echo("  (base-url cleared; the URL now comes from the session)")
        elif key == "base-url":
            typer.echo("  (session cleared)")
        if key in SENSITIVE_PROFILE_KEYS:
            typer.echo("")
            typer.echo(
                f"SECURITY WARNING: {key} is stored in plain text in {get_config_path()}."
            )
            typer.echo("   Never commit this file to version control.")


@app.command("unset")
def unset_value(
    name: str = typer.Argument(..., help="Profile name"),
    key: str = typer.Argument(..., help=f"Setting: {', '.join(PROFILE_KEYS)}"),
) -> None:
    """Remove a profile setting."""
    with handle_errors():
        unset_profile_value(name, key)
        typer.echo(f"Unset {key} in profile '{name}'")


@app.command("delete")
def delete_profile_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Profile name to delete"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Delete without confirmation"
    ),
) -> None:
    """Delete a profile."""
    with handle_errors():
        get_profile(name)
        confirm_delete(get_context(ctx).prompter, "profile", name, force)
        was_active = delete_profile(name)
        typer.echo(f"Deleted profile '{name}'")
        if was_active:
            typer.echo("No active profile. Select one with: iz profiles use <name>")
