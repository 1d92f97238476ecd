"""Session commands for the iz CLI."""

import typer

from izcli.cli.context import get_context
from izcli.cli.output import handle_errors, print_json, print_table
from izcli.config import OutputFormat
from izcli.prompter import confirm_delete
from izcli.sessions import SessionStore

app = typer.Typer(help="Manage saved login sessions", no_args_is_help=True)


@app.command("list")
def list_sessions_cmd(ctx: typer.Context) -> None:
    """List saved sessions."""
    with handle_errors():
        store = SessionStore.load()
        sessions = store.list_sessions()
        if get_context(ctx).output_format == OutputFormat.JSON:
            print_json(
                [
                    {
                        "name": name,
                        "url": session.url,
                        "username": session.username,
                        "auth_method": session.auth_method.value,
                        "created_at": session.created_at,
                        "logged_in": bool(session.jwt_token),
                        "active": name == store.active,
                    }
                    for name, session in sessions.items()
                ]
            )
            return

        if not sessions:
            typer.echo("No sessions saved.")
            typer.echo("Log in with: iz login <url> <username>")
            return

        rows = []
        for name, session in sessions.items():
            if not session.jwt_token:
                created = "logged out"
            elif session.created_at:
                created = session.created_at.strftime("%Y-%m-%d %H:%M")
            else:
                created = "-"
            rows.append(
                (
                    name,
                    session.url,
                    session.username,
                    session.auth_method.value,
                    created,
                    "*" if name == store.active else "",
                )
            )
        print_table(
            ["NAME", "URL", "USERNAME", "AUTH", "CREATED", "ACTIVE"],
            rows,
            get_context(ctx).color,
        )


@app.command("use")
def use_session(name: str = typer.Argument(..., help="Session name")) -> None:
    """Mark a session as the active session."""
    with handle_errors():
        store = SessionStore.load()
        store.set_active(name)
        store.save()
        typer.echo(f"Active session set to '{name}'")


@app.command("delete")
def delete_session_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Session name"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete without confirmation"),
) -> None:
    """Delete a saved session.

    Profiles that reference it keep the reference; they fail to resolve
    until you log in again or point them elsewhere.
    """
    with handle_errors():
        store = SessionStore.load()
        store.get_session(name)
        confirm_delete(get_context(ctx).prompter, "session", name, force)
        store.delete_session(name)
        store.save()
        typer.echo(f"Deleted session '{name}'")
