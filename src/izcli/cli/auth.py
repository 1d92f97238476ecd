"""Login and logout commands for the iz CLI.

Supports two authentication modes:
1. Username/password (default): the password is prompted unless given
   with --password.
2. OIDC (--oidc): opens the browser on the server's identity provider
   and polls until the login completes. A token obtained elsewhere can
   be stored directly with --token.

After a successful login the token is saved as a session in
~/.izsessions and a profile (created on first login) points at it.
"""

import logging
import webbrowser
from typing import Optional

import typer

from izcli.auth import (
    DEFAULT_LOGIN_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    TokenPoller,
    check_server_support,
    generate_state,
    initiate_cli_login,
    logout as logout_session,
    password_login,
    save_login,
    username_from_jwt,
)
from izcli.cli.context import get_context
from izcli.cli.output import handle_errors
from izcli.config import get_sessions_path, load_config_file
from izcli.exceptions import LoginError, ValidationError
from izcli.sessions import AuthMethod

logger = logging.getLogger(__name__)


def _oidc_token(
    base_url: str,
    no_browser: bool,
    timeout: float,
    poll_interval: float,
    request_timeout: float,
    verify: bool,
) -> str:
    if not check_server_support(base_url, timeout=request_timeout, verify=verify):
        raise LoginError(
            f"{base_url} does not support browser login; "
            "log in with a password or pass a token with --token"
        )
    state = generate_state()
    login_url = initiate_cli_login(base_url, state, timeout=request_timeout, verify=verify)

    typer.echo("")
    if no_browser:
        typer.echo(f"Open this URL to authenticate: {login_url}")
    else:
        typer.echo("Opening browser for authentication...")
        typer.echo(f"If the browser doesn't open, visit: {login_url}")
        webbrowser.open(login_url)
    typer.echo("")
    typer.echo("Waiting for authentication...")

    poller = TokenPoller(
        base_url, state, interval=poll_interval, timeout=request_timeout, verify=verify
    )
    try:
        return poller.wait_for_token(timeout)
    finally:
        poller.close()


def login(
    ctx: typer.Context,
    url: Optional[str] = typer.Argument(
        None, help="Server URL (defaults to --url / IZ_LEADER_URL)"
    ),
    username: Optional[str] = typer.Argument(None, help="Username (prompted if omitted)"),
    password: Optional[str] = typer.Option(
        None, "--password", help="Password (prompted if omitted)"
    ),
    oidc: bool = typer.Option(False, "--oidc", help="Authenticate in the browser (OIDC)"),
    token: Optional[str] = typer.Option(
        None, "--token", help="Store an already issued JWT instead of logging in"
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Session name"),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the OIDC login URL instead of opening it"
    ),
    timeout: float = typer.Option(
        DEFAULT_LOGIN_TIMEOUT, "--timeout", help="Seconds to wait for the browser login"
    ),
    poll_interval: float = typer.Option(
        DEFAULT_POLL_INTERVAL, "--poll-interval", help="Seconds between token polls"
    ),
) -> None:
    """Log in to an Izanami server and save the session.

    The first login creates a profile for the server and makes it active;
    later logins to the same URL reuse that profile.
    """
    with handle_errors():
        state = get_context(ctx)
        prompter = state.prompter
        base_url = url or state.overrides.leader_url or state.settings.leader_url
        if not base_url:
            base_url = prompter.prompt("Server URL")
        base_url = (base_url or "").strip().rstrip("/")
        if not base_url:
            raise ValidationError("server URL is required (iz login <url> <username>)")
        verify = not (state.overrides.insecure_skip_verify or state.settings.insecure_skip_verify)
        request_timeout = float(
            state.overrides.timeout
            or state.settings.timeout
            or load_config_file().timeout
        )

        if token:
            auth_method = AuthMethod.OIDC if oidc else AuthMethod.PASSWORD
            username = username or username_from_jwt(token)
        elif oidc:
            auth_method = AuthMethod.OIDC
            token = _oidc_token(
                base_url, no_browser, timeout, poll_interval, request_timeout, verify
            )
            username = username or username_from_jwt(token)
        else:
            auth_method = AuthMethod.PASSWORD
            if not username:
                username = prompter.prompt("Username")
            if not password:
                password = prompter.prompt_secret("Password")
            logger.debug(f"Logging in to {base_url} as {username}")
            token = password_login(
                base_url, username, password, timeout=request_timeout, verify=verify
            )

        outcome = save_login(
            base_url, username, token, prompter, auth_method=auth_method, session_name=name
        )
        typer.echo(f"Successfully logged in as {username}")
        typer.echo(f"Session saved as: {outcome.session_name}")
        if outcome.replaced_session:
            typer.echo(f"Replaced previous session '{outcome.replaced_session}'")
        if outcome.profile_created:
            typer.echo(f"Created profile '{outcome.profile_name}'")
        if outcome.active:
            typer.echo(f"Active profile: {outcome.profile_name}")
        typer.echo(f"Token stored in {get_sessions_path()}")


def logout(
    session: Optional[str] = typer.Argument(
        None, help="Session to log out of (defaults to the active profile's session)"
    ),
) -> None:
    """Clear the stored token of a session."""
    with handle_errors():
        name = logout_session(session)
        typer.echo(f"Logged out of session '{name}'")
