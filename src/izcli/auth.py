"""Login support for the iz CLI.

Supports two authentication modes:
1. Username/password: POST /api/admin/login with basic auth; the server
   answers with the JWT in a "token" cookie.
2. OIDC: the CLI registers a random state with /api/admin/cli-login, the
   user authenticates in a browser, and the CLI polls
   /api/admin/cli-token?state=... until the token is ready.

Either way the token is stored as a session and the matching profile is
pointed at it (see ``save_login``).
"""

from __future__ import annotations

import base64
import json
import logging
import re
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlparse

import httpx

from izcli.config import Profile
from izcli.exceptions import IzError, LoginError, NotFoundError
from izcli.profiles import (
    add_profile,
    find_profile_by_base_url,
    get_active_profile_name,
    get_profile,
    list_profiles,
    set_active_profile,
)
from izcli.prompter import Prompter
from izcli.sessions import AuthMethod, Session, SessionStore

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/admin/login"
CLI_LOGIN_PATH = "/api/admin/cli-login"
CLI_TOKEN_PATH = "/api/admin/cli-token"

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_LOGIN_TIMEOUT = 300.0
DEFAULT_RETRY_AFTER = 5.0
STATE_LENGTH = 43
DEFAULT_OIDC_USERNAME = "oidc-user"

_STATE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


# --- Password login ---


def password_login(
    base_url: str,
    username: str,
    password: str,
    timeout: float = 30.0,
    verify: bool = True,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Authenticate with username and password.

    Returns:
        The JWT issued by the server.

    Raises:
        LoginError: On transport errors, rejected credentials or a response
            without a token.
    """
    try:
        with httpx.Client(
            base_url=base_url, timeout=timeout, verify=verify, transport=transport
        ) as client:
            response = client.post(LOGIN_PATH, auth=(username, password))
    except httpx.HTTPError as e:
        raise LoginError(f"request to {base_url} failed: {e}") from e

    if response.status_code in (401, 403):
        raise LoginError(f"invalid credentials (HTTP {response.status_code})")
    if response.is_error:
        raise LoginError(f"server returned HTTP {response.status_code}")

    token = response.cookies.get("token")
    if not token:
        raise LoginError("no JWT token in login response")
    return token


# --- OIDC ---


def generate_state() -> str:
    """Generate a 256-bit random state, base64url encoded without padding (43 chars)."""
    return secrets.token_urlsafe(32)


def validate_state_format(state: str) -> bool:
    return len(state) == STATE_LENGTH and bool(_STATE_PATTERN.match(state))


def check_server_support(
    base_url: str,
    timeout: float = 10.0,
    verify: bool = True,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """Whether the server exposes the CLI login endpoint (anything but a 404)."""
    try:
        with httpx.Client(
            base_url=base_url, timeout=timeout, verify=verify, transport=transport
        ) as client:
            response = client.get(
                CLI_LOGIN_PATH, params={"state": "check"}, follow_redirects=False
            )
    except httpx.HTTPError as e:
        logger.debug(f"CLI login support check failed: {e}")
        return False
    return response.status_code != 404


def initiate_cli_login(
    base_url: str,
    state: str,
    timeout: float = 10.0,
    verify: bool = True,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Register ``state`` with the server.

    Must happen before polling starts so the server knows the state.

    Returns:
        The URL to open in the browser (the identity provider redirect, or
        the CLI login URL itself if the server does not redirect).
    """
    login_url = f"{base_url}{CLI_LOGIN_PATH}?state={state}"
    try:
        with httpx.Client(timeout=timeout, verify=verify, transport=transport) as client:
            response = client.get(login_url, follow_redirects=False)
    except httpx.HTTPError as e:
        raise LoginError(f"failed to initiate CLI login: {e}") from e
    if response.is_redirect:
        return response.headers.get("location", login_url)
    if response.is_error:
        raise LoginError(f"failed to initiate CLI login (HTTP {response.status_code})")
    return login_url


@dataclass
class PollResult:
    """Result of a single poll of the token endpoint."""

    ready: bool = False
    token: str | None = None
    retry_after: float | None = None


class TokenPoller:
    """Polls the CLI token endpoint until the browser login completes.

    Pending (202), rate-limited (429), 5xx and transport errors are
    retryable; anything else ends the login.
    """

    def __init__(
        self,
        base_url: str,
        state: str,
        interval: float | None = None,
        timeout: float = 10.0,
        verify: bool = True,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.state = state
        self.interval = interval if interval and interval > 0 else DEFAULT_POLL_INTERVAL
        self._client = client or httpx.Client(timeout=timeout, verify=verify)
        self._sleep = sleep
        self._clock = clock

    def poll(self) -> PollResult:
        """Poll once.

        Raises:
            LoginError: If the state is unknown, expired or rejected.
        """
        try:
            response = self._client.get(
                f"{self.base_url}{CLI_TOKEN_PATH}", params={"state": self.state}
            )
        except httpx.TransportError as e:
            logger.debug(f"Token poll failed, will retry: {e}")
            return PollResult()

        status = response.status_code
        if status == 200:
            token = _json_body(response).get("token")
            if not token:
                raise LoginError("token endpoint returned no token")
            return PollResult(ready=True, token=token)
        if status == 202:
            return PollResult()
        if status == 429:
            return PollResult(retry_after=_retry_after(response))
        if status >= 500:
            logger.debug(f"Token endpoint returned HTTP {status}, will retry")
            return PollResult()

        message = _json_body(response).get("message") or f"HTTP {status}"
        if status == 404:
            raise LoginError(f"authentication state not found: {message}")
        if status == 410:
            raise LoginError(f"authentication state expired: {message}")
        raise LoginError(f"token request rejected: {message}")

    def wait_for_token(self, timeout: float = DEFAULT_LOGIN_TIMEOUT) -> str:
        """Poll until a token arrives or ``timeout`` seconds have passed.

        Raises:
            LoginError: On timeout or a fatal poll response.
        """
        deadline = self._clock() + timeout
        while True:
            result = self.poll()
            if result.ready and result.token:
                return result.token
            delay = result.retry_after or self.interval
            if self._clock() + delay > deadline:
                raise LoginError(f"timed out after {timeout:g}s waiting for authentication")
            self._sleep(delay)

    def close(self) -> None:
        self._client.close()


def _json_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _retry_after(response: httpx.Response) -> float:
    value = _json_body(response).get("retryAfter") or response.headers.get("retry-after")
    try:
        return float(value) if value else DEFAULT_RETRY_AFTER
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER


def username_from_jwt(token: str) -> str:
    """Best-effort username from JWT claims (no signature check).

    Tries ``username``, ``name``, ``sub``, then the local part of ``email``.
    """
    parts = token.split(".")
    if len(parts) < 2:
        return DEFAULT_OIDC_USERNAME
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (ValueError, UnicodeDecodeError):
        return DEFAULT_OIDC_USERNAME
    if not isinstance(claims, dict):
        return DEFAULT_OIDC_USERNAME
    for claim in ("username", "name", "sub"):
        if claims.get(claim):
            return str(claims[claim])
    email = claims.get("email")
    if email and "@" in str(email):
        return str(email).split("@", 1)[0]
    return DEFAULT_OIDC_USERNAME


# --- Session/profile bookkeeping ---


def extract_session_name(url: str) -> str:
    """Suggest a profile name for a server URL.

    ``localhost``/``127.0.0.1`` map to "default"; other hosts keep their
    name with dots replaced by dashes.
    """
    host = urlparse(url if "://" in url else f"http://{url}").hostname or ""
    if host.startswith("localhost") or host.startswith("127.0.0.1"):
        return "default"
    return host.replace(".", "-") or "default"


@dataclass
class LoginOutcome:
    """What ``save_login`` changed."""

    profile_name: str
    session_name: str
    profile_created: bool
    replaced_session: str | None = None
    active: bool = False


def determine_profile_name(base_url: str, prompter: Prompter) -> tuple[str, bool]:
    """Choose the profile a login belongs to.

    Reuses a profile already pointing at ``base_url``, otherwise asks for a
    new name (suggesting one derived from the URL).

    Returns:
        Tuple of (profile name, whether it is a new profile).
    """
    profiles, _ = list_profiles()
    if profiles:
        existing = find_profile_by_base_url(base_url)
        if existing:
            return existing, False
    suggested = extract_session_name(base_url)
    name = prompter.prompt(
        "Profile name (suggestions: local, sandbox, build, prod)", default=suggested
    )
    return (name or "").strip() or suggested, True


def save_login(
    base_url: str,
    username: str,
    token: str,
    prompter: Prompter,
    auth_method: AuthMethod = AuthMethod.PASSWORD,
    session_name: str | None = None,
) -> LoginOutcome:
    """Store a fresh token as a session and point a profile at it.

    Any other session for the same URL and username is replaced. The
    profile (created if needed) references the new session and becomes
    the active profile.
    """
    profile_name, created = determine_profile_name(base_url, prompter)
    if not session_name:
        suffix = "oidc" if auth_method == AuthMethod.OIDC else "session"
        session_name = f"{profile_name}-{username}-{suffix}"

    store = SessionStore.load()
    replaced = store.find_by_url_and_username(base_url, username)
    if replaced == session_name:
        replaced = None
    if replaced:
        logger.debug(f"Replacing session '{replaced}' for {username}@{base_url}")
        store.delete_session(replaced)
    store.add_session(
        session_name,
        Session(
            url=base_url,
            username=username,
            jwt_token=token,
            auth_method=auth_method,
            created_at=datetime.now(timezone.utc),
        ),
    )
    store.set_active(session_name)
    store.save()

    try:
        profile = get_profile(profile_name)
    except NotFoundError:
        profile = Profile()
    profile.session = session_name
    profile.base_url = None
    add_profile(profile_name, profile)
    set_active_profile(profile_name)

    return LoginOutcome(
        profile_name=profile_name,
        session_name=session_name,
        profile_created=created,
        replaced_session=replaced,
        active=get_active_profile_name() == profile_name,
    )


def logout(session_name: str | None = None) -> str:
    """Clear the token of a session, keeping the session itself.

    Defaults to the session of the active profile, then the active session.

    Returns:
        The name of the session that was logged out.

    Raises:
        IzError: If there is no session to log out from.
    """
    store = SessionStore.load()
    if not session_name:
        active_profile = get_active_profile_name()
        if active_profile:
            session_name = get_profile(active_profile).session
    session_name = session_name or store.active
    if not session_name:
        raise IzError("no active session (use 'iz login' to authenticate)")
    session = store.get_session(session_name)
    session.jwt_token = ""
    session.created_at = None
    store.save()
    return session_name
