"""Session storage for the iz CLI.

A session is a named login record (server URL, username, JWT) created by
``iz login``. Sessions live in ~/.izsessions, readable only by the owner.
Profiles reference sessions by name.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from izcli.config import get_sessions_path, load_json_file, repair_permissions, write_json_file
from izcli.exceptions import ConfigError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_MAX_AGE = timedelta(hours=24)


class AuthMethod(str, Enum):
    PASSWORD = "password"
    OIDC = "oidc"


class Session(BaseModel):
    """A stored login.

    Attributes:
        url: Server (leader) URL the session was created against.
        username: Login name.
        jwt_token: Token returned by the server. Empty after logout.
        auth_method: How the token was obtained. Missing means password.
        created_at: When the token was obtained.
    """

    url: str
    username: str
    jwt_token: str = ""
    auth_method: AuthMethod = AuthMethod.PASSWORD
    created_at: datetime | None = None

    def is_token_expired(self, max_age: timedelta = DEFAULT_TOKEN_MAX_AGE) -> bool:
        """Whether the token is older than ``max_age`` (or missing)."""
        if not self.jwt_token or self.created_at is None:
            return True
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) - created_at > max_age


class SessionStore(BaseModel):
    """All stored sessions plus the active session pointer.

    Every mutation is in memory; call ``save()`` to persist. Persisting
    always rewrites the whole file.
    """

    sessions: dict[str, Session] = Field(default_factory=dict)
    active: str | None = None

    @classmethod
    def load(cls, path: Path | None = None) -> SessionStore:
        """Load sessions from disk, returning an empty store if there is no file.

        Raises:
            ConfigError: If the sessions file is unreadable or malformed.
        """
        path = path or get_sessions_path()
        data = load_json_file(path)
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigError("failed to parse sessions file", path, e) from e

    def save(self, path: Path | None = None) -> None:
        """Write all sessions to disk with owner-only permissions."""
        path = path or get_sessions_path()
        write_json_file(path, self.model_dump(mode="json", exclude_none=True))
        repair_permissions(path, dir_mode=None)

    def add_session(self, name: str, session: Session) -> None:
        self.sessions[name] = session

    def get_session(self, name: str) -> Session:
        """Get a session by name.

        Raises:
            NotFoundError: If there is no session with that name.
        """
        session = self.sessions.get(name)
        if session is None:
            raise NotFoundError("session", name)
        return session

    def delete_session(self, name: str) -> None:
        """Delete a session; clears the active pointer if it pointed at it.

        Raises:
            NotFoundError: If there is no session with that name.
        """
        if name not in self.sessions:
            raise NotFoundError("session", name)
        del self.sessions[name]
        if self.active == name:
            self.active = None

    def set_active(self, name: str) -> None:
        """Mark a session as active.

        Raises:
            NotFoundError: If there is no session with that name.
        """
        if name not in self.sessions:
            raise NotFoundError("session", name)
        self.active = name

    def list_sessions(self) -> dict[str, Session]:
        return dict(sorted(self.sessions.items()))

    def find_by_url_and_username(self, url: str, username: str) -> str | None:
        """Return the name of the session stored for ``url`` and ``username``."""
        for name, session in self.sessions.items():
            if session.url == url and session.username == username:
                return name
        return None


def get_session_url(name: str) -> str | None:
    """Best-effort lookup of a session's URL for display purposes.

    Returns None when the session (or the sessions file) cannot be read.
    """
    try:
        return SessionStore.load().get_session(name).url
    except (ConfigError, NotFoundError) as e:
        logger.debug(f"Could not resolve URL of session '{name}': {e}")
        return None
