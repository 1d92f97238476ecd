"""Tests for session storage."""

import stat
from datetime import datetime, timedelta, timezone

import pytest

from izcli.config import get_sessions_path
from izcli.exceptions import ConfigError, NotFoundError
from izcli.sessions import AuthMethod, Session, SessionStore, get_session_url


def _session(url="http://localhost:9000", username="alice", **kwargs) -> Session:
    return Session(url=url, username=username, jwt_token="jwt", **kwargs)


class TestSessionStore:
    def test_load_without_file_is_empty(self):
        store = SessionStore.load()

        assert store.sessions == {}
        assert store.active is None

    def test_save_and_load(self):
        store = SessionStore()
        store.add_session("dev", _session(auth_method=AuthMethod.OIDC))
        store.set_active("dev")
        store.save()

        loaded = SessionStore.load()
        assert loaded.active == "dev"
        assert loaded.get_session("dev").auth_method == AuthMethod.OIDC
        assert stat.S_IMODE(get_sessions_path().stat().st_mode) == 0o600

    def test_missing_auth_method_means_password(self):
        path = get_sessions_path()
        path.write_text('{"sessions": {"old": {"url": "http://x", "username": "bob"}}}')

        assert SessionStore.load().get_session("old").auth_method == AuthMethod.PASSWORD

    def test_corrupt_file_raises(self):
        get_sessions_path().write_text('{"sessions": []}')

        with pytest.raises(ConfigError, match="failed to parse sessions file"):
            SessionStore.load()

    def test_get_missing_session(self):
        with pytest.raises(NotFoundError, match="session 'nope' not found"):
            SessionStore().get_session("nope")

    def test_delete_clears_active(self):
        """Test that deleting the active session clears the active pointer."""
        store = SessionStore()
        store.add_session("dev", _session())
        store.set_active("dev")

        store.delete_session("dev")

        assert store.sessions == {}
        assert store.active is None

    def test_set_active_requires_existing_session(self):
        with pytest.raises(NotFoundError):
            SessionStore().set_active("nope")

    def test_find_by_url_and_username(self):
        store = SessionStore()
        store.add_session("a", _session(username="alice"))
        store.add_session("b", _session(username="bob"))

        assert store.find_by_url_and_username("http://localhost:9000", "bob") == "b"
        assert store.find_by_url_and_username("http://other", "bob") is None

    def test_list_is_sorted(self):
        store = SessionStore()
        store.add_session("zeta", _session())
        store.add_session("alpha", _session())

        assert list(store.list_sessions()) == ["alpha", "zeta"]


class TestSession:
    def test_fresh_token_is_not_expired(self):
        session = _session(created_at=datetime.now(timezone.utc))
        assert not session.is_token_expired()

    def test_old_or_missing_token_is_expired(self):
        old = _session(created_at=datetime.now(timezone.utc) - timedelta(hours=25))
        logged_out = Session(url="http://x", username="alice")

        assert old.is_token_expired()
        assert logged_out.is_token_expired()


class TestGetSessionUrl:
    def test_returns_url(self):
        store = SessionStore()
        store.add_session("dev", _session(url="http://izanami.example.com"))
        store.save()

        assert get_session_url("dev") == "http://izanami.example.com"

    def test_missing_session_is_none(self):
        assert get_session_url("nope") is None

    def test_unreadable_store_is_none(self):
        get_sessions_path().write_text("garbage")

        assert get_session_url("dev") is None
