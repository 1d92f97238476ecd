"""Tests for `iz config`, `iz reset` and `iz version`."""

import json

from typer.testing import CliRunner

from izcli.cli import app
from izcli.config import IzSettings, get_config_path, get_sessions_path
from izcli.sessions import Session, SessionStore


class TestConfigCommands:
    def test_path(self, invoke, iz_home):
        result = invoke(["config", "path"])

        assert result.exit_code == 0, result.output
        assert str(get_config_path()) in result.output
        assert str(iz_home / ".izsessions") in result.output

    def test_init_once(self, invoke):
        result = invoke(["config", "init"])
        assert result.exit_code == 0, result.output
        assert get_config_path().exists()

        result = invoke(["config", "init"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_show(self, invoke, monkeypatch):
        invoke(["profiles", "add", "dev", "--url", "http://localhost:9000"])
        monkeypatch.setenv("IZ_TENANT", "acme")
        monkeypatch.setenv("IZ_CLIENT_SECRET", "topsecret")

        result = invoke(["config", "show"])

        assert result.exit_code == 0, result.output
        assert "Active profile: dev" in result.output
        assert "IZ_TENANT=acme" in result.output
        assert "topsecret" not in result.output

    def test_show_json(self, invoke):
        result = invoke(["-o", "json", "config", "show"])

        data = json.loads(result.output)
        assert data["timeout"] == 30
        assert data["profiles"] == []


class TestConfigValueCommands:
    def test_set_then_get(self, invoke):
        result = invoke(["config", "set", "timeout", "45"])
        assert result.exit_code == 0, result.output
        assert "Set timeout = 45" in result.output

        result = invoke(["config", "get", "timeout"])

        assert result.exit_code == 0, result.output
        assert "timeout: 45 (source: file)" in result.output

    def test_set_invalid_value(self, invoke):
        result = invoke(["config", "set", "color", "pink"])

        assert result.exit_code == 1
        assert "Error: invalid value 'pink' for color" in result.output

    def test_set_profile_key(self, invoke):
        result = invoke(["config", "set", "tenant", "acme"])

        assert result.exit_code == 1
        assert "iz profiles set <profile> tenant" in result.output

    def test_get_not_set(self, invoke):
        result = invoke(["config", "get", "project"])

        assert result.exit_code == 0, result.output
        assert "project: (not set)" in result.output

    def test_get_redacts_secrets(self, invoke, monkeypatch):
        monkeypatch.setenv("IZ_CLIENT_SECRET", "topsecret")

        result = invoke(["config", "get", "client-secret"])
        assert "client-secret: <redacted> (source: env)" in result.output

        result = invoke(["config", "get", "client-secret", "--show-secrets"])
        assert "topsecret" in result.output

    def test_unset(self, invoke):
        invoke(["config", "set", "verbose", "true"])

        result = invoke(["config", "unset", "verbose"])

        assert result.exit_code == 0, result.output
        assert "Removed verbose from config file" in result.output
        assert "(source: default)" in invoke(["config", "get", "verbose"]).output

    def test_list(self, invoke, monkeypatch):
        invoke(["profiles", "add", "dev", "--url", "http://localhost:9000", "--tenant", "acme"])
        monkeypatch.setenv("IZ_CLIENT_SECRET", "topsecret")

        result = invoke(["config", "list"])

        assert result.exit_code == 0, result.output
        assert "KEY" in result.output
        assert "acme" in result.output
        assert "profile" in result.output
        assert "topsecret" not in result.output

    def test_list_json(self, invoke):
        result = invoke(["-o", "json", "config", "list"])

        data = {item["key"]: item for item in json.loads(result.output)}
        assert data["timeout"] == {"key": "timeout", "value": "30", "source": "default"}
        assert data["tenant"]["value"] is None

    def test_validate_ok(self, invoke):
        invoke(["config", "init"])

        result = invoke(["config", "validate"])

        assert result.exit_code == 0, result.output
        assert "Configuration is valid" in result.output

    def test_validate_reports_dangling_session(self, invoke):
        invoke(["profiles", "add", "dev", "--url", "http://localhost:9000"])
        invoke(["profiles", "set", "dev", "session", "gone"])

        result = invoke(["config", "validate"])

        assert result.exit_code == 1
        assert "profiles.dev.session: session 'gone' not found" in result.output


class TestReset:
    def test_nothing_to_reset(self, invoke):
        result = invoke(["reset", "--force"])

        assert result.exit_code == 0
        assert "Nothing to reset." in result.output

    def test_reset_keeps_backups(self, invoke):
        invoke(["profiles", "add", "dev", "--url", "http://localhost:9000"])
        store = SessionStore()
        store.add_session("s", Session(url="http://iz.test", username="alice"))
        store.save()

        result = invoke(["reset", "--force"])

        assert result.exit_code == 0, result.output
        assert "Configuration reset." in result.output
        assert not get_config_path().exists()
        assert not get_sessions_path().exists()
        assert list(get_config_path().parent.glob("config.json.backup.*"))
        assert list(get_sessions_path().parent.glob(".izsessions.backup.*"))

    def test_reset_declined(self, invoke, prompter):
        invoke(["profiles", "add", "dev", "--url", "http://localhost:9000"])
        prompter.confirm_answer = False

        result = invoke(["reset"])

        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert get_config_path().exists()


def test_version(invoke):
    result = invoke(["version"])

    assert result.exit_code == 0
    assert result.output.startswith("iz ")


def test_invalid_environment(monkeypatch):
    monkeypatch.setenv("IZ_TIMEOUT", "soon")

    result = CliRunner().invoke(app, ["config", "path"])

    assert result.exit_code == 1
    assert "invalid IZ_* environment variable" in result.output


def test_help_lists_environment_variables():
    result = CliRunner().invoke(app, ["--help"])

    assert result.exit_code == 0, result.output
    missing = [f"IZ_{name.upper()}" for name in IzSettings.model_fields]
    missing = [name for name in missing if name not in result.output]
    assert missing == []
