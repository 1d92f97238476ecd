"""Tests for izcli.config_values (iz config get/set/unset/list/validate)."""

import json

import pytest

from izcli.config import (
    ColorMode,
    ConfigFile,
    IzSettings,
    Profile,
    WorkerConfig,
    get_config_path,
    init_config_file,
    load_config_file,
    save_config_file,
)
from izcli.config_values import (
    ValueSource,
    get_config_value,
    list_config_values,
    set_config_value,
    unset_config_value,
    valid_keys,
    validate_config,
)
from izcli.exceptions import ConfigError, ValidationError
from izcli.sessions import Session, SessionStore


class TestGetConfigValue:
    def test_default_when_file_is_missing(self):
        value = get_config_value("timeout", IzSettings())

        assert value.value == "30"
        assert value.source == ValueSource.DEFAULT

    def test_file_value(self):
        set_config_value("output-format", "json")

        value = get_config_value("output-format", IzSettings())

        assert value.value == "json"
        assert value.source == ValueSource.FILE

    def test_environment_wins_over_file(self, monkeypatch):
        set_config_value("timeout", "10")
        monkeypatch.setenv("IZ_TIMEOUT", "5")

        value = get_config_value("timeout", IzSettings())

        assert value.value == "5"
        assert value.source == ValueSource.ENV

    def test_profile_key_from_active_profile(self):
        save_config_file(
            ConfigFile(
                active_profile="dev",
                profiles={"dev": Profile(tenant="acme", client_secret="s3cret")},
            )
        )

        tenant = get_config_value("tenant", IzSettings())
        secret = get_config_value("client-secret", IzSettings())

        assert (tenant.value, tenant.source) == ("acme", ValueSource.PROFILE)
        assert secret.sensitive
        assert secret.display() == "<redacted>"
        assert secret.display(show_secrets=True) == "s3cret"

    def test_profile_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("IZ_LEADER_URL", "http://env.example.com")

        value = get_config_value("base-url", IzSettings())

        assert (value.value, value.source) == ("http://env.example.com", ValueSource.ENV)

    def test_selected_profile(self):
        save_config_file(
            ConfigFile(
                active_profile="dev",
                profiles={"dev": Profile(tenant="acme"), "prod": Profile(tenant="big")},
            )
        )

        assert get_config_value("tenant", IzSettings(), "prod").value == "big"

    def test_not_set(self):
        value = get_config_value("project", IzSettings())

        assert value.value is None
        assert value.source == ValueSource.NOT_SET
        assert value.display() == "(not set)"

    def test_unknown_key(self):
        with pytest.raises(ValidationError, match="invalid config key 'nope'"):
            get_config_value("nope", IzSettings())

    def test_list_covers_every_key(self):
        values = list_config_values(IzSettings())

        assert [value.key for value in values] == valid_keys()
        assert "timeout" in valid_keys()
        assert "tenant" in valid_keys()


class TestSetConfigValue:
    def test_values_are_validated_and_converted(self):
        set_config_value("timeout", "45")
        set_config_value("verbose", "true")
        set_config_value("color", "never")

        config = load_config_file()
        assert config.timeout == 45
        assert config.verbose is True
        assert config.color == ColorMode.NEVER

    @pytest.mark.parametrize(
        "key, value",
        [("timeout", "soon"), ("timeout", "0"), ("output-format", "yaml"), ("color", "pink")],
    )
    def test_invalid_values_are_rejected(self, key, value):
        with pytest.raises(ValidationError, match=f"invalid value '{value}' for {key}"):
            set_config_value(key, value)

        assert not get_config_path().exists()

    def test_keeps_profiles(self):
        save_config_file(ConfigFile(active_profile="dev", profiles={"dev": Profile()}))

        set_config_value("timeout", "12")

        config = load_config_file()
        assert config.active_profile == "dev"
        assert list(config.profiles) == ["dev"]

    def test_profile_key_points_to_profiles_set(self):
        with pytest.raises(ValidationError, match="Use 'iz profiles set <profile> tenant'"):
            set_config_value("tenant", "acme")

    def test_unknown_key(self):
        with pytest.raises(ValidationError, match="Valid keys:"):
            set_config_value("nope", "1")


class TestUnsetConfigValue:
    def test_restores_default(self):
        set_config_value("timeout", "12")

        assert unset_config_value("timeout")

        data = json.loads(get_config_path().read_text())
        assert "timeout" not in data
        value = get_config_value("timeout", IzSettings())
        assert (value.value, value.source) == ("30", ValueSource.DEFAULT)

    def test_key_not_in_file(self):
        init_config_file()
        unset_config_value("color")

        assert not unset_config_value("color")

    def test_requires_config_file(self):
        with pytest.raises(ConfigError, match="config file does not exist"):
            unset_config_value("timeout")

    def test_profile_key_points_to_profiles_unset(self):
        with pytest.raises(ValidationError, match="Use 'iz profiles unset <profile> session'"):
            unset_config_value("session")


class TestValidateConfig:
    def test_missing_file_is_valid(self):
        assert validate_config() == []

    def test_valid_file(self):
        store = SessionStore()
        store.add_session("s", Session(url="http://iz.test", username="alice"))
        store.save()
        save_config_file(
            ConfigFile(
                active_profile="dev",
                profiles={
                    "dev": Profile(
                        session="s",
                        workers={"eu": WorkerConfig(url="http://eu.example.com")},
                        default_worker="eu",
                    )
                },
            )
        )

        assert validate_config() == []

    def test_schema_errors(self):
        path = get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"timeout": -1, "color": "pink"}))

        issues = validate_config()

        assert sorted(issue.field for issue in issues) == ["color", "timeout"]

    def test_malformed_file(self):
        path = get_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        issues = validate_config()

        assert [issue.field for issue in issues] == ["general"]
        assert "failed to parse file" in issues[0].message

    def test_dangling_references(self):
        save_config_file(
            ConfigFile(
                active_profile="gone",
                profiles={
                    "dev": Profile(
                        session="missing-session",
                        workers={"us": WorkerConfig(url="http://us.example.com")},
                        default_worker="eu",
                    )
                },
            )
        )

        issues = {issue.field: issue.message for issue in validate_config()}

        assert issues == {
            "active_profile": "profile 'gone' does not exist",
            "profiles.dev.session": "session 'missing-session' not found (run 'iz login')",
            "profiles.dev.default_worker": "worker 'eu' not found (available: us)",
        }
