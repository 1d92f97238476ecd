"""Tests for profile storage."""

import pytest

from izcli.config import ConfigFile, Profile, load_config_file
from izcli.exceptions import NoActiveProfileError, NotFoundError, ValidationError
from izcli.profiles import (
    add_profile,
    delete_profile,
    editing_profile,
    find_profile_by_base_url,
    get_active_profile,
    get_profile,
    list_profiles,
    lookup_profile,
    normalize_url,
    profile_from_template,
    profile_url,
    set_active_profile,
    set_profile_value,
    unset_profile_value,
)
from izcli.sessions import Session, SessionStore


@pytest.fixture
def dev_and_prod():
    add_profile("dev", Profile(base_url="http://localhost:9000", tenant="acme"))
    add_profile("prod", Profile(base_url="https://izanami.example.com", tenant="acme"))


class TestAddProfile:
    def test_first_profile_becomes_active(self):
        """Test that the first profile in an empty store is activated."""
        assert add_profile("dev", Profile(base_url="http://localhost:9000")) is True

        assert get_active_profile()[0] == "dev"

    def test_later_profiles_do_not_change_active(self, dev_and_prod):
        _, active = list_profiles()
        assert active == "dev"

    def test_name_is_required(self):
        with pytest.raises(ValidationError):
            add_profile("", Profile())


class TestLookup:
    def test_empty_store(self):
        with pytest.raises(NotFoundError, match="no profiles defined"):
            lookup_profile(ConfigFile(), "dev")

    def test_missing_profile_lists_available(self, dev_and_prod):
        with pytest.raises(NotFoundError, match="available: dev, prod"):
            get_profile("staging")

    def test_list_profiles_sorted(self, dev_and_prod):
        profiles, _ = list_profiles()
        assert list(profiles) == ["dev", "prod"]


class TestActiveProfile:
    def test_use_prod(self, dev_and_prod):
        set_active_profile("prod")

        name, profile = get_active_profile()
        assert name == "prod"
        assert profile.base_url == "https://izanami.example.com"

    def test_use_missing_profile(self, dev_and_prod):
        with pytest.raises(NotFoundError, match="profile 'staging' does not exist"):
            set_active_profile("staging")
        assert load_config_file().active_profile == "dev"

    def test_no_active_profile(self):
        with pytest.raises(NoActiveProfileError):
            get_active_profile()


class TestDeleteProfile:
    def test_delete_active_clears_pointer(self, dev_and_prod):
        """Test that deleting the active profile does not promote another one."""
        assert delete_profile("dev") is True

        profiles, active = list_profiles()
        assert list(profiles) == ["prod"]
        assert active == ""

    def test_delete_inactive(self, dev_and_prod):
        assert delete_profile("prod") is False
        assert load_config_file().active_profile == "dev"

    def test_delete_missing(self, dev_and_prod):
        with pytest.raises(NotFoundError):
            delete_profile("staging")


class TestSetProfileValue:
    def test_session_clears_base_url(self, dev_and_prod):
        set_profile_value("dev", "session", "dev-alice-session")

        profile = get_profile("dev")
        assert profile.session == "dev-alice-session"
        assert profile.base_url is None

    def test_base_url_clears_session(self, dev_and_prod):
        set_profile_value("dev", "session", "dev-alice-session")
        set_profile_value("dev", "base-url", "http://localhost:9999")

        profile = get_profile("dev")
        assert profile.base_url == "http://localhost:9999"
        assert profile.session is None

    def test_invalid_key(self, dev_and_prod):
        with pytest.raises(ValidationError, match="invalid key 'colour'"):
            set_profile_value("dev", "colour", "blue")

    def test_unset(self, dev_and_prod):
        unset_profile_value("dev", "tenant")
        assert get_profile("dev").tenant is None

    def test_failed_edit_is_not_saved(self, dev_and_prod):
        with pytest.raises(RuntimeError):
            with editing_profile("dev") as (_, profile):
                profile.tenant = "changed"
                raise RuntimeError("boom")

        assert get_profile("dev").tenant == "acme"


class TestProfileUrl:
    def test_url_from_session(self):
        store = SessionStore()
        store.add_session("s", Session(url="http://izanami.example.com", username="alice"))
        store.save()

        assert profile_url(Profile(session="s")) == "http://izanami.example.com"

    def test_unknown_session_has_no_url(self):
        assert profile_url(Profile(session="missing")) is None

    def test_normalize_url(self):
        assert normalize_url("HTTPS://Izanami.Example.com/") == "izanami.example.com"

    def test_find_profile_by_base_url(self, dev_and_prod):
        assert find_profile_by_base_url("http://izanami.example.com/") == "prod"
        assert find_profile_by_base_url("http://elsewhere") is None


class TestTemplates:
    def test_sandbox_has_url(self):
        profile = profile_from_template("sandbox")

        assert profile.base_url == "http://localhost:9000"
        assert profile.context == "dev"

    def test_prod_requires_url(self):
        with pytest.raises(ValidationError, match="requires a server URL"):
            profile_from_template("prod")

    def test_prod_with_url(self):
        profile = profile_from_template("prod", "https://izanami.example.com")

        assert profile.base_url == "https://izanami.example.com"
        assert profile.tenant == "production"

    def test_unknown_template(self):
        with pytest.raises(ValidationError, match="invalid template"):
            profile_from_template("qa")
