"""Tests for worker selection and management."""

import logging

import pytest

from izcli.config import Profile, WorkerConfig
from izcli.exceptions import NoActiveProfileError, NotFoundError, ValidationError
from izcli.profiles import add_profile, get_profile
from izcli.workers import (
    WorkerSource,
    add_worker,
    delete_worker,
    get_worker,
    resolve_worker,
    select_worker_name,
    set_default_worker,
)

WORKERS = {
    "eu": WorkerConfig(url="http://eu.example.com", client_id="eu-id", client_secret="eu-secret"),
    "us": WorkerConfig(url="http://us.example.com"),
}


class TestResolveWorker:
    def test_explicit_wins_over_everything(self):
        worker = resolve_worker("us", WORKERS, "eu", "http://direct.example.com")

        assert worker.source == WorkerSource.EXPLICIT
        assert worker.name == "us"
        assert worker.url == "http://us.example.com"

    def test_env_url_wins_over_default(self):
        worker = resolve_worker(None, WORKERS, "eu", "http://direct.example.com")

        assert worker.source == WorkerSource.ENV_URL
        assert worker.name is None
        assert worker.url == "http://direct.example.com"
        assert worker.client_id is None

    def test_default_worker(self):
        worker = resolve_worker(None, WORKERS, "eu", None)

        assert worker.source == WorkerSource.DEFAULT
        assert worker.name == "eu"
        assert worker.client_id == "eu-id"

    def test_standalone(self):
        worker = resolve_worker(None, WORKERS, None, None)

        assert worker.source == WorkerSource.STANDALONE
        assert worker.url is None

    def test_dangling_default_falls_back_to_standalone(self, caplog):
        """Test that a default naming a deleted worker is treated as absent."""
        with caplog.at_level(logging.INFO, logger="izcli.workers"):
            worker = resolve_worker(None, WORKERS, "apac", None)

        assert worker.source == WorkerSource.STANDALONE
        assert "default-worker 'apac' not found" in caplog.text

    def test_dangling_default_with_env_url(self):
        worker = resolve_worker(None, WORKERS, "apac", "http://direct.example.com")
        assert worker.source == WorkerSource.ENV_URL

    def test_missing_explicit_worker_lists_available(self):
        with pytest.raises(NotFoundError, match="available workers: eu, us"):
            resolve_worker("apac", WORKERS, "eu", None)

    def test_missing_explicit_worker_without_workers(self):
        with pytest.raises(NotFoundError, match="no workers configured"):
            resolve_worker("eu", {}, None, "http://direct.example.com")

    @pytest.mark.parametrize("explicit", [None, "us"])
    @pytest.mark.parametrize("env_url", [None, "http://direct.example.com"])
    @pytest.mark.parametrize("default", [None, "eu", "apac"])
    def test_precedence_combinations(self, explicit, env_url, default):
        """Test that exactly one source wins for every mix of explicit, env URL and default."""
        worker = resolve_worker(explicit, WORKERS, default, env_url)

        if explicit:
            expected = WorkerSource.EXPLICIT
        elif env_url:
            expected = WorkerSource.ENV_URL
        elif default == "eu":
            expected = WorkerSource.DEFAULT
        else:
            expected = WorkerSource.STANDALONE
        assert worker.source == expected
        if expected == WorkerSource.EXPLICIT:
            assert (worker.name, worker.url) == ("us", "http://us.example.com")
        elif expected == WorkerSource.ENV_URL:
            assert (worker.name, worker.url) == (None, env_url)
        elif expected == WorkerSource.DEFAULT:
            assert (worker.name, worker.url) == ("eu", "http://eu.example.com")
        else:
            assert (worker.name, worker.url) == (None, None)


@pytest.fixture
def dev_profile():
    add_profile("dev", Profile(base_url="http://localhost:9000"))


class TestWorkerManagement:
    def test_first_worker_becomes_default(self, dev_profile):
        assert add_worker("eu", WorkerConfig(url="http://eu.example.com")) == ("dev", True)
        assert add_worker("us", WorkerConfig(url="http://us.example.com")) == ("dev", False)

        assert get_profile("dev").default_worker == "eu"

    def test_worker_added_after_default_cleared_becomes_default(self, dev_profile):
        add_worker("eu", WorkerConfig(url="http://eu.example.com"))
        add_worker("us", WorkerConfig(url="http://us.example.com"))
        delete_worker("eu")
        assert get_profile("dev").default_worker is None

        assert add_worker("apac", WorkerConfig(url="http://apac.example.com")) == ("dev", True)

        assert get_profile("dev").default_worker == "apac"

    def test_duplicate_requires_force(self, dev_profile):
        add_worker("eu", WorkerConfig(url="http://eu.example.com"))

        with pytest.raises(ValidationError, match="already exists"):
            add_worker("eu", WorkerConfig(url="http://eu2.example.com"))

        add_worker("eu", WorkerConfig(url="http://eu2.example.com"), force=True)
        assert get_worker("eu")[1].url == "http://eu2.example.com"

    def test_url_is_required(self, dev_profile):
        with pytest.raises(ValidationError, match="URL is required"):
            add_worker("eu", WorkerConfig(url=""))

    def test_delete_default_clears_it(self, dev_profile):
        add_worker("eu", WorkerConfig(url="http://eu.example.com"))

        assert delete_worker("eu") == ("dev", True)
        profile = get_profile("dev")
        assert profile.workers == {}
        assert profile.default_worker is None

    def test_delete_missing(self, dev_profile):
        with pytest.raises(NotFoundError, match="no workers configured"):
            delete_worker("eu")

    def test_set_default_worker(self, dev_profile):
        add_worker("eu", WorkerConfig(url="http://eu.example.com"))
        add_worker("us", WorkerConfig(url="http://us.example.com"))

        assert set_default_worker("us") == "dev"
        assert get_profile("dev").default_worker == "us"

        with pytest.raises(NotFoundError, match="available workers: eu, us"):
            set_default_worker("apac")

    def test_requires_active_profile(self):
        with pytest.raises(NoActiveProfileError):
            add_worker("eu", WorkerConfig(url="http://eu.example.com"))


class TestSelectWorkerName:
    def test_explicit_then_default(self):
        assert select_worker_name("us", "eu") == "us"
        assert select_worker_name(None, "eu") == "eu"

    def test_nothing_selected(self):
        with pytest.raises(ValidationError, match="no worker specified"):
            select_worker_name(None, None)
