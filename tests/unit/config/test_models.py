"""Unit tests for configuration models.

This module tests defaults, field validation and environment variable
substitution of the pydantic configuration models.
"""

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from prtimeline.config.models import (
    CacheConfig,
    Config,
    FetchConfig,
    GitHubConfig,
    LogLevel,
    RetryConfig,
)


class TestDefaults:
    """Tests for default configuration values."""

    def test_default_config(self):
        """
        Why: An empty configuration file must produce a working setup
        What: Tests the defaults of every section
        How: Builds Config without arguments and checks key values
        """
        config = Config()

        assert config.github.base_url == "https://api.github.com"
        assert config.github.token == ""
        assert config.github.per_page == 100
        assert config.retry.max_attempts == 10
        assert config.retry.max_delay == 120.0
        assert config.cache.enabled is True
        assert config.cache.retention == timedelta(days=28)
        assert config.fetch.timeout is None
        assert config.fetch.required_checks is True
        assert config.fetch.collaborators is True
        assert config.system.log_level is LogLevel.INFO

    def test_cache_path_is_absolute(self):
        """Tests that the cache directory is expanded to an absolute path."""
        cache = CacheConfig(directory="~/prtimeline-cache")

        assert cache.path.is_absolute()
        assert cache.path == (Path.home() / "prtimeline-cache").resolve()


class TestValidation:
    """Tests for field validation."""

    def test_base_url_must_be_http(self):
        """Tests that non-HTTP base URLs are rejected."""
        with pytest.raises(ValidationError, match="http"):
            GitHubConfig(base_url="ftp://github.example.com")

    def test_base_url_trailing_slash_removed(self):
        """Tests that a trailing slash is stripped from the base URL."""
        config = GitHubConfig(base_url="https://ghe.example.com/api/v3/")

        assert config.base_url == "https://ghe.example.com/api/v3"

    @pytest.mark.parametrize("per_page", [0, 101])
    def test_per_page_bounds(self, per_page):
        """Tests that page sizes outside GitHub's limits are rejected."""
        with pytest.raises(ValidationError):
            GitHubConfig(per_page=per_page)

    def test_retry_delay_ordering(self):
        """
        Why: A cap below the initial delay would make backoff meaningless
        What: Tests the cross-field delay validation
        How: Sets max_delay below initial_delay
        """
        with pytest.raises(ValidationError, match="max_delay"):
            RetryConfig(initial_delay=10.0, max_delay=5.0)

    def test_fetch_timeout_positive(self):
        """Tests that a zero deadline is rejected."""
        with pytest.raises(ValidationError):
            FetchConfig(timeout=0)

    def test_unknown_fields_rejected(self):
        """Tests that misspelled keys are reported instead of ignored."""
        with pytest.raises(ValidationError):
            Config(github={"tokn": "x"})

    def test_validate_assignment(self):
        """Tests that assignments are validated too."""
        config = GitHubConfig()

        with pytest.raises(ValidationError):
            config.per_page = 500


class TestEnvironmentSubstitution:
    """Tests for ${VAR} substitution."""

    def test_required_variable(self, monkeypatch):
        """
        Why: Tokens should come from the environment, not the config file
        What: Tests substitution of a set variable
        How: Sets GITHUB_TOKEN and references it from the github section
        """
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_from_env")

        config = Config(github={"token": "${GITHUB_TOKEN}"})

        assert config.github.token == "ghp_from_env"

    def test_default_value(self, monkeypatch):
        """Tests that the default is used when the variable is unset."""
        monkeypatch.delenv("PRTIMELINE_CACHE_DIR", raising=False)

        config = Config(cache={"directory": "${PRTIMELINE_CACHE_DIR:/tmp/prt}"})

        assert config.cache.directory == "/tmp/prt"

    def test_missing_required_variable(self, monkeypatch):
        """Tests that an unset variable without default is an error."""
        monkeypatch.delenv("PRTIMELINE_MISSING", raising=False)

        with pytest.raises(ValidationError, match="PRTIMELINE_MISSING"):
            Config(github={"token": "${PRTIMELINE_MISSING}"})
