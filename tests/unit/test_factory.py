"""
Unit tests for component wiring and logging setup.

Why: Configuration values only matter if they reach the components that use
     them; a dropped setting fails silently.

What: Tests create_endpoint, create_orchestrator, TimelineClient and
      configure_logging.

How: Builds components from Config objects and inspects their attributes;
     the client's fetch is replaced with an AsyncMock.
"""

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from prtimeline.cache.response_cache import ResponseCache
from prtimeline.config.models import Config
from prtimeline.factory import TimelineClient, create_endpoint, create_orchestrator
from prtimeline.github.auth import AnonymousAuth, PersonalAccessTokenAuth
from prtimeline.github.canned import CannedEndpoint
from prtimeline.github.retry import RetryTransport
from prtimeline.github.transport import AiohttpTransport
from prtimeline.logging_config import LOG_FORMAT, configure_logging
from prtimeline.timeline.cached import CacheOrchestrator
from prtimeline.timeline.fetcher import FetchOrchestrator


class TestCreateEndpoint:
    """Test endpoint wiring."""

    def test_token_configures_pat_auth(self) -> None:
        """
        Why: Authenticated requests get a far higher rate limit.
        What: Tests that a configured token selects PAT authentication.
        How: Builds an endpoint from a config with a token.
        """
        config = Config(
            github={"token": "ghp_example", "base_url": "https://ghe.example.com/api/v3"},
            retry={"max_attempts": 3, "initial_delay": 0.5, "max_delay": 4},
        )

        endpoint = create_endpoint(config, AiohttpTransport())

        assert isinstance(endpoint.auth, PersonalAccessTokenAuth)
        assert endpoint.config.base_url == "https://ghe.example.com/api/v3"
        assert isinstance(endpoint.transport, RetryTransport)
        assert endpoint.transport.policy.max_attempts == 3
        assert endpoint.transport.policy.initial_delay == 0.5
        assert endpoint.transport.policy.max_delay == 4

    def test_no_token_is_anonymous(self) -> None:
        """Test a missing token selects anonymous access."""
        endpoint = create_endpoint(Config(), AiohttpTransport())

        assert isinstance(endpoint.auth, AnonymousAuth)


class TestCreateOrchestrator:
    """Test orchestrator wiring."""

    def test_without_cache(self) -> None:
        """Test fetch settings reach a plain orchestrator."""
        config = Config(
            github={"per_page": 30},
            fetch={"timeout": 45, "required_checks": False, "collaborators": False},
        )

        orchestrator = create_orchestrator(config, CannedEndpoint())

        assert type(orchestrator) is FetchOrchestrator
        assert orchestrator.per_page == 30
        assert orchestrator.timeout == 45
        assert orchestrator.required_checks is False
        assert orchestrator.collaborators is False

    def test_with_cache(self, tmp_path: Path) -> None:
        """Test a cache selects the caching orchestrator."""
        cache = ResponseCache(tmp_path)

        orchestrator = create_orchestrator(Config(), CannedEndpoint(), cache)

        assert isinstance(orchestrator, CacheOrchestrator)
        assert orchestrator.cache is cache


class TestTimelineClient:
    """Test TimelineClient lifecycle."""

    @pytest.mark.asyncio
    async def test_client_with_cache(self, tmp_path: Path) -> None:
        """
        Why: The client owns the session and the sweep task.
        What: Tests that entering starts the sweep and leaving stops both.
        How: Uses the client as a context manager with a tmp_path cache.
        """
        config = Config(cache={"directory": str(tmp_path / "cache")})

        async with TimelineClient(config) as client:
            assert isinstance(client.orchestrator, CacheOrchestrator)
            assert client.cache is not None
            assert client.cache._sweep_task is not None

        assert client.cache._sweep_task is None
        assert client.transport._session is None

    @pytest.mark.asyncio
    async def test_client_without_cache(self) -> None:
        """Test disabling the cache gives a plain orchestrator."""
        client = TimelineClient(Config(cache={"enabled": False}))

        assert client.cache is None
        assert type(client.orchestrator) is FetchOrchestrator
        await client.close()

    @pytest.mark.asyncio
    async def test_client_applies_log_level(self) -> None:
        """
        Why: system.log_level is the only way a config file sets verbosity.
        What: Tests that building a client configures logging at that level.
        How: Patches configure_logging where the factory imports it.
        """
        config = Config(cache={"enabled": False}, system={"log_level": "DEBUG"})

        with patch("prtimeline.factory.configure_logging") as mock_configure:
            client = TimelineClient(config)

        mock_configure.assert_called_once_with("DEBUG")
        await client.close()

    @pytest.mark.asyncio
    async def test_pull_request_delegates(self) -> None:
        """Test fetches are passed through to the orchestrator."""
        client = TimelineClient(Config(cache={"enabled": False}))
        client.orchestrator.pull_request = AsyncMock(return_value="data")  # type: ignore[method-assign]

        result = await client.pull_request("acme", "widgets", 7, timeout=10)

        assert result == "data"
        client.orchestrator.pull_request.assert_awaited_once_with(
            "acme", "widgets", 7, reference_time=None, timeout=10
        )
        await client.close()


class TestConfigureLogging:
    """Test logging setup."""

    def test_configures_root_logger(self) -> None:
        """Test the level and format are passed to basicConfig."""
        with patch("prtimeline.logging_config.logging.basicConfig") as mock_basic:
            configure_logging("debug")

        mock_basic.assert_called_once_with(level=logging.DEBUG, format=LOG_FORMAT)

    def test_unknown_level(self) -> None:
        """Test unknown level names are rejected."""
        with pytest.raises(ValueError, match="VERBOSE"):
            configure_logging("VERBOSE")
