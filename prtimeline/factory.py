"""Wiring of transports, endpoint, cache and orchestrator from configuration."""

import logging
from datetime import datetime
from typing import Any

from .cache.response_cache import ResponseCache
from .config.models import Config
from .events.models import PullRequestData
from .events.normalizer import EventNormalizer
from .events.patterns import QuestionPatterns
from .github.auth import AnonymousAuth, AuthProvider, PersonalAccessTokenAuth
from .github.endpoint import GitHubEndpoint, GitHubEndpointConfig, RemoteEndpoint
from .github.retry import RetryPolicy, RetryTransport
from .github.transport import AiohttpTransport
from .logging_config import configure_logging
from .timeline.cached import CacheOrchestrator
from .timeline.fetcher import FetchOrchestrator

logger = logging.getLogger(__name__)


def create_endpoint(config: Config, transport: AiohttpTransport) -> GitHubEndpoint:
    """Build the GitHub endpoint with retries on top of ``transport``."""
    policy = RetryPolicy(
        max_attempts=config.retry.max_attempts,
        initial_delay=config.retry.initial_delay,
        max_delay=config.retry.max_delay,
        max_jitter=config.retry.max_jitter,
    )
    auth: AuthProvider = (
        PersonalAccessTokenAuth(config.github.token)
        if config.github.token.strip()
        else AnonymousAuth()
    )
    return GitHubEndpoint(
        RetryTransport(transport, policy),
        auth,
        GitHubEndpointConfig(base_url=config.github.base_url),
    )


def create_orchestrator(
    config: Config,
    endpoint: RemoteEndpoint,
    cache: ResponseCache | None = None,
) -> FetchOrchestrator:
    """Build an orchestrator, caching when a cache is given.

    One question phrase table is compiled here and shared by the normalizer.
    """
    options: dict[str, Any] = {
        "normalizer": EventNormalizer(QuestionPatterns()),
        "per_page": config.github.per_page,
        "timeout": config.fetch.timeout,
        "required_checks": config.fetch.required_checks,
        "collaborators": config.fetch.collaborators,
    }
    if cache is not None:
        return CacheOrchestrator(endpoint, cache, **options)
    return FetchOrchestrator(endpoint, **options)


class TimelineClient:
    """Owns the network and cache resources behind an orchestrator."""

    def __init__(self, config: Config | None = None) -> None:
        """Initialize client.

        Applies ``system.log_level`` through ``configure_logging``, which
        leaves logging alone if the application already configured it.

        Args:
            config: Configuration, defaults when omitted
        """
        self.config = config or Config()
        configure_logging(self.config.system.log_level.value)
        self.transport = AiohttpTransport(
            timeout=self.config.github.timeout,
            user_agent=self.config.github.user_agent,
        )
        self.cache: ResponseCache | None = None
        if self.config.cache.enabled:
            self.cache = ResponseCache(
                self.config.cache.path,
                retention=self.config.cache.retention,
                sweep_interval=self.config.cache.sweep_interval,
            )
        self.endpoint = create_endpoint(self.config, self.transport)
        self.orchestrator = create_orchestrator(self.config, self.endpoint, self.cache)

    async def __aenter__(self) -> "TimelineClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def start(self) -> None:
        """Start the cache's background sweep."""
        if self.cache is not None:
            await self.cache.start()

    async def close(self) -> None:
        """Stop the sweep and close the HTTP session."""
        if self.cache is not None:
            await self.cache.close()
        await self.transport.close()

    async def pull_request(
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        reference_time: datetime | None = None,
        timeout: float | None = None,
    ) -> PullRequestData:
        """Fetch a pull request timeline. See ``FetchOrchestrator.pull_request``."""
        return await self.orchestrator.pull_request(
            owner, repo, number, reference_time=reference_time, timeout=timeout
        )
