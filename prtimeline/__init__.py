"""prtimeline: the complete, ordered event history of a GitHub pull request."""

from .cache import CacheEntry, ResponseCache, make_key
from .config import Config, ConfigurationLoader, load_config
from .events import (
    Event,
    EventKind,
    EventNormalizer,
    PullRequest,
    PullRequestData,
    WriteAccess,
)
from .factory import TimelineClient, create_endpoint, create_orchestrator
from .github import CannedEndpoint, GitHubEndpoint, RemoteEndpoint, RetryTransport
from .logging_config import configure_logging
from .timeline import CacheOrchestrator, FetchOrchestrator

__version__ = "0.1.0"

__all__ = [
    "CacheEntry",
    "CacheOrchestrator",
    "CannedEndpoint",
    "Config",
    "ConfigurationLoader",
    "Event",
    "EventKind",
    "EventNormalizer",
    "FetchOrchestrator",
    "GitHubEndpoint",
    "PullRequest",
    "PullRequestData",
    "RemoteEndpoint",
    "ResponseCache",
    "RetryTransport",
    "TimelineClient",
    "configure_logging",
    "create_endpoint",
    "create_orchestrator",
    "load_config",
    "make_key",
]
