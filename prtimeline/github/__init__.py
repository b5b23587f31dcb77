"""GitHub access layer: transport, retry, endpoints and errors."""

from .auth import AnonymousAuth, AuthProvider, AuthToken, PersonalAccessTokenAuth
from .canned import CannedEndpoint
from .endpoint import GitHubEndpoint, GitHubEndpointConfig, RemoteEndpoint
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubConnectionError,
    GitHubDecodeError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
    TransientRemoteError,
)
from .pagination import LinkHeader, Page
from .retry import RetryPolicy, RetryTransport
from .transport import AiohttpTransport, Request, Response, Transport

__all__ = [
    "AiohttpTransport",
    "AnonymousAuth",
    "AuthProvider",
    "AuthToken",
    "CannedEndpoint",
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubConnectionError",
    "GitHubDecodeError",
    "GitHubEndpoint",
    "GitHubEndpointConfig",
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubServerError",
    "GitHubTimeoutError",
    "GitHubValidationError",
    "LinkHeader",
    "Page",
    "PersonalAccessTokenAuth",
    "RemoteEndpoint",
    "Request",
    "Response",
    "RetryPolicy",
    "RetryTransport",
    "Transport",
]
