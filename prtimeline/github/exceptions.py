"""Errors raised while talking to GitHub.

Everything derives from ``GitHubError``. Failures that may succeed on a
later attempt derive from ``TransientRemoteError``, which is what the retry
layer retries; 4xx responses derive from ``GitHubClientError`` and are never
retried.
"""

from typing import Any


class GitHubError(Exception):
    """Base exception for GitHub failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        """Initialize GitHub error.

        Args:
            message: Error message
            status_code: HTTP status, when a response was received
            response_data: Decoded error body
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}


class TransientRemoteError(GitHubError):
    """Failure worth retrying."""

    pass


class GitHubConnectionError(TransientRemoteError):
    """No response: DNS, refused or reset connection."""

    pass


class GitHubTimeoutError(TransientRemoteError):
    """A request, or a whole fetch, ran out of time."""

    pass


class GitHubRateLimitError(TransientRemoteError):
    """Primary or secondary rate limit hit."""

    def __init__(
        self,
        message: str,
        reset_time: int | None = None,
        remaining: int = 0,
        limit: int = 0,
        status_code: int | None = 429,
    ):
        """Initialize rate limit error.

        Args:
            message: Error message
            reset_time: Epoch seconds at which the window resets
            remaining: Requests left in the window
            limit: Window size
            status_code: 429, or 403 for limits GitHub reports that way
        """
        super().__init__(message, status_code)
        self.reset_time = reset_time
        self.remaining = remaining
        self.limit = limit


class GitHubServerError(TransientRemoteError):
    """5xx response."""

    pass


class GitHubClientError(GitHubError):
    """4xx response other than 429."""

    pass


class GitHubAuthenticationError(GitHubClientError):
    """401 or 403: bad credentials or missing permission."""

    pass


class GitHubNotFoundError(GitHubClientError):
    """404, also returned for private repositories without access."""

    pass


class GitHubValidationError(GitHubClientError):
    """422 response."""

    pass


class GitHubDecodeError(GitHubError):
    """Payload is not JSON or not shaped as expected."""

    pass
