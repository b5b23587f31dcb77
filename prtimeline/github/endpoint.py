"""Network-backed access to the GitHub REST and GraphQL APIs."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urljoin

from .auth import AnonymousAuth, AuthProvider
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubValidationError,
)
from .pagination import LinkHeader, Page, decode_json
from .retry import error_for_status, is_retryable_status
from .transport import Request, Response, Transport

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[GitHubError]] = {
    401: GitHubAuthenticationError,
    403: GitHubAuthenticationError,
    404: GitHubNotFoundError,
    422: GitHubValidationError,
}


class RemoteEndpoint(Protocol):
    """Capability the fetch layer needs from the hosting platform."""

    async def read(self, path: str) -> Page:
        """Read one page of a paginated resource.

        ``path`` is either an API path or a next-page indicator returned by a
        previous call.
        """
        ...

    async def query(
        self, query_text: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a single bulk query and return its ``data`` member."""
        ...


@dataclass
class GitHubEndpointConfig:
    """Configuration for the GitHub endpoint."""

    base_url: str = "https://api.github.com"
    api_version: str = "2022-11-28"


class GitHubEndpoint:
    """``RemoteEndpoint`` that talks to GitHub over a ``Transport``."""

    def __init__(
        self,
        transport: Transport,
        auth: AuthProvider | None = None,
        config: GitHubEndpointConfig | None = None,
    ) -> None:
        """Initialize endpoint.

        Args:
            transport: Transport used for every request, usually a
                ``RetryTransport``
            auth: Authentication provider, anonymous when omitted
            config: Endpoint configuration
        """
        self.transport = transport
        self.auth = auth or AnonymousAuth()
        self.config = config or GitHubEndpointConfig()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return urljoin(self.config.base_url.rstrip("/") + "/", path.lstrip("/"))

    async def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.config.api_version,
        }
        token = await self.auth.get_token()
        headers.update(token.to_header())
        return headers

    async def read(self, path: str) -> Page:
        """Read one page and extract the next-page link.

        Raises:
            GitHubClientError: For 4xx responses
            TransientRemoteError: For failures the transport gave up on
        """
        url = self._url(path)
        response = await self.transport.send(
            Request(method="GET", url=url, headers=await self._headers())
        )
        if not response.ok:
            self._raise_for_status(response, url)

        link = LinkHeader(response.header("Link"))
        logger.debug(f"GET {url} -> {len(response.body)} bytes, has_next={link.has_next}")
        return Page(body=response.body, next_page=link.next_url)

    async def query(
        self, query_text: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """POST a GraphQL query.

        Raises:
            GitHubError: If the response carries GraphQL ``errors``
            GitHubDecodeError: If the response is not a JSON object
        """
        url = self._url("/graphql")
        headers = await self._headers()
        headers["Content-Type"] = "application/json"
        payload = json.dumps({"query": query_text, "variables": variables or {}})

        response = await self.transport.send(
            Request(
                method="POST", url=url, headers=headers, body=payload.encode("utf-8")
            )
        )
        if not response.ok:
            self._raise_for_status(response, url)

        data = decode_json(response.body, url)
        if not isinstance(data, dict):
            data = {"data": data}
        errors = data.get("errors")
        if errors:
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise GitHubError(f"GraphQL query failed: {messages}", response.status, data)

        result = data.get("data")
        return result if isinstance(result, dict) else {}

    def _raise_for_status(self, response: Response, url: str) -> None:
        """Raise the error matching a non-2xx response.

        Statuses the retry layer treats as transient map to the transient
        errors. Otherwise the JSON ``message`` is used when the body has one.
        A 403 whose message mentions the rate limit is a ``GitHubRateLimitError``.
        """
        status = response.status
        if is_retryable_status(status):
            raise error_for_status(response, url)

        try:
            detail = json.loads(response.body)
        except (UnicodeDecodeError, ValueError):
            detail = None
        if not isinstance(detail, dict):
            detail = {"message": response.body.decode("utf-8", "replace")}
        message = detail.get("message") or f"HTTP {status}"
        logger.warning(f"{status} from {url}: {message}")

        if status == 403 and "rate limit" in message.lower():
            reset = response.header("X-RateLimit-Reset")
            raise GitHubRateLimitError(
                message,
                reset_time=int(reset) if reset else None,
                remaining=int(response.header("X-RateLimit-Remaining", "0") or 0),
                limit=int(response.header("X-RateLimit-Limit", "0") or 0),
                status_code=status,
            )

        error_class = _STATUS_ERRORS.get(status)
        if error_class is None:
            error_class = GitHubClientError if 400 <= status < 500 else GitHubError
        raise error_class(message, status, detail)
