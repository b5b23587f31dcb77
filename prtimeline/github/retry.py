"""Retry wrapper for transports.

``RetryTransport`` retries transient failures (connection errors, 429 and
5xx responses) with capped exponential backoff plus random jitter. Only
idempotent calls should go through it: the request body, if any, is buffered
once and replayed verbatim on every attempt.
"""

import asyncio
import json
import logging
import random
from collections.abc import AsyncIterable
from dataclasses import dataclass, replace
from typing import Any

from .exceptions import (
    GitHubRateLimitError,
    GitHubServerError,
    TransientRemoteError,
)
from .transport import Request, Response, Transport

logger = logging.getLogger(__name__)

# Request bodies are API payloads, never uploads.
MAX_REQUEST_SIZE = 1024 * 1024


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters.

    Delay before retry ``n`` (zero-based) is
    ``min(initial_delay * 2**n, max_delay) + uniform(0, max_jitter)``.
    """

    max_attempts: int = 10
    initial_delay: float = 1.0
    max_delay: float = 120.0
    max_jitter: float = 1.0

    def delay_for(self, retry_number: int) -> float:
        """Compute the sleep before the given retry."""
        backoff = min(self.initial_delay * (2**retry_number), self.max_delay)
        jitter = random.uniform(0, self.max_jitter) if self.max_jitter > 0 else 0.0
        return backoff + jitter


def is_retryable_status(status: int) -> bool:
    """Check whether an HTTP status should be retried."""
    return status == 429 or 500 <= status < 600


def error_for_status(response: Response, url: str) -> TransientRemoteError:
    """Build the transient error that describes a retryable response."""
    message = _response_message(response)
    if response.status == 429:
        reset = response.header("X-RateLimit-Reset")
        return GitHubRateLimitError(
            f"Rate limited on {url}: {message}",
            reset_time=int(reset) if reset and reset.isdigit() else None,
            remaining=int(response.header("X-RateLimit-Remaining", "0") or 0),
            limit=int(response.header("X-RateLimit-Limit", "0") or 0),
        )
    return GitHubServerError(
        f"Server error {response.status} on {url}: {message}", response.status
    )


def _response_message(response: Response) -> str:
    try:
        data = json.loads(response.body)
    except (UnicodeDecodeError, ValueError):
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {response.status}"


async def buffer_body(body: Any) -> bytes | None:
    """Read a request body into memory once.

    Raises:
        ValueError: If the body exceeds ``MAX_REQUEST_SIZE``
    """
    if body is None:
        return None
    if isinstance(body, bytes | bytearray | memoryview):
        data = bytes(body)
    elif isinstance(body, str):
        data = body.encode("utf-8")
    elif isinstance(body, AsyncIterable):
        chunks = bytearray()
        async for chunk in body:
            chunks.extend(chunk)
            if len(chunks) > MAX_REQUEST_SIZE:
                break
        data = bytes(chunks)
    else:
        raise TypeError(f"Unsupported request body type: {type(body).__name__}")

    if len(data) > MAX_REQUEST_SIZE:
        raise ValueError(f"Request body exceeds {MAX_REQUEST_SIZE} bytes")
    return data


class RetryTransport:
    """Transport wrapper that retries transient failures."""

    def __init__(self, base: Transport, policy: RetryPolicy | None = None) -> None:
        """Initialize retry transport.

        Args:
            base: Transport that performs the actual request
            policy: Backoff parameters
        """
        self.base = base
        self.policy = policy or RetryPolicy()

    async def send(self, request: Request) -> Response:
        """Send a request, retrying transient failures.

        Non-retryable responses (including 4xx other than 429) are returned
        unchanged. After the last attempt the last observed error is raised.

        Raises:
            TransientRemoteError: When every attempt failed transiently
        """
        body = await buffer_body(request.body)
        attempts = max(1, self.policy.max_attempts)
        attempt = 0

        while True:
            attempt_request = replace(request, body=body)
            try:
                response = await self.base.send(attempt_request)
            except TransientRemoteError as e:
                last_error = e
            else:
                if not is_retryable_status(response.status):
                    return response
                last_error = error_for_status(response, request.url)

            if attempt + 1 >= attempts:
                logger.error(
                    f"{request.method} {request.url} failed after {attempts} attempts: "
                    f"{last_error}"
                )
                raise last_error

            delay = self.policy.delay_for(attempt)
            logger.warning(
                f"{request.method} {request.url} failed "
                f"(attempt {attempt + 1}/{attempts}), "
                f"retrying in {delay:.1f}s: {last_error}"
            )
            await asyncio.sleep(delay)
            attempt += 1
