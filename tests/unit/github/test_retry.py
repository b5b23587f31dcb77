"""
Unit tests for the retrying transport.

Why: Transient GitHub failures (connection drops, 429 and 5xx responses) are
     common on large pull requests and must not lose data, while client
     errors must fail immediately.

What: Tests RetryPolicy delays, status classification, body buffering and
      the RetryTransport attempt loop.

How: Wraps a mocked base transport and patches asyncio.sleep so backoff
     delays are recorded instead of waited for.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from prtimeline.github.exceptions import (
    GitHubConnectionError,
    GitHubRateLimitError,
    GitHubServerError,
)
from prtimeline.github.retry import (
    MAX_REQUEST_SIZE,
    RetryPolicy,
    RetryTransport,
    buffer_body,
    error_for_status,
    is_retryable_status,
)
from prtimeline.github.transport import Request, Response

URL = "https://api.github.com/repos/acme/widgets/pulls/7"


def no_wait_policy(max_attempts: int = 3) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=max_attempts, initial_delay=0.0, max_delay=0.0, max_jitter=0.0
    )


class TestRetryPolicy:
    """Test backoff computation."""

    def test_delay_grows_exponentially_and_caps(self) -> None:
        """
        Why: Backoff must spread retries out without waiting unboundedly.
        What: Tests delay_for without jitter.
        How: Compares delays for successive retries against the cap.
        """
        policy = RetryPolicy(initial_delay=1.0, max_delay=10.0, max_jitter=0.0)

        assert [policy.delay_for(n) for n in range(6)] == [1, 2, 4, 8, 10, 10]

    def test_delay_adds_bounded_jitter(self) -> None:
        """Test jitter stays within its bound."""
        policy = RetryPolicy(initial_delay=1.0, max_delay=120.0, max_jitter=0.5)

        for _ in range(20):
            assert 1.0 <= policy.delay_for(0) <= 1.5


class TestStatusClassification:
    """Test which responses are retried."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status: int) -> None:
        """Test 429 and 5xx are retryable."""
        assert is_retryable_status(status)

    @pytest.mark.parametrize("status", [200, 304, 400, 401, 403, 404, 422])
    def test_non_retryable_statuses(self, status: int) -> None:
        """Test success and other 4xx are not retryable."""
        assert not is_retryable_status(status)

    def test_error_for_429_reads_rate_limit_headers(self) -> None:
        """Test a 429 response becomes a rate limit error with reset info."""
        response = Response(
            status=429,
            headers={
                "x-ratelimit-reset": "1700000000",
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Limit": "5000",
            },
            body=b'{"message": "API rate limit exceeded"}',
        )

        error = error_for_status(response, URL)

        assert isinstance(error, GitHubRateLimitError)
        assert error.reset_time == 1700000000
        assert error.limit == 5000
        assert error.status_code == 429
        assert "API rate limit exceeded" in str(error)

    def test_error_for_5xx_is_server_error(self) -> None:
        """Test a 5xx response becomes a server error."""
        error = error_for_status(Response(status=502, body=b"<html>"), URL)

        assert isinstance(error, GitHubServerError)
        assert error.status_code == 502
        assert "HTTP 502" in str(error)


class TestBufferBody:
    """Test request body buffering."""

    @pytest.mark.asyncio
    async def test_buffers_async_iterable(self) -> None:
        """
        Why: A streamed body can only be read once but may be sent many times.
        What: Tests that chunks are joined into one bytes object.
        How: Buffers an async generator of two chunks.
        """

        async def chunks():
            yield b'{"query": '
            yield b'"x"}'

        assert await buffer_body(chunks()) == b'{"query": "x"}'

    @pytest.mark.asyncio
    async def test_buffers_str_and_none(self) -> None:
        """Test strings are encoded and a missing body stays missing."""
        assert await buffer_body("abc") == b"abc"
        assert await buffer_body(None) is None

    @pytest.mark.asyncio
    async def test_rejects_oversized_body(self) -> None:
        """Test bodies above the size limit are rejected."""
        with pytest.raises(ValueError, match="exceeds"):
            await buffer_body(b"x" * (MAX_REQUEST_SIZE + 1))


class TestRetryTransport:
    """Test RetryTransport attempt loop."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self) -> None:
        """Test a successful response is returned without retrying."""
        base = Mock()
        base.send = AsyncMock(return_value=Response(status=200, body=b"{}"))
        transport = RetryTransport(base, no_wait_policy())

        response = await transport.send(Request(method="GET", url=URL))

        assert response.status == 200
        assert base.send.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_server_error_then_succeeds(self) -> None:
        """
        Why: A 502 from GitHub is usually gone on the next attempt.
        What: Tests that a retryable status is retried until success.
        How: Base transport answers 502, 503, then 200; sleeps are recorded.
        """
        base = Mock()
        base.send = AsyncMock(
            side_effect=[
                Response(status=502),
                Response(status=503),
                Response(status=200, body=b"[]"),
            ]
        )
        policy = RetryPolicy(
            max_attempts=5, initial_delay=1.0, max_delay=120.0, max_jitter=0.0
        )
        transport = RetryTransport(base, policy)

        with patch(
            "prtimeline.github.retry.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            response = await transport.send(Request(method="GET", url=URL))

        assert response.status == 200
        assert base.send.call_count == 3
        assert [call.args[0] for call in mock_sleep.call_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_retries_connection_error(self) -> None:
        """Test raised transient errors are retried."""
        base = Mock()
        base.send = AsyncMock(
            side_effect=[
                GitHubConnectionError("reset by peer"),
                Response(status=200, body=b"{}"),
            ]
        )
        transport = RetryTransport(base, no_wait_policy())

        response = await transport.send(Request(method="GET", url=URL))

        assert response.status == 200
        assert base.send.call_count == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        """
        Why: A 404 will not go away by asking again.
        What: Tests that non-retryable statuses are returned immediately.
        How: Base transport answers 404 once.
        """
        base = Mock()
        base.send = AsyncMock(return_value=Response(status=404, body=b"{}"))
        transport = RetryTransport(base, no_wait_policy())

        response = await transport.send(Request(method="GET", url=URL))

        assert response.status == 404
        assert base.send.call_count == 1

    @pytest.mark.asyncio
    async def test_raises_last_error_after_exhaustion(self) -> None:
        """Test the last observed error is raised once attempts run out."""
        base = Mock()
        base.send = AsyncMock(
            side_effect=[
                Response(status=500),
                Response(status=503),
                Response(status=429, body=b'{"message": "slow down"}'),
            ]
        )
        transport = RetryTransport(base, no_wait_policy(max_attempts=3))

        with pytest.raises(GitHubRateLimitError, match="slow down"):
            await transport.send(Request(method="GET", url=URL))

        assert base.send.call_count == 3

    @pytest.mark.asyncio
    async def test_body_replayed_on_every_attempt(self) -> None:
        """Test a streamed body is buffered once and sent verbatim each time."""

        async def chunks():
            yield b"payload"

        base = Mock()
        base.send = AsyncMock(
            side_effect=[Response(status=500), Response(status=200)]
        )
        transport = RetryTransport(base, no_wait_policy())

        await transport.send(Request(method="POST", url=URL, body=chunks()))

        sent_bodies = [call.args[0].body for call in base.send.call_args_list]
        assert sent_bodies == [b"payload", b"payload"]
