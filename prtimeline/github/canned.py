"""In-memory ``RemoteEndpoint`` serving canned pages.

Used by tests and for replaying recorded data offline. Pages are registered
per API path; the query string of a requested path is ignored except for the
``page`` parameter, which selects the page to serve.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlsplit

from .exceptions import GitHubError, GitHubNotFoundError
from .pagination import Page

logger = logging.getLogger(__name__)


@dataclass
class _Failure:
    error: GitHubError
    remaining: int | None


@dataclass
class CannedEndpoint:
    """Fake endpoint with canned responses and injectable failures."""

    pages: dict[str, list[bytes]] = field(default_factory=dict)
    query_results: list[dict[str, Any]] = field(default_factory=list)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    queries: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    _failures: dict[str, _Failure] = field(default_factory=dict, init=False, repr=False)

    def add_pages(self, path: str, *pages: Any) -> "CannedEndpoint":
        """Register pages for a path.

        Each page is either raw bytes or a JSON-serializable value.
        """
        bodies = self.pages.setdefault(path, [])
        for page in pages:
            if isinstance(page, bytes):
                bodies.append(page)
            else:
                bodies.append(json.dumps(page).encode("utf-8"))
        return self

    def add_query_result(self, data: dict[str, Any]) -> "CannedEndpoint":
        """Queue a result for the next ``query`` call."""
        self.query_results.append(data)
        return self

    def fail(
        self, path: str, error: GitHubError, times: int | None = None
    ) -> "CannedEndpoint":
        """Make reads of ``path`` raise ``error``.

        Args:
            path: API path without query string
            error: Exception to raise
            times: Number of reads that fail before pages are served again,
                every read fails when omitted
        """
        self._failures[path] = _Failure(error=error, remaining=times)
        return self

    def delay(self, path: str, seconds: float) -> "CannedEndpoint":
        """Make reads of ``path`` sleep before answering."""
        self.delays[path] = seconds
        return self

    def calls_for(self, path: str) -> list[str]:
        """Get recorded reads whose path component is ``path``."""
        return [call for call in self.calls if urlsplit(call).path == path]

    async def read(self, path: str) -> Page:
        """Serve a canned page.

        Raises:
            GitHubNotFoundError: If no pages were registered for the path
            GitHubError: Any injected failure
        """
        self.calls.append(path)
        parts = urlsplit(path)
        base = parts.path
        page_number = int(parse_qs(parts.query).get("page", ["1"])[0])

        if base in self.delays:
            await asyncio.sleep(self.delays[base])

        failure = self._failures.get(base)
        if failure is not None and failure.remaining != 0:
            if failure.remaining is not None:
                failure.remaining -= 1
            logger.debug(f"Injected failure for {path}: {failure.error}")
            raise failure.error

        bodies = self.pages.get(base)
        if bodies is None or not 1 <= page_number <= len(bodies):
            raise GitHubNotFoundError(f"No canned page for {path}", 404)

        next_page = f"{base}?page={page_number + 1}" if page_number < len(bodies) else None
        return Page(body=bodies[page_number - 1], next_page=next_page)

    async def query(
        self, query_text: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Return the next queued query result.

        Raises:
            GitHubNotFoundError: If no result is queued
        """
        self.queries.append((query_text, variables or {}))
        if not self.query_results:
            raise GitHubNotFoundError("No canned query result", 404)
        return self.query_results.pop(0)
