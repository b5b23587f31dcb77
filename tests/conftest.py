"""
Test configuration and fixtures for prtimeline tests.

Provides a populated canned endpoint, payload factories and event builders
shared by unit tests across packages.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from prtimeline.events.models import Event, EventKind
from prtimeline.github.canned import CannedEndpoint
from tests.fixtures.payloads import populate, pull_request_payload, utc


@pytest.fixture
def pr_payload() -> Callable[..., dict[str, Any]]:
    """
    Factory for raw pull request records.

    Why: Most tests need a realistic pull request with one or two fields changed
    What: Returns ``pull_request_payload`` so tests can pass overrides
    How: Overrides replace top-level keys of the default record
    """
    return pull_request_payload


@pytest.fixture
def canned() -> CannedEndpoint:
    """
    Canned endpoint with an open pull request and empty resources.

    Why: Orchestrator tests should only register the pages they care about
    What: Serves the pull request record and one empty page per resource
    How: Required checks and collaborators are left unregistered, so they
         read as a 404
    """
    return populate(CannedEndpoint())


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """
    Factory for normalized events.

    Why: Summary and inference tests work on events, not raw records
    What: Builds an ``Event`` with sensible defaults
    How: Keyword arguments override the defaults
    """

    def factory(
        kind: EventKind = EventKind.COMMENT,
        actor: str = "alice",
        timestamp: datetime | None = None,
        **kwargs: Any,
    ) -> Event:
        return Event(kind=kind, timestamp=timestamp or utc(1), actor=actor, **kwargs)

    return factory
