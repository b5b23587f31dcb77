"""Data models for pull request timelines.

An ``Event`` is one normalized occurrence in a pull request's history. All of
its fields are fixed when the normalizer creates it, except ``write_access``,
which the access inferencer may raise to ``DEFINITELY`` once.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Events whose source record carries no timestamp sort before everything else.
MISSING_TIMESTAMP = datetime.min.replace(tzinfo=UTC)

UNKNOWN_ACTOR = "unknown"

# Free text is cut to this many characters.
MAX_BODY_LENGTH = 256


class EventKind(str, Enum):
    """Closed set of event kinds."""

    COMMIT = "commit"
    COMMENT = "comment"
    REVIEW = "review"
    REVIEW_COMMENT = "review_comment"
    STATUS_CHECK = "status_check"
    CHECK_RUN = "check_run"
    CHECK_SUITE = "check_suite"
    PR_OPENED = "pr_opened"
    PR_CLOSED = "pr_closed"
    PR_MERGED = "pr_merged"
    PR_REOPENED = "pr_reopened"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    LABELED = "labeled"
    UNLABELED = "unlabeled"
    MILESTONED = "milestoned"
    DEMILESTONED = "demilestoned"
    REVIEW_REQUESTED = "review_requested"
    REVIEW_REQUEST_REMOVED = "review_request_removed"


class WriteAccess(str, Enum):
    """Confidence that an actor can write to the repository."""

    UNKNOWN = "unknown"
    LIKELY = "likely"
    DEFINITELY = "definitely"

    @property
    def rank(self) -> int:
        """Position in the unknown < likely < definitely ordering."""
        return _WRITE_ACCESS_RANK[self]


_WRITE_ACCESS_RANK = {
    WriteAccess.UNKNOWN: 0,
    WriteAccess.LIKELY: 1,
    WriteAccess.DEFINITELY: 2,
}


class TestState(str, Enum):
    """Overall CI state of a pull request."""

    __test__ = False

    NONE = "none"
    PASSING = "passing"
    PENDING = "pending"
    FAILING = "failing"


def as_utc(value: datetime) -> datetime:
    """Convert to UTC, reading a naive datetime as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Event:
    """One occurrence in a pull request's history."""

    kind: EventKind
    timestamp: datetime
    actor: str
    bot: bool = False
    outcome: str = ""
    body: str = ""
    targets: tuple[str, ...] = ()
    question: bool = False
    write_access: WriteAccess = WriteAccess.UNKNOWN
    description: str = ""
    # Check is required by the base branch protection
    required: bool = False
    # Review comment no longer applies to the current diff
    outdated: bool = False
    target_is_bot: bool = False

    def promote_write_access(self) -> bool:
        """Raise ``write_access`` to ``DEFINITELY``.

        Returns:
            bool: True if the level changed
        """
        if self.write_access is WriteAccess.DEFINITELY:
            return False
        object.__setattr__(self, "write_access", WriteAccess.DEFINITELY)
        return True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor,
            "bot": self.bot,
            "outcome": self.outcome,
            "body": self.body,
            "targets": list(self.targets),
            "question": self.question,
            "write_access": self.write_access.value,
            "description": self.description,
            "required": self.required,
            "outdated": self.outdated,
            "target_is_bot": self.target_is_bot,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        """Create event from dictionary.

        Raises:
            KeyError: If a required field is missing
            ValueError: If a field has an invalid value
        """
        return cls(
            kind=EventKind(data["kind"]),
            timestamp=as_utc(datetime.fromisoformat(data["timestamp"])),
            actor=data["actor"],
            bot=bool(data.get("bot", False)),
            outcome=data.get("outcome", ""),
            body=data.get("body", ""),
            targets=tuple(data.get("targets", ())),
            question=bool(data.get("question", False)),
            write_access=WriteAccess(data.get("write_access", WriteAccess.UNKNOWN)),
            description=data.get("description", ""),
            required=bool(data.get("required", False)),
            outdated=bool(data.get("outdated", False)),
            target_is_bot=bool(data.get("target_is_bot", False)),
        )


@dataclass(frozen=True)
class CheckSummary:
    """Deduplicated check states, each a check name -> description mapping."""

    success: dict[str, str] = field(default_factory=dict)
    failing: dict[str, str] = field(default_factory=dict)
    pending: dict[str, str] = field(default_factory=dict)
    neutral: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": dict(self.success),
            "failing": dict(self.failing),
            "pending": dict(self.pending),
            "neutral": dict(self.neutral),
        }


@dataclass(frozen=True)
class ApprovalSummary:
    """Review approvals and change requests, one per reviewer."""

    approvals_with_write_access: int = 0
    approvals_without_confirmed_access: int = 0
    changes_requested: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "approvals_with_write_access": self.approvals_with_write_access,
            "approvals_without_confirmed_access": self.approvals_without_confirmed_access,
            "changes_requested": self.changes_requested,
        }


@dataclass
class PullRequest:
    """Snapshot of a pull request's own metadata."""

    number: int
    title: str
    created_at: datetime
    updated_at: datetime
    author: str
    state: str = "open"
    body: str = ""
    draft: bool = False
    merged: bool = False
    mergeable: bool | None = None
    mergeable_state: str = ""
    closed_at: datetime | None = None
    merged_at: datetime | None = None
    author_bot: bool = False
    author_association: str = ""
    author_write_access: WriteAccess = WriteAccess.UNKNOWN
    merged_by: str = ""
    merged_by_bot: bool = False
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    head_sha: str = ""
    base_ref: str = ""
    assignees: list[str] = field(default_factory=list)
    requested_reviewers: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    # Computed from the event stream
    check_summary: CheckSummary | None = None
    approval_summary: ApprovalSummary | None = None
    test_state: TestState = TestState.NONE
    # Highest write access seen per participant
    participant_access: dict[str, WriteAccess] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "number": self.number,
            "title": self.title,
            "body": self.body,
            "state": self.state,
            "draft": self.draft,
            "merged": self.merged,
            "mergeable": self.mergeable,
            "mergeable_state": self.mergeable_state,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "closed_at": _format_timestamp(self.closed_at),
            "merged_at": _format_timestamp(self.merged_at),
            "author": self.author,
            "author_bot": self.author_bot,
            "author_association": self.author_association,
            "author_write_access": self.author_write_access.value,
            "merged_by": self.merged_by,
            "merged_by_bot": self.merged_by_bot,
            "additions": self.additions,
            "deletions": self.deletions,
            "changed_files": self.changed_files,
            "head_sha": self.head_sha,
            "base_ref": self.base_ref,
            "assignees": list(self.assignees),
            "requested_reviewers": list(self.requested_reviewers),
            "labels": list(self.labels),
            "check_summary": (
                self.check_summary.to_dict() if self.check_summary else None
            ),
            "approval_summary": (
                self.approval_summary.to_dict() if self.approval_summary else None
            ),
            "test_state": self.test_state.value,
            "participant_access": {
                login: access.value for login, access in self.participant_access.items()
            },
        }


@dataclass
class PullRequestData:
    """A pull request together with its ordered event history."""

    pull_request: PullRequest
    events: list[Event] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to one aggregate document."""
        return {
            "pull_request": self.pull_request.to_dict(),
            "events": [event.to_dict() for event in self.events],
        }

    def records(self) -> Iterator[dict[str, Any]]:
        """Yield discrete records: the pull request first, then each event."""
        yield {"record": "pull_request", **self.pull_request.to_dict()}
        for event in self.events:
            yield {"record": "event", **event.to_dict()}
