"""Normalization of raw GitHub records into timeline events.

Every method maps one raw JSON record (already decoded into a dict) to at
most one ``Event``. Methods are pure: the same record always produces the
same event, and records that carry nothing worth reporting produce ``None``.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from .models import (
    MAX_BODY_LENGTH,
    MISSING_TIMESTAMP,
    UNKNOWN_ACTOR,
    Event,
    EventKind,
    PullRequest,
    WriteAccess,
    parse_timestamp,
)
from .patterns import QuestionPatterns, extract_mentions, is_bot

logger = logging.getLogger(__name__)

TIMELINE_KINDS = {
    "assigned": EventKind.ASSIGNED,
    "unassigned": EventKind.UNASSIGNED,
    "labeled": EventKind.LABELED,
    "unlabeled": EventKind.UNLABELED,
    "milestoned": EventKind.MILESTONED,
    "demilestoned": EventKind.DEMILESTONED,
    "review_requested": EventKind.REVIEW_REQUESTED,
    "review_request_removed": EventKind.REVIEW_REQUEST_REMOVED,
    "reopened": EventKind.PR_REOPENED,
}

ASSOCIATION_ACCESS = {
    "OWNER": WriteAccess.DEFINITELY,
    "COLLABORATOR": WriteAccess.DEFINITELY,
    "MEMBER": WriteAccess.LIKELY,
}

# Collaborator roles that can push to the repository
WRITE_ROLES = frozenset({"admin", "maintain", "write"})

# Permission flags in decreasing order, for payloads without role_name
_PERMISSION_ROLES = (
    ("admin", "admin"),
    ("maintain", "maintain"),
    ("push", "write"),
    ("triage", "triage"),
    ("pull", "read"),
)

PENDING_CHECK_STATUSES = ("queued", "in_progress")


def write_access_from_association(association: str | None) -> WriteAccess:
    """Estimate write access from GitHub's ``author_association``."""
    return ASSOCIATION_ACCESS.get(association or "", WriteAccess.UNKNOWN)


def collaborator_role(record: dict[str, Any]) -> str:
    """Get a collaborator's role from a ``/collaborators`` entry."""
    role = record.get("role_name")
    if isinstance(role, str) and role:
        return role.lower()
    permissions = record.get("permissions") or {}
    for flag, name in _PERMISSION_ROLES:
        if permissions.get(flag):
            return name
    return "none"


def truncate(text: str | None) -> str:
    """Cut free text to ``MAX_BODY_LENGTH`` characters."""
    if not text:
        return ""
    return text[:MAX_BODY_LENGTH]


def _account(record: dict[str, Any], key: str) -> dict[str, Any] | None:
    account = record.get(key)
    return account if isinstance(account, dict) and account.get("login") else None


def _actor(record: dict[str, Any], key: str = "user") -> tuple[str, bool]:
    """Get (login, is_bot) for the account stored under ``key``."""
    account = _account(record, key)
    if account is None:
        return UNKNOWN_ACTOR, False
    login = account["login"]
    return login, is_bot(login, account.get("type"))


def _logins(accounts: Any) -> list[str]:
    return [
        account["login"]
        for account in accounts or []
        if isinstance(account, dict) and account.get("login")
    ]


def _names(items: Any) -> list[str]:
    return [
        item["name"]
        for item in items or []
        if isinstance(item, dict) and item.get("name")
    ]


def _timestamp(value: str | None) -> datetime:
    return parse_timestamp(value) or MISSING_TIMESTAMP


class EventNormalizer:
    """Stateless mapper from GitHub REST records to events.

    A normalizer may carry the repository's collaborator roles. With them,
    ``MEMBER`` associations resolve to a definite answer instead of
    ``LIKELY``.
    """

    def __init__(
        self,
        patterns: QuestionPatterns | None = None,
        collaborators: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize normalizer.

        Args:
            patterns: Question phrase table shared by all normalizers
            collaborators: Login -> role of the repository's collaborators,
                None when the list is unavailable
        """
        self.patterns = patterns or QuestionPatterns()
        self.collaborators = collaborators

    def with_collaborators(
        self, collaborators: Mapping[str, str] | None
    ) -> "EventNormalizer":
        """Get a normalizer sharing this one's patterns with other roles."""
        return EventNormalizer(self.patterns, collaborators)

    def write_access(self, association: str | None, login: str) -> WriteAccess:
        """Estimate an actor's write access.

        Organization members are only ``LIKELY`` writers unless the
        collaborator list says otherwise: a write role makes them
        ``DEFINITELY``, any other role or absence from the list ``UNKNOWN``.
        """
        if association == "MEMBER" and self.collaborators is not None:
            if self.collaborators.get(login) in WRITE_ROLES:
                return WriteAccess.DEFINITELY
            return WriteAccess.UNKNOWN
        return write_access_from_association(association)

    def _discussion(
        self, kind: EventKind, record: dict[str, Any], timestamp_field: str
    ) -> Event:
        body = truncate(record.get("body"))
        actor, bot = _actor(record)
        return Event(
            kind=kind,
            timestamp=_timestamp(record.get(timestamp_field)),
            actor=actor,
            bot=bot,
            body=body,
            targets=extract_mentions(body),
            question=self.patterns.is_question(body),
            write_access=self.write_access(record.get("author_association"), actor),
        )

    def commit(self, record: dict[str, Any]) -> Event | None:
        """Normalize an entry of ``/pulls/{n}/commits``."""
        commit = record.get("commit") or {}
        author = commit.get("author") or {}
        actor, bot = _actor(record, "author")
        if actor == UNKNOWN_ACTOR and author.get("name"):
            actor = author["name"]
        return Event(
            kind=EventKind.COMMIT,
            timestamp=_timestamp(author.get("date")),
            actor=actor,
            bot=bot,
            body=truncate(commit.get("message")),
            description=record.get("sha", ""),
        )

    def comment(self, record: dict[str, Any]) -> Event | None:
        """Normalize an issue comment."""
        return self._discussion(EventKind.COMMENT, record, "created_at")

    def review(self, record: dict[str, Any]) -> Event | None:
        """Normalize a review. Reviews without a state are drafts and dropped."""
        state = record.get("state")
        if not state:
            return None
        event = self._discussion(EventKind.REVIEW, record, "submitted_at")
        return replace(event, outcome=state.lower())

    def review_comment(self, record: dict[str, Any]) -> Event | None:
        """Normalize an inline review comment.

        GitHub reports a null ``position`` once the commented line is no
        longer part of the diff; such comments are marked outdated.
        """
        event = self._discussion(EventKind.REVIEW_COMMENT, record, "created_at")
        if "position" in record and record["position"] is None:
            return replace(event, outdated=True)
        return event

    def timeline(self, record: dict[str, Any]) -> Event | None:
        """Normalize an issue timeline entry.

        Unknown event types are dropped, as are targeted events whose target
        is missing.
        """
        kind = TIMELINE_KINDS.get(record.get("event", ""))
        if kind is None:
            return None

        target, target_is_bot = self._timeline_target(kind, record)
        if target is None and kind is not EventKind.PR_REOPENED:
            logger.debug(f"Dropping {kind.value} timeline event without a target")
            return None

        actor, bot = _actor(record, "actor")
        return Event(
            kind=kind,
            timestamp=_timestamp(record.get("created_at")),
            actor=actor,
            bot=bot,
            targets=(target,) if target else (),
            write_access=self.write_access(record.get("author_association"), actor),
            target_is_bot=target_is_bot,
        )

    @staticmethod
    def _timeline_target(
        kind: EventKind, record: dict[str, Any]
    ) -> tuple[str | None, bool]:
        """Get the event's target and whether it is a bot account."""
        if kind in (EventKind.ASSIGNED, EventKind.UNASSIGNED):
            assignee = _account(record, "assignee")
            if assignee is None:
                return None, False
            return assignee["login"], is_bot(assignee["login"], assignee.get("type"))
        if kind in (EventKind.LABELED, EventKind.UNLABELED):
            return (record.get("label") or {}).get("name") or None, False
        if kind in (EventKind.MILESTONED, EventKind.DEMILESTONED):
            return (record.get("milestone") or {}).get("title") or None, False
        if kind in (EventKind.REVIEW_REQUESTED, EventKind.REVIEW_REQUEST_REMOVED):
            reviewer = _account(record, "requested_reviewer") or _account(
                record, "reviewer"
            )
            if reviewer:
                login = reviewer["login"]
                return login, is_bot(login, reviewer.get("type"))
            return (record.get("requested_team") or {}).get("name") or None, False
        return None, False

    def status(self, record: dict[str, Any]) -> Event | None:
        """Normalize a commit status. The body holds the status context."""
        actor, bot = _actor(record, "creator")
        return Event(
            kind=EventKind.STATUS_CHECK,
            timestamp=_timestamp(record.get("created_at")),
            actor=actor,
            bot=bot,
            outcome=record.get("state", ""),
            body=record.get("context", ""),
            description=record.get("description") or "",
        )

    def check_run(self, record: dict[str, Any]) -> Event | None:
        """Normalize a check run.

        Completed runs report their conclusion, queued and running ones their
        status. Anything else is dropped.
        """
        status = record.get("status")
        if status == "completed" or record.get("completed_at"):
            outcome = record.get("conclusion") or ""
            timestamp = _timestamp(record.get("completed_at"))
        elif status in PENDING_CHECK_STATUSES:
            outcome = status
            timestamp = _timestamp(record.get("started_at"))
        else:
            return None

        app = record.get("app") or {}
        owner = _account(app, "owner")
        output = record.get("output") or {}
        return Event(
            kind=EventKind.CHECK_RUN,
            timestamp=timestamp,
            actor=owner["login"] if owner else UNKNOWN_ACTOR,
            # GitHub Apps are always bots
            bot=owner is not None,
            outcome=outcome,
            body=record.get("name", ""),
            description=truncate(output.get("title") or output.get("summary")),
        )

    def pull_request(self, record: dict[str, Any]) -> PullRequest:
        """Normalize the pull request's own metadata."""
        author, author_bot = _actor(record)
        merged_by, merged_by_bot = _actor(record, "merged_by")
        association = record.get("author_association") or ""
        return PullRequest(
            number=record.get("number", 0),
            title=record.get("title") or "",
            body=truncate(record.get("body")),
            state=record.get("state") or "open",
            draft=bool(record.get("draft")),
            merged=bool(record.get("merged")) or bool(record.get("merged_at")),
            mergeable=record.get("mergeable"),
            mergeable_state=record.get("mergeable_state") or "",
            created_at=_timestamp(record.get("created_at")),
            updated_at=_timestamp(record.get("updated_at")),
            closed_at=parse_timestamp(record.get("closed_at")),
            merged_at=parse_timestamp(record.get("merged_at")),
            author=author,
            author_bot=author_bot,
            author_association=association,
            author_write_access=self.write_access(association, author),
            merged_by="" if merged_by == UNKNOWN_ACTOR else merged_by,
            merged_by_bot=merged_by_bot,
            additions=record.get("additions") or 0,
            deletions=record.get("deletions") or 0,
            changed_files=record.get("changed_files") or 0,
            head_sha=(record.get("head") or {}).get("sha") or "",
            base_ref=(record.get("base") or {}).get("ref") or "",
            assignees=_logins(record.get("assignees")),
            requested_reviewers=_logins(record.get("requested_reviewers")),
            labels=_names(record.get("labels")),
        )

    def opened(self, pr: PullRequest) -> Event:
        """Build the synthetic event for the pull request being opened."""
        return Event(
            kind=EventKind.PR_OPENED,
            timestamp=pr.created_at,
            actor=pr.author,
            bot=pr.author_bot,
            body=pr.body,
            write_access=pr.author_write_access,
        )

    def closing(self, pr: PullRequest) -> Event | None:
        """Build the synthetic merged or closed event, if either happened.

        A merge takes priority over a plain close.
        """
        if pr.merged and pr.merged_at is not None:
            actor = pr.merged_by or UNKNOWN_ACTOR
            return Event(
                kind=EventKind.PR_MERGED,
                timestamp=pr.merged_at,
                actor=actor,
                bot=pr.merged_by_bot,
            )
        if pr.closed_at is not None:
            return Event(
                kind=EventKind.PR_CLOSED,
                timestamp=pr.closed_at,
                actor=pr.author,
                bot=pr.author_bot,
                write_access=pr.author_write_access,
            )
        return None
