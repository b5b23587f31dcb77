"""Check and review summaries computed from an event stream."""

from collections.abc import Iterable

from .models import (
    ApprovalSummary,
    CheckSummary,
    Event,
    EventKind,
    TestState,
    WriteAccess,
)

MISSING_CHECK_DESCRIPTION = "Expected - Waiting for status to be reported"

CHECK_KINDS = frozenset({EventKind.STATUS_CHECK, EventKind.CHECK_RUN})

SUCCESS_OUTCOMES = frozenset({"success"})
FAILING_OUTCOMES = frozenset({"failure", "error", "timed_out", "action_required"})
PENDING_OUTCOMES = frozenset({"pending", "queued", "in_progress", "waiting"})
NEUTRAL_OUTCOMES = frozenset({"neutral", "cancelled", "skipped", "stale"})


def summarize_checks(
    events: Iterable[Event], required: Iterable[str] = ()
) -> CheckSummary:
    """Bucket each check by its last reported outcome.

    One record is kept per check name: the last one in the order given, which
    is only the most recent one if the events are already sorted. Required
    checks that never reported are listed as pending. Outcomes outside the
    known buckets are ignored.
    """
    latest: dict[str, Event] = {}
    for event in events:
        if event.kind in CHECK_KINDS and event.body:
            latest[event.body] = event

    summary = CheckSummary()
    for name, event in latest.items():
        if event.outcome in SUCCESS_OUTCOMES:
            summary.success[name] = event.description
        elif event.outcome in FAILING_OUTCOMES:
            summary.failing[name] = event.description
        elif event.outcome in PENDING_OUTCOMES:
            summary.pending[name] = event.description
        elif event.outcome in NEUTRAL_OUTCOMES:
            summary.neutral[name] = event.description

    for name in required:
        if name not in latest:
            summary.pending[name] = MISSING_CHECK_DESCRIPTION

    return summary


def summarize_approvals(events: Iterable[Event]) -> ApprovalSummary:
    """Count the latest review of each reviewer."""
    latest: dict[str, Event] = {}
    for event in events:
        if event.kind is EventKind.REVIEW and event.outcome:
            latest[event.actor] = event

    with_access = without_access = changes_requested = 0
    for review in latest.values():
        if review.outcome == "approved":
            if review.write_access is WriteAccess.DEFINITELY:
                with_access += 1
            else:
                without_access += 1
        elif review.outcome == "changes_requested":
            changes_requested += 1

    return ApprovalSummary(
        approvals_with_write_access=with_access,
        approvals_without_confirmed_access=without_access,
        changes_requested=changes_requested,
    )


def compute_test_state(summary: CheckSummary) -> TestState:
    """Collapse a check summary into one state: failing > pending > passing."""
    if summary.failing:
        return TestState.FAILING
    if summary.pending:
        return TestState.PENDING
    if summary.success:
        return TestState.PASSING
    return TestState.NONE

