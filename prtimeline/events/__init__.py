"""Timeline event models, normalization and post-processing."""

from .access import PRIVILEGED_KINDS, WriteAccessInferencer
from .models import (
    ApprovalSummary,
    CheckSummary,
    Event,
    EventKind,
    PullRequest,
    PullRequestData,
    TestState,
    WriteAccess,
)
from .normalizer import EventNormalizer, write_access_from_association
from .patterns import QuestionPatterns, extract_mentions, is_bot
from .summary import (
    MISSING_CHECK_DESCRIPTION,
    compute_test_state,
    summarize_approvals,
    summarize_checks,
)

__all__ = [
    "MISSING_CHECK_DESCRIPTION",
    "PRIVILEGED_KINDS",
    "ApprovalSummary",
    "CheckSummary",
    "Event",
    "EventKind",
    "EventNormalizer",
    "PullRequest",
    "PullRequestData",
    "QuestionPatterns",
    "TestState",
    "WriteAccess",
    "WriteAccessInferencer",
    "compute_test_state",
    "extract_mentions",
    "is_bot",
    "summarize_approvals",
    "summarize_checks",
    "write_access_from_association",
]
