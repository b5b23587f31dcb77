"""Write-access inference from privileged actions."""

import logging
from collections.abc import Iterable, Sequence

from .models import UNKNOWN_ACTOR, Event, EventKind, PullRequest, WriteAccess

logger = logging.getLogger(__name__)

# Only accounts with write access can perform these.
PRIVILEGED_KINDS = frozenset(
    {
        EventKind.PR_MERGED,
        EventKind.LABELED,
        EventKind.UNLABELED,
        EventKind.ASSIGNED,
        EventKind.UNASSIGNED,
        EventKind.MILESTONED,
        EventKind.DEMILESTONED,
    }
)


class WriteAccessInferencer:
    """Upgrade ``LIKELY`` write access to ``DEFINITELY`` for proven actors.

    The first pass collects every actor that performed a privileged action;
    the second promotes that actor's ``LIKELY`` events. Running it again on
    its own output changes nothing.
    """

    def confirmed_actors(self, events: Iterable[Event]) -> set[str]:
        """Collect actors that performed a privileged action."""
        return {
            event.actor
            for event in events
            if event.kind in PRIVILEGED_KINDS and event.actor
        }

    def apply(self, events: Sequence[Event]) -> int:
        """Promote events in place.

        Returns:
            int: Number of events promoted
        """
        confirmed = self.confirmed_actors(events)
        promoted = 0
        for event in events:
            if event.write_access is WriteAccess.LIKELY and event.actor in confirmed:
                if event.promote_write_access():
                    promoted += 1

        if promoted:
            logger.debug(
                f"Promoted {promoted} events to definite write access "
                f"for {len(confirmed)} confirmed actors"
            )
        return promoted


def participant_access(
    pr: PullRequest, events: Iterable[Event]
) -> dict[str, WriteAccess]:
    """Map every participant to the highest write access seen for them.

    The author comes first, then assignees and requested reviewers, who
    start at ``UNKNOWN`` until an event of theirs says more. Event actors
    follow in event order.
    """
    access: dict[str, WriteAccess] = {}

    def record(login: str, level: WriteAccess) -> None:
        if not login or login == UNKNOWN_ACTOR:
            return
        current = access.get(login)
        if current is None or level.rank > current.rank:
            access[login] = level

    record(pr.author, pr.author_write_access)
    for login in (*pr.assignees, *pr.requested_reviewers):
        record(login, WriteAccess.UNKNOWN)
    for event in events:
        record(event.actor, event.write_access)
    return access
