"""Concurrent fetch of a pull request's full event history.

The pull request's own metadata is fetched first and must succeed: its head
commit and base branch determine the remaining requests. Every other
resource is then fetched by its own task. Tasks never cancel each other; a
failed task only loses its own events. Each task writes to a result record
that nothing else touches, and the collector merges the records in table
order once the tasks are done or the deadline passes.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from ..events.access import WriteAccessInferencer, participant_access
from ..events.models import (
    Event,
    EventKind,
    PullRequest,
    PullRequestData,
    WriteAccess,
    as_utc,
)
from ..events.normalizer import EventNormalizer, collaborator_role
from ..events.summary import compute_test_state, summarize_approvals, summarize_checks
from ..github.endpoint import RemoteEndpoint
from ..github.exceptions import (
    GitHubClientError,
    GitHubDecodeError,
    GitHubError,
    GitHubTimeoutError,
)
from ..github.pagination import MAX_PER_PAGE, decode_items, decode_json, paginated_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchContext:
    """Identifies the pull request a fetch is for."""

    owner: str
    repo: str
    number: int
    head_sha: str = ""
    base_ref: str = ""
    # The pull request's last-modified marker, used for cache freshness.
    updated_at: datetime | None = None

    @property
    def slug(self) -> str:
        """``owner/repo#number`` for log messages."""
        return f"{self.owner}/{self.repo}#{self.number}"

    def format(self, template: str) -> str:
        """Fill an API path template."""
        return template.format(
            owner=self.owner,
            repo=self.repo,
            number=self.number,
            head_sha=self.head_sha,
            base_ref=self.base_ref,
        )


@dataclass(frozen=True)
class ResourceSpec:
    """One paginated resource fetched per pull request."""

    name: str
    path_template: str
    normalize: Callable[[EventNormalizer, dict[str, Any]], Event | None]
    requires_head_sha: bool = False
    # Member holding the records when the response wraps them in an object.
    field: str | None = None

    def path(self, ctx: FetchContext) -> str:
        """API path for a pull request."""
        return ctx.format(self.path_template)


RESOURCES: tuple[ResourceSpec, ...] = (
    ResourceSpec(
        "commits",
        "/repos/{owner}/{repo}/pulls/{number}/commits",
        EventNormalizer.commit,
    ),
    ResourceSpec(
        "comments",
        "/repos/{owner}/{repo}/issues/{number}/comments",
        EventNormalizer.comment,
    ),
    ResourceSpec(
        "reviews",
        "/repos/{owner}/{repo}/pulls/{number}/reviews",
        EventNormalizer.review,
    ),
    ResourceSpec(
        "review_comments",
        "/repos/{owner}/{repo}/pulls/{number}/comments",
        EventNormalizer.review_comment,
    ),
    ResourceSpec(
        "timeline",
        "/repos/{owner}/{repo}/issues/{number}/timeline",
        EventNormalizer.timeline,
    ),
    ResourceSpec(
        "statuses",
        "/repos/{owner}/{repo}/commits/{head_sha}/statuses",
        EventNormalizer.status,
        requires_head_sha=True,
    ),
    ResourceSpec(
        "check_runs",
        "/repos/{owner}/{repo}/commits/{head_sha}/check-runs",
        EventNormalizer.check_run,
        requires_head_sha=True,
        field="check_runs",
    ),
)

PULL_REQUEST_PATH = "/repos/{owner}/{repo}/pulls/{number}"
REQUIRED_CHECKS_PATH = (
    "/repos/{owner}/{repo}/branches/{base_ref}/protection/required_status_checks"
)
COLLABORATORS_PATH = "/repos/{owner}/{repo}/collaborators"

CHECK_KINDS = frozenset({EventKind.STATUS_CHECK, EventKind.CHECK_RUN})


@dataclass
class SubFetchResult:
    """Outcome of one resource fetch, owned by the task running it."""

    spec: ResourceSpec
    events: list[Event] = field(default_factory=list)
    error: BaseException | None = None
    skipped: bool = False
    timed_out: bool = False

    @property
    def failed(self) -> bool:
        """Check whether the fetch ended in an error."""
        return self.error is not None


class FetchOrchestrator:
    """Fetch and merge everything that happened to a pull request."""

    def __init__(
        self,
        endpoint: RemoteEndpoint,
        normalizer: EventNormalizer | None = None,
        inferencer: WriteAccessInferencer | None = None,
        per_page: int = MAX_PER_PAGE,
        timeout: float | None = None,
        required_checks: bool = True,
        collaborators: bool = True,
        resources: tuple[ResourceSpec, ...] = RESOURCES,
    ) -> None:
        """Initialize orchestrator.

        Args:
            endpoint: Remote endpoint, real or canned
            normalizer: Event normalizer, sharing one question table
            inferencer: Write-access inferencer run over the merged events
            per_page: Records requested per page
            timeout: Default deadline in seconds for a whole fetch
            required_checks: Look up the base branch's required checks
            collaborators: Look up collaborator roles to settle the write
                access of organization members
            resources: Resource table, fetched concurrently in this order
        """
        self.endpoint = endpoint
        self.normalizer = normalizer or EventNormalizer()
        self.inferencer = inferencer or WriteAccessInferencer()
        self.per_page = per_page
        self.timeout = timeout
        self.required_checks = required_checks
        self.collaborators = collaborators
        self.resources = resources

    async def pull_request(
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        reference_time: datetime | None = None,
        timeout: float | None = None,
    ) -> PullRequestData:
        """Fetch a pull request and its complete, time-ordered history.

        Args:
            owner: Repository owner
            repo: Repository name
            number: Pull request number
            reference_time: Freshness boundary for cached data, now if omitted;
                a naive datetime is read as UTC
            timeout: Deadline in seconds, overriding the default

        Returns:
            PullRequestData with events sorted by timestamp

        Raises:
            GitHubError: If the pull request itself cannot be fetched, or if
                every other resource failed and none produced events
        """
        start_time = time.monotonic()
        reference_time = as_utc(reference_time) if reference_time else datetime.now(UTC)
        timeout = timeout if timeout is not None else self.timeout
        deadline = start_time + timeout if timeout is not None else None
        ctx = FetchContext(owner=owner, repo=repo, number=number)

        pr = await self._fetch_pull_request(ctx, reference_time, deadline)
        ctx = FetchContext(
            owner=owner,
            repo=repo,
            number=number,
            head_sha=pr.head_sha,
            base_ref=pr.base_ref,
            updated_at=pr.updated_at,
        )

        normalizer = self.normalizer
        if self.collaborators:
            roles = await self._collaborator_roles(ctx, deadline)
            if roles is not None:
                normalizer = self.normalizer.with_collaborators(roles)
                pr.author_write_access = normalizer.write_access(
                    pr.author_association, pr.author
                )

        results = [SubFetchResult(spec=spec) for spec in self.resources]
        task_results = {
            asyncio.create_task(
                self._run(result, ctx, normalizer), name=f"fetch-{result.spec.name}"
            ): result
            for result in results
        }
        tasks: set[asyncio.Task[Any]] = set(task_results)
        required_task: asyncio.Task[list[str]] | None = None
        if self.required_checks and pr.base_ref:
            required_task = asyncio.create_task(
                self._required_checks(ctx), name="fetch-required-checks"
            )
            tasks.add(required_task)

        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            _, pending = await asyncio.wait(tasks, timeout=remaining)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if pending:
            logger.warning(
                f"Deadline reached for {ctx.slug}, cancelling {len(pending)} fetches"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                if task in task_results:
                    # Pages read before the deadline are kept.
                    result = task_results[task]
                    result.timed_out = True
                    result.error = GitHubTimeoutError(
                        f"Deadline reached while fetching {result.spec.name}"
                    )

        required: list[str] = []
        if (
            required_task is not None
            and required_task.done()
            and not required_task.cancelled()
        ):
            required = required_task.result()

        data = self._merge(pr, results, required)
        failed = sum(1 for result in results if result.failed)
        logger.info(
            f"Fetched {len(data.events)} events for {ctx.slug} "
            f"({len(results) - failed}/{len(results)} resources succeeded) "
            f"in {time.monotonic() - start_time:.2f}s"
        )
        return data

    async def _fetch_pull_request(
        self, ctx: FetchContext, reference_time: datetime, deadline: float | None
    ) -> PullRequest:
        """Fetch and normalize the mandatory pull request metadata.

        Raises:
            GitHubTimeoutError: If the deadline passes first
            GitHubDecodeError: If the payload is not a JSON object
        """
        fetch = self._pull_request_payload(ctx, reference_time)
        try:
            if deadline is None:
                payload = await fetch
            else:
                payload = await asyncio.wait_for(
                    fetch, timeout=max(0.0, deadline - time.monotonic())
                )
        except TimeoutError as e:
            raise GitHubTimeoutError(
                f"Deadline reached while fetching pull request {ctx.slug}"
            ) from e

        source = ctx.format(PULL_REQUEST_PATH)
        record = decode_json(payload, source)
        if not isinstance(record, dict):
            raise GitHubDecodeError(
                f"Expected an object from {source}, got {type(record).__name__}"
            )
        return self.normalizer.pull_request(record)

    async def _pull_request_payload(
        self, ctx: FetchContext, reference_time: datetime
    ) -> bytes:
        """Read the raw pull request payload."""
        page = await self.endpoint.read(ctx.format(PULL_REQUEST_PATH))
        return page.body

    async def _run(
        self, result: SubFetchResult, ctx: FetchContext, normalizer: EventNormalizer
    ) -> None:
        """Run one sub-fetch, capturing its failure in its result."""
        spec = result.spec
        if spec.requires_head_sha and not ctx.head_sha:
            logger.debug(f"No head commit for {ctx.slug}, skipping {spec.name}")
            result.skipped = True
            return

        try:
            await self._resource_events(spec, ctx, normalizer, result.events)
        except Exception as e:
            logger.error(f"Fetching {spec.name} for {ctx.slug} failed: {e}")
            result.error = e
            result.events = []
            return

        logger.debug(f"Fetched {len(result.events)} {spec.name} events for {ctx.slug}")

    async def _resource_events(
        self,
        spec: ResourceSpec,
        ctx: FetchContext,
        normalizer: EventNormalizer,
        sink: list[Event],
    ) -> None:
        """Read every page of a resource, normalizing records as pages arrive.

        Events are appended to ``sink`` page by page so that a cancelled
        fetch keeps the pages it already read.
        """
        path: str | None = paginated_path(spec.path(ctx), self.per_page)
        while path is not None:
            page = await self.endpoint.read(path)
            for record in decode_items(page.body, spec.name, spec.field):
                event = spec.normalize(normalizer, record)
                if event is not None:
                    sink.append(event)
            path = page.next_page

    async def _collaborator_roles(
        self, ctx: FetchContext, deadline: float | None
    ) -> dict[str, str] | None:
        """Look up collaborator roles; None when they cannot be had in time."""
        fetch = self._fetch_collaborators(ctx)
        try:
            if deadline is None:
                return await fetch
            return await asyncio.wait_for(
                fetch, timeout=max(0.0, deadline - time.monotonic())
            )
        except TimeoutError:
            logger.info(f"Collaborator lookup for {ctx.slug} hit the deadline")
            return None
        except GitHubError as e:
            logger.info(f"No collaborator roles for {ctx.slug}: {e}")
            return None

    async def _fetch_collaborators(self, ctx: FetchContext) -> dict[str, str] | None:
        """Read every page of the repository's collaborators.

        Listing collaborators needs push access. When the token lacks it
        GitHub answers 401, 403 or 404, and the roles are reported as
        unavailable (None) rather than as an error.

        Returns:
            Login -> role name, or None if the list is not visible
        """
        roles: dict[str, str] = {}
        path: str | None = paginated_path(
            ctx.format(COLLABORATORS_PATH), self.per_page
        )
        try:
            while path is not None:
                page = await self.endpoint.read(path)
                for record in decode_items(page.body, "collaborators"):
                    login = record.get("login")
                    if login:
                        roles[login] = collaborator_role(record)
                path = page.next_page
        except GitHubClientError as e:
            logger.info(f"Collaborators of {ctx.owner}/{ctx.repo} not visible: {e}")
            return None
        return roles

    async def _required_checks(self, ctx: FetchContext) -> list[str]:
        """Look up the base branch's required checks; empty on any failure."""
        try:
            return await self._fetch_required_checks(ctx)
        except GitHubError as e:
            logger.info(f"No required status checks for {ctx.slug}: {e}")
            return []

    async def _fetch_required_checks(self, ctx: FetchContext) -> list[str]:
        """Read the base branch's required status checks.

        Both the legacy ``contexts`` list and the newer ``checks`` objects
        are read; names are deduplicated keeping their first position.
        """
        path = ctx.format(REQUIRED_CHECKS_PATH)
        page = await self.endpoint.read(path)
        data = decode_json(page.body, path)
        if not isinstance(data, dict):
            raise GitHubDecodeError(f"Expected an object from {path}")

        names: dict[str, None] = {}
        for context in data.get("contexts") or []:
            if isinstance(context, str) and context:
                names.setdefault(context, None)
        for check in data.get("checks") or []:
            if isinstance(check, dict) and check.get("context"):
                names.setdefault(check["context"], None)
        return list(names)

    def _merge(
        self,
        pr: PullRequest,
        results: list[SubFetchResult],
        required: list[str],
    ) -> PullRequestData:
        """Merge sub-fetch results into the final, ordered timeline.

        Raises:
            GitHubError: The first failure in table order, if every
                sub-fetch failed and none produced events
        """
        attempted = [result for result in results if not result.skipped]
        errors = [result.error for result in attempted if result.error is not None]
        if (
            errors
            and len(errors) == len(attempted)
            and not any(result.events for result in attempted)
        ):
            logger.error(f"Every resource fetch failed for pull request #{pr.number}")
            raise errors[0]

        required_names = set(required)
        events = [self.normalizer.opened(pr)]
        for result in results:
            events.extend(
                replace(event, required=True)
                if event.kind in CHECK_KINDS and event.body in required_names
                else event
                for event in result.events
            )
        closing = self.normalizer.closing(pr)
        if closing is not None:
            events.append(closing)

        # sorted() is stable: ties keep merge order.
        events = sorted(events, key=lambda event: event.timestamp)

        self.inferencer.apply(events)
        if (
            pr.author_write_access is WriteAccess.LIKELY
            and pr.author in self.inferencer.confirmed_actors(events)
        ):
            pr.author_write_access = WriteAccess.DEFINITELY

        pr.check_summary = summarize_checks(events, required)
        pr.approval_summary = summarize_approvals(events)
        pr.test_state = compute_test_state(pr.check_summary)
        pr.participant_access = participant_access(pr, events)

        return PullRequestData(pull_request=pr, events=events)
