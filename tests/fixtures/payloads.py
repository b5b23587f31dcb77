"""
Canned GitHub REST payloads.

Every builder returns a fresh, realistic record for pull request
``acme/widgets#7``; keyword overrides replace top-level keys.
"""

from datetime import UTC, datetime
from typing import Any

OWNER = "acme"
REPO = "widgets"
NUMBER = 7
HEAD_SHA = "abc123"
BASE_REF = "main"

PR_PATH = f"/repos/{OWNER}/{REPO}/pulls/{NUMBER}"
COMMITS_PATH = f"/repos/{OWNER}/{REPO}/pulls/{NUMBER}/commits"
COMMENTS_PATH = f"/repos/{OWNER}/{REPO}/issues/{NUMBER}/comments"
REVIEWS_PATH = f"/repos/{OWNER}/{REPO}/pulls/{NUMBER}/reviews"
REVIEW_COMMENTS_PATH = f"/repos/{OWNER}/{REPO}/pulls/{NUMBER}/comments"
TIMELINE_PATH = f"/repos/{OWNER}/{REPO}/issues/{NUMBER}/timeline"
STATUSES_PATH = f"/repos/{OWNER}/{REPO}/commits/{HEAD_SHA}/statuses"
CHECK_RUNS_PATH = f"/repos/{OWNER}/{REPO}/commits/{HEAD_SHA}/check-runs"
REQUIRED_CHECKS_PATH = (
    f"/repos/{OWNER}/{REPO}/branches/{BASE_REF}/protection/required_status_checks"
)
COLLABORATORS_PATH = f"/repos/{OWNER}/{REPO}/collaborators"

RESOURCE_PATHS = (
    COMMITS_PATH,
    COMMENTS_PATH,
    REVIEWS_PATH,
    REVIEW_COMMENTS_PATH,
    TIMELINE_PATH,
    STATUSES_PATH,
    CHECK_RUNS_PATH,
)


def utc(day: int, hour: int = 0, minute: int = 0) -> datetime:
    """UTC timestamp in January 2024."""
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


def iso(day: int, hour: int = 0, minute: int = 0) -> str:
    """GitHub-style ``Z`` timestamp in January 2024."""
    return utc(day, hour, minute).strftime("%Y-%m-%dT%H:%M:%SZ")


def user(login: str, account_type: str = "User") -> dict[str, Any]:
    return {"login": login, "type": account_type}


def pull_request_payload(**overrides: Any) -> dict[str, Any]:
    """Open pull request by alice, a MEMBER."""
    payload: dict[str, Any] = {
        "number": NUMBER,
        "title": "Add widget caching",
        "body": "Caches widgets between requests.",
        "state": "open",
        "draft": False,
        "merged": False,
        "mergeable": True,
        "mergeable_state": "clean",
        "created_at": iso(1, 10),
        "updated_at": iso(3, 12),
        "closed_at": None,
        "merged_at": None,
        "user": user("alice"),
        "author_association": "MEMBER",
        "merged_by": None,
        "additions": 120,
        "deletions": 30,
        "changed_files": 4,
        "head": {"sha": HEAD_SHA, "ref": "feature/cache"},
        "base": {"sha": "def456", "ref": BASE_REF},
    }
    payload.update(overrides)
    return payload


def commit_payload(sha: str, login: str, date: str, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "sha": sha,
        "author": user(login),
        "commit": {
            "message": f"Commit {sha}",
            "author": {"name": login.title(), "date": date},
        },
    }
    payload.update(overrides)
    return payload


def comment_payload(
    login: str, body: str, created_at: str, association: str = "NONE"
) -> dict[str, Any]:
    return {
        "user": user(login),
        "body": body,
        "created_at": created_at,
        "author_association": association,
    }


def review_payload(
    login: str, state: str | None, submitted_at: str, association: str = "NONE"
) -> dict[str, Any]:
    return {
        "user": user(login),
        "body": "",
        "state": state,
        "submitted_at": submitted_at,
        "author_association": association,
    }


def timeline_payload(
    event: str, login: str, created_at: str, **target: Any
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "event": event,
        "actor": user(login),
        "created_at": created_at,
    }
    payload.update(target)
    return payload


def status_payload(
    context: str, state: str, created_at: str, description: str = ""
) -> dict[str, Any]:
    return {
        "context": context,
        "state": state,
        "description": description,
        "created_at": created_at,
        "creator": user("ci-bot"),
    }


def check_run_payload(name: str, **overrides: Any) -> dict[str, Any]:
    """Completed, successful check run from the GitHub Actions app."""
    payload: dict[str, Any] = {
        "name": name,
        "status": "completed",
        "conclusion": "success",
        "started_at": iso(2, 9),
        "completed_at": iso(2, 10),
        "app": {"slug": "github-actions", "owner": user("github", "Organization")},
        "output": {"title": f"{name} passed", "summary": ""},
    }
    payload.update(overrides)
    return payload


def collaborator_payload(login: str, role: str) -> dict[str, Any]:
    """Entry of the collaborators list with the given role name."""
    return {**user(login), "role_name": role, "permissions": {"pull": True}}


def populate(endpoint: Any) -> Any:
    """Register the pull request and one empty page per resource.

    Required checks and collaborators are left unregistered, so they read
    as a 404.
    """
    endpoint.add_pages(PR_PATH, pull_request_payload())
    for path in RESOURCE_PATHS:
        if path == CHECK_RUNS_PATH:
            endpoint.add_pages(path, {"total_count": 0, "check_runs": []})
        else:
            endpoint.add_pages(path, [])
    return endpoint


def replace_pages(endpoint: Any, path: str, *pages: Any) -> None:
    """Swap the pages registered for a path."""
    endpoint.pages.pop(path, None)
    endpoint.add_pages(path, *pages)
