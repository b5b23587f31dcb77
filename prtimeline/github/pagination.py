"""Paging helpers for GitHub list endpoints.

GitHub pages list results and advertises the following page in the ``Link``
response header. The endpoint hands pages out as opaque ``Page`` values; the
decoders here turn a page body into records.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

from .exceptions import GitHubDecodeError

# One entry of a Link header: <https://...?page=2>; rel="next"
_LINK_ENTRY = re.compile(r'<(?P<url>[^>]+)>;\s*rel="(?P<rel>[^"]+)"')

MAX_PER_PAGE = 100


class LinkHeader:
    """Relations advertised by a ``Link`` response header, keyed by ``rel``."""

    def __init__(self, link_header: str | None = None):
        self.links: dict[str, str] = {
            m["rel"]: m["url"] for m in _LINK_ENTRY.finditer(link_header or "")
        }

    @property
    def next_url(self) -> str | None:
        """URL of the following page, absent on the last page."""
        return self.links.get("next")

    @property
    def has_next(self) -> bool:
        return self.next_url is not None


@dataclass(frozen=True)
class Page:
    """One page of a paginated read.

    ``next_page`` is an opaque indicator that can be handed back to the
    endpoint's ``read``. ``None`` means this page is the last one.
    """

    body: bytes
    next_page: str | None = None

    @property
    def is_last(self) -> bool:
        """Check if there are no further pages."""
        return self.next_page is None


def paginated_path(path: str, per_page: int = MAX_PER_PAGE) -> str:
    """Append the page size to an API path."""
    per_page = max(1, min(per_page, MAX_PER_PAGE))
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}per_page={per_page}"


def decode_json(body: bytes, source: str) -> Any:
    """Decode a JSON payload.

    Raises:
        GitHubDecodeError: If the payload is not valid JSON
    """
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise GitHubDecodeError(f"Malformed JSON payload from {source}: {e}") from e


def decode_items(body: bytes, source: str, field: str | None = None) -> list[dict[str, Any]]:
    """Decode one page of records.

    Most list endpoints return a bare JSON array. A few (check runs) wrap the
    array in an object, in which case ``field`` names the member to unwrap.

    Raises:
        GitHubDecodeError: If the payload is malformed or has the wrong shape
    """
    data = decode_json(body, source)
    if field is not None:
        if not isinstance(data, dict):
            raise GitHubDecodeError(
                f"Expected an object with '{field}' from {source}, "
                f"got {type(data).__name__}"
            )
        data = data.get(field) or []

    if not isinstance(data, list):
        raise GitHubDecodeError(
            f"Expected a list of records from {source}, got {type(data).__name__}"
        )

    return [item for item in data if isinstance(item, dict)]
