"""Fetch orchestration backed by the response cache.

The pull request's own metadata is cached with the wall-clock time it was
fetched as its freshness, so it is reused only for callers whose reference
time is not later than that fetch. Every other resource is cached with the
pull request's ``updated_at`` as freshness: it stays valid until the pull
request changes upstream.

Collaborator roles are repository-wide and change independently of any
pull request, so they are cached for a fixed time instead.
"""

import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from ..cache.base import make_key
from ..cache.exceptions import CacheError
from ..cache.response_cache import CacheEntry, ResponseCache
from ..events.models import Event
from ..events.normalizer import EventNormalizer
from ..github.endpoint import RemoteEndpoint
from .fetcher import (
    COLLABORATORS_PATH,
    REQUIRED_CHECKS_PATH,
    FetchContext,
    FetchOrchestrator,
    ResourceSpec,
)

logger = logging.getLogger(__name__)

# Collaborator lists carry no freshness marker, so they expire by age.
COLLABORATORS_TTL = timedelta(hours=4)


class CacheOrchestrator(FetchOrchestrator):
    """``FetchOrchestrator`` that consults a ``ResponseCache`` first.

    Cache problems never reach the caller: unreadable entries count as
    misses, and failed writes are logged while the fetched data is still
    returned.
    """

    def __init__(
        self, endpoint: RemoteEndpoint, cache: ResponseCache, **kwargs: Any
    ) -> None:
        """Initialize caching orchestrator.

        Args:
            endpoint: Remote endpoint, real or canned
            cache: Response cache
            **kwargs: Passed to ``FetchOrchestrator``
        """
        super().__init__(endpoint, **kwargs)
        self.cache = cache

    def _resource_key(self, name: str, ctx: FetchContext, path: str) -> str:
        return make_key(name, f"{ctx.owner}/{ctx.repo}/{path}")

    async def _lookup(self, key: str, reference_time: datetime | None) -> bytes | None:
        entry = await self.cache.get(key)
        if entry is None:
            return None
        if reference_time is not None and not entry.is_valid_for(reference_time):
            logger.debug(
                f"Stale cache entry {key}: {entry.upstream_freshness.isoformat()} "
                f"< {reference_time.isoformat()}"
            )
            return None
        return entry.payload

    async def _store(self, key: str, payload: bytes, freshness: datetime) -> None:
        try:
            await self.cache.put(
                key, CacheEntry(payload=payload, upstream_freshness=freshness)
            )
        except CacheError as e:
            logger.warning(f"Failed to cache entry {key}: {e}")

    async def _pull_request_payload(
        self, ctx: FetchContext, reference_time: datetime
    ) -> bytes:
        """Serve the pull request from cache if it was fetched late enough."""
        key = make_key("pr", ctx.owner, ctx.repo, ctx.number)
        payload = await self._lookup(key, reference_time)
        if payload is not None:
            logger.info(f"Cache hit for pull request {ctx.slug}")
            return payload

        logger.info(f"Cache miss for pull request {ctx.slug}")
        fetched_at = datetime.now(UTC)
        payload = await super()._pull_request_payload(ctx, reference_time)
        await self._store(key, payload, fetched_at)
        return payload

    async def _resource_events(
        self,
        spec: ResourceSpec,
        ctx: FetchContext,
        normalizer: EventNormalizer,
        sink: list[Event],
    ) -> None:
        """Serve a resource's events from cache while the pull request is unchanged."""
        key = self._resource_key(spec.name, ctx, spec.path(ctx))
        payload = await self._lookup(key, ctx.updated_at)
        if payload is not None:
            try:
                cached = [Event.from_dict(item) for item in json.loads(payload)]
            except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Corrupt cached {spec.name} for {ctx.slug}: {e}")
            else:
                logger.info(f"Cache hit for {spec.name} of {ctx.slug}")
                sink.extend(cached)
                return

        logger.info(f"Cache miss for {spec.name} of {ctx.slug}")
        start = len(sink)
        await super()._resource_events(spec, ctx, normalizer, sink)
        if ctx.updated_at is not None:
            serialized = json.dumps([event.to_dict() for event in sink[start:]])
            await self._store(key, serialized.encode("utf-8"), ctx.updated_at)

    async def _fetch_required_checks(self, ctx: FetchContext) -> list[str]:
        """Serve required checks from cache while the pull request is unchanged."""
        path = ctx.format(REQUIRED_CHECKS_PATH)
        key = self._resource_key("required_checks", ctx, path)
        payload = await self._lookup(key, ctx.updated_at)
        if payload is not None:
            try:
                names = json.loads(payload)
            except (UnicodeDecodeError, ValueError) as e:
                logger.warning(f"Corrupt cached required checks for {ctx.slug}: {e}")
            else:
                if isinstance(names, list):
                    return [str(name) for name in names]

        names = await super()._fetch_required_checks(ctx)
        if ctx.updated_at is not None:
            await self._store(key, json.dumps(names).encode("utf-8"), ctx.updated_at)
        return names


    async def _fetch_collaborators(self, ctx: FetchContext) -> dict[str, str] | None:
        """Serve collaborator roles from cache for ``COLLABORATORS_TTL``.

        An invisible list is cached too, so a token without push access
        does not ask again on every fetch.
        """
        key = self._resource_key("collaborators", ctx, ctx.format(COLLABORATORS_PATH))
        fetched_at = datetime.now(UTC)
        payload = await self._lookup(key, fetched_at - COLLABORATORS_TTL)
        if payload is not None:
            try:
                roles = json.loads(payload)
            except (UnicodeDecodeError, ValueError) as e:
                logger.warning(f"Corrupt cached collaborators for {ctx.slug}: {e}")
            else:
                if roles is None:
                    return None
                if isinstance(roles, dict):
                    return {str(login): str(role) for login, role in roles.items()}

        roles = await super()._fetch_collaborators(ctx)
        await self._store(key, json.dumps(roles).encode("utf-8"), fetched_at)
        return roles
