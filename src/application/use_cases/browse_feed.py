"""
Caller-facing feed operations: GetFeed, LoadMore, RefreshFeed.

Each caller session owns one FeedPaginator (and so one FeedState). The TTL
cache, ledger and agent resolver are shared by every session. Sessions left
idle for longer than ``session_idle_seconds`` are dropped.
"""
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog

from src.application.cache.ttl_cache import TTLCache
from src.application.errors import FeedSessionNotFoundError
from src.application.interfaces.listing_store import ListingStore
from src.application.services.agent_resolver import AgentResolver
from src.application.services.feed_paginator import DEFAULT_MAX_CANDIDATES, FeedPaginator
from src.application.services.sponsorship_ledger import SponsorshipLedger
from src.domain.entities.feed import FeedPage, FeedQuery, FeedSnapshot
from src.domain.enums.property import SearchMode

logger = structlog.get_logger(__name__)

DEFAULT_SESSION_IDLE_SECONDS = 1800.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GetFeedOutput:
    session_id: UUID
    page: FeedPage | None


class FeedSessions:
    """Registry of live feed sessions over shared feed components."""

    def __init__(
        self,
        listing_store: ListingStore,
        ledger: SponsorshipLedger,
        agent_resolver: AgentResolver,
        cache: TTLCache[FeedSnapshot],
        *,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        session_idle_seconds: float = DEFAULT_SESSION_IDLE_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
        session_clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._listing_store = listing_store
        self._ledger = ledger
        self._agent_resolver = agent_resolver
        self._cache = cache
        self._max_candidates = max_candidates
        self._clock = clock
        # Every access re-puts the paginator, so the TTL counts idle time
        self._sessions: TTLCache[FeedPaginator] = TTLCache(
            ttl_seconds=session_idle_seconds, clock=session_clock
        )

    @property
    def cache(self) -> TTLCache[FeedSnapshot]:
        return self._cache

    def open_sessions(self) -> int:
        """Number of sessions that have not gone idle."""
        self._sessions.sweep()
        return len(self._sessions)

    async def get_feed(
        self,
        mode: SearchMode,
        country: str | None = None,
        page_size: int = 20,
    ) -> GetFeedOutput:
        query = FeedQuery(mode=mode, country=country or None, page_size=page_size)
        paginator = FeedPaginator(
            query,
            listing_store=self._listing_store,
            ledger=self._ledger,
            agent_resolver=self._agent_resolver,
            cache=self._cache,
            max_candidates=self._max_candidates,
            clock=self._clock,
        )
        page = await paginator.initial_page()
        session_id = uuid4()
        # put() also sweeps sessions that went idle
        self._sessions.put(str(session_id), paginator)
        logger.info("feed_session_opened", session_id=str(session_id), key=query.cache_key)
        return GetFeedOutput(session_id=session_id, page=page)

    async def load_more(self, session_id: UUID) -> FeedPage | None:
        return await self._get(session_id).next_page()

    async def refresh_feed(self, session_id: UUID) -> FeedPage | None:
        return await self._get(session_id).reset()

    def paginator(self, session_id: UUID) -> FeedPaginator:
        return self._get(session_id)

    def close(self, session_id: UUID) -> None:
        key = str(session_id)
        paginator = self._sessions.get(key)
        self._sessions.invalidate(key)
        if paginator is not None:
            paginator.abandon()
            logger.info("feed_session_closed", session_id=key)

    def invalidate_all(self) -> None:
        """Forget every cached first page, e.g. after a sponsorship change."""
        self._cache.clear()
        logger.info("feed_cache_invalidated")

    def _get(self, session_id: UUID) -> FeedPaginator:
        key = str(session_id)
        paginator = self._sessions.get(key)
        if paginator is None:
            raise FeedSessionNotFoundError(session_id)
        self._sessions.put(key, paginator)
        return paginator
