"""
Feed Paginator: drives one caller session's feed over the ranked listing
order.

Every page is a window over the full ranked candidate order (bounded by
``max_candidates``), so a listing that becomes sponsored can never be pushed
onto a page the caller has already passed while another is skipped. Only the
first page is cached, and only through the shared TTL cache.

Requests are tagged with the state's generation. A result whose generation
no longer matches (the caller changed filters, refreshed or navigated away)
is dropped without touching the state or the cache.
"""
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from uuid import UUID

import structlog

from src.application.cache.ttl_cache import TTLCache
from src.application.errors import (
    FeedBusyError,
    StaleRequestError,
    UpstreamUnavailableError,
)
from src.application.interfaces.listing_store import ListingFilter, ListingStore
from src.application.services.agent_resolver import AgentResolver
from src.application.services.sponsorship_ledger import SponsorshipLedger
from src.domain.entities.agent_info import AgentInfo
from src.domain.entities.feed import FeedPage, FeedQuery, FeedRow, FeedSnapshot, FeedState
from src.domain.entities.listing import Listing
from src.domain.entities.sponsorship import Sponsorship
from src.domain.enums.feed_status import FeedStatus
from src.domain.ranking.ranking_engine import rank

logger = structlog.get_logger(__name__)

DEFAULT_MAX_CANDIDATES = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _RankedCandidates:
    def __init__(
        self,
        listings: list[Listing],
        sponsorships: dict[UUID, Sponsorship],
        estimated_total: int,
    ) -> None:
        self.listings = listings
        self.sponsorships = sponsorships
        self.estimated_total = estimated_total


class FeedPaginator:
    """
    State machine ``IDLE -> LOADING -> {LOADED, ERRORED}``; ``LOADED`` and
    ``ERRORED`` go back to ``LOADING`` on ``next_page`` / ``reset``.

    Public methods return ``None`` when their result was dropped as stale.
    """

    def __init__(
        self,
        query: FeedQuery,
        *,
        listing_store: ListingStore,
        ledger: SponsorshipLedger,
        agent_resolver: AgentResolver,
        cache: TTLCache[FeedSnapshot],
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = listing_store
        self._ledger = ledger
        self._agent_resolver = agent_resolver
        self._cache = cache
        self._max_candidates = max_candidates
        self._clock = clock
        self._state = FeedState(query=query)

    @property
    def state(self) -> FeedState:
        return self._state

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def initial_page(self, query: FeedQuery | None = None) -> FeedPage | None:
        """First page for ``query`` (default: the current query), cache first."""
        return await self._first_page(query or self._state.query, use_cache=True)

    async def reset(self, query: FeedQuery | None = None) -> FeedPage | None:
        """
        Drop the cached first page and reload it from upstream.

        The returned page always reports ``has_more=True`` so the caller
        asks for more at least once after a refresh. The cached snapshot
        keeps the computed value.
        """
        query = query or self._state.query
        self._cache.invalidate(query.cache_key)
        self._state.has_more = True
        return await self._first_page(query, use_cache=False, force_has_more=True)

    async def next_page(self) -> FeedPage | None:
        state = self._state
        if state.in_flight:
            raise FeedBusyError()
        if state.status is FeedStatus.IDLE or (
            state.status is FeedStatus.ERRORED and not state.items
        ):
            return await self.initial_page()
        if not state.has_more:
            return FeedPage(
                items=(),
                has_more=False,
                total_estimate=state.total_estimate,
                offset=state.offset,
            )

        generation = state.generation
        page_size = state.query.page_size
        offset = state.offset + page_size
        self._begin(generation)
        try:
            at = self._clock()
            candidates = await self._ranked_candidates(state.query, at)
            window = candidates.listings[offset : offset + page_size]
            rows = await self._resolve_rows(window, candidates.sponsorships, at)
            self._ensure_current(generation)
        except StaleRequestError as exc:
            logger.info("stale_feed_result_dropped", operation="next_page", error=str(exc))
            return None
        except Exception as exc:
            self._fail(generation, exc)
            raise
        finally:
            self._end(generation)

        state.total_estimate = candidates.estimated_total
        if rows:
            state.items.extend(rows)
            state.offset = offset
        state.has_more = bool(rows) and offset + page_size < len(candidates.listings)
        state.status = FeedStatus.LOADED
        state.last_error = None

        logger.info(
            "feed_page_loaded",
            key=state.query.cache_key,
            offset=offset,
            count=len(rows),
            has_more=state.has_more,
        )
        return FeedPage(
            items=tuple(rows),
            has_more=state.has_more,
            total_estimate=state.total_estimate,
            offset=offset,
        )

    def abandon(self) -> None:
        """Discard whatever is in flight; its result will never be applied."""
        state = self._state
        state.next_generation()
        state.in_flight = False
        if state.status is FeedStatus.LOADING:
            state.status = FeedStatus.LOADED if state.items else FeedStatus.IDLE

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _first_page(
        self, query: FeedQuery, *, use_cache: bool, force_has_more: bool = False
    ) -> FeedPage | None:
        state = self._state
        generation = state.next_generation()
        key = query.cache_key

        if use_cache:
            snapshot = self._cache.get(key)
            if snapshot is not None:
                logger.debug("feed_cache_hit", key=key)
                self._apply_first_page(query, snapshot)
                state.in_flight = False
                return FeedPage(
                    items=snapshot.rows,
                    has_more=state.has_more,
                    total_estimate=snapshot.total_estimate,
                    from_cache=True,
                )
            logger.debug("feed_cache_miss", key=key)

        self._begin(generation)
        try:
            at = self._clock()
            candidates = await self._ranked_candidates(query, at)
            window = candidates.listings[: query.page_size]
            rows = await self._resolve_rows(window, candidates.sponsorships, at)
            self._ensure_current(generation)
        except StaleRequestError as exc:
            logger.info("stale_feed_result_dropped", operation="first_page", error=str(exc))
            return None
        except Exception as exc:
            self._fail(generation, exc)
            raise
        finally:
            self._end(generation)

        snapshot = FeedSnapshot(
            rows=tuple(rows),
            total_estimate=candidates.estimated_total,
            has_more=len(candidates.listings) > query.page_size,
        )
        if snapshot.rows:
            self._cache.put(key, snapshot)

        self._apply_first_page(query, snapshot)
        if force_has_more:
            state.has_more = True

        logger.info(
            "feed_page_loaded",
            key=key,
            offset=0,
            count=len(snapshot.rows),
            has_more=state.has_more,
        )
        return FeedPage(
            items=snapshot.rows,
            has_more=state.has_more,
            total_estimate=snapshot.total_estimate,
        )

    async def _ranked_candidates(self, query: FeedQuery, at: datetime) -> _RankedCandidates:
        try:
            result = await self._store.query(
                ListingFilter(mode=query.mode, country=query.country),
                offset=0,
                limit=self._max_candidates,
            )
        except Exception as exc:
            logger.error("listing_store_query_failed", key=query.cache_key, error=str(exc))
            raise UpstreamUnavailableError("listing_store", exc) from exc

        sponsorships = await self._ledger.active_sponsorships_for(
            [listing.id for listing in result.items], at
        )
        return _RankedCandidates(
            listings=rank(result.items, sponsorships),
            sponsorships=sponsorships,
            estimated_total=result.estimated_total,
        )

    async def _resolve_rows(
        self,
        listings: Sequence[Listing],
        sponsorships: dict[UUID, Sponsorship],
        at: datetime,
    ) -> list[FeedRow]:
        agents = await self._agent_resolver.resolve_batch([l.owner_id for l in listings])
        rows = []
        for listing in listings:
            sponsorship = sponsorships.get(listing.id)
            rows.append(
                FeedRow(
                    listing=listing,
                    agent=agents.get(listing.owner_id, AgentInfo.default()),
                    sponsorship=sponsorship,
                    is_sponsored=sponsorship is not None,
                    boost_level=sponsorship.boost_level if sponsorship else None,
                    is_new=listing.is_new(at),
                )
            )
        return rows

    def _apply_first_page(self, query: FeedQuery, snapshot: FeedSnapshot) -> None:
        state = self._state
        state.query = query
        state.offset = 0
        state.items = list(snapshot.rows)
        state.total_estimate = snapshot.total_estimate
        state.has_more = snapshot.has_more
        state.status = FeedStatus.LOADED
        state.last_error = None

    def _ensure_current(self, generation: int) -> None:
        if self._state.generation != generation:
            raise StaleRequestError(generation, self._state.generation)

    def _begin(self, generation: int) -> None:
        if self._state.generation == generation:
            self._state.in_flight = True
            self._state.status = FeedStatus.LOADING

    def _end(self, generation: int) -> None:
        state = self._state
        if state.generation != generation:
            return
        state.in_flight = False
        # Cancelled mid-flight: fall back to what is already shown
        if state.status is FeedStatus.LOADING:
            state.status = FeedStatus.LOADED if state.items else FeedStatus.IDLE

    def _fail(self, generation: int, exc: Exception) -> None:
        if self._state.generation != generation:
            return
        self._state.status = FeedStatus.ERRORED
        self._state.last_error = exc
        logger.warning(
            "feed_load_failed",
            key=self._state.query.cache_key,
            error=str(exc),
        )
