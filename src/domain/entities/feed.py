from dataclasses import dataclass, field

from src.domain.entities.agent_info import AgentInfo
from src.domain.entities.listing import Listing
from src.domain.entities.sponsorship import Sponsorship
from src.domain.enums.feed_status import FeedStatus
from src.domain.enums.property import SearchMode


@dataclass(frozen=True)
class FeedQuery:
    """Parameters of one feed. Equal queries share a cache entry."""

    mode: SearchMode
    country: str | None = None
    page_size: int = 20

    @property
    def cache_key(self) -> str:
        return f"{self.mode.value}-{self.country or 'all'}-{self.page_size}"


@dataclass(frozen=True)
class FeedRow:
    """A fully-resolved listing row: listing, sponsorship flags and owner."""

    listing: Listing
    agent: AgentInfo
    sponsorship: Sponsorship | None = field(default=None, compare=False)
    is_sponsored: bool = False
    boost_level: int | None = None
    is_new: bool = False


@dataclass(frozen=True)
class FeedSnapshot:
    """Read-only first page of a feed, as stored in the cache."""

    rows: tuple[FeedRow, ...]
    total_estimate: int
    has_more: bool = False


@dataclass(frozen=True)
class FeedPage:
    items: tuple[FeedRow, ...]
    has_more: bool
    total_estimate: int
    offset: int = 0
    from_cache: bool = False


@dataclass
class FeedState:
    """
    Per-session cursor over one feed. Owned by a single FeedSession and
    never shared.
    """

    query: FeedQuery
    offset: int = 0
    items: list[FeedRow] = field(default_factory=list)
    total_estimate: int = 0
    has_more: bool = True
    status: FeedStatus = FeedStatus.IDLE
    last_error: Exception | None = None
    generation: int = 0
    in_flight: bool = False

    def next_generation(self) -> int:
        self.generation += 1
        return self.generation
