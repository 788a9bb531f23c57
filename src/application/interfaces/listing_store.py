from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import UUID

from src.domain.entities.listing import Listing
from src.domain.enums.property import SearchMode


@dataclass(frozen=True)
class ListingFilter:
    mode: SearchMode
    country: str | None = None


@dataclass(frozen=True)
class ListingQueryResult:
    items: list[Listing]
    estimated_total: int


class ListingStore(ABC):
    """Port for reading public listings, newest first."""

    @abstractmethod
    async def query(self, listing_filter: ListingFilter, offset: int, limit: int) -> ListingQueryResult:
        """Return active listings matching the filter, ordered by created_at descending."""
        ...

    @abstractmethod
    async def get_by_id(self, listing_id: UUID) -> Listing | None:
        ...
