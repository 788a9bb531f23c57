from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from src.domain.enums.property import ListingPurpose, ListingStatus, PropertyType

NEW_LISTING_WINDOW = timedelta(days=3)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Location:
    city: str = ""
    neighborhood: str = ""
    country: str | None = None
    # (longitude, latitude)
    coordinates: tuple[float, float] | None = None


@dataclass(frozen=True)
class Listing:
    """
    A property listing as read from the Listing Store.

    Never mutated by the feed engine. ``created_at`` is the default tie-break
    of the feed and must be comparable across records of one store.
    """

    id: UUID = field(default_factory=uuid4)
    title: str = ""
    price: Decimal = Decimal("0")
    currency: str = "XOF"
    location: Location = field(default_factory=Location)
    images: tuple[str, ...] = ()
    property_type: PropertyType = PropertyType.APARTMENT
    purpose: ListingPurpose = ListingPurpose.RENT
    bedrooms: int | None = None
    bathrooms: int | None = None
    area: Decimal | None = None
    land_area: Decimal | None = None
    amenities: frozenset[str] = frozenset()
    owner_id: str = ""
    status: ListingStatus = ListingStatus.ACTIVE
    created_at: datetime = field(default_factory=_utcnow)

    def is_owned_by(self, owner_id: str) -> bool:
        return bool(owner_id) and self.owner_id == owner_id

    def is_new(self, at: datetime) -> bool:
        """True when the listing was published within the three days before ``at``."""
        return timedelta(0) <= at - self.created_at <= NEW_LISTING_WINDOW
