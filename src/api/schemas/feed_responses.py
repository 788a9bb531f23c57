from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from src.domain.entities.feed import FeedPage, FeedRow
from src.domain.enums.property import ListingPurpose, OwnerKind, PropertyType


class LocationResponse(BaseModel):
    city: str
    neighborhood: str
    country: str | None = None
    coordinates: tuple[float, float] | None = None


class AgentResponse(BaseModel):
    name: str
    avatar: str
    is_verified: bool
    kind: OwnerKind
    agency_name: str | None = None


class FeedItemResponse(BaseModel):
    id: UUID
    title: str
    price: Decimal
    currency: str
    location: LocationResponse
    images: list[str]
    property_type: PropertyType
    purpose: ListingPurpose
    bedrooms: int | None = None
    bathrooms: int | None = None
    area: Decimal | None = None
    land_area: Decimal | None = None
    amenities: list[str]
    created_at: datetime
    is_new: bool
    is_sponsored: bool
    boost_level: int | None = None
    sponsored_until: datetime | None = None
    agent: AgentResponse


class FeedPageResponse(BaseModel):
    session_id: UUID
    items: list[FeedItemResponse]
    has_more: bool
    total_estimate: int
    offset: int
    from_cache: bool = False
    # False when the request was superseded and its result dropped
    applied: bool = True


def row_to_response(row: FeedRow) -> FeedItemResponse:
    listing = row.listing
    return FeedItemResponse(
        id=listing.id,
        title=listing.title,
        price=listing.price,
        currency=listing.currency,
        location=LocationResponse(
            city=listing.location.city,
            neighborhood=listing.location.neighborhood,
            country=listing.location.country,
            coordinates=listing.location.coordinates,
        ),
        images=list(listing.images),
        property_type=listing.property_type,
        purpose=listing.purpose,
        bedrooms=listing.bedrooms,
        bathrooms=listing.bathrooms,
        area=listing.area,
        land_area=listing.land_area,
        amenities=sorted(listing.amenities),
        created_at=listing.created_at,
        is_new=row.is_new,
        is_sponsored=row.is_sponsored,
        boost_level=row.boost_level,
        sponsored_until=row.sponsorship.sponsored_until if row.sponsorship else None,
        agent=AgentResponse(
            name=row.agent.name,
            avatar=row.agent.avatar,
            is_verified=row.agent.is_verified,
            kind=row.agent.kind,
            agency_name=row.agent.agency_name,
        ),
    )


def page_to_response(session_id: UUID, page: FeedPage | None) -> FeedPageResponse:
    if page is None:
        return FeedPageResponse(
            session_id=session_id,
            items=[],
            has_more=True,
            total_estimate=0,
            offset=0,
            applied=False,
        )
    return FeedPageResponse(
        session_id=session_id,
        items=[row_to_response(row) for row in page.items],
        has_more=page.has_more,
        total_estimate=page.total_estimate,
        offset=page.offset,
        from_cache=page.from_cache,
    )
