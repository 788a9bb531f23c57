from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.application.interfaces.listing_store import ListingFilter, ListingQueryResult, ListingStore
from src.domain.entities.listing import Listing, Location
from src.domain.enums.property import (
    ListingPurpose,
    ListingStatus,
    PropertyType,
    SearchMode,
)
from src.infrastructure.database.models import ListingModel

PLACEHOLDER_IMAGE = "/placeholder.svg"


def _to_domain(model: ListingModel) -> Listing:
    def _dec(value: float | None) -> Decimal | None:
        return Decimal(str(value)) if value is not None else None

    coordinates = None
    if model.longitude is not None and model.latitude is not None:
        coordinates = (float(model.longitude), float(model.latitude))

    return Listing(
        id=model.id,
        title=model.title,
        price=Decimal(str(model.price)),
        currency=model.currency,
        location=Location(
            city=model.city,
            neighborhood=model.neighborhood or "",
            country=model.country,
            coordinates=coordinates,
        ),
        images=tuple(model.images or [PLACEHOLDER_IMAGE]),
        property_type=PropertyType(model.property_type),
        purpose=ListingPurpose(model.purpose),
        bedrooms=model.bedrooms,
        bathrooms=model.bathrooms,
        area=_dec(model.area),
        land_area=_dec(model.land_area),
        amenities=frozenset(model.amenities or ()),
        owner_id=model.user_id,
        status=ListingStatus(model.status),
        created_at=model.created_at,
    )


def _apply_filter(query, listing_filter: ListingFilter):  # type: ignore[no-untyped-def]
    query = query.where(ListingModel.status == ListingStatus.ACTIVE.value)

    if listing_filter.mode is SearchMode.COMMERCIAL:
        query = query.where(ListingModel.property_type == PropertyType.COMMERCIAL.value)
    elif listing_filter.mode is SearchMode.BUY:
        query = query.where(ListingModel.purpose == ListingPurpose.SALE.value)
    else:
        query = query.where(ListingModel.purpose == ListingPurpose.RENT.value)

    # Listings without a country are shown in every country feed
    if listing_filter.country:
        query = query.where(
            or_(ListingModel.country == listing_filter.country, ListingModel.country.is_(None))
        )
    return query


class SqlAlchemyListingStore(ListingStore):
    """Read-only listing queries. Opens one session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def query(self, listing_filter: ListingFilter, offset: int, limit: int) -> ListingQueryResult:
        query = _apply_filter(select(ListingModel), listing_filter)
        count_query = _apply_filter(select(func.count()).select_from(ListingModel), listing_filter)

        query = query.order_by(ListingModel.created_at.desc()).limit(limit).offset(offset)

        async with self._session_factory() as session:
            result = await session.execute(query)
            models = result.scalars().all()

            count_result = await session.execute(count_query)
            total = count_result.scalar_one()

        return ListingQueryResult(items=[_to_domain(m) for m in models], estimated_total=total)

    async def get_by_id(self, listing_id: UUID) -> Listing | None:
        async with self._session_factory() as session:
            model = await session.get(ListingModel, listing_id)
            return _to_domain(model) if model is not None else None
