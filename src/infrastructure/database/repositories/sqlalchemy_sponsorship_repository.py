from collections.abc import Collection
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.application.interfaces.sponsorship_repository import SponsorshipRepository
from src.domain.entities.sponsorship import Sponsorship
from src.domain.enums.sponsorship_status import SponsorshipStatus
from src.infrastructure.database.connection import session_scope
from src.infrastructure.database.models import SponsorshipModel


def _to_domain(model: SponsorshipModel) -> Sponsorship:
    return Sponsorship(
        id=model.id,
        listing_id=model.listing_id,
        owner_id=model.user_id,
        boost_level=model.boost_level,
        duration_days=model.duration_days,
        amount_paid=Decimal(str(model.amount_paid)),
        currency=model.currency,
        checkout_session_id=model.checkout_session_id,
        sponsored_from=model.sponsored_from,
        sponsored_until=model.sponsored_until,
        status=SponsorshipStatus(model.status),
        confirmed_at=model.confirmed_at,
        cancelled_at=model.cancelled_at,
        expired_at=model.expired_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _to_model(sponsorship: Sponsorship) -> SponsorshipModel:
    return SponsorshipModel(
        id=sponsorship.id,
        listing_id=sponsorship.listing_id,
        user_id=sponsorship.owner_id,
        boost_level=sponsorship.boost_level,
        duration_days=sponsorship.duration_days,
        amount_paid=float(sponsorship.amount_paid),
        currency=sponsorship.currency,
        checkout_session_id=sponsorship.checkout_session_id,
        sponsored_from=sponsorship.sponsored_from,
        sponsored_until=sponsorship.sponsored_until,
        status=sponsorship.status.value,
        confirmed_at=sponsorship.confirmed_at,
        cancelled_at=sponsorship.cancelled_at,
        expired_at=sponsorship.expired_at,
        created_at=sponsorship.created_at,
        updated_at=sponsorship.updated_at,
    )


class SqlAlchemySponsorshipRepository(SponsorshipRepository):
    """SQLAlchemy-backed sponsorship storage. Opens one session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, sponsorship: Sponsorship) -> None:
        async with session_scope(self._session_factory) as session:
            session.add(_to_model(sponsorship))

    async def save(self, sponsorship: Sponsorship) -> None:
        async with session_scope(self._session_factory) as session:
            model = await session.get(SponsorshipModel, sponsorship.id)
            if model is None:
                session.add(_to_model(sponsorship))
            else:
                model.status = sponsorship.status.value
                model.checkout_session_id = sponsorship.checkout_session_id
                model.sponsored_from = sponsorship.sponsored_from
                model.sponsored_until = sponsorship.sponsored_until
                model.confirmed_at = sponsorship.confirmed_at
                model.cancelled_at = sponsorship.cancelled_at
                model.expired_at = sponsorship.expired_at
                model.updated_at = sponsorship.updated_at

    async def find_active(self, listing_ids: Collection[UUID], at: datetime) -> list[Sponsorship]:
        if not listing_ids:
            return []
        # Lazily-expired rows may still read "active"; the window decides
        result = await self._execute(
            select(SponsorshipModel)
            .where(SponsorshipModel.listing_id.in_(list(listing_ids)))
            .where(SponsorshipModel.confirmed_at.is_not(None))
            .where(SponsorshipModel.status != SponsorshipStatus.CANCELLED.value)
            .where(SponsorshipModel.sponsored_from <= at)
            .where(SponsorshipModel.sponsored_until > at)
        )
        return [_to_domain(m) for m in result]

    async def find_by_session_id(self, session_id: str) -> Sponsorship | None:
        result = await self._execute(
            select(SponsorshipModel).where(SponsorshipModel.checkout_session_id == session_id)
        )
        return _to_domain(result[0]) if result else None

    async def _execute(self, query) -> list[SponsorshipModel]:  # type: ignore[no-untyped-def]
        async with self._session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
