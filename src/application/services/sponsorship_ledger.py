from collections.abc import Collection
from datetime import datetime
from uuid import UUID

import structlog

from src.application.errors import UpstreamUnavailableError
from src.application.interfaces.sponsorship_repository import SponsorshipRepository
from src.domain.entities.sponsorship import Sponsorship

logger = structlog.get_logger(__name__)


class SponsorshipLedger:
    """
    Point-in-time view of which listings are sponsored, and at what level.

    Every read re-checks the window against ``at``; the stored status is not
    trusted on its own.
    """

    def __init__(self, repository: SponsorshipRepository) -> None:
        self._repository = repository

    async def active_sponsorships_for(
        self, listing_ids: Collection[UUID], at: datetime
    ) -> dict[UUID, Sponsorship]:
        ids = set(listing_ids)
        if not ids:
            return {}

        try:
            records = await self._repository.find_active(ids, at)
        except Exception as exc:
            logger.error("sponsorship_lookup_failed", listing_count=len(ids), error=str(exc))
            raise UpstreamUnavailableError("sponsorship_storage", exc) from exc

        active: dict[UUID, Sponsorship] = {}
        for record in records:
            if record.listing_id not in ids or not record.is_effective_at(at):
                continue
            current = active.get(record.listing_id)
            if current is None:
                active[record.listing_id] = record
                continue
            logger.warning(
                "overlapping_sponsorships",
                listing_id=str(record.listing_id),
                kept=str(max(current, record, key=_started_at).id),
            )
            # Latest purchase wins when windows overlap
            if _started_at(record) > _started_at(current):
                active[record.listing_id] = record

        return active

    async def current_for(self, listing_id: UUID, at: datetime) -> Sponsorship | None:
        found = await self.active_sponsorships_for({listing_id}, at)
        return found.get(listing_id)


def _started_at(record: Sponsorship) -> datetime:
    # Effective records always carry sponsored_from
    return record.sponsored_from or record.created_at
