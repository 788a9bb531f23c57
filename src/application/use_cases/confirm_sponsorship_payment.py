from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

import structlog

from src.application.errors import SponsorshipNotFoundError, UpstreamUnavailableError
from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.sponsorship_repository import SponsorshipRepository
from src.domain.entities.sponsorship import Sponsorship
from src.domain.enums.sponsorship_status import SponsorshipStatus

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConfirmSponsorshipPaymentInput:
    session_id: str
    triggered_by: str = "payment_webhook"


@dataclass
class ConfirmSponsorshipPaymentOutput:
    sponsorship_id: UUID
    listing_id: UUID
    status: SponsorshipStatus
    activated: bool
    sponsored_from: datetime | None
    sponsored_until: datetime


class ConfirmSponsorshipPayment:
    """
    Use case: a payment succeeded, flip the pending sponsorship to active.

    Idempotent: an already-active record is returned unchanged. A record whose
    window ended before the payment arrived is expired instead. Any other
    running sponsorship on the same listing is cancelled so at most one stays
    active.
    """

    def __init__(
        self,
        sponsorship_repo: SponsorshipRepository,
        event_publisher: EventPublisher,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sponsorship_repo = sponsorship_repo
        self._event_publisher = event_publisher
        self._clock = clock

    async def execute(
        self, input_data: ConfirmSponsorshipPaymentInput
    ) -> ConfirmSponsorshipPaymentOutput:
        sponsorship = await self._find(input_data.session_id)
        if sponsorship is None:
            raise SponsorshipNotFoundError(input_data.session_id)

        if sponsorship.status is not SponsorshipStatus.PENDING:
            logger.info(
                "sponsorship_confirmation_ignored",
                sponsorship_id=str(sponsorship.id),
                status=sponsorship.status.value,
            )
            return self._output(sponsorship, activated=False)

        now = self._clock()

        if now >= sponsorship.sponsored_until:
            sponsorship.expire(now, triggered_by=input_data.triggered_by)
            await self._save(sponsorship)
            await self._event_publisher.publish_many(sponsorship.collect_events())
            logger.warning("sponsorship_confirmed_after_window", sponsorship_id=str(sponsorship.id))
            return self._output(sponsorship, activated=False)

        try:
            running = await self._sponsorship_repo.find_active([sponsorship.listing_id], now)
        except Exception as exc:
            logger.error(
                "sponsorship_lookup_failed",
                listing_id=str(sponsorship.listing_id),
                error=str(exc),
            )
            raise UpstreamUnavailableError("sponsorship_storage", exc) from exc
        for other in running:
            if other.id == sponsorship.id or other.status is not SponsorshipStatus.ACTIVE:
                continue
            other.cancel(now, triggered_by="superseded")
            await self._save(other)
            await self._event_publisher.publish_many(other.collect_events())
            logger.warning(
                "sponsorship_superseded",
                sponsorship_id=str(other.id),
                listing_id=str(other.listing_id),
            )

        sponsorship.activate(now, triggered_by=input_data.triggered_by)
        await self._save(sponsorship)
        await self._event_publisher.publish_many(sponsorship.collect_events())

        logger.info(
            "sponsorship_activated",
            sponsorship_id=str(sponsorship.id),
            listing_id=str(sponsorship.listing_id),
            boost_level=sponsorship.boost_level,
            sponsored_until=sponsorship.sponsored_until.isoformat(),
        )
        return self._output(sponsorship, activated=True)

    @staticmethod
    def _output(sponsorship: Sponsorship, activated: bool) -> ConfirmSponsorshipPaymentOutput:
        return ConfirmSponsorshipPaymentOutput(
            sponsorship_id=sponsorship.id,
            listing_id=sponsorship.listing_id,
            status=sponsorship.status,
            activated=activated,
            sponsored_from=sponsorship.sponsored_from,
            sponsored_until=sponsorship.sponsored_until,
        )

    async def _find(self, session_id: str) -> Sponsorship | None:
        try:
            return await self._sponsorship_repo.find_by_session_id(session_id)
        except Exception as exc:
            logger.error("sponsorship_lookup_failed", session_id=session_id, error=str(exc))
            raise UpstreamUnavailableError("sponsorship_storage", exc) from exc

    async def _save(self, sponsorship: Sponsorship) -> None:
        try:
            await self._sponsorship_repo.save(sponsorship)
        except Exception as exc:
            logger.exception("failed_to_save_sponsorship", sponsorship_id=str(sponsorship.id))
            raise UpstreamUnavailableError("sponsorship_storage", exc) from exc
