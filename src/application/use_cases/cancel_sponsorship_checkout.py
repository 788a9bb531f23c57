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
class CancelSponsorshipCheckoutInput:
    session_id: str
    reason: str | None = None


@dataclass
class CancelSponsorshipCheckoutOutput:
    sponsorship_id: UUID
    status: SponsorshipStatus
    cancelled: bool


class CancelSponsorshipCheckout:
    """Use case: the checkout was abandoned or expired; drop the pending record."""

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
        self, input_data: CancelSponsorshipCheckoutInput
    ) -> CancelSponsorshipCheckoutOutput:
        sponsorship = await self._find(input_data.session_id)
        if sponsorship is None:
            raise SponsorshipNotFoundError(input_data.session_id)

        # Only an unpaid checkout can be withdrawn this way
        if sponsorship.status is not SponsorshipStatus.PENDING:
            return CancelSponsorshipCheckoutOutput(
                sponsorship_id=sponsorship.id, status=sponsorship.status, cancelled=False
            )

        sponsorship.cancel(self._clock(), triggered_by=input_data.reason or "checkout_cancelled")
        await self._save(sponsorship)
        await self._event_publisher.publish_many(sponsorship.collect_events())

        logger.info(
            "sponsorship_checkout_cancelled",
            sponsorship_id=str(sponsorship.id),
            session_id=input_data.session_id,
        )
        return CancelSponsorshipCheckoutOutput(
            sponsorship_id=sponsorship.id, status=sponsorship.status, cancelled=True
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
