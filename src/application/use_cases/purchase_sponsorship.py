from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import structlog

from src.application.errors import (
    ListingNotFoundError,
    SponsorshipConflictError,
    SponsorshipValidationError,
    UpstreamUnavailableError,
)
from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.listing_store import ListingStore
from src.application.interfaces.payment_gateway import PaymentGateway
from src.application.interfaces.sponsorship_repository import SponsorshipRepository
from src.application.services.sponsorship_ledger import SponsorshipLedger
from src.domain.entities.sponsorship import Sponsorship
from src.domain.pricing.price_matrix import BOOST_LEVELS, DURATIONS_DAYS, PriceMatrix

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PurchaseSponsorshipInput:
    listing_id: UUID
    boost_level: int
    duration_days: int
    requester_id: str


@dataclass
class PurchaseSponsorshipOutput:
    sponsorship_id: UUID
    checkout_url: str
    session_id: str
    boost_level: int
    duration_days: int
    price_amount: Decimal
    currency: str
    sponsored_until: datetime


class PurchaseSponsorship:
    """
    Use case: open a checkout for sponsoring a listing.

    Validates the (level, duration) pair against the price matrix, checks
    ownership and that the listing is public, refuses a listing that is
    already sponsored, then records a ``pending`` sponsorship tied to the
    gateway's checkout session. Activation happens later, on payment
    confirmation.
    """

    def __init__(
        self,
        listing_store: ListingStore,
        sponsorship_repo: SponsorshipRepository,
        ledger: SponsorshipLedger,
        payment_gateway: PaymentGateway,
        event_publisher: EventPublisher,
        *,
        price_matrix: PriceMatrix | None = None,
        currency: str = "XOF",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._listing_store = listing_store
        self._sponsorship_repo = sponsorship_repo
        self._ledger = ledger
        self._payment_gateway = payment_gateway
        self._event_publisher = event_publisher
        self._price_matrix = price_matrix or PriceMatrix()
        self._currency = currency
        self._clock = clock

    async def execute(self, input_data: PurchaseSponsorshipInput) -> PurchaseSponsorshipOutput:
        amount = self._price_matrix.price_for(input_data.boost_level, input_data.duration_days)
        if amount is None:
            raise SponsorshipValidationError(
                f"boost_level must be one of {list(BOOST_LEVELS)} and "
                f"duration_days one of {list(DURATIONS_DAYS)}; "
                f"got ({input_data.boost_level}, {input_data.duration_days})."
            )

        try:
            listing = await self._listing_store.get_by_id(input_data.listing_id)
        except Exception as exc:
            raise UpstreamUnavailableError("listing_store", exc) from exc

        if (
            listing is None
            or not listing.is_owned_by(input_data.requester_id)
            or not listing.status.is_public
        ):
            raise ListingNotFoundError(input_data.listing_id)

        now = self._clock()

        # UpstreamUnavailableError from the ledger propagates to the caller
        existing = await self._ledger.current_for(input_data.listing_id, now)
        if existing is not None:
            logger.info(
                "sponsorship_conflict",
                listing_id=str(input_data.listing_id),
                sponsored_until=existing.sponsored_until.isoformat(),
            )
            raise SponsorshipConflictError(input_data.listing_id, existing.sponsored_until)

        sponsorship = Sponsorship.create_pending(
            listing_id=input_data.listing_id,
            owner_id=input_data.requester_id,
            boost_level=input_data.boost_level,
            duration_days=input_data.duration_days,
            amount=amount,
            currency=self._currency,
            now=now,
        )

        try:
            checkout = await self._payment_gateway.create_checkout(
                amount,
                self._currency,
                {
                    "sponsorship_id": str(sponsorship.id),
                    "listing_id": str(input_data.listing_id),
                    "user_id": input_data.requester_id,
                    "boost_level": str(input_data.boost_level),
                    "duration": str(input_data.duration_days),
                    "sponsored_until": sponsorship.sponsored_until.isoformat(),
                    "amount_paid": str(amount),
                },
            )
        except Exception as exc:
            logger.error(
                "checkout_creation_failed",
                listing_id=str(input_data.listing_id),
                error=str(exc),
            )
            raise UpstreamUnavailableError("payment_gateway", exc) from exc

        sponsorship.attach_checkout(checkout.session_id)

        try:
            await self._sponsorship_repo.insert(sponsorship)
        except Exception as exc:
            logger.exception(
                "failed_to_record_sponsorship",
                listing_id=str(input_data.listing_id),
                session_id=checkout.session_id,
            )
            raise UpstreamUnavailableError("sponsorship_storage", exc) from exc

        await self._event_publisher.publish_many(sponsorship.collect_events())

        logger.info(
            "sponsorship_checkout_created",
            sponsorship_id=str(sponsorship.id),
            listing_id=str(input_data.listing_id),
            boost_level=input_data.boost_level,
            duration_days=input_data.duration_days,
            session_id=checkout.session_id,
        )

        return PurchaseSponsorshipOutput(
            sponsorship_id=sponsorship.id,
            checkout_url=checkout.url,
            session_id=checkout.session_id,
            boost_level=input_data.boost_level,
            duration_days=input_data.duration_days,
            price_amount=amount,
            currency=self._currency,
            sponsored_until=sponsorship.sponsored_until,
        )
