from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from src.domain.enums.sponsorship_status import SponsorshipStatus
from src.domain.events.sponsorship_events import (
    DomainEvent,
    SponsorshipRequestedEvent,
    SponsorshipStatusChangedEvent,
)
from src.domain.state_machine.sponsorship_state_machine import SponsorshipStateMachine

_state_machine = SponsorshipStateMachine()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Sponsorship:
    """
    A paid promotion of one listing over the half-open window
    ``[sponsored_from, sponsored_until)``.

    The stored status is never trusted alone: expiry is evaluated lazily
    against the window on every read (see ``effective_status``).
    """

    # Identity
    id: UUID = field(default_factory=uuid4)
    listing_id: UUID = field(default_factory=uuid4)
    owner_id: str = ""

    # Purchase
    boost_level: int = 1
    duration_days: int = 7
    amount_paid: Decimal = Decimal("0")
    currency: str = "XOF"
    checkout_session_id: str | None = None

    # Window
    sponsored_from: datetime | None = None
    sponsored_until: datetime = field(default_factory=_utcnow)

    # State
    status: SponsorshipStatus = SponsorshipStatus.PENDING
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    expired_at: datetime | None = None

    # Timestamps
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    _events: list[DomainEvent] = field(default_factory=list, repr=False, compare=False)

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def create_pending(
        cls,
        *,
        listing_id: UUID,
        owner_id: str,
        boost_level: int,
        duration_days: int,
        amount: Decimal,
        currency: str,
        now: datetime,
    ) -> "Sponsorship":
        return cls(
            listing_id=listing_id,
            owner_id=owner_id,
            boost_level=boost_level,
            duration_days=duration_days,
            amount_paid=amount,
            currency=currency,
            sponsored_until=now + timedelta(days=duration_days),
            status=SponsorshipStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    def attach_checkout(self, session_id: str) -> None:
        self.checkout_session_id = session_id
        self._events.append(
            SponsorshipRequestedEvent(
                sponsorship_id=self.id,
                listing_id=self.listing_id,
                owner_id=self.owner_id,
                boost_level=self.boost_level,
                duration_days=self.duration_days,
                checkout_session_id=session_id,
            )
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def is_confirmed(self) -> bool:
        """Payment completed at some point, whatever the current status."""
        return self.confirmed_at is not None

    def covers(self, at: datetime) -> bool:
        """True when ``at`` falls inside the sponsorship window."""
        if self.sponsored_from is None:
            return False
        return self.sponsored_from <= at < self.sponsored_until

    def is_effective_at(self, at: datetime) -> bool:
        """Confirmed, not withdrawn, and inside its window at ``at``."""
        return (
            self.is_confirmed
            and self.status is not SponsorshipStatus.CANCELLED
            and self.covers(at)
        )

    def effective_status(self, at: datetime) -> SponsorshipStatus:
        if self.status is SponsorshipStatus.ACTIVE and at >= self.sponsored_until:
            return SponsorshipStatus.EXPIRED
        return self.status

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def transition_to(self, new_status: SponsorshipStatus, at: datetime, triggered_by: str) -> None:
        """Validate and apply a status transition, recording the domain event."""
        _state_machine.validate_transition(self.status, new_status)

        old_status = self.status
        self.status = new_status
        self.updated_at = at

        if new_status is SponsorshipStatus.ACTIVE:
            self.sponsored_from = at
            self.confirmed_at = at
        elif new_status is SponsorshipStatus.CANCELLED:
            self.cancelled_at = at
        elif new_status is SponsorshipStatus.EXPIRED:
            self.expired_at = at

        self._events.append(
            SponsorshipStatusChangedEvent(
                sponsorship_id=self.id,
                listing_id=self.listing_id,
                from_status=old_status,
                to_status=new_status,
                triggered_by=triggered_by,
            )
        )

    def activate(self, at: datetime, triggered_by: str = "payment_webhook") -> None:
        self.transition_to(SponsorshipStatus.ACTIVE, at, triggered_by)

    def cancel(self, at: datetime, triggered_by: str) -> None:
        self.transition_to(SponsorshipStatus.CANCELLED, at, triggered_by)

    def expire(self, at: datetime, triggered_by: str) -> None:
        self.transition_to(SponsorshipStatus.EXPIRED, at, triggered_by)

    # -------------------------------------------------------------------------
    # Event collection
    # -------------------------------------------------------------------------

    def collect_events(self) -> list[DomainEvent]:
        """Return pending events and clear the internal buffer."""
        events = list(self._events)
        self._events.clear()
        return events
