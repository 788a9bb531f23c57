from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from src.domain.enums.sponsorship_status import SponsorshipStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class SponsorshipRequestedEvent(DomainEvent):
    """Published when a checkout has been opened for a sponsorship purchase."""

    sponsorship_id: UUID = field(default_factory=uuid4)
    listing_id: UUID = field(default_factory=uuid4)
    owner_id: str = ""
    boost_level: int = 1
    duration_days: int = 7
    checkout_session_id: str | None = None


@dataclass(frozen=True)
class SponsorshipStatusChangedEvent(DomainEvent):
    """Published whenever a sponsorship moves between statuses."""

    sponsorship_id: UUID = field(default_factory=uuid4)
    listing_id: UUID = field(default_factory=uuid4)
    from_status: SponsorshipStatus | None = None
    to_status: SponsorshipStatus = SponsorshipStatus.PENDING
    triggered_by: str = ""
