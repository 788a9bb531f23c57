from enum import Enum


class SponsorshipStatus(str, Enum):
    """All possible states of a sponsorship record."""

    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Terminal states cannot be transitioned out of."""
        return self in (SponsorshipStatus.EXPIRED, SponsorshipStatus.CANCELLED)
