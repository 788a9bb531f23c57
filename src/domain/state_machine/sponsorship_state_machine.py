from src.domain.enums.sponsorship_status import SponsorshipStatus


# Mapping of valid transitions: from_status -> set of allowed to_statuses
VALID_TRANSITIONS: dict[SponsorshipStatus, frozenset[SponsorshipStatus]] = {
    SponsorshipStatus.PENDING: frozenset(
        {SponsorshipStatus.ACTIVE, SponsorshipStatus.CANCELLED, SponsorshipStatus.EXPIRED}
    ),
    SponsorshipStatus.ACTIVE: frozenset({SponsorshipStatus.EXPIRED, SponsorshipStatus.CANCELLED}),
    # Terminal states have no outgoing transitions
    SponsorshipStatus.EXPIRED: frozenset(),
    SponsorshipStatus.CANCELLED: frozenset(),
}


class InvalidStateTransitionError(Exception):
    """Raised when an invalid sponsorship status transition is attempted."""

    def __init__(self, from_status: SponsorshipStatus, to_status: SponsorshipStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition from {from_status.value} to {to_status.value}. "
            f"Allowed transitions: {sorted(s.value for s in VALID_TRANSITIONS.get(from_status, frozenset()))}"
        )


class SponsorshipStateMachine:
    """
    Validates status transitions for a sponsorship record.

    Stateless; call with explicit statuses.
    """

    def can_transition(self, from_status: SponsorshipStatus, to_status: SponsorshipStatus) -> bool:
        if from_status.is_terminal:
            return False
        return to_status in VALID_TRANSITIONS.get(from_status, frozenset())

    def validate_transition(self, from_status: SponsorshipStatus, to_status: SponsorshipStatus) -> None:
        """Raise InvalidStateTransitionError if the transition is not permitted."""
        if not self.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(from_status, to_status)

    def get_allowed_transitions(self, from_status: SponsorshipStatus) -> frozenset[SponsorshipStatus]:
        return VALID_TRANSITIONS.get(from_status, frozenset())
