"""Unit tests for the sponsorship state machine."""
import pytest

from src.domain.enums.sponsorship_status import SponsorshipStatus
from src.domain.state_machine.sponsorship_state_machine import (
    InvalidStateTransitionError,
    SponsorshipStateMachine,
)


@pytest.fixture()
def sm() -> SponsorshipStateMachine:
    return SponsorshipStateMachine()


class TestValidTransitions:
    def test_pending_to_active(self, sm: SponsorshipStateMachine) -> None:
        assert sm.can_transition(SponsorshipStatus.PENDING, SponsorshipStatus.ACTIVE) is True

    def test_pending_to_cancelled(self, sm: SponsorshipStateMachine) -> None:
        assert sm.can_transition(SponsorshipStatus.PENDING, SponsorshipStatus.CANCELLED) is True

    def test_pending_to_expired(self, sm: SponsorshipStateMachine) -> None:
        assert sm.can_transition(SponsorshipStatus.PENDING, SponsorshipStatus.EXPIRED) is True

    def test_active_to_expired(self, sm: SponsorshipStateMachine) -> None:
        assert sm.can_transition(SponsorshipStatus.ACTIVE, SponsorshipStatus.EXPIRED) is True

    def test_active_to_cancelled(self, sm: SponsorshipStateMachine) -> None:
        assert sm.can_transition(SponsorshipStatus.ACTIVE, SponsorshipStatus.CANCELLED) is True


class TestInvalidTransitions:
    def test_active_cannot_go_back_to_pending(self, sm: SponsorshipStateMachine) -> None:
        assert sm.can_transition(SponsorshipStatus.ACTIVE, SponsorshipStatus.PENDING) is False

    def test_expired_is_terminal(self, sm: SponsorshipStateMachine) -> None:
        for status in SponsorshipStatus:
            assert sm.can_transition(SponsorshipStatus.EXPIRED, status) is False

    def test_cancelled_is_terminal(self, sm: SponsorshipStateMachine) -> None:
        for status in SponsorshipStatus:
            assert sm.can_transition(SponsorshipStatus.CANCELLED, status) is False

    def test_validate_raises_with_both_statuses_in_message(
        self, sm: SponsorshipStateMachine
    ) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            sm.validate_transition(SponsorshipStatus.EXPIRED, SponsorshipStatus.ACTIVE)
        assert exc_info.value.from_status is SponsorshipStatus.EXPIRED
        assert "expired" in str(exc_info.value)
        assert "active" in str(exc_info.value)


class TestAllowedTransitions:
    def test_pending_allows_three(self, sm: SponsorshipStateMachine) -> None:
        assert sm.get_allowed_transitions(SponsorshipStatus.PENDING) == frozenset(
            {SponsorshipStatus.ACTIVE, SponsorshipStatus.CANCELLED, SponsorshipStatus.EXPIRED}
        )

    def test_terminal_allows_none(self, sm: SponsorshipStateMachine) -> None:
        assert sm.get_allowed_transitions(SponsorshipStatus.CANCELLED) == frozenset()
