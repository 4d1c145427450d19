"""
Unit tests for the Gig State Manager.

Tests the finite state machine governing gig status transitions, the actor
guards, and terminal states.
"""

import pytest

from gighub.models.gig import GigStatus
from gighub.services.gigStateManager import (
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    ActorType,
    get_valid_transitions,
    is_terminal,
    validate_transition,
)


# ---------------------------------------------------------------------------
# Valid state transitions (happy path)
# ---------------------------------------------------------------------------


class TestValidTransitions:
    """Tests that all documented valid transitions are allowed."""

    def test_pending_to_approved_by_admin(self):
        result = validate_transition(GigStatus.PENDING, GigStatus.APPROVED, ActorType.ADMIN)
        assert result.allowed is True

    def test_pending_to_rejected_by_admin(self):
        result = validate_transition(GigStatus.PENDING, GigStatus.REJECTED, ActorType.ADMIN)
        assert result.allowed is True

    def test_approved_to_in_progress_by_client(self):
        result = validate_transition(
            GigStatus.APPROVED, GigStatus.IN_PROGRESS, ActorType.CLIENT
        )
        assert result.allowed is True

    def test_in_progress_to_completed_by_client(self):
        result = validate_transition(
            GigStatus.IN_PROGRESS, GigStatus.COMPLETED, ActorType.CLIENT
        )
        assert result.allowed is True

    def test_client_cancels_before_work_starts(self):
        for status in (GigStatus.PENDING, GigStatus.APPROVED):
            result = validate_transition(status, GigStatus.CANCELLED, ActorType.CLIENT)
            assert result.allowed is True, status

    def test_admin_cancels_in_progress(self):
        result = validate_transition(
            GigStatus.IN_PROGRESS, GigStatus.CANCELLED, ActorType.ADMIN
        )
        assert result.allowed is True


# ---------------------------------------------------------------------------
# Structurally invalid transitions
# ---------------------------------------------------------------------------


class TestInvalidTransitions:

    def test_pending_cannot_skip_to_in_progress(self):
        result = validate_transition(GigStatus.PENDING, GigStatus.IN_PROGRESS, ActorType.ADMIN)
        assert result.allowed is False
        assert result.reason

    def test_approved_cannot_complete_directly(self):
        result = validate_transition(GigStatus.APPROVED, GigStatus.COMPLETED, ActorType.CLIENT)
        assert result.allowed is False

    def test_in_progress_cannot_go_back_to_approved(self):
        result = validate_transition(GigStatus.IN_PROGRESS, GigStatus.APPROVED, ActorType.ADMIN)
        assert result.allowed is False

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    def test_terminal_states_have_no_exits(self, terminal):
        for target in GigStatus:
            result = validate_transition(terminal, target, ActorType.ADMIN)
            assert result.allowed is False


# ---------------------------------------------------------------------------
# Actor guards
# ---------------------------------------------------------------------------


class TestGuards:

    def test_client_cannot_moderate(self):
        result = validate_transition(GigStatus.PENDING, GigStatus.APPROVED, ActorType.CLIENT)
        assert result.allowed is False

    def test_provider_cannot_moderate(self):
        result = validate_transition(GigStatus.PENDING, GigStatus.REJECTED, ActorType.PROVIDER)
        assert result.allowed is False

    def test_provider_cannot_start_work(self):
        result = validate_transition(
            GigStatus.APPROVED, GigStatus.IN_PROGRESS, ActorType.PROVIDER
        )
        assert result.allowed is False

    def test_provider_cannot_complete(self):
        result = validate_transition(
            GigStatus.IN_PROGRESS, GigStatus.COMPLETED, ActorType.PROVIDER
        )
        assert result.allowed is False

    def test_client_cannot_cancel_in_progress(self):
        result = validate_transition(
            GigStatus.IN_PROGRESS, GigStatus.CANCELLED, ActorType.CLIENT
        )
        assert result.allowed is False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:

    def test_every_status_has_a_transition_entry(self):
        assert set(VALID_TRANSITIONS) == set(GigStatus)

    def test_valid_transitions_from_pending(self):
        assert set(get_valid_transitions(GigStatus.PENDING)) == {
            GigStatus.APPROVED,
            GigStatus.REJECTED,
            GigStatus.CANCELLED,
        }

    def test_is_terminal(self):
        assert is_terminal(GigStatus.COMPLETED) is True
        assert is_terminal(GigStatus.REJECTED) is True
        assert is_terminal(GigStatus.APPROVED) is False

    def test_full_lifecycle(self):
        path = [
            (GigStatus.PENDING, GigStatus.APPROVED, ActorType.ADMIN),
            (GigStatus.APPROVED, GigStatus.IN_PROGRESS, ActorType.CLIENT),
            (GigStatus.IN_PROGRESS, GigStatus.COMPLETED, ActorType.CLIENT),
        ]
        for current, target, actor in path:
            assert validate_transition(current, target, actor).allowed is True
