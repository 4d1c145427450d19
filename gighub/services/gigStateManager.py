"""
Gig State Manager
=================

Finite state machine governing all valid gig status transitions. Every
status change MUST go through ``validate_transition`` before being persisted.

State machine overview::

    pending --> approved --> in_progress --> completed
    pending --> rejected

    pending | approved --> cancelled        (guard: client, admin, system)
    in_progress        --> cancelled        (guard: admin, system only)

Guards enforce that only the correct actor type can trigger certain
transitions: moderation is an admin concern, starting work happens when the
client accepts a proposal, and completion happens when the client approves
the provider's completion request.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from gighub.models.gig import GigStatus


# ---------------------------------------------------------------------------
# Actor types for guard enforcement
# ---------------------------------------------------------------------------

class ActorType(str, enum.Enum):
    CLIENT = "client"
    PROVIDER = "provider"
    SYSTEM = "system"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Transition guard result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitionResult:
    """Result of a transition validation attempt."""
    allowed: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Transition definitions
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[GigStatus, set[GigStatus]] = {
    GigStatus.PENDING: {
        GigStatus.APPROVED,
        GigStatus.REJECTED,
        GigStatus.CANCELLED,
    },
    GigStatus.APPROVED: {
        GigStatus.IN_PROGRESS,
        GigStatus.CANCELLED,
    },
    GigStatus.IN_PROGRESS: {
        GigStatus.COMPLETED,
        GigStatus.CANCELLED,
    },
    # Terminal states
    GigStatus.REJECTED: set(),
    GigStatus.COMPLETED: set(),
    GigStatus.CANCELLED: set(),
}

TERMINAL_STATUSES: frozenset[GigStatus] = frozenset({
    GigStatus.REJECTED,
    GigStatus.COMPLETED,
    GigStatus.CANCELLED,
})

# Statuses in which the client can still cancel their own gig
_CLIENT_CANCELLABLE: frozenset[GigStatus] = frozenset({
    GigStatus.PENDING,
    GigStatus.APPROVED,
})

_PRIVILEGED: frozenset[ActorType] = frozenset({ActorType.SYSTEM, ActorType.ADMIN})


# ---------------------------------------------------------------------------
# Guard functions
# ---------------------------------------------------------------------------

def _guard_moderation(actor_type: ActorType) -> TransitionResult:
    """Only an admin (or the system) can approve or reject a gig."""
    if actor_type not in _PRIVILEGED:
        return TransitionResult(
            allowed=False,
            reason="Only an administrator can moderate a gig.",
        )
    return TransitionResult(allowed=True)


def _guard_start(actor_type: ActorType) -> TransitionResult:
    """Work starts when the client accepts a proposal."""
    if actor_type not in (ActorType.CLIENT, *_PRIVILEGED):
        return TransitionResult(
            allowed=False,
            reason="Only the client can start a gig by accepting a proposal.",
        )
    return TransitionResult(allowed=True)


def _guard_complete(actor_type: ActorType) -> TransitionResult:
    """The client closes the gig by approving the completion request."""
    if actor_type not in (ActorType.CLIENT, *_PRIVILEGED):
        return TransitionResult(
            allowed=False,
            reason="Only the client can mark a gig as completed.",
        )
    return TransitionResult(allowed=True)


def _guard_cancel(current: GigStatus, actor_type: ActorType) -> TransitionResult:
    if actor_type in _PRIVILEGED:
        return TransitionResult(allowed=True)
    if actor_type == ActorType.CLIENT and current in _CLIENT_CANCELLABLE:
        return TransitionResult(allowed=True)
    return TransitionResult(
        allowed=False,
        reason=(
            f"Actor '{actor_type.value}' cannot cancel a gig in "
            f"'{current.value}' status."
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_transition(
    current_status: GigStatus,
    new_status: GigStatus,
    actor_type: ActorType = ActorType.SYSTEM,
) -> TransitionResult:
    """Validate whether a gig status transition is allowed.

    Checks the structural state machine first, then the actor guard for the
    target status.
    """
    allowed_targets = VALID_TRANSITIONS.get(current_status, set())
    if new_status not in allowed_targets:
        return TransitionResult(
            allowed=False,
            reason=(
                f"Invalid transition: '{current_status.value}' -> '{new_status.value}'. "
                f"Allowed transitions from '{current_status.value}': "
                f"{', '.join(s.value for s in sorted(allowed_targets, key=lambda s: s.value)) or 'none'}."
            ),
        )

    if new_status in (GigStatus.APPROVED, GigStatus.REJECTED):
        return _guard_moderation(actor_type)

    if new_status == GigStatus.IN_PROGRESS:
        return _guard_start(actor_type)

    if new_status == GigStatus.COMPLETED:
        return _guard_complete(actor_type)

    if new_status == GigStatus.CANCELLED:
        return _guard_cancel(current_status, actor_type)

    return TransitionResult(allowed=True)


def get_valid_transitions(
    current_status: GigStatus,
    actor_type: ActorType = ActorType.SYSTEM,
) -> list[GigStatus]:
    """Return the statuses the given actor can move a gig to from
    ``current_status``.
    """
    candidates = VALID_TRANSITIONS.get(current_status, set())
    valid = [
        target
        for target in candidates
        if validate_transition(current_status, target, actor_type).allowed
    ]
    return sorted(valid, key=lambda s: s.value)


def is_terminal(status: GigStatus) -> bool:
    return status in TERMINAL_STATUSES
