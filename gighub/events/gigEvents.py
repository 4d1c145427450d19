"""
Gig Event Payloads
==================

Builders for the semantic events the workflow services hand to the
notification dispatcher. Every payload names its recipient in ``user_id``
and is JSON-serialisable so it can be stored verbatim as notification data.

Events built here:
  - response_received         (gig owner)
  - response_accepted         (responder)
  - response_rejected         (responder)
  - contact_viewed            (gig owner)
  - job_completion_submitted  (client)
  - job_approved              (provider)
  - job_rejected              (provider)
  - gig_approved / gig_rejected (gig owner)
  - gig_completed             (client)
  - plan_upgraded             (subscriber)
  - withdrawal_requested      (wallet owner)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from gighub.models import Gig, JobCompletion, Proposal

logger = logging.getLogger(__name__)


def _build_event(
    event_type: str,
    recipient_id: uuid.UUID,
    *,
    gig: Gig | None = None,
    data: dict[str, Any] | None = None,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Construct a standardised event payload."""
    event = {
        "event_type": event_type,
        "user_id": str(recipient_id),
        "gig_id": str(gig.id) if gig is not None else None,
        "gig_title": gig.title if gig is not None else None,
        "actor_id": str(actor_id) if actor_id else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data or {},
    }
    logger.debug("Event built: %s for user %s", event_type, recipient_id)
    return event


def _money(amount: Decimal | None) -> str | None:
    return str(amount) if amount is not None else None


def build_response_received_event(
    gig: Gig,
    proposal_id: uuid.UUID | None,
    responder_id: uuid.UUID,
    responder_name: str | None,
) -> dict[str, Any]:
    return _build_event(
        "response_received",
        gig.author_id,
        gig=gig,
        actor_id=responder_id,
        data={
            "proposal_id": str(proposal_id) if proposal_id else None,
            "responder_name": responder_name,
        },
    )


def build_response_accepted_event(gig: Gig, proposal: Proposal) -> dict[str, Any]:
    return _build_event(
        "response_accepted",
        proposal.responder_id,
        gig=gig,
        actor_id=gig.author_id,
        data={
            "proposal_id": str(proposal.id),
            "agreed_price": _money(proposal.proposed_price),
        },
    )


def build_response_rejected_event(
    gig: Gig, proposal: Proposal, reason: str | None
) -> dict[str, Any]:
    return _build_event(
        "response_rejected",
        proposal.responder_id,
        gig=gig,
        actor_id=gig.author_id,
        data={"proposal_id": str(proposal.id), "reason": reason},
    )


def build_contact_viewed_event(
    gig: Gig, *, viewer_id: uuid.UUID, viewer_name: str | None
) -> dict[str, Any]:
    return _build_event(
        "contact_viewed",
        gig.author_id,
        gig=gig,
        actor_id=viewer_id,
        data={"viewer_name": viewer_name},
    )


def build_completion_submitted_event(
    gig: Gig, completion: JobCompletion, provider_name: str | None
) -> dict[str, Any]:
    return _build_event(
        "job_completion_submitted",
        gig.author_id,
        gig=gig,
        actor_id=completion.provider_id,
        data={
            "completion_id": str(completion.id),
            "provider_name": provider_name,
        },
    )


def build_job_approved_event(
    gig: Gig, completion: JobCompletion, amount: Decimal
) -> dict[str, Any]:
    return _build_event(
        "job_approved",
        completion.provider_id,
        gig=gig,
        actor_id=gig.author_id,
        data={"completion_id": str(completion.id), "amount": _money(amount)},
    )


def build_job_rejected_event(
    gig: Gig, completion: JobCompletion, reason: str
) -> dict[str, Any]:
    return _build_event(
        "job_rejected",
        completion.provider_id,
        gig=gig,
        actor_id=gig.author_id,
        data={"completion_id": str(completion.id), "reason": reason},
    )


def build_gig_completed_event(gig: Gig) -> dict[str, Any]:
    return _build_event(
        "gig_completed",
        gig.author_id,
        gig=gig,
        actor_id=gig.provider_id,
        data={"amount": _money(gig.payable_amount)},
    )


def build_gig_moderated_event(
    gig: Gig, *, approved: bool, moderator_id: uuid.UUID, reason: str | None = None
) -> dict[str, Any]:
    return _build_event(
        "gig_approved" if approved else "gig_rejected",
        gig.author_id,
        gig=gig,
        actor_id=moderator_id,
        data={"reason": reason},
    )


def build_plan_upgraded_event(
    user_id: uuid.UUID, plan_tier: str, amount: Decimal, currency: str
) -> dict[str, Any]:
    return _build_event(
        "plan_upgraded",
        user_id,
        actor_id=user_id,
        data={"plan_tier": plan_tier, "amount": _money(amount), "currency": currency},
    )


def build_withdrawal_requested_event(
    user_id: uuid.UUID,
    transaction_id: uuid.UUID,
    amount: Decimal,
    currency: str,
) -> dict[str, Any]:
    return _build_event(
        "withdrawal_requested",
        user_id,
        actor_id=user_id,
        data={
            "transaction_id": str(transaction_id),
            "amount": _money(amount),
            "currency": currency,
        },
    )
