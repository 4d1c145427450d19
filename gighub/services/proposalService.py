"""
Proposal Service
================

Handles the proposal negotiation lifecycle on a gig:
- Creating structured proposals (quota-metered, unlocks the owner's contact)
- Counter-proposals, one level deep and free of quota
- Owner accept / reject decisions
- Quick responses that open a conversation without a full proposal
- Listing proposals and managing a provider's proposal templates

Proposal status moves ``pending -> accepted`` or ``pending -> rejected`` and
never leaves either terminal state. Accepting a proposal starts the gig
(``approved -> in_progress``); other pending proposals on the gig are left
as they are.

Quota consumed by ``create_proposal`` is not refunded if a later step fails.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.core.messages import translate
from gighub.events.gigEvents import (
    build_response_accepted_event,
    build_response_received_event,
    build_response_rejected_event,
)
from gighub.models import (
    Conversation,
    Gig,
    GigStatus,
    Proposal,
    ProposalStatus,
    ProposalTemplate,
    QuotaAction,
    User,
)
from gighub.services import (
    contactViewService,
    conversationService,
    planLimitsService,
)
from gighub.services.contactViewService import ContactViewReason
from gighub.services.gigService import get_gig, transition_gig
from gighub.services.gigStateManager import ActorType
from gighub.services.notificationDispatcher import Notifier
from gighub.services.results import (
    ErrorCode,
    ServiceError,
    ServiceResult,
    service_error,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input / output types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProposalInput:
    gig_id: uuid.UUID
    proposal_title: str
    proposal_description: str
    proposed_price: Decimal
    timeline_days: int
    deliverables: list[str] = field(default_factory=list)
    terms_conditions: Optional[str] = None
    attachments: list[Any] = field(default_factory=list)
    expires_at: Optional[datetime] = None
    parent_proposal_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class TemplateInput:
    name: str
    title: str
    description: str
    deliverables: list[str] = field(default_factory=list)
    terms_conditions: Optional[str] = None
    category: Optional[str] = None
    is_default: bool = False


@dataclass(frozen=True)
class GigResponse:
    """Outcome of a quick response: the conversation the responder can use."""
    conversation: Conversation
    already_responded: bool


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _clean_deliverables(deliverables: list[str] | None) -> list[str]:
    return [d.strip() for d in (deliverables or []) if d and d.strip()]


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """True once ``expires_at`` has passed. Naive timestamps are UTC."""
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= (now or datetime.now(timezone.utc))


def validate_proposal(
    data: ProposalInput, locale: Optional[str] = None
) -> Optional[ServiceError]:
    """Field validation shared by proposals and counter-proposals.

    Runs before any database access.
    """
    if not (data.proposal_title or "").strip():
        return service_error(ErrorCode.VALIDATION, "missing_title", locale)
    if not (data.proposal_description or "").strip():
        return service_error(ErrorCode.VALIDATION, "missing_description", locale)
    try:
        price = Decimal(data.proposed_price)
    except (InvalidOperation, TypeError, ValueError):
        price = Decimal(0)
    if not price.is_finite() or price <= 0:
        return service_error(ErrorCode.VALIDATION, "invalid_price", locale)
    if data.timeline_days is None or int(data.timeline_days) <= 0:
        return service_error(ErrorCode.VALIDATION, "invalid_timeline", locale)
    if not _clean_deliverables(data.deliverables):
        return service_error(ErrorCode.VALIDATION, "missing_deliverables", locale)
    if data.expires_at is not None and is_expired(data.expires_at):
        return service_error(ErrorCode.VALIDATION, "invalid_expiry", locale)
    return None


async def _get_proposal(db: AsyncSession, proposal_id: uuid.UUID) -> Optional[Proposal]:
    result = await db.execute(select(Proposal).where(Proposal.id == proposal_id))
    return result.scalar_one_or_none()


async def _user_name(db: AsyncSession, user_id: uuid.UUID) -> Optional[str]:
    user = await db.get(User, user_id)
    return user.full_name if user else None


def _new_proposal(
    data: ProposalInput,
    responder_id: uuid.UUID,
    *,
    counter: bool = False,
) -> Proposal:
    return Proposal(
        gig_id=data.gig_id,
        responder_id=responder_id,
        proposal_title=data.proposal_title.strip(),
        proposal_description=data.proposal_description.strip(),
        proposed_price=Decimal(data.proposed_price),
        timeline_days=int(data.timeline_days),
        deliverables=_clean_deliverables(data.deliverables),
        terms_conditions=data.terms_conditions,
        attachments=list(data.attachments or []),
        expires_at=data.expires_at,
        status=ProposalStatus.PENDING.value,
        is_counter_proposal=counter,
        parent_proposal_id=data.parent_proposal_id if counter else None,
    )


async def _insert(
    db: AsyncSession, proposal: Proposal, locale: Optional[str]
) -> Optional[ServiceError]:
    """Insert inside a savepoint so a failure leaves earlier writes intact."""
    try:
        async with db.begin_nested():
            db.add(proposal)
            await db.flush()
    except SQLAlchemyError:
        logger.exception("Failed to insert proposal on gig %s", proposal.gig_id)
        return service_error(ErrorCode.INTERNAL, "internal_error", locale)
    return None


async def _load_for_decision(
    db: AsyncSession,
    proposal_id: uuid.UUID,
    user_id: uuid.UUID,
    locale: Optional[str],
) -> ServiceResult[tuple[Proposal, Gig]]:
    """Load a proposal and its gig for an owner decision, enforcing
    ownership and the pending status."""
    proposal = await _get_proposal(db, proposal_id)
    if proposal is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "proposal_not_found", locale)
        )
    gig = await get_gig(db, proposal.gig_id)
    if gig is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "gig_not_found", locale)
        )
    if gig.author_id != user_id:
        return ServiceResult.failure(
            service_error(ErrorCode.UNAUTHORIZED, "not_gig_owner", locale)
        )
    if proposal.status != ProposalStatus.PENDING.value:
        return ServiceResult.failure(
            service_error(ErrorCode.CONFLICT, "proposal_not_pending", locale)
        )
    return ServiceResult.success((proposal, gig))


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_proposal(
    db: AsyncSession,
    data: ProposalInput,
    responder_id: uuid.UUID,
    notifier: Optional[Notifier] = None,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[Proposal]:
    """Submit a proposal on an open gig.

    Order of checks: field validation, gig state, proposal quota, contact
    credits. Only then is a proposal unit consumed, the contact unlocked,
    the proposal inserted and the conversation opened.
    """
    invalid = validate_proposal(data, locale)
    if invalid is not None:
        return ServiceResult.failure(invalid)

    gig = await get_gig(db, data.gig_id)
    if gig is None:
        return ServiceResult.failure(service_error(ErrorCode.NOT_FOUND, "gig_not_found", locale))
    if gig.author_id == responder_id:
        return ServiceResult.failure(service_error(ErrorCode.UNAUTHORIZED, "own_gig", locale))
    if gig.status != GigStatus.APPROVED:
        return ServiceResult.failure(service_error(ErrorCode.CONFLICT, "gig_not_open", locale))

    quota = await planLimitsService.can_perform_action(
        db, responder_id, QuotaAction.PROPOSAL, locale=locale
    )
    if not quota.allowed:
        logger.info("Proposal refused for %s on gig %s: quota", responder_id, gig.id)
        return ServiceResult.failure(quota.error)

    contact = await contactViewService.can_view_contact(db, responder_id, gig.id)
    if contact.reason == ContactViewReason.INSUFFICIENT_CREDITS:
        return ServiceResult.failure(
            service_error(ErrorCode.QUOTA_EXCEEDED, "insufficient_contact_credits", locale)
        )

    consumed = await planLimitsService.consume_quota(
        db, responder_id, QuotaAction.PROPOSAL, gig.id, "gig", locale=locale
    )
    if not consumed.success:
        return ServiceResult.failure(consumed.error)

    unlocked = await contactViewService.view_contact(
        db, responder_id, gig.id, notifier, locale=locale
    )
    if not unlocked.success:
        logger.warning(
            "Contact unlock failed while proposing on gig %s: %s",
            gig.id, unlocked.error.message if unlocked.error else "unknown",
        )

    proposal = _new_proposal(data, responder_id)
    failed = await _insert(db, proposal, locale)
    if failed is not None:
        return ServiceResult.failure(failed)

    await conversationService.get_or_create_conversation(
        db, gig.id, gig.author_id, responder_id
    )

    logger.info("Proposal created: id=%s gig=%s responder=%s", proposal.id, gig.id, responder_id)
    if notifier is not None:
        notifier.trigger(
            "response_received",
            build_response_received_event(
                gig, proposal.id, responder_id, await _user_name(db, responder_id)
            ),
        )
    return ServiceResult.success(proposal)


async def create_counter_proposal(
    db: AsyncSession,
    data: ProposalInput,
    user_id: uuid.UUID,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[Proposal]:
    """Answer an original proposal with a counter-offer.

    Only the gig owner or the original responder may counter. Counter
    offers do not consume quota and reuse the existing conversation.
    """
    invalid = validate_proposal(data, locale)
    if invalid is not None:
        return ServiceResult.failure(invalid)

    parent = (
        await _get_proposal(db, data.parent_proposal_id)
        if data.parent_proposal_id is not None
        else None
    )
    if parent is None or parent.gig_id != data.gig_id:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "parent_proposal_not_found", locale)
        )
    if parent.is_counter_proposal:
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "nested_counter_proposal", locale)
        )

    gig = await get_gig(db, data.gig_id)
    if gig is None:
        return ServiceResult.failure(service_error(ErrorCode.NOT_FOUND, "gig_not_found", locale))
    if user_id not in (gig.author_id, parent.responder_id):
        return ServiceResult.failure(service_error(ErrorCode.UNAUTHORIZED, "unauthorized", locale))
    if gig.status != GigStatus.APPROVED:
        return ServiceResult.failure(service_error(ErrorCode.CONFLICT, "gig_not_open", locale))

    counter = _new_proposal(data, user_id, counter=True)
    failed = await _insert(db, counter, locale)
    if failed is not None:
        return ServiceResult.failure(failed)

    logger.info("Counter-proposal created: id=%s parent=%s by=%s", counter.id, parent.id, user_id)
    return ServiceResult.success(counter)


async def accept_proposal(
    db: AsyncSession,
    proposal_id: uuid.UUID,
    user_id: uuid.UUID,
    notifier: Optional[Notifier] = None,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[Proposal]:
    """Gig owner accepts a pending proposal; the gig moves to in_progress.

    A proposal past its ``expires_at`` can still be rejected but no longer
    accepted.
    """
    loaded = await _load_for_decision(db, proposal_id, user_id, locale)
    if not loaded.ok:
        return ServiceResult.failure(loaded.error)
    proposal, gig = loaded.data

    if is_expired(proposal.expires_at):
        return ServiceResult.failure(
            service_error(ErrorCode.CONFLICT, "proposal_expired", locale)
        )

    error = transition_gig(gig, GigStatus.IN_PROGRESS, ActorType.CLIENT, locale)
    if error is not None:
        return ServiceResult.failure(error)

    provider_id = proposal.responder_id
    if proposal.is_counter_proposal and provider_id == gig.author_id:
        # The owner's own counter-offer: the provider is the original responder
        parent = await _get_proposal(db, proposal.parent_proposal_id)
        provider_id = parent.responder_id if parent else None

    now = datetime.now(timezone.utc)
    proposal.status = ProposalStatus.ACCEPTED.value
    proposal.responded_at = now
    gig.provider_id = provider_id
    gig.agreed_price = proposal.proposed_price
    await db.flush()

    logger.info("Proposal %s accepted; gig %s in progress", proposal.id, gig.id)
    if notifier is not None:
        notifier.trigger("response_accepted", build_response_accepted_event(gig, proposal))
    return ServiceResult.success(proposal)


async def reject_proposal(
    db: AsyncSession,
    proposal_id: uuid.UUID,
    user_id: uuid.UUID,
    notifier: Optional[Notifier] = None,
    reason: Optional[str] = None,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[Proposal]:
    """Gig owner rejects a pending proposal with an optional reason."""
    loaded = await _load_for_decision(db, proposal_id, user_id, locale)
    if not loaded.ok:
        return ServiceResult.failure(loaded.error)
    proposal, gig = loaded.data

    message = (reason or "").strip() or translate("proposal_rejected_default", locale)
    proposal.status = ProposalStatus.REJECTED.value
    proposal.response_message = message
    proposal.responded_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("Proposal %s rejected", proposal.id)
    if notifier is not None:
        notifier.trigger(
            "response_rejected", build_response_rejected_event(gig, proposal, message)
        )
    return ServiceResult.success(proposal)


async def respond_to_gig(
    db: AsyncSession,
    gig_id: uuid.UUID,
    responder_id: uuid.UUID,
    notifier: Optional[Notifier] = None,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[GigResponse]:
    """Quick response: open a conversation with the gig owner.

    Consumes one ``gig_response`` unit the first time; responding again to
    the same gig returns the existing conversation for free.
    """
    gig = await get_gig(db, gig_id)
    if gig is None:
        return ServiceResult.failure(service_error(ErrorCode.NOT_FOUND, "gig_not_found", locale))
    if gig.author_id == responder_id:
        return ServiceResult.failure(service_error(ErrorCode.UNAUTHORIZED, "own_gig", locale))

    existing = await conversationService.find_conversation(
        db, gig.id, gig.author_id, responder_id
    )
    if existing is not None:
        return ServiceResult.success(GigResponse(conversation=existing, already_responded=True))

    if gig.status != GigStatus.APPROVED:
        return ServiceResult.failure(service_error(ErrorCode.CONFLICT, "gig_not_open", locale))

    consumed = await planLimitsService.consume_quota(
        db, responder_id, QuotaAction.GIG_RESPONSE, gig.id, "gig", locale=locale
    )
    if not consumed.success:
        return ServiceResult.failure(consumed.error)

    unlocked = await contactViewService.view_contact(
        db, responder_id, gig.id, notifier, locale=locale
    )
    if not unlocked.success:
        logger.warning("Contact unlock failed while responding to gig %s", gig.id)

    conversation = await conversationService.get_or_create_conversation(
        db, gig.id, gig.author_id, responder_id
    )

    logger.info("Quick response: gig=%s responder=%s", gig.id, responder_id)
    if notifier is not None:
        notifier.trigger(
            "response_received",
            build_response_received_event(
                gig, None, responder_id, await _user_name(db, responder_id)
            ),
        )
    return ServiceResult.success(GigResponse(conversation=conversation, already_responded=False))


async def get_gig_proposals(
    db: AsyncSession, gig_id: uuid.UUID, viewer_id: uuid.UUID
) -> ServiceResult[list[Proposal]]:
    """Proposals on a gig, newest first.

    The owner sees all of them; anyone else sees their own proposals and
    the counter-offers made on them.
    """
    gig = await get_gig(db, gig_id)
    if gig is None:
        return ServiceResult.failure(service_error(ErrorCode.NOT_FOUND, "gig_not_found"))

    stmt = select(Proposal).where(Proposal.gig_id == gig_id)
    if gig.author_id != viewer_id:
        own_ids = select(Proposal.id).where(
            Proposal.gig_id == gig_id, Proposal.responder_id == viewer_id
        )
        stmt = stmt.where(
            or_(Proposal.responder_id == viewer_id, Proposal.parent_proposal_id.in_(own_ids))
        )
    result = await db.execute(stmt.order_by(Proposal.created_at.desc()))
    return ServiceResult.success(list(result.scalars().all()))


async def save_proposal_template(
    db: AsyncSession, provider_id: uuid.UUID, data: TemplateInput
) -> ServiceResult[ProposalTemplate]:
    if not data.name.strip() or not data.title.strip():
        return ServiceResult.failure(service_error(ErrorCode.VALIDATION, "missing_title"))
    if not data.description.strip():
        return ServiceResult.failure(service_error(ErrorCode.VALIDATION, "missing_description"))

    if data.is_default:
        await db.execute(
            update(ProposalTemplate)
            .where(ProposalTemplate.provider_id == provider_id)
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    template = ProposalTemplate(
        provider_id=provider_id,
        name=data.name.strip(),
        title=data.title.strip(),
        description=data.description.strip(),
        deliverables=_clean_deliverables(data.deliverables),
        terms_conditions=data.terms_conditions,
        category=data.category,
        is_default=data.is_default,
    )
    db.add(template)
    await db.flush()
    return ServiceResult.success(template)


async def get_provider_templates(
    db: AsyncSession, provider_id: uuid.UUID
) -> list[ProposalTemplate]:
    """Templates of a provider, default first then by name."""
    result = await db.execute(
        select(ProposalTemplate)
        .where(ProposalTemplate.provider_id == provider_id)
        .order_by(ProposalTemplate.is_default.desc(), ProposalTemplate.name.asc())
    )
    return list(result.scalars().all())
