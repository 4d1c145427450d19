"""
Proposal API Routes
===================

REST endpoints for the proposal negotiation lifecycle on a gig.

  POST /api/v1/proposals                        -- Submit a proposal
  POST /api/v1/proposals/counter                -- Counter an existing proposal
  POST /api/v1/proposals/{proposal_id}/accept   -- Owner accepts
  POST /api/v1/proposals/{proposal_id}/reject   -- Owner rejects
  GET  /api/v1/proposals/gig/{gig_id}           -- Proposals on a gig
  POST /api/v1/proposals/templates              -- Save a proposal template
  GET  /api/v1/proposals/templates              -- The caller's templates
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, status

from gighub.api.deps import CurrentUser, DBSession, NotifierDep
from gighub.api.errors import unwrap
from gighub.api.schemas.proposal import (
    CounterProposalRequest,
    CreateProposalRequest,
    ProposalResponse,
    ProposalTemplateRequest,
    ProposalTemplateResponse,
    RejectProposalRequest,
)
from gighub.services import proposalService
from gighub.services.proposalService import ProposalInput, TemplateInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposals", tags=["Proposals"])


def _to_input(body: CreateProposalRequest) -> ProposalInput:
    return ProposalInput(
        gig_id=body.gig_id,
        proposal_title=body.proposal_title,
        proposal_description=body.proposal_description,
        proposed_price=body.proposed_price,
        timeline_days=body.timeline_days,
        deliverables=body.deliverables,
        terms_conditions=body.terms_conditions,
        attachments=body.attachments,
        expires_at=body.expires_at,
        parent_proposal_id=getattr(body, "parent_proposal_id", None),
    )


# ---------------------------------------------------------------------------
# POST /proposals
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a proposal on an open gig",
    description=(
        "Consumes one proposal unit from the caller's plan and unlocks the "
        "gig owner's contact (consuming a contact_view unit if not already "
        "unlocked). Opens the conversation with the owner."
    ),
)
async def create_proposal(
    body: CreateProposalRequest,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> ProposalResponse:
    proposal = unwrap(
        await proposalService.create_proposal(
            db, _to_input(body), current_user.id, notifier, locale=current_user.locale
        )
    )
    return ProposalResponse.model_validate(proposal)


@router.post(
    "/counter",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Counter an existing proposal",
)
async def create_counter_proposal(
    body: CounterProposalRequest,
    db: DBSession,
    current_user: CurrentUser,
) -> ProposalResponse:
    proposal = unwrap(
        await proposalService.create_counter_proposal(
            db, _to_input(body), current_user.id, locale=current_user.locale
        )
    )
    return ProposalResponse.model_validate(proposal)


# ---------------------------------------------------------------------------
# Owner decisions
# ---------------------------------------------------------------------------

@router.post(
    "/{proposal_id}/accept",
    response_model=ProposalResponse,
    summary="Accept a proposal",
    description="The gig moves to in_progress with the proposal's price agreed.",
)
async def accept_proposal(
    proposal_id: uuid.UUID,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> ProposalResponse:
    proposal = unwrap(
        await proposalService.accept_proposal(
            db, proposal_id, current_user.id, notifier, locale=current_user.locale
        )
    )
    return ProposalResponse.model_validate(proposal)


@router.post("/{proposal_id}/reject", response_model=ProposalResponse, summary="Reject a proposal")
async def reject_proposal(
    proposal_id: uuid.UUID,
    body: RejectProposalRequest,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> ProposalResponse:
    proposal = unwrap(
        await proposalService.reject_proposal(
            db, proposal_id, current_user.id, notifier, body.reason,
            locale=current_user.locale,
        )
    )
    return ProposalResponse.model_validate(proposal)


@router.get(
    "/gig/{gig_id}",
    response_model=list[ProposalResponse],
    summary="List proposals on a gig",
)
async def list_gig_proposals(
    gig_id: uuid.UUID, db: DBSession, current_user: CurrentUser
) -> list[ProposalResponse]:
    proposals = unwrap(await proposalService.get_gig_proposals(db, gig_id, current_user.id))
    return [ProposalResponse.model_validate(p) for p in proposals]


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

@router.post(
    "/templates",
    response_model=ProposalTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a proposal template",
)
async def save_template(
    body: ProposalTemplateRequest, db: DBSession, current_user: CurrentUser
) -> ProposalTemplateResponse:
    template = unwrap(
        await proposalService.save_proposal_template(
            db, current_user.id, TemplateInput(**body.model_dump())
        )
    )
    return ProposalTemplateResponse.model_validate(template)


@router.get(
    "/templates",
    response_model=list[ProposalTemplateResponse],
    summary="The caller's proposal templates",
)
async def list_templates(
    db: DBSession, current_user: CurrentUser
) -> list[ProposalTemplateResponse]:
    templates = await proposalService.get_provider_templates(db, current_user.id)
    return [ProposalTemplateResponse.model_validate(t) for t in templates]
