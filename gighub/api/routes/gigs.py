"""
Gig API Routes
==============

  POST /api/v1/gigs                       -- Publish a gig (awaits moderation)
  GET  /api/v1/gigs                       -- Browse gigs
  GET  /api/v1/gigs/{gig_id}              -- Gig detail
  POST /api/v1/gigs/{gig_id}/moderate     -- Approve or reject (admin)
  POST /api/v1/gigs/{gig_id}/cancel       -- Cancel (owner or admin)
  GET  /api/v1/gigs/{gig_id}/contact/access -- Can the caller see the owner's contact?
  POST /api/v1/gigs/{gig_id}/contact      -- Reveal the owner's contact
  POST /api/v1/gigs/{gig_id}/respond      -- Quick response, opens a conversation
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from gighub.api.deps import CurrentUser, DBSession, NotifierDep
from gighub.api.errors import raise_for_error, unwrap
from gighub.api.schemas.gig import (
    ContactAccessOut,
    ContactInfoOut,
    ContactViewOut,
    CreateGigRequest,
    GigOut,
    GigResponseOut,
    ModerateGigRequest,
)
from gighub.models import GigStatus
from gighub.services import contactViewService, gigService, proposalService
from gighub.services.contactViewService import ContactViewReason

router = APIRouter(prefix="/gigs", tags=["Gigs"])


@router.post(
    "",
    response_model=GigOut,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a gig",
)
async def create_gig(
    body: CreateGigRequest, db: DBSession, current_user: CurrentUser
) -> GigOut:
    gig = unwrap(
        await gigService.create_gig(
            db,
            current_user,
            gigService.GigInput(
                title=body.title,
                description=body.description,
                price=body.price,
                category=body.category,
                location=body.location,
            ),
        )
    )
    return GigOut.model_validate(gig)


@router.get("", response_model=list[GigOut], summary="Browse gigs")
async def list_gigs(
    db: DBSession,
    current_user: CurrentUser,
    status_filter: Optional[GigStatus] = Query(default=None, alias="status"),
    mine: bool = Query(default=False, description="Only gigs the caller published"),
    assigned: bool = Query(default=False, description="Only gigs assigned to the caller"),
    category: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[GigOut]:
    # Browsing without a filter shows the open marketplace
    if status_filter is None and not (mine or assigned):
        status_filter = GigStatus.APPROVED
    gigs = await gigService.list_gigs(
        db,
        status=status_filter,
        author_id=current_user.id if mine else None,
        provider_id=current_user.id if assigned else None,
        category=category,
        limit=limit,
        offset=offset,
    )
    return [GigOut.model_validate(g) for g in gigs]


@router.get("/{gig_id}", response_model=GigOut, summary="Gig detail")
async def get_gig(gig_id: uuid.UUID, db: DBSession, current_user: CurrentUser) -> GigOut:
    gig = await gigService.get_gig(db, gig_id)
    if gig is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gig not found")
    return GigOut.model_validate(gig)


@router.post("/{gig_id}/moderate", response_model=GigOut, summary="Moderate a gig")
async def moderate_gig(
    gig_id: uuid.UUID,
    body: ModerateGigRequest,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> GigOut:
    gig = unwrap(
        await gigService.moderate_gig(
            db, gig_id, current_user, body.approve, body.reason, notifier
        )
    )
    return GigOut.model_validate(gig)


@router.post("/{gig_id}/cancel", response_model=GigOut, summary="Cancel a gig")
async def cancel_gig(gig_id: uuid.UUID, db: DBSession, current_user: CurrentUser) -> GigOut:
    gig = unwrap(await gigService.cancel_gig(db, gig_id, current_user))
    return GigOut.model_validate(gig)


# ---------------------------------------------------------------------------
# Contact gate
# ---------------------------------------------------------------------------

@router.get(
    "/{gig_id}/contact/access",
    response_model=ContactAccessOut,
    summary="Check whether the caller can reveal the owner's contact",
)
async def contact_access(
    gig_id: uuid.UUID, db: DBSession, current_user: CurrentUser
) -> ContactAccessOut:
    check = await contactViewService.can_view_contact(db, current_user.id, gig_id)
    if check.reason == ContactViewReason.GIG_NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gig not found")
    return ContactAccessOut(
        can_view=check.can_view, reason=check.reason.value, remaining=check.remaining
    )


@router.post(
    "/{gig_id}/contact",
    response_model=ContactViewOut,
    summary="Reveal the gig owner's contact details",
    description=(
        "Consumes one contact_view unit the first time a user reveals a "
        "given gig's contact. Later calls return the same details for free."
    ),
)
async def view_contact(
    gig_id: uuid.UUID,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> ContactViewOut:
    result = await contactViewService.view_contact(
        db, current_user.id, gig_id, notifier, locale=current_user.locale
    )
    if not result.success:
        raise_for_error(result.error)
    return ContactViewOut(
        contact_info=ContactInfoOut.model_validate(result.contact_info),
        already_viewed=result.already_viewed,
    )


@router.post(
    "/{gig_id}/respond",
    response_model=GigResponseOut,
    summary="Respond to a gig without a full proposal",
)
async def respond_to_gig(
    gig_id: uuid.UUID,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> GigResponseOut:
    response = unwrap(
        await proposalService.respond_to_gig(
            db, gig_id, current_user.id, notifier, locale=current_user.locale
        )
    )
    return GigResponseOut(
        conversation_id=response.conversation.id,
        already_responded=response.already_responded,
    )
