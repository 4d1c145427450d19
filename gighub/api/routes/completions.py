"""
Job Completion API Routes
=========================

  POST /api/v1/completions                         -- Provider claims completion
  POST /api/v1/completions/{completion_id}/approve -- Client approves, payment released
  POST /api/v1/completions/{completion_id}/reject  -- Client requests revisions
  GET  /api/v1/completions/gig/{gig_id}            -- All completions for a gig
  GET  /api/v1/completions/gig/{gig_id}/active     -- Latest pending/approved completion
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, status

from gighub.api.deps import CurrentUser, DBSession, NotifierDep
from gighub.api.errors import unwrap
from gighub.api.schemas.completion import (
    CompletionResponse,
    RejectCompletionRequest,
    SubmitCompletionRequest,
)
from gighub.services import jobCompletionService
from gighub.services.jobCompletionService import CompletionInput

router = APIRouter(prefix="/completions", tags=["Completions"])


@router.post(
    "",
    response_model=CompletionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a completion request",
)
async def submit_completion(
    body: SubmitCompletionRequest,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> CompletionResponse:
    completion = unwrap(
        await jobCompletionService.submit_completion(
            db,
            CompletionInput(
                gig_id=body.gig_id,
                provider_id=current_user.id,
                description=body.description,
                attachments=body.attachments,
            ),
            notifier,
            locale=current_user.locale,
        )
    )
    return CompletionResponse.model_validate(completion)


@router.post(
    "/{completion_id}/approve",
    response_model=CompletionResponse,
    summary="Approve a completion",
    description="Completes the gig and credits the provider's wallet.",
)
async def approve_completion(
    completion_id: uuid.UUID,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> CompletionResponse:
    completion = unwrap(
        await jobCompletionService.approve_completion(
            db, completion_id, current_user.id, notifier, locale=current_user.locale
        )
    )
    return CompletionResponse.model_validate(completion)


@router.post(
    "/{completion_id}/reject",
    response_model=CompletionResponse,
    summary="Request revisions",
)
async def reject_completion(
    completion_id: uuid.UUID,
    body: RejectCompletionRequest,
    db: DBSession,
    current_user: CurrentUser,
    notifier: NotifierDep,
) -> CompletionResponse:
    completion = unwrap(
        await jobCompletionService.reject_completion(
            db, completion_id, current_user.id, body.reason, notifier,
            locale=current_user.locale,
        )
    )
    return CompletionResponse.model_validate(completion)


@router.get(
    "/gig/{gig_id}",
    response_model=list[CompletionResponse],
    summary="Completion history for a gig",
)
async def gig_completions(
    gig_id: uuid.UUID, db: DBSession, current_user: CurrentUser
) -> list[CompletionResponse]:
    completions = unwrap(
        await jobCompletionService.list_completions(db, gig_id, current_user)
    )
    return [CompletionResponse.model_validate(c) for c in completions]


@router.get(
    "/gig/{gig_id}/active",
    response_model=Optional[CompletionResponse],
    summary="Active completion for a gig",
    description="Visible to the gig's client, its provider and admins.",
)
async def active_completion(
    gig_id: uuid.UUID, db: DBSession, current_user: CurrentUser
) -> Optional[CompletionResponse]:
    completion = unwrap(
        await jobCompletionService.get_active_completion(db, gig_id, current_user)
    )
    return CompletionResponse.model_validate(completion) if completion else None
