"""
Job Completion Service
======================

The provider claims a gig is done; the client approves (releasing payment)
or sends it back for revision.

Completion status moves ``pending -> approved`` or ``pending -> rejected``.
At most one completion per gig is pending at a time, enforced by a partial
unique index; a rejected completion frees the slot so the provider can
resubmit.

Approval requires the gig to still be ``in_progress``. The gig then moves
to ``completed`` and the provider's wallet is credited with the agreed price
(falling back to the listed price) in the same transaction.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.events.gigEvents import (
    build_completion_submitted_event,
    build_gig_completed_event,
    build_job_approved_event,
    build_job_rejected_event,
)
from gighub.models import CompletionStatus, Gig, GigStatus, JobCompletion, User
from gighub.services import walletService
from gighub.services.gigService import get_gig, transition_gig
from gighub.services.gigStateManager import ActorType
from gighub.services.notificationDispatcher import Notifier
from gighub.services.results import ErrorCode, ServiceError, ServiceResult, service_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionInput:
    gig_id: uuid.UUID
    provider_id: uuid.UUID
    description: str
    attachments: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _load_for_review(
    db: AsyncSession,
    completion_id: uuid.UUID,
    client_id: uuid.UUID,
    locale: Optional[str],
) -> ServiceResult[tuple[JobCompletion, Gig]]:
    """Load a completion and its gig for a client decision."""
    completion = await db.get(JobCompletion, completion_id)
    if completion is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "completion_not_found", locale)
        )
    gig = await get_gig(db, completion.gig_id)
    if gig is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "gig_not_found", locale)
        )
    if gig.author_id != client_id:
        return ServiceResult.failure(
            service_error(ErrorCode.UNAUTHORIZED, "not_gig_client", locale)
        )
    if completion.status != CompletionStatus.PENDING.value:
        return ServiceResult.failure(
            service_error(ErrorCode.CONFLICT, "completion_not_pending", locale)
        )
    return ServiceResult.success((completion, gig))


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def submit_completion(
    db: AsyncSession,
    data: CompletionInput,
    notifier: Optional[Notifier] = None,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[JobCompletion]:
    """Provider marks the gig as done and asks the client to approve."""
    description = (data.description or "").strip()
    if not description:
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "missing_completion_description", locale)
        )

    gig = await get_gig(db, data.gig_id)
    if gig is None:
        return ServiceResult.failure(service_error(ErrorCode.NOT_FOUND, "gig_not_found", locale))
    if gig.provider_id != data.provider_id:
        return ServiceResult.failure(
            service_error(ErrorCode.UNAUTHORIZED, "not_gig_provider", locale)
        )
    if gig.status != GigStatus.IN_PROGRESS:
        return ServiceResult.failure(
            service_error(ErrorCode.CONFLICT, "gig_not_in_progress", locale)
        )

    completion = JobCompletion(
        gig_id=gig.id,
        provider_id=data.provider_id,
        description=description,
        attachments=list(data.attachments or []),
        status=CompletionStatus.PENDING.value,
    )
    try:
        async with db.begin_nested():
            db.add(completion)
            await db.flush()
    except IntegrityError:
        logger.info("Duplicate pending completion refused for gig %s", gig.id)
        return ServiceResult.failure(
            service_error(ErrorCode.CONFLICT, "completion_already_pending", locale)
        )
    except SQLAlchemyError:
        logger.exception("Failed to store completion for gig %s", gig.id)
        return ServiceResult.failure(service_error(ErrorCode.INTERNAL, "internal_error", locale))

    logger.info("Completion submitted: id=%s gig=%s", completion.id, gig.id)
    if notifier is not None:
        provider = await db.get(User, data.provider_id)
        notifier.trigger(
            "job_completion_submitted",
            build_completion_submitted_event(
                gig, completion, provider.full_name if provider else None
            ),
        )
    return ServiceResult.success(completion)


async def approve_completion(
    db: AsyncSession,
    completion_id: uuid.UUID,
    client_id: uuid.UUID,
    notifier: Optional[Notifier] = None,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[JobCompletion]:
    """Client accepts the delivered work and releases payment.

    The gig must still be in progress: a gig cancelled while a completion
    was pending can no longer be approved or paid.
    """
    loaded = await _load_for_review(db, completion_id, client_id, locale)
    if not loaded.ok:
        return ServiceResult.failure(loaded.error)
    completion, gig = loaded.data

    if gig.status != GigStatus.IN_PROGRESS:
        logger.info(
            "Completion %s not approved: gig %s is %s",
            completion.id, gig.id, GigStatus(gig.status).value,
        )
        return ServiceResult.failure(
            service_error(ErrorCode.CONFLICT, "gig_not_in_progress", locale)
        )

    error = transition_gig(gig, GigStatus.COMPLETED, ActorType.CLIENT, locale)
    if error is not None:
        return ServiceResult.failure(error)

    completion.status = CompletionStatus.APPROVED.value
    completion.reviewed_at = datetime.now(timezone.utc)
    gig.completed_at = completion.reviewed_at

    amount = gig.payable_amount
    try:
        await db.flush()
        await walletService.release_payment(db, completion.provider_id, gig, amount)
    except SQLAlchemyError:
        logger.exception("Failed to approve completion %s", completion.id)
        return ServiceResult.failure(service_error(ErrorCode.INTERNAL, "internal_error", locale))

    logger.info("Completion %s approved; %s released to %s", completion.id, amount, completion.provider_id)
    if notifier is not None:
        notifier.trigger("job_approved", build_job_approved_event(gig, completion, amount))
        notifier.trigger("gig_completed", build_gig_completed_event(gig))
    return ServiceResult.success(completion)


async def reject_completion(
    db: AsyncSession,
    completion_id: uuid.UUID,
    client_id: uuid.UUID,
    reason: str,
    notifier: Optional[Notifier] = None,
    *,
    locale: Optional[str] = None,
) -> ServiceResult[JobCompletion]:
    """Client asks for revisions. The gig stays in progress."""
    reason = (reason or "").strip()
    if not reason:
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "missing_rejection_reason", locale)
        )

    loaded = await _load_for_review(db, completion_id, client_id, locale)
    if not loaded.ok:
        return ServiceResult.failure(loaded.error)
    completion, gig = loaded.data

    completion.status = CompletionStatus.REJECTED.value
    completion.rejection_reason = reason
    completion.reviewed_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("Completion %s rejected", completion.id)
    if notifier is not None:
        notifier.trigger("job_rejected", build_job_rejected_event(gig, completion, reason))
    return ServiceResult.success(completion)


async def _check_viewer(
    db: AsyncSession, gig_id: uuid.UUID, viewer: User
) -> Optional[ServiceError]:
    """Completions are visible to the gig's author, its provider and admins."""
    gig = await get_gig(db, gig_id)
    if gig is None:
        return service_error(ErrorCode.NOT_FOUND, "gig_not_found", viewer.locale)
    if viewer.role_admin or viewer.id in (gig.author_id, gig.provider_id):
        return None
    return service_error(ErrorCode.UNAUTHORIZED, "not_gig_participant", viewer.locale)


async def get_active_completion(
    db: AsyncSession, gig_id: uuid.UUID, viewer: User
) -> ServiceResult[Optional[JobCompletion]]:
    """Latest pending or approved completion for a gig, or ``None``."""
    error = await _check_viewer(db, gig_id, viewer)
    if error is not None:
        return ServiceResult.failure(error)
    result = await db.execute(
        select(JobCompletion)
        .where(
            JobCompletion.gig_id == gig_id,
            JobCompletion.status.in_(
                [CompletionStatus.PENDING.value, CompletionStatus.APPROVED.value]
            ),
        )
        .order_by(JobCompletion.created_at.desc())
        .limit(1)
    )
    return ServiceResult.success(result.scalar_one_or_none())


async def list_completions(
    db: AsyncSession, gig_id: uuid.UUID, viewer: User
) -> ServiceResult[list[JobCompletion]]:
    error = await _check_viewer(db, gig_id, viewer)
    if error is not None:
        return ServiceResult.failure(error)
    result = await db.execute(
        select(JobCompletion)
        .where(JobCompletion.gig_id == gig_id)
        .order_by(JobCompletion.created_at.desc())
    )
    return ServiceResult.success(list(result.scalars().all()))
