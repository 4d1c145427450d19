"""
Gig Service
===========

Gig lifecycle outside the proposal and completion workflows: publishing,
moderation, cancellation and listing. Every status change goes through
``transition_gig``, which validates against ``gigStateManager``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.events.gigEvents import build_gig_moderated_event
from gighub.models import Gig, GigStatus, User
from gighub.services import gigStateManager
from gighub.services.gigStateManager import ActorType
from gighub.services.notificationDispatcher import Notifier
from gighub.services.results import (
    ErrorCode,
    ServiceError,
    ServiceResult,
    service_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GigInput:
    title: str
    description: str
    price: Decimal
    category: Optional[str] = None
    location: Optional[str] = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def get_gig(db: AsyncSession, gig_id: uuid.UUID) -> Optional[Gig]:
    result = await db.execute(select(Gig).where(Gig.id == gig_id))
    return result.scalar_one_or_none()


def transition_gig(
    gig: Gig,
    new_status: GigStatus,
    actor_type: ActorType,
    locale: Optional[str] = None,
) -> Optional[ServiceError]:
    """Apply ``new_status`` to ``gig`` if the state machine allows it.

    Returns None on success or a CONFLICT/UNAUTHORIZED error. The caller is
    responsible for flushing.
    """
    current = GigStatus(gig.status)
    check = gigStateManager.validate_transition(current, new_status, actor_type)
    if not check.allowed:
        logger.warning(
            "Rejected gig transition %s: %s -> %s by %s (%s)",
            gig.id, current.value, new_status.value, actor_type.value, check.reason,
        )
        structural = new_status in gigStateManager.VALID_TRANSITIONS.get(current, set())
        return service_error(
            ErrorCode.UNAUTHORIZED if structural else ErrorCode.CONFLICT,
            "invalid_gig_transition",
            locale,
            current=current.value,
            target=new_status.value,
        )

    gig.status = new_status
    logger.info(
        "Gig %s: %s -> %s (actor=%s)", gig.id, current.value, new_status.value, actor_type.value
    )
    return None


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_gig(
    db: AsyncSession, author: User, data: GigInput
) -> ServiceResult[Gig]:
    """Publish a gig. New gigs wait for moderation in ``pending``."""
    if not (data.title or "").strip():
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "missing_title", author.locale)
        )
    if not (data.description or "").strip():
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "missing_description", author.locale)
        )
    if data.price is None or Decimal(data.price) <= 0:
        return ServiceResult.failure(
            service_error(ErrorCode.VALIDATION, "invalid_price", author.locale)
        )

    gig = Gig(
        author_id=author.id,
        title=data.title.strip(),
        description=data.description.strip(),
        price=Decimal(data.price),
        category=data.category,
        location=data.location,
        status=GigStatus.PENDING,
    )
    db.add(gig)
    await db.flush()
    logger.info("Gig created: id=%s author=%s", gig.id, author.id)
    return ServiceResult.success(gig)


async def list_gigs(
    db: AsyncSession,
    *,
    status: Optional[GigStatus] = GigStatus.APPROVED,
    author_id: Optional[uuid.UUID] = None,
    provider_id: Optional[uuid.UUID] = None,
    category: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Gig]:
    stmt = select(Gig)
    if status is not None:
        stmt = stmt.where(Gig.status == status)
    if author_id is not None:
        stmt = stmt.where(Gig.author_id == author_id)
    if provider_id is not None:
        stmt = stmt.where(Gig.provider_id == provider_id)
    if category is not None:
        stmt = stmt.where(Gig.category == category)
    stmt = stmt.order_by(Gig.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def moderate_gig(
    db: AsyncSession,
    gig_id: uuid.UUID,
    moderator: User,
    approve: bool,
    reason: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> ServiceResult[Gig]:
    """Approve or reject a pending gig. Admins only."""
    if not moderator.role_admin:
        return ServiceResult.failure(
            service_error(ErrorCode.UNAUTHORIZED, "unauthorized", moderator.locale)
        )

    gig = await get_gig(db, gig_id)
    if gig is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "gig_not_found", moderator.locale)
        )

    target = GigStatus.APPROVED if approve else GigStatus.REJECTED
    error = transition_gig(gig, target, ActorType.ADMIN, moderator.locale)
    if error is not None:
        return ServiceResult.failure(error)

    gig.rejection_reason = None if approve else reason
    await db.flush()

    logger.info("Gig %s moderated by %s: %s", gig.id, moderator.id, target.value)
    if notifier is not None:
        event = build_gig_moderated_event(
            gig, approved=approve, moderator_id=moderator.id, reason=reason
        )
        notifier.trigger(event["event_type"], event)
    return ServiceResult.success(gig)


async def cancel_gig(
    db: AsyncSession, gig_id: uuid.UUID, user: User
) -> ServiceResult[Gig]:
    """Cancel a gig. The owner may cancel before work starts; admins any
    time before a terminal status."""
    gig = await get_gig(db, gig_id)
    if gig is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "gig_not_found", user.locale)
        )

    if user.role_admin:
        actor = ActorType.ADMIN
    elif gig.author_id == user.id:
        actor = ActorType.CLIENT
    else:
        return ServiceResult.failure(
            service_error(ErrorCode.UNAUTHORIZED, "not_gig_owner", user.locale)
        )

    error = transition_gig(gig, GigStatus.CANCELLED, actor, user.locale)
    if error is not None:
        return ServiceResult.failure(error)
    await db.flush()
    return ServiceResult.success(gig)
