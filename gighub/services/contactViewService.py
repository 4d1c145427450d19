"""
Contact View Service
====================

Gates access to a gig owner's contact details. The first reveal by a user
for a given gig consumes one ``contact_view`` quota unit and records a
``ContactUnlock``; every later reveal of the same gig returns the details
without touching the quota.

The usage record and the unlock are written inside one savepoint so that
either both persist or neither does. The ``(user_id, gig_id)`` unique
constraint on ``contact_views`` settles concurrent first reveals: the loser
rolls back its savepoint (usage record included) and is served as an
already-unlocked view.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.events.gigEvents import build_contact_viewed_event
from gighub.models import ContactUnlock, Gig, QuotaAction, User
from gighub.services import planLimitsService
from gighub.services.notificationDispatcher import Notifier
from gighub.services.results import ErrorCode, ServiceError, service_error

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class ContactViewReason(str, enum.Enum):
    OWNER = "owner"
    ALREADY_VIEWED = "already_viewed"
    HAS_CREDITS = "has_credits"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    GIG_NOT_FOUND = "gig_not_found"


@dataclass(frozen=True)
class ContactInfo:
    user_id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None


@dataclass(frozen=True)
class ContactViewCheck:
    can_view: bool
    reason: ContactViewReason
    remaining: int = 0


@dataclass(frozen=True)
class ContactViewResult:
    success: bool
    contact_info: Optional[ContactInfo] = None
    already_viewed: bool = False
    error: Optional[ServiceError] = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _get_gig(db: AsyncSession, gig_id: uuid.UUID) -> Optional[Gig]:
    result = await db.execute(select(Gig).where(Gig.id == gig_id))
    return result.scalar_one_or_none()


async def has_unlocked(db: AsyncSession, user_id: uuid.UUID, gig_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(ContactUnlock.id).where(
            ContactUnlock.user_id == user_id,
            ContactUnlock.gig_id == gig_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def _load_contact(db: AsyncSession, owner_id: uuid.UUID) -> Optional[ContactInfo]:
    result = await db.execute(select(User).where(User.id == owner_id))
    owner = result.scalar_one_or_none()
    if owner is None:
        return None
    return ContactInfo(
        user_id=owner.id,
        name=owner.full_name,
        email=owner.email,
        phone=owner.phone or None,
    )


async def _get_locale(db: AsyncSession, user_id: uuid.UUID) -> Optional[str]:
    result = await db.execute(select(User.locale).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _contact_result(
    db: AsyncSession,
    gig: Gig,
    *,
    already_viewed: bool,
    locale: Optional[str],
) -> ContactViewResult:
    info = await _load_contact(db, gig.author_id)
    if info is None:
        return ContactViewResult(
            success=False,
            error=service_error(ErrorCode.NOT_FOUND, "user_not_found", locale),
        )
    return ContactViewResult(success=True, contact_info=info, already_viewed=already_viewed)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def can_view_contact(
    db: AsyncSession, user_id: uuid.UUID, gig_id: uuid.UUID
) -> ContactViewCheck:
    """Report whether ``user_id`` can see the contact of ``gig_id``'s owner
    and why."""
    gig = await _get_gig(db, gig_id)
    if gig is None:
        return ContactViewCheck(can_view=False, reason=ContactViewReason.GIG_NOT_FOUND)
    if gig.author_id == user_id:
        return ContactViewCheck(can_view=True, reason=ContactViewReason.OWNER)
    if await has_unlocked(db, user_id, gig_id):
        return ContactViewCheck(can_view=True, reason=ContactViewReason.ALREADY_VIEWED)

    check = await planLimitsService.can_perform_action(db, user_id, QuotaAction.CONTACT_VIEW)
    if check.allowed:
        return ContactViewCheck(
            can_view=True,
            reason=ContactViewReason.HAS_CREDITS,
            remaining=check.remaining,
        )
    return ContactViewCheck(can_view=False, reason=ContactViewReason.INSUFFICIENT_CREDITS)


async def view_contact(
    db: AsyncSession,
    user_id: uuid.UUID,
    gig_id: uuid.UUID,
    notifier: Optional[Notifier] = None,
    *,
    locale: Optional[str] = None,
) -> ContactViewResult:
    """Reveal the gig owner's contact details to ``user_id``.

    Idempotent per (user, gig): only the first successful call consumes
    quota and notifies the owner.
    """
    locale = locale or await _get_locale(db, user_id)

    gig = await _get_gig(db, gig_id)
    if gig is None:
        return ContactViewResult(
            success=False,
            error=service_error(ErrorCode.NOT_FOUND, "gig_not_found", locale),
        )

    if gig.author_id == user_id:
        return await _contact_result(db, gig, already_viewed=False, locale=locale)

    if await has_unlocked(db, user_id, gig_id):
        return await _contact_result(db, gig, already_viewed=True, locale=locale)

    try:
        async with db.begin_nested():
            consumed = await planLimitsService.consume_quota(
                db,
                user_id,
                QuotaAction.CONTACT_VIEW,
                target_id=gig_id,
                target_type="gig",
                locale=locale,
            )
            if consumed.success:
                db.add(ContactUnlock(user_id=user_id, gig_id=gig_id))
                await db.flush()
    except IntegrityError:
        logger.info("Concurrent contact unlock for user %s gig %s", user_id, gig_id)
        return await _contact_result(db, gig, already_viewed=True, locale=locale)
    except SQLAlchemyError:
        logger.exception("Failed to unlock contact for user %s gig %s", user_id, gig_id)
        return ContactViewResult(
            success=False,
            error=service_error(ErrorCode.INTERNAL, "internal_error", locale),
        )

    if not consumed.success:
        return ContactViewResult(success=False, error=consumed.error)

    logger.info("Contact unlocked: user=%s gig=%s", user_id, gig_id)

    if notifier is not None:
        viewer = await _load_contact(db, user_id)
        notifier.trigger(
            "contact_viewed",
            build_contact_viewed_event(
                gig,
                viewer_id=user_id,
                viewer_name=viewer.name if viewer else None,
            ),
        )

    return await _contact_result(db, gig, already_viewed=False, locale=locale)
