"""
Notification Service
====================

Turns semantic workflow events (``response_received``, ``job_approved``,
...) into user-facing notifications. For each event:

  1. Renders a localised title and body for the recipient.
  2. Stores a persistent ``Notification`` record for in-app history.
  3. Checks the recipient's notification preferences.
  4. Pushes via FCM to the recipient's active device tokens.
  5. Deactivates tokens FCM reports as invalid.

The in-app record is always written; preferences and device availability
only decide whether a push is attempted. This module is called from the
notification dispatcher's background tasks, never directly from request
handlers.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.core.messages import resolve_locale
from gighub.integrations.fcm import pushService
from gighub.models import (
    DevicePlatform,
    DeviceToken,
    Notification,
    NotificationPreference,
    NotificationType,
    User,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_TEMPLATES: dict[NotificationType, dict[str, tuple[str, str]]] = {
    NotificationType.RESPONSE_RECEIVED: {
        "en": ("New proposal", "{responder_name} responded to your gig \"{gig_title}\"."),
        "pt": ("Nova proposta", "{responder_name} respondeu ao seu gig \"{gig_title}\"."),
    },
    NotificationType.RESPONSE_ACCEPTED: {
        "en": ("Proposal accepted", "Your proposal for \"{gig_title}\" was accepted."),
        "pt": ("Proposta aceite", "A sua proposta para \"{gig_title}\" foi aceite."),
    },
    NotificationType.RESPONSE_REJECTED: {
        "en": ("Proposal declined", "Your proposal for \"{gig_title}\" was declined: {reason}"),
        "pt": ("Proposta recusada", "A sua proposta para \"{gig_title}\" foi recusada: {reason}"),
    },
    NotificationType.CONTACT_VIEWED: {
        "en": ("Contact viewed", "{viewer_name} viewed your contact for \"{gig_title}\"."),
        "pt": ("Contacto visualizado", "{viewer_name} viu o seu contacto em \"{gig_title}\"."),
    },
    NotificationType.JOB_COMPLETION_SUBMITTED: {
        "en": ("Work delivered", "{provider_name} marked \"{gig_title}\" as complete. Please review it."),
        "pt": ("Trabalho entregue", "{provider_name} concluiu \"{gig_title}\". Reveja o trabalho."),
    },
    NotificationType.JOB_APPROVED: {
        "en": ("Work approved", "The client approved \"{gig_title}\". {amount} was added to your wallet."),
        "pt": ("Trabalho aprovado", "O cliente aprovou \"{gig_title}\". {amount} foi creditado na sua carteira."),
    },
    NotificationType.JOB_REJECTED: {
        "en": ("Revision requested", "The client requested changes on \"{gig_title}\": {reason}"),
        "pt": ("Revisão pedida", "O cliente pediu alterações em \"{gig_title}\": {reason}"),
    },
    NotificationType.GIG_APPROVED: {
        "en": ("Gig published", "Your gig \"{gig_title}\" is now live."),
        "pt": ("Gig publicado", "O seu gig \"{gig_title}\" já está publicado."),
    },
    NotificationType.GIG_REJECTED: {
        "en": ("Gig not approved", "Your gig \"{gig_title}\" was not approved: {reason}"),
        "pt": ("Gig não aprovado", "O seu gig \"{gig_title}\" não foi aprovado: {reason}"),
    },
    NotificationType.GIG_COMPLETED: {
        "en": ("Gig completed", "\"{gig_title}\" is complete. Payment has been released."),
        "pt": ("Gig concluído", "\"{gig_title}\" está concluído. O pagamento foi libertado."),
    },
    NotificationType.PLAN_UPGRADED: {
        "en": ("Plan upgraded", "You are now on the {plan_tier} plan."),
        "pt": ("Plano atualizado", "Está agora no plano {plan_tier}."),
    },
    NotificationType.WITHDRAWAL_REQUESTED: {
        "en": ("Withdrawal requested", "Your withdrawal of {amount} {currency} is being processed."),
        "pt": ("Levantamento pedido", "O seu levantamento de {amount} {currency} está a ser processado."),
    },
    NotificationType.SYSTEM: {
        "en": ("GigHub", "{message}"),
        "pt": ("GigHub", "{message}"),
    },
}

_PROPOSAL_TYPES: frozenset[NotificationType] = frozenset({
    NotificationType.RESPONSE_RECEIVED,
    NotificationType.RESPONSE_ACCEPTED,
    NotificationType.RESPONSE_REJECTED,
    NotificationType.CONTACT_VIEWED,
})

_GIG_TYPES: frozenset[NotificationType] = frozenset({
    NotificationType.JOB_COMPLETION_SUBMITTED,
    NotificationType.JOB_APPROVED,
    NotificationType.JOB_REJECTED,
    NotificationType.GIG_APPROVED,
    NotificationType.GIG_REJECTED,
    NotificationType.GIG_COMPLETED,
})

_PAYMENT_TYPES: frozenset[NotificationType] = frozenset({
    NotificationType.PLAN_UPGRADED,
    NotificationType.WITHDRAWAL_REQUESTED,
})


@dataclass(frozen=True)
class RenderedNotification:
    notification_type: NotificationType
    title: str
    body: str
    data: dict[str, Any]


def _flatten_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Merge the event envelope and its ``data`` into one flat mapping."""
    flat = {k: v for k, v in payload.items() if k != "data"}
    flat.update(payload.get("data") or {})
    return flat


def render_trigger(
    trigger: str | NotificationType,
    payload: dict[str, Any],
    locale: Optional[str] = None,
) -> RenderedNotification:
    """Render the title and body for ``trigger`` in ``locale``.

    Missing placeholders render as empty strings rather than failing.

    Raises:
        ValueError: If ``trigger`` is not a known notification type.
    """
    notification_type = NotificationType(trigger)
    lang = resolve_locale(locale)
    templates = _TEMPLATES[notification_type]
    title, body = templates.get(lang) or templates["en"]

    flat = _flatten_payload(payload)
    values: defaultdict[str, str] = defaultdict(str)
    values.update({k: "" if v is None else str(v) for k, v in flat.items()})

    return RenderedNotification(
        notification_type=notification_type,
        title=title.format_map(values),
        body=body.format_map(values).strip(),
        data=flat,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _get_user_device_tokens(
    user_id: uuid.UUID,
    db: AsyncSession,
) -> list[str]:
    """Fetch all active FCM device tokens for a user."""
    result = await db.execute(
        select(DeviceToken.device_token).where(
            DeviceToken.user_id == user_id,
            DeviceToken.is_active.is_(True),
        )
    )
    return [row[0] for row in result.all()]


async def _get_notification_preferences(
    user_id: uuid.UUID,
    db: AsyncSession,
) -> NotificationPreference | None:
    """Load notification preferences for a user.

    Returns None if the user has not configured preferences, in which case
    all defaults apply.
    """
    result = await db.execute(
        select(NotificationPreference).where(
            NotificationPreference.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


def _should_push(
    prefs: NotificationPreference | None,
    notification_type: NotificationType,
) -> bool:
    """Decide whether a push should be sent under the user's preferences."""
    if prefs is None:
        return True
    if notification_type in _PROPOSAL_TYPES:
        return prefs.proposal_updates
    if notification_type in _GIG_TYPES:
        return prefs.gig_updates
    if notification_type in _PAYMENT_TYPES:
        return prefs.payment_updates
    return True


async def _store_notification(
    user_id: uuid.UUID,
    rendered: RenderedNotification,
    db: AsyncSession,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=rendered.title,
        body=rendered.body,
        notification_type=rendered.notification_type.value,
        data_json=rendered.data,
        read=False,
    )
    db.add(notification)
    await db.flush()
    return notification


async def _deactivate_invalid_tokens(
    invalid_tokens: list[str],
    db: AsyncSession,
) -> None:
    """Mark device tokens FCM reported as invalid as inactive."""
    if not invalid_tokens:
        return

    logger.info("Deactivating %d invalid device tokens", len(invalid_tokens))
    await db.execute(
        update(DeviceToken)
        .where(DeviceToken.device_token.in_(invalid_tokens))
        .values(is_active=False, updated_at=datetime.now(timezone.utc))
    )
    await db.flush()


async def _push(
    user_id: uuid.UUID,
    notification: Notification,
    rendered: RenderedNotification,
    db: AsyncSession,
) -> bool:
    """Push ``rendered`` to every active device of ``user_id``.

    Returns True if at least one device accepted the message.
    """
    tokens = await _get_user_device_tokens(user_id, db)
    if not tokens:
        logger.info("No device tokens for user %s; notification stored only", user_id)
        return False

    data = {"notification_id": str(notification.id), **rendered.data}

    if len(tokens) == 1:
        result = await pushService.send_notification(
            device_token=tokens[0],
            title=rendered.title,
            body=rendered.body,
            data=data,
        )
        if result.invalid_token:
            await _deactivate_invalid_tokens([tokens[0]], db)
        return result.success

    batch_result = await pushService.send_to_multiple(
        device_tokens=tokens,
        title=rendered.title,
        body=rendered.body,
        data=data,
    )
    if batch_result.invalid_tokens:
        await _deactivate_invalid_tokens(batch_result.invalid_tokens, db)
    return batch_result.success_count > 0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def deliver_trigger(
    db: AsyncSession,
    trigger: str,
    payload: dict[str, Any],
) -> Notification | None:
    """Store and push the notification for one workflow event.

    Returns the stored notification, or None if the recipient no longer
    exists.
    """
    user_id = uuid.UUID(str(payload["user_id"]))
    result = await db.execute(select(User.locale).where(User.id == user_id))
    row = result.first()
    if row is None:
        logger.warning("Dropping %s notification: user %s not found", trigger, user_id)
        return None

    rendered = render_trigger(trigger, payload, locale=row[0])
    notification = await _store_notification(user_id, rendered, db)

    prefs = await _get_notification_preferences(user_id, db)
    if not _should_push(prefs, rendered.notification_type):
        logger.info(
            "Push suppressed by user preferences: user=%s, type=%s",
            user_id, rendered.notification_type.value,
        )
        return notification

    if not pushService.is_configured():
        logger.debug("Push not configured; %s stored for user %s", trigger, user_id)
        return notification

    if await _push(user_id, notification, rendered, db):
        notification.sent_at = datetime.now(timezone.utc)
        await db.flush()
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def mark_as_read(
    db: AsyncSession,
    notification_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Notification | None:
    """Mark one of the user's notifications read. None if it is not theirs."""
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        return None
    if not notification.read:
        notification.read = True
        notification.read_at = datetime.now(timezone.utc)
        await db.flush()
    return notification


async def register_device_token(
    db: AsyncSession,
    user_id: uuid.UUID,
    device_token: str,
    platform: DevicePlatform,
    app_version: Optional[str] = None,
) -> DeviceToken:
    """Register a device for push, reactivating a previously known token."""
    result = await db.execute(
        select(DeviceToken).where(
            DeviceToken.user_id == user_id,
            DeviceToken.device_token == device_token,
        )
    )
    token = result.scalar_one_or_none()
    if token is None:
        token = DeviceToken(
            user_id=user_id,
            device_token=device_token,
            platform=platform,
            app_version=app_version,
            is_active=True,
        )
        db.add(token)
    else:
        token.is_active = True
        token.platform = platform
        token.app_version = app_version
    await db.flush()
    logger.info("Device token registered for user %s (%s)", user_id, platform.value)
    return token


async def update_preferences(
    db: AsyncSession,
    user_id: uuid.UUID,
    changes: dict[str, bool],
) -> NotificationPreference:
    """Create or update the user's preference row; ``None`` values are
    ignored."""
    prefs = await _get_notification_preferences(user_id, db)
    if prefs is None:
        prefs = NotificationPreference(
            user_id=user_id,
            gig_updates=True,
            proposal_updates=True,
            payment_updates=True,
            marketing=False,
        )
        db.add(prefs)
    for name in ("gig_updates", "proposal_updates", "payment_updates", "marketing"):
        value = changes.get(name)
        if value is not None:
            setattr(prefs, name, value)
    await db.flush()
    return prefs


async def get_preferences(db: AsyncSession, user_id: uuid.UUID) -> NotificationPreference:
    """Stored preferences, or an unsaved row carrying the defaults."""
    prefs = await _get_notification_preferences(user_id, db)
    if prefs is None:
        prefs = NotificationPreference(
            user_id=user_id,
            gig_updates=True,
            proposal_updates=True,
            payment_updates=True,
            marketing=False,
        )
    return prefs
