"""
Conversation Service
====================

One conversation per (gig, client, provider) triple. Conversations are
opened implicitly when a provider proposes on or responds to a gig and are
reused for every later exchange on that gig.

Only the two participants may read or post messages.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gighub.models import Conversation, Gig, Message, MessageType, User
from gighub.services.results import ErrorCode, ServiceResult, service_error

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH: int = 2000


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConversationSummary:
    """A conversation as seen by one of its participants."""

    id: uuid.UUID
    gig_id: uuid.UUID
    gig_title: str
    client_id: uuid.UUID
    provider_id: uuid.UUID
    counterpart_id: uuid.UUID
    counterpart_name: Optional[str]
    status: str
    last_message_at: Optional[datetime]
    unread_count: int


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def find_conversation(
    db: AsyncSession,
    gig_id: uuid.UUID,
    client_id: uuid.UUID,
    provider_id: uuid.UUID,
) -> Optional[Conversation]:
    result = await db.execute(
        select(Conversation).where(
            Conversation.gig_id == gig_id,
            Conversation.client_id == client_id,
            Conversation.provider_id == provider_id,
        )
    )
    return result.scalar_one_or_none()


async def _get_participant_conversation(
    db: AsyncSession, conversation_id: uuid.UUID, user_id: uuid.UUID
) -> ServiceResult[Conversation]:
    conversation = await db.get(Conversation, conversation_id)
    if conversation is None:
        return ServiceResult.failure(
            service_error(ErrorCode.NOT_FOUND, "conversation_not_found")
        )
    if user_id not in (conversation.client_id, conversation.provider_id):
        return ServiceResult.failure(
            service_error(ErrorCode.UNAUTHORIZED, "not_participant")
        )
    return ServiceResult.success(conversation)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_or_create_conversation(
    db: AsyncSession,
    gig_id: uuid.UUID,
    client_id: uuid.UUID,
    provider_id: uuid.UUID,
) -> Conversation:
    """Return the conversation for the triple, creating it if needed.

    A concurrent insert of the same triple loses on the unique constraint;
    the savepoint is rolled back and the winner's row is returned.
    """
    existing = await find_conversation(db, gig_id, client_id, provider_id)
    if existing is not None:
        return existing

    try:
        async with db.begin_nested():
            conversation = Conversation(
                gig_id=gig_id,
                client_id=client_id,
                provider_id=provider_id,
                last_message_at=datetime.now(timezone.utc),
            )
            db.add(conversation)
            await db.flush()
    except IntegrityError:
        logger.info("Conversation for gig %s created concurrently; reusing", gig_id)
        conversation = await find_conversation(db, gig_id, client_id, provider_id)
        if conversation is None:
            raise
        return conversation

    logger.info(
        "Conversation %s opened: gig=%s client=%s provider=%s",
        conversation.id, gig_id, client_id, provider_id,
    )
    return conversation


async def list_conversations(
    db: AsyncSession, user_id: uuid.UUID
) -> list[ConversationSummary]:
    """Conversations the user takes part in, most recently active first."""
    result = await db.execute(
        select(Conversation, Gig.title)
        .join(Gig, Gig.id == Conversation.gig_id)
        .where(or_(Conversation.client_id == user_id, Conversation.provider_id == user_id))
        .order_by(Conversation.last_message_at.desc())
    )
    rows = result.all()
    if not rows:
        return []

    counterpart_ids = {
        conv.provider_id if conv.client_id == user_id else conv.client_id
        for conv, _ in rows
    }
    users = await db.execute(select(User).where(User.id.in_(counterpart_ids)))
    names = {u.id: u.full_name for u in users.scalars().all()}

    unread_result = await db.execute(
        select(Message.conversation_id, func.count(Message.id))
        .where(
            Message.conversation_id.in_([conv.id for conv, _ in rows]),
            Message.sender_id != user_id,
            Message.read_at.is_(None),
        )
        .group_by(Message.conversation_id)
    )
    unread = {conv_id: count for conv_id, count in unread_result.all()}

    summaries: list[ConversationSummary] = []
    for conv, gig_title in rows:
        counterpart = conv.provider_id if conv.client_id == user_id else conv.client_id
        summaries.append(
            ConversationSummary(
                id=conv.id,
                gig_id=conv.gig_id,
                gig_title=gig_title,
                client_id=conv.client_id,
                provider_id=conv.provider_id,
                counterpart_id=counterpart,
                counterpart_name=names.get(counterpart),
                status=conv.status,
                last_message_at=conv.last_message_at,
                unread_count=unread.get(conv.id, 0),
            )
        )
    return summaries


async def get_messages(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    user_id: uuid.UUID,
) -> ServiceResult[list[Message]]:
    """Messages oldest first. Messages from the other participant are
    marked read."""
    found = await _get_participant_conversation(db, conversation_id, user_id)
    if not found.ok:
        return ServiceResult.failure(found.error)

    await db.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.sender_id != user_id,
            Message.read_at.is_(None),
        )
        .values(read_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc())
    )
    return ServiceResult.success(list(result.scalars().all()))


async def send_message(
    db: AsyncSession,
    conversation_id: uuid.UUID,
    sender_id: uuid.UUID,
    content: str,
    message_type: MessageType = MessageType.TEXT,
) -> ServiceResult[Message]:
    content = (content or "").strip()
    if not content:
        return ServiceResult.failure(service_error(ErrorCode.VALIDATION, "empty_message"))

    found = await _get_participant_conversation(db, conversation_id, sender_id)
    if not found.ok:
        return ServiceResult.failure(found.error)
    conversation = found.data

    message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content[:MAX_MESSAGE_LENGTH],
        message_type=message_type.value,
    )
    db.add(message)
    conversation.last_message_at = datetime.now(timezone.utc)
    await db.flush()
    return ServiceResult.success(message)
