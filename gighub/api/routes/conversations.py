"""
Conversation API Routes
=======================

  GET  /api/v1/conversations                        -- The caller's conversations
  GET  /api/v1/conversations/{conversation_id}/messages
  POST /api/v1/conversations/{conversation_id}/messages
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from gighub.api.deps import CurrentUser, DBSession
from gighub.api.errors import unwrap
from gighub.api.schemas.conversation import ConversationOut, MessageOut, SendMessageRequest
from gighub.services import conversationService

router = APIRouter(prefix="/conversations", tags=["Conversations"])


@router.get("", response_model=list[ConversationOut], summary="List conversations")
async def list_conversations(db: DBSession, current_user: CurrentUser) -> list[ConversationOut]:
    summaries = await conversationService.list_conversations(db, current_user.id)
    return [ConversationOut.model_validate(s) for s in summaries]


@router.get(
    "/{conversation_id}/messages",
    response_model=list[MessageOut],
    summary="Messages in a conversation",
)
async def get_messages(
    conversation_id: uuid.UUID, db: DBSession, current_user: CurrentUser
) -> list[MessageOut]:
    messages = unwrap(
        await conversationService.get_messages(db, conversation_id, current_user.id)
    )
    return [MessageOut.model_validate(m) for m in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageOut,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
)
async def send_message(
    conversation_id: uuid.UUID,
    body: SendMessageRequest,
    db: DBSession,
    current_user: CurrentUser,
) -> MessageOut:
    message = unwrap(
        await conversationService.send_message(
            db, conversation_id, current_user.id, body.content
        )
    )
    return MessageOut.model_validate(message)
