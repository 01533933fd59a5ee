"""Conversation endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user, get_db
from app.core.permissions import Permission, require_permission
from app.models.message import Conversation
from app.models.user import User
from app.schemas.conversation import (
    ConversationDeleteRequest,
    ConversationDeleteResponse,
    ConversationResponse,
)
from app.services.conversation_service import conversation_service

router = APIRouter()


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Conversation:
    """Get one of the user's conversations with its messages."""
    return await conversation_service.get_owned(
        db, conversation_id, current_user.id, with_messages=True
    )


@router.delete("", response_model=ConversationDeleteResponse, response_model_exclude_none=True)
async def delete_conversation(
    data: ConversationDeleteRequest,
    current_user: Annotated[User, Depends(require_permission(Permission.DELETE_CONVERSATION))],
    db: Annotated[AsyncSession, Depends(get_db)],
    idempotency_key: Annotated[str | None, Header(alias="idempotency-key")] = None,
) -> dict:
    """Delete a conversation with its messages and disputes.

    Requires an ``idempotency-key`` header; repeating a key returns the first
    result with ``fromCache: true``.
    """
    return await conversation_service.delete_conversation(
        db, current_user, data.conversation_id, idempotency_key
    )
