"""Conversation schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ConversationDeleteRequest(BaseModel):
    """Schema for deleting a conversation."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: UUID = Field(..., alias="conversationId")


class ConversationDeleteResponse(BaseModel):
    """Result of a conversation delete, replayed verbatim for a repeated key."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    chat_id: str = Field(..., alias="chatId")
    deleted_at: str = Field(..., alias="deletedAt")
    idempotency_key: str = Field(..., alias="idempotencyKey")
    from_cache: bool | None = Field(None, alias="fromCache")


class MessageResponse(BaseModel):
    """Schema for a conversation message."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: str
    content: str
    created_at: datetime


class ConversationResponse(BaseModel):
    """Schema for a conversation with its messages."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str | None
    status: str
    last_message_at: datetime | None
    created_at: datetime
    messages: list[MessageResponse] = Field(default_factory=list)
