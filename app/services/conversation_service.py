"""Customer conversations and their idempotent deletion."""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError
from app.core.idempotency import (
    check_idempotency,
    require_idempotency_key,
    store_idempotency_result,
)
from app.models.dispute import Dispute, DisputeDocument
from app.models.message import Conversation, Message
from app.models.user import User
from app.services.audit_service import audit_service
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

DELETE_OPERATION = "delete_conversation"


class ConversationService:
    """Service for dispute conversations."""

    async def get_owned(
        self,
        db: AsyncSession,
        conversation_id: UUID,
        user_id: UUID,
        with_messages: bool = False,
    ) -> Conversation:
        query = select(Conversation).where(
            Conversation.id == conversation_id,
            Conversation.user_id == user_id,
        )
        if with_messages:
            query = query.options(selectinload(Conversation.messages))
        result = await db.execute(query)
        conversation = result.scalar_one_or_none()
        if not conversation:
            raise NotFoundError("Conversation")
        return conversation

    async def open_or_reactivate(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        conversation_id: UUID | None = None,
    ) -> Conversation:
        """Reuse the customer's conversation when it still exists, else start one."""
        conversation = None
        if conversation_id is not None:
            result = await db.execute(
                select(Conversation).where(
                    Conversation.id == conversation_id,
                    Conversation.user_id == user_id,
                )
            )
            conversation = result.scalar_one_or_none()

        if conversation is None:
            conversation = Conversation(user_id=user_id, title=title, status="active")
            db.add(conversation)
            await db.flush()
        elif conversation.status != "active":
            conversation.status = "active"

        return conversation

    async def post_assistant_message(
        self,
        db: AsyncSession,
        conversation: Conversation,
        content: str,
    ) -> Message:
        message = Message(conversation_id=conversation.id, role="assistant", content=content)
        db.add(message)
        conversation.last_message_at = utcnow()
        return message

    async def delete_conversation(
        self,
        db: AsyncSession,
        user: User,
        conversation_id: UUID,
        idempotency_key: str | None,
    ) -> dict:
        """Delete a conversation with its messages, disputes and documents.

        The cascade and the idempotency record share the request transaction,
        so either both land or neither does. A repeated key returns the stored
        result with ``fromCache`` set and deletes nothing.

        Raises:
            IdempotencyKeyMissing: No key supplied
            NotFoundError: Conversation missing or owned by someone else
        """
        key = require_idempotency_key(idempotency_key)
        user_id = user.id

        record = await check_idempotency(db, key, DELETE_OPERATION, user_id)
        if record is not None:
            logger.info("Replaying conversation delete for key %s", key)
            return {**record.result, "fromCache": True}

        result = await db.execute(
            select(Conversation.id).where(
                Conversation.id == conversation_id,
                Conversation.user_id == user_id,
            )
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Conversation")

        dispute_ids = list(
            (
                await db.execute(select(Dispute.id).where(Dispute.conversation_id == conversation_id))
            ).scalars()
        )

        await db.execute(
            delete(Message)
            .where(Message.conversation_id == conversation_id)
            .execution_options(synchronize_session=False)
        )
        if dispute_ids:
            await db.execute(
                delete(DisputeDocument)
                .where(DisputeDocument.dispute_id.in_(dispute_ids))
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(Dispute)
                .where(Dispute.id.in_(dispute_ids))
                .execution_options(synchronize_session=False)
            )
        await db.execute(
            delete(Conversation)
            .where(Conversation.id == conversation_id)
            .execution_options(synchronize_session=False)
        )

        outcome = {
            "ok": True,
            "chatId": str(conversation_id),
            "deletedAt": utcnow().isoformat(),
            "idempotencyKey": key,
        }

        stored = await store_idempotency_result(
            db, key, DELETE_OPERATION, user_id, outcome, resource_id=conversation_id
        )
        if not stored:
            # A concurrent request with the same key committed first
            await db.rollback()
            record = await check_idempotency(db, key, DELETE_OPERATION, user_id)
            return {**record.result, "fromCache": True}

        await audit_service.log_action(
            db,
            user_id=user_id,
            action="conversation_deleted",
            resource_type="conversation",
            resource_id=conversation_id,
            new_values={"disputes_deleted": len(dispute_ids)},
        )
        logger.info(
            "Deleted conversation %s with %d disputes for user %s",
            conversation_id,
            len(dispute_ids),
            user_id,
        )
        return outcome


conversation_service = ConversationService()
