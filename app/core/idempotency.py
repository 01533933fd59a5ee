"""Idempotency protection for destructive operations.

Records live in the ``idempotency_records`` table with a unique key, so a
record is written at most once and concurrent writers cannot both win.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import IdempotencyKeyMissing, ValidationError
from app.models.idempotency import IdempotencyRecord

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 255


class IdempotencyError(ValidationError):
    """Raised when a key was already used for a different caller or operation."""

    def __init__(self, operation: str):
        super().__init__(
            f"Idempotency key already used for another {operation} request."
        )


def require_idempotency_key(key: str | None) -> str:
    """Validate a client-supplied idempotency key."""
    key = (key or "").strip()
    if not key:
        raise IdempotencyKeyMissing()
    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError(f"Idempotency key must be at most {MAX_KEY_LENGTH} characters")
    return key


async def check_idempotency(
    db: AsyncSession,
    key: str,
    operation: str,
    user_id: uuid.UUID,
) -> IdempotencyRecord | None:
    """Return the stored record for ``key``, or None if the operation never completed.

    Raises:
        IdempotencyError: The key belongs to another user or operation
    """
    result = await db.execute(
        select(IdempotencyRecord).where(IdempotencyRecord.idempotency_key == key)
    )
    record = result.scalar_one_or_none()
    if record is None:
        return None
    if record.user_id != user_id or record.operation != operation:
        raise IdempotencyError(operation)
    return record


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT DO NOTHING."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Idempotent insert not supported for dialect {dialect}")


async def store_idempotency_result(
    db: AsyncSession,
    key: str,
    operation: str,
    user_id: uuid.UUID,
    result: dict[str, Any],
    resource_id: uuid.UUID | None = None,
) -> bool:
    """Insert the record unless the key already exists.

    Returns:
        True if this call wrote the record, False if another writer got there first
    """
    insert = _insert_for(db)
    stmt = (
        insert(IdempotencyRecord)
        .values(
            id=uuid.uuid4(),
            idempotency_key=key,
            operation=operation,
            user_id=user_id,
            resource_id=resource_id,
            result=result,
        )
        .on_conflict_do_nothing(index_elements=["idempotency_key"])
    )
    outcome = await db.execute(stmt)
    inserted = outcome.rowcount == 1
    if not inserted:
        logger.info("Idempotency key %s already recorded for %s", key, operation)
    return inserted
