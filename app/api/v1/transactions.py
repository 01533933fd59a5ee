"""Bank case views: transactions needing attention and their audit trail."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.core.permissions import Permission, require_audit_view, require_permission
from app.models.admin import AuditLog
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.dispute import AuditLogResponse
from app.services.audit_service import audit_service
from app.services.transaction_service import get_transaction

router = APIRouter()


@router.get("/needs-attention")
async def list_needs_attention(
    current_user: Annotated[User, Depends(require_permission(Permission.VIEW_CASES))],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(default=50, ge=1, le=200),
) -> list[dict]:
    """Cases waiting on a bank decision, oldest update first."""
    result = await db.execute(
        select(Transaction)
        .where(Transaction.needs_attention.is_(True))
        .order_by(Transaction.updated_at)
        .limit(limit)
    )
    return [
        {
            "id": tx.id,
            "transaction_id": tx.transaction_id,
            "merchant_name": tx.merchant_name,
            "transaction_amount": str(tx.transaction_amount),
            "transaction_currency": tx.transaction_currency,
            "dispute_status": tx.dispute_status,
            "dispute_sub_status": tx.dispute_sub_status,
            "chargeback_case_id": tx.chargeback_case_id,
        }
        for tx in result.scalars().all()
    ]


@router.get("/{transaction_id}/audit", response_model=list[AuditLogResponse])
async def get_audit_trail(
    transaction_id: UUID,
    current_user: Annotated[User, Depends(require_audit_view)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[AuditLog]:
    """Full audit trail of a case."""
    transaction = await get_transaction(db, transaction_id)
    return await audit_service.list_for_transaction(db, transaction.id)
