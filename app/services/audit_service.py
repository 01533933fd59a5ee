"""Dispute audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.chargeback_policy import card_network, compliance_snapshot
from app.models.admin import AuditLog
from app.models.transaction import Transaction


class AuditService:
    """Service for immutable dispute audit logging."""

    # State-changing actions that require audit logging
    DISPUTE_ACTIONS = {
        "dispute_open",
        "eligibility_checked",
        "documents_verified",
        "chargeback_decision",
        "temporary_credit_granted",
        "representment_received",
        "representment_accepted",
        "representment_rejected",
        "representment_contested",
        "customer_evidence_submitted",
        "customer_evidence_approved",
        "chargeback_recalled",
        "closed_after_customer_evidence",
        "prearbitration_filed",
        "credit_reversal_failed",
        "conversation_deleted",
    }

    async def log_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: UUID | None,
        transaction_id: UUID | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        note: str | None = None,
        network: str | None = None,
        snapshot: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        """Log a dispute action (immutable).

        Args:
            db: Database session
            user_id: User performing the action (None for system actions)
            action: Action name (e.g., "representment_accepted")
            resource_type: Resource type (e.g., "transaction", "representment")
            resource_id: Resource ID
            transaction_id: Transaction the action belongs to
            old_values: Previous state
            new_values: New state
            note: Human-readable note shown in the case history
            network: Card network the action was sent to
            snapshot: Rule inputs at decision time
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            user_id=user_id,
            transaction_id=transaction_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
            note=note,
            network=network,
            compliance_snapshot=snapshot,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(audit)
        return audit

    async def log_transition(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        transaction: Transaction,
        old_status: str | None,
        new_status: str,
        note: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Log a dispute status change with the transaction's compliance snapshot."""
        new_values: dict[str, Any] = {"dispute_status": new_status}
        if extra:
            new_values.update(extra)

        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="transaction",
            resource_id=transaction.id,
            transaction_id=transaction.id,
            old_values={"dispute_status": old_status} if old_status else None,
            new_values=new_values,
            note=note,
            network=card_network(transaction),
            snapshot=compliance_snapshot(transaction),
        )

    async def list_for_transaction(self, db: AsyncSession, transaction_id: UUID) -> list[AuditLog]:
        """Audit trail of a transaction, oldest first."""
        result = await db.execute(
            select(AuditLog)
            .where(AuditLog.transaction_id == transaction_id)
            .order_by(AuditLog.created_at, AuditLog.id)
        )
        return list(result.scalars().all())


audit_service = AuditService()
