"""Dispute intake and chargeback filing service."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    DuplicateDispute,
    ExternalServiceError,
    InvalidDisputeStatus,
    NotFoundError,
    ValidationError,
)
from app.domain.chargeback_policy import (
    ChargebackActionType,
    card_network,
    decide_chargeback_action,
)
from app.domain.dispute_state import (
    FILEABLE_STATUSES,
    DisputeStatus,
    RepresentmentStatus,
    assert_dispute_transition,
    is_terminal,
)
from app.domain.eligibility import base_currency, evaluate_eligibility
from app.gateways.base import CreditLedgerGateway
from app.models.admin import ChargebackAction
from app.models.dispute import Dispute, DisputeDocument, Representment
from app.models.user import User
from app.schemas.dispute import DisputeCreate
from app.services.audit_service import audit_service
from app.services.conversation_service import conversation_service
from app.services.credit_service import credit_service
from app.services.transaction_service import get_transaction, is_bank_user
from app.utils.case_number import generate_case_number

logger = logging.getLogger(__name__)


class DisputeService:
    """Service for the dispute lifecycle up to filing."""

    async def get_dispute(self, db: AsyncSession, dispute_id: UUID, viewer: User) -> Dispute:
        """Load a dispute; customers only see their own."""
        query = select(Dispute).where(Dispute.id == dispute_id)
        if not is_bank_user(viewer):
            query = query.where(Dispute.customer_id == viewer.id)
        result = await db.execute(query)
        dispute = result.scalar_one_or_none()
        if not dispute:
            raise NotFoundError("Dispute", str(dispute_id))
        return dispute

    async def list_documents(self, db: AsyncSession, dispute: Dispute) -> list[DisputeDocument]:
        result = await db.execute(
            select(DisputeDocument)
            .where(DisputeDocument.dispute_id == dispute.id)
            .order_by(DisputeDocument.created_at)
        )
        return list(result.scalars().all())

    async def open_dispute(self, db: AsyncSession, user: User, data: DisputeCreate) -> Dispute:
        """Open a dispute for one of the customer's transactions.

        Eligibility is evaluated and recorded on the dispute; an ineligible
        transaction is refused with its reasons.

        Raises:
            NotFoundError: Transaction missing or not the customer's
            DuplicateDispute: The transaction already has an open dispute
            ValidationError: The transaction is not eligible
        """
        tx = await get_transaction(db, data.transaction_id, viewer=user)

        result = await db.execute(select(Dispute.status).where(Dispute.transaction_id == tx.id))
        if any(not is_terminal(status) for status in result.scalars()):
            raise DuplicateDispute()

        eligibility = evaluate_eligibility(tx)
        if not eligibility.eligible:
            raise ValidationError(
                "Transaction is not eligible for dispute",
                errors=[{"reason": reason} for reason in eligibility.ineligible_reasons],
            )

        conversation = await conversation_service.open_or_reactivate(
            db,
            user_id=user.id,
            title=f"Dispute - {tx.merchant_name}",
            conversation_id=data.conversation_id,
        )

        dispute = Dispute(
            customer_id=user.id,
            transaction_id=tx.id,
            conversation_id=conversation.id,
            reason_id=data.reason_id,
            reason_label=data.reason_label,
            custom_reason=data.custom_reason,
            category=data.category.value if data.category else None,
            eligibility_status=eligibility.status.value,
            eligibility_reasons=eligibility.ineligible_reasons,
            documents=[d.model_dump(by_alias=True) for d in data.documents] or None,
            status=DisputeStatus.ELIGIBILITY_CHECKED.value,
        )
        db.add(dispute)
        await db.flush()
        await db.refresh(dispute)

        await audit_service.log_action(
            db,
            user_id=user.id,
            action="dispute_open",
            resource_type="dispute",
            resource_id=dispute.id,
            transaction_id=tx.id,
            new_values={
                "status": dispute.status,
                "category": dispute.category,
                "write_off_recommended": eligibility.write_off_recommended,
            },
        )
        logger.info("Opened dispute %s for transaction %s", dispute.id, tx.id)
        return dispute

    async def file_chargeback(
        self,
        db: AsyncSession,
        ledger: CreditLedgerGateway,
        dispute_id: UUID,
        user: User,
    ) -> dict:
        """Decide and record the filing action for a verified dispute.

        Raises:
            NotFoundError: Dispute not visible to the user
            InvalidDisputeStatus: Dispute is not ready to file
            ExternalServiceError: The ledger refused the temporary credit
        """
        dispute = await self.get_dispute(db, dispute_id, user)
        if dispute.status not in FILEABLE_STATUSES:
            raise InvalidDisputeStatus(dispute.status)

        tx = await get_transaction(db, dispute.transaction_id)
        decision = decide_chargeback_action(tx)
        new_status = decision.dispute_status
        assert_dispute_transition(dispute.status, new_status)

        action = ChargebackAction(
            transaction_id=tx.id,
            dispute_id=dispute.id,
            performed_by=user.id,
            action_type=decision.action_type.value,
            chargeback_filed=decision.chargeback_filed,
            temporary_credit_issued=decision.temporary_credit_issued,
            requires_manual_review=decision.requires_manual_review,
            internal_notes=decision.internal_notes,
            merchant_category_code=tx.merchant_category_code,
            days_since_transaction=decision.snapshot["days_since_transaction"],
            days_since_settlement=decision.snapshot["days_since_settlement"],
            compliance_snapshot=decision.snapshot,
        )
        db.add(action)
        await db.flush()

        if decision.temporary_credit_issued:
            currency = base_currency(tx)
            grant = await credit_service.grant(db, ledger, tx, decision.net_amount, currency)
            if not grant.success:
                raise ExternalServiceError("credit ledger", grant.error_message)
            await audit_service.log_transition(
                db,
                user_id=user.id,
                action="temporary_credit_granted",
                transaction=tx,
                old_status=tx.dispute_status,
                new_status=new_status.value,
                note=f"Temporary credit {decision.net_amount} {currency}",
                extra={"reference": grant.reference},
            )

        old_status = tx.dispute_status
        tx.dispute_status = new_status.value
        tx.dispute_sub_status = None
        tx.needs_attention = decision.action_type == ChargebackActionType.MANUAL_REVIEW
        if decision.chargeback_filed and not tx.chargeback_case_id:
            tx.chargeback_case_id = await generate_case_number(db)
        dispute.status = new_status.value

        if decision.chargeback_filed:
            await self._ensure_representment(db, tx.id)

        await audit_service.log_transition(
            db,
            user_id=user.id,
            action="chargeback_decision",
            transaction=tx,
            old_status=old_status,
            new_status=new_status.value,
            note=decision.internal_notes,
            extra={"action_type": decision.action_type.value, "action_id": str(action.id)},
        )

        logger.info(
            "Dispute %s filed as %s (network=%s)",
            dispute.id,
            decision.action_type.value,
            card_network(tx),
        )
        return {
            "success": True,
            "actionType": decision.action_type.value,
            "actionId": action.id,
            "disputeStatus": new_status.value,
            "caseId": tx.chargeback_case_id,
            "temporaryCreditIssued": decision.temporary_credit_issued,
            "chargebackFiled": decision.chargeback_filed,
            "internalNotes": decision.internal_notes,
        }

    async def _ensure_representment(self, db: AsyncSession, transaction_id: UUID) -> None:
        """Every filed chargeback has a representment row to watch."""
        result = await db.execute(
            select(Representment.id).where(Representment.transaction_id == transaction_id).limit(1)
        )
        if result.first() is None:
            db.add(
                Representment(
                    transaction_id=transaction_id,
                    has_representment=False,
                    status=RepresentmentStatus.NO_REPRESENTMENT.value,
                )
            )


dispute_service = DisputeService()
