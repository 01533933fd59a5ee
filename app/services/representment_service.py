"""Merchant representment resolution.

Every transition is checked against the transition tables in
``app.domain.dispute_state`` and then applied with an UPDATE that only
matches the expected current status, so two concurrent resolutions of the
same case cannot both succeed.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CreditReversalFailed, InvalidDisputeStatus, NotFoundError
from app.domain.dispute_state import (
    DisputeStatus,
    RepresentmentStatus,
    assert_dispute_transition,
    assert_representment_transition,
)
from app.gateways.base import CreditLedgerGateway, LedgerResult
from app.models.dispute import (
    CustomerEvidence,
    CustomerEvidenceReview,
    Dispute,
    EvidenceRequest,
    Representment,
)
from app.models.transaction import Transaction
from app.models.user import User
from app.services.audit_service import audit_service
from app.services.conversation_service import conversation_service
from app.services.credit_service import credit_service
from app.services.transaction_service import get_transaction

logger = logging.getLogger(__name__)

EVIDENCE_REQUEST_NOTE = "Bank requested customer communication evidence after merchant representment"
ACCEPT_NOTE = "Bank accepted merchant's proof; customer credit reversed."


def customer_info_message(tx: Transaction) -> str:
    """Assistant message asking the customer for merchant communication."""
    return (
        f"The merchant {tx.merchant_name} has responded to your dispute for transaction "
        f"{tx.transaction_id} ({tx.transaction_currency} {tx.transaction_amount}) "
        "with their own evidence.\n\n"
        "To continue your dispute, please share any communication you had with the merchant, "
        "for example emails, chat transcripts, delivery records or refund refusals. "
        "You can write your explanation here and attach files."
    )


def case_closed_message(tx: Transaction, reversal: LedgerResult | None) -> str:
    """Assistant message telling the customer the dispute could not continue."""
    message = (
        f"After reviewing the additional information you provided, we are unable to continue "
        f"the dispute for your {tx.merchant_name} transaction {tx.transaction_id}."
    )
    if reversal is not None and reversal.success:
        message += (
            f" The temporary credit of {tx.temporary_credit_currency} "
            f"{tx.temporary_credit_amount} has been reversed."
        )
    return message


class RepresentmentService:
    """Service for the representment lifecycle of a filed chargeback."""

    # ============ LOOKUPS ============

    async def latest_representment(
        self, db: AsyncSession, transaction_id: UUID
    ) -> Representment | None:
        """Active representment: the most recently created row."""
        result = await db.execute(
            select(Representment)
            .where(Representment.transaction_id == transaction_id)
            .order_by(Representment.representment_created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _require_representment(self, db: AsyncSession, transaction_id: UUID) -> Representment:
        representment = await self.latest_representment(db, transaction_id)
        if representment is None:
            raise NotFoundError("Representment")
        return representment

    async def _latest_dispute(self, db: AsyncSession, transaction_id: UUID) -> Dispute | None:
        result = await db.execute(
            select(Dispute)
            .where(Dispute.transaction_id == transaction_id)
            .order_by(Dispute.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _get_evidence(
        self, db: AsyncSession, transaction_id: UUID, evidence_id: UUID
    ) -> CustomerEvidence:
        result = await db.execute(
            select(CustomerEvidence).where(
                CustomerEvidence.id == evidence_id,
                CustomerEvidence.transaction_id == transaction_id,
            )
        )
        evidence = result.scalar_one_or_none()
        if not evidence:
            raise NotFoundError("Customer evidence")
        return evidence

    # ============ CONDITIONAL UPDATES ============

    async def _claim_transaction(
        self,
        db: AsyncSession,
        tx: Transaction,
        expected: DisputeStatus,
        target: DisputeStatus,
        **values,
    ) -> None:
        """Move the transaction from ``expected`` to ``target`` or raise a conflict."""
        if tx.dispute_status != expected:
            raise InvalidDisputeStatus(tx.dispute_status or "none")
        assert_dispute_transition(expected, target)

        result = await db.execute(
            update(Transaction)
            .where(Transaction.id == tx.id, Transaction.dispute_status == expected.value)
            .values(dispute_status=target.value, **values)
        )
        if result.rowcount != 1:
            await db.refresh(tx)
            raise InvalidDisputeStatus(tx.dispute_status or "none")

    async def _claim_representment(
        self,
        db: AsyncSession,
        representment: Representment,
        target: RepresentmentStatus,
    ) -> None:
        current = representment.status
        assert_representment_transition(current, target)

        result = await db.execute(
            update(Representment)
            .where(Representment.id == representment.id, Representment.status == current)
            .values(status=target.value)
        )
        if result.rowcount != 1:
            await db.refresh(representment)
            raise InvalidDisputeStatus(representment.status)

    async def _mirror_dispute(self, db: AsyncSession, transaction_id: UUID, status: DisputeStatus) -> None:
        """Keep the case's dispute row in step with the transaction."""
        dispute = await self._latest_dispute(db, transaction_id)
        if dispute is not None:
            dispute.status = status.value

    async def _reversal_failed(
        self,
        db: AsyncSession,
        tx: Transaction,
        user_id: UUID,
        attempted_action: str,
        error: str | None,
    ) -> None:
        """Undo the claimed transition, flag the case and fail the request."""
        await db.rollback()
        await db.refresh(tx)

        tx.needs_attention = True
        tx.dispute_sub_status = "reversal_failed"
        await audit_service.log_transition(
            db,
            user_id=user_id,
            action="credit_reversal_failed",
            transaction=tx,
            old_status=tx.dispute_status,
            new_status=tx.dispute_status,
            note=f"Temporary credit reversal failed during {attempted_action}",
            extra={"sub_status": "reversal_failed", "error": error},
        )
        await db.commit()

        logger.error("Credit reversal failed for transaction %s: %s", tx.id, error)
        raise CreditReversalFailed()

    async def _resolve(
        self,
        db: AsyncSession,
        tx: Transaction,
        user_id: UUID,
        *,
        expected: DisputeStatus,
        target: DisputeStatus,
        representment_target: RepresentmentStatus,
        action: str,
        note: str | None,
        needs_attention: bool = False,
        ledger: CreditLedgerGateway | None = None,
        reversal_entry: str | None = None,
        extra: dict | None = None,
    ) -> LedgerResult | None:
        """Apply one resolver transition.

        Returns:
            The ledger result when an outstanding credit was taken back, else None
        """
        if tx.dispute_status != expected:
            raise InvalidDisputeStatus(tx.dispute_status or "none")
        representment = await self._require_representment(db, tx.id)

        await self._claim_transaction(
            db, tx, expected, target, needs_attention=needs_attention, dispute_sub_status=None
        )
        await self._claim_representment(db, representment, representment_target)

        reversal = None
        if reversal_entry and tx.temporary_credit_provided:
            reversal = await credit_service.reverse(
                db, ledger, tx, reason=note or action, entry_type=reversal_entry
            )
            if not reversal.success:
                await self._reversal_failed(db, tx, user_id, action, reversal.error_message)

        await self._mirror_dispute(db, tx.id, target)
        await audit_service.log_transition(
            db,
            user_id=user_id,
            action=action,
            transaction=tx,
            old_status=expected.value,
            new_status=target.value,
            note=note,
            extra={"representment_status": representment_target.value, **(extra or {})},
        )

        logger.info("Transaction %s: %s -> %s (%s)", tx.id, expected.value, target.value, action)
        return reversal

    # ============ DETECT ============

    async def check(self, db: AsyncSession, transaction_id: UUID, user: User) -> dict:
        """Detect a merchant representment and flag the case for the bank.

        Idempotent: a representment that was already detected is reported
        without another transition.
        """
        tx = await get_transaction(db, transaction_id, viewer=user)
        representment = await self.latest_representment(db, tx.id)

        if representment is None or not representment.has_representment:
            return {
                "success": True,
                "message": "No representment found",
                "has_representment": False,
                "needs_attention": False,
                "transaction_id": tx.id,
                "dispute_status": tx.dispute_status,
            }

        message = "Representment already recorded"
        if representment.status == RepresentmentStatus.NO_REPRESENTMENT:
            old_status = tx.dispute_status
            await self._claim_transaction(
                db,
                tx,
                DisputeStatus.CHARGEBACK_FILED,
                DisputeStatus.REPRESENTMENT_RECEIVED,
                needs_attention=True,
            )
            await self._claim_representment(db, representment, RepresentmentStatus.REPRESENTMENT_RECEIVED)
            await self._mirror_dispute(db, tx.id, DisputeStatus.REPRESENTMENT_RECEIVED)
            await audit_service.log_transition(
                db,
                user_id=user.id,
                action="representment_received",
                transaction=tx,
                old_status=old_status,
                new_status=DisputeStatus.REPRESENTMENT_RECEIVED.value,
                note=f"Merchant representment received ({representment.reason_code or 'no reason code'})",
                extra={"representment_id": str(representment.id)},
            )
            logger.info("Representment detected for transaction %s", tx.id)
            message = "Representment received"

        return {
            "success": True,
            "message": message,
            "has_representment": True,
            "needs_attention": tx.needs_attention,
            "transaction_id": tx.id,
            "dispute_status": tx.dispute_status,
            "representment": representment,
        }

    # ============ BANK DECISIONS ON THE REPRESENTMENT ============

    async def accept(
        self,
        db: AsyncSession,
        ledger: CreditLedgerGateway,
        transaction_id: UUID,
        user: User,
        notes: str | None = None,
    ) -> dict:
        """Accept the merchant's proof: reverse the credit and close the case lost."""
        user_id = user.id
        tx = await get_transaction(db, transaction_id)

        reversal = await self._resolve(
            db,
            tx,
            user_id,
            expected=DisputeStatus.REPRESENTMENT_RECEIVED,
            target=DisputeStatus.CLOSED_LOST,
            representment_target=RepresentmentStatus.ACCEPTED_BY_BANK,
            action="representment_accepted",
            note=notes or ACCEPT_NOTE,
            ledger=ledger,
            reversal_entry="reversal",
        )

        return {
            "success": True,
            "message": "Representment accepted; case closed",
            "transaction_id": tx.id,
            "new_status": DisputeStatus.CLOSED_LOST.value,
            "credit_reversal": credit_service.reversal_summary(tx, reversal),
        }

    async def reject(
        self,
        db: AsyncSession,
        transaction_id: UUID,
        user: User,
        admin_notes: str | None = None,
    ) -> dict:
        """Reject the merchant's proof and ask the customer for more evidence."""
        tx = await get_transaction(db, transaction_id)

        await self._resolve(
            db,
            tx,
            user.id,
            expected=DisputeStatus.REPRESENTMENT_RECEIVED,
            target=DisputeStatus.AWAITING_CUSTOMER_INFO,
            representment_target=RepresentmentStatus.AWAITING_CUSTOMER_INFO,
            action="representment_rejected",
            note=admin_notes,
            needs_attention=True,
        )

        db.add(
            EvidenceRequest(
                transaction_id=tx.id,
                customer_id=tx.customer_id,
                requested_by=user.id,
                note=EVIDENCE_REQUEST_NOTE,
                status="pending_upload",
            )
        )

        dispute = await self._latest_dispute(db, tx.id)
        conversation = await conversation_service.open_or_reactivate(
            db,
            user_id=tx.customer_id,
            title=f"Representment - Transaction {tx.transaction_id}",
            conversation_id=dispute.conversation_id if dispute else None,
        )
        if dispute is not None and dispute.conversation_id != conversation.id:
            dispute.conversation_id = conversation.id
        await conversation_service.post_assistant_message(db, conversation, customer_info_message(tx))

        return {
            "success": True,
            "message": "Representment rejected; customer asked for additional evidence",
            "transaction_id": tx.id,
            "new_status": DisputeStatus.AWAITING_CUSTOMER_INFO.value,
            "conversation_id": conversation.id,
        }

    async def contest(
        self,
        db: AsyncSession,
        transaction_id: UUID,
        user: User,
        notes: str | None = None,
    ) -> dict:
        """Contest the representment with the network without asking the customer."""
        tx = await get_transaction(db, transaction_id)

        await self._resolve(
            db,
            tx,
            user.id,
            expected=DisputeStatus.REPRESENTMENT_RECEIVED,
            target=DisputeStatus.REPRESENTMENT_CONTESTED,
            representment_target=RepresentmentStatus.CONTESTED_BY_BANK,
            action="representment_contested",
            note=notes,
        )
        return {
            "success": True,
            "message": "Representment contested with the card network",
            "transaction_id": tx.id,
            "new_status": DisputeStatus.REPRESENTMENT_CONTESTED.value,
        }

    # ============ CUSTOMER EVIDENCE ============

    async def record_evidence_submitted(self, db: AsyncSession, tx: Transaction) -> bool:
        """Advance a case waiting on the customer once evidence arrives.

        Returns:
            True if the case moved to evidence_submitted
        """
        if tx.dispute_status != DisputeStatus.AWAITING_CUSTOMER_INFO:
            return False

        representment = await self.latest_representment(db, tx.id)
        await self._claim_transaction(
            db,
            tx,
            DisputeStatus.AWAITING_CUSTOMER_INFO,
            DisputeStatus.EVIDENCE_SUBMITTED,
            needs_attention=True,
        )
        if representment is not None and representment.status == RepresentmentStatus.AWAITING_CUSTOMER_INFO:
            await self._claim_representment(db, representment, RepresentmentStatus.EVIDENCE_SUBMITTED)
        await self._mirror_dispute(db, tx.id, DisputeStatus.EVIDENCE_SUBMITTED)
        return True

    async def approve_customer_evidence(
        self,
        db: AsyncSession,
        transaction_id: UUID,
        evidence_id: UUID,
        user: User,
        review_notes: str | None = None,
    ) -> dict:
        """Accept the customer's rebuttal and submit it to the network."""
        tx = await get_transaction(db, transaction_id)
        await self._get_evidence(db, tx.id, evidence_id)

        await self._resolve(
            db,
            tx,
            user.id,
            expected=DisputeStatus.EVIDENCE_SUBMITTED,
            target=DisputeStatus.REBUTTAL_SUBMITTED,
            representment_target=RepresentmentStatus.REBUTTAL_SUBMITTED,
            action="customer_evidence_approved",
            note=review_notes,
            extra={"customer_evidence_id": str(evidence_id)},
        )
        db.add(
            CustomerEvidenceReview(
                transaction_id=tx.id,
                customer_evidence_id=evidence_id,
                reviewed_by=user.id,
                decision="approved",
                review_notes=review_notes,
            )
        )
        return {
            "success": True,
            "message": "Customer evidence approved; rebuttal submitted",
            "transaction_id": tx.id,
            "new_status": DisputeStatus.REBUTTAL_SUBMITTED.value,
        }

    async def reject_customer_evidence(
        self,
        db: AsyncSession,
        ledger: CreditLedgerGateway,
        transaction_id: UUID,
        evidence_id: UUID,
        user: User,
        review_notes: str | None = None,
    ) -> dict:
        """Reject the customer's rebuttal: the merchant keeps the funds."""
        user_id = user.id
        tx = await get_transaction(db, transaction_id)
        await self._get_evidence(db, tx.id, evidence_id)

        reversal = await self._resolve(
            db,
            tx,
            user_id,
            expected=DisputeStatus.EVIDENCE_SUBMITTED,
            target=DisputeStatus.MERCHANT_WON,
            representment_target=RepresentmentStatus.CUSTOMER_EVIDENCE_REJECTED,
            action="chargeback_recalled",
            note=review_notes or "Customer evidence rejected; chargeback recalled and funds finalized to merchant.",
            ledger=ledger,
            reversal_entry="finalize_merchant",
            extra={"customer_evidence_id": str(evidence_id)},
        )
        db.add(
            CustomerEvidenceReview(
                transaction_id=tx.id,
                customer_evidence_id=evidence_id,
                reviewed_by=user_id,
                decision="rejected",
                review_notes=review_notes,
            )
        )
        return {
            "success": True,
            "message": "Customer evidence rejected; merchant won",
            "transaction_id": tx.id,
            "new_status": DisputeStatus.MERCHANT_WON.value,
            "credit_reversed": reversal is not None and reversal.success,
            "credit_reversal": credit_service.reversal_summary(tx, reversal),
        }

    async def close_after_customer_evidence(
        self,
        db: AsyncSession,
        ledger: CreditLedgerGateway,
        transaction_id: UUID,
        user: User,
        notes: str | None = None,
    ) -> dict:
        """Close the case lost when the customer's evidence is insufficient."""
        user_id = user.id
        tx = await get_transaction(db, transaction_id)

        reversal = await self._resolve(
            db,
            tx,
            user_id,
            expected=DisputeStatus.EVIDENCE_SUBMITTED,
            target=DisputeStatus.CLOSED_LOST,
            representment_target=RepresentmentStatus.ACCEPTED_BY_BANK,
            action="closed_after_customer_evidence",
            note=notes or "Customer evidence insufficient; merchant representment accepted.",
            ledger=ledger,
            reversal_entry="reversal",
        )

        dispute = await self._latest_dispute(db, tx.id)
        conversation = await conversation_service.open_or_reactivate(
            db,
            user_id=tx.customer_id,
            title=f"Representment - Transaction {tx.transaction_id}",
            conversation_id=dispute.conversation_id if dispute else None,
        )
        await conversation_service.post_assistant_message(
            db, conversation, case_closed_message(tx, reversal)
        )

        return {
            "success": True,
            "message": "Case closed after customer evidence review",
            "transaction_id": tx.id,
            "new_status": DisputeStatus.CLOSED_LOST.value,
            "credit_reversal": credit_service.reversal_summary(tx, reversal),
            "conversation_id": conversation.id,
        }

    async def file_prearbitration(
        self,
        db: AsyncSession,
        transaction_id: UUID,
        user: User,
        notes: str | None = None,
    ) -> dict:
        """Escalate a submitted rebuttal to pre-arbitration."""
        tx = await get_transaction(db, transaction_id)

        await self._resolve(
            db,
            tx,
            user.id,
            expected=DisputeStatus.REBUTTAL_SUBMITTED,
            target=DisputeStatus.PRE_ARBITRATION_FILED,
            representment_target=RepresentmentStatus.PREARBITRATION_FILED,
            action="prearbitration_filed",
            note=notes,
        )
        return {
            "success": True,
            "message": "Pre-arbitration filed",
            "transaction_id": tx.id,
            "new_status": DisputeStatus.PRE_ARBITRATION_FILED.value,
        }


representment_service = RepresentmentService()
