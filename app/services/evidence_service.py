"""Customer rebuttal evidence intake and sufficiency scoring."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ClassificationResponseError
from app.models.dispute import CustomerEvidence, EvidenceRequest
from app.models.user import User
from app.schemas.classification import EvidenceEvaluation
from app.schemas.evidence import CustomerEvidenceSubmit
from app.services.ai_service import AIService
from app.services.audit_service import audit_service
from app.services.representment_service import representment_service
from app.services.transaction_service import get_transaction
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

FALLBACK_EVALUATION = EvidenceEvaluation(
    sufficient=False,
    reasons=["AI evaluation failed to parse response"],
    summary="Unable to automatically evaluate evidence. Manual review required.",
)


class EvidenceService:
    """Stores customer evidence with an automated sufficiency verdict."""

    async def evaluate(self, ai: AIService, tx, data: CustomerEvidenceSubmit) -> EvidenceEvaluation:
        """Score the evidence; a malformed classifier answer means manual review."""
        try:
            return await ai.evaluate_customer_evidence(
                merchant_name=tx.merchant_name,
                amount=f"{tx.transaction_currency} {tx.transaction_amount}",
                transaction_date=tx.transaction_time.date().isoformat(),
                network_transaction_id=tx.transaction_id,
                customer_note=data.customer_note,
                files=[f.model_dump() for f in data.evidence_files],
            )
        except ClassificationResponseError as e:
            logger.warning("Evidence evaluation for %s fell back to manual review: %s", tx.id, e.detail)
            return FALLBACK_EVALUATION.model_copy(deep=True)

    async def submit(
        self,
        db: AsyncSession,
        ai: AIService,
        user: User,
        data: CustomerEvidenceSubmit,
    ) -> dict:
        """Record customer evidence for a transaction.

        The pending evidence request is marked submitted, the case is flagged
        for the bank and, when the case was waiting on the customer, it moves
        to evidence_submitted.

        Raises:
            NotFoundError: Transaction missing or owned by another customer
            ClassificationRateLimited: Classifier throttled the call
            ClassificationQuotaExceeded: Classifier out of credit
            ClassificationUnavailable: Classifier unreachable or failing
        """
        tx = await get_transaction(db, data.transaction_id, viewer=user)
        evaluation = await self.evaluate(ai, tx, data)

        evidence = CustomerEvidence(
            transaction_id=tx.id,
            customer_id=tx.customer_id,
            evidence_type="files" if data.evidence_files else "text",
            customer_note=data.customer_note,
            file_metadata=[f.model_dump() for f in data.evidence_files] or None,
            ai_sufficient=evaluation.sufficient,
            ai_summary=evaluation.summary,
            ai_reasons=evaluation.reasons,
        )
        db.add(evidence)

        result = await db.execute(
            select(EvidenceRequest)
            .where(
                EvidenceRequest.transaction_id == tx.id,
                EvidenceRequest.status == "pending_upload",
            )
            .order_by(EvidenceRequest.created_at.desc())
            .limit(1)
        )
        request = result.scalar_one_or_none()
        if request is not None:
            request.status = "submitted"
            request.submitted_at = utcnow()

        old_status = tx.dispute_status
        advanced = await representment_service.record_evidence_submitted(db, tx)
        if not advanced:
            tx.needs_attention = True

        await db.flush()

        await audit_service.log_transition(
            db,
            user_id=user.id,
            action="customer_evidence_submitted",
            transaction=tx,
            old_status=old_status,
            new_status=tx.dispute_status or "none",
            note=evaluation.summary,
            extra={
                "customer_evidence_id": str(evidence.id),
                "ai_sufficient": evaluation.sufficient,
            },
        )

        logger.info(
            "Customer evidence %s stored for transaction %s (sufficient=%s)",
            evidence.id,
            tx.id,
            evaluation.sufficient,
        )
        return {
            "success": True,
            "evaluation": evaluation.model_dump(),
            "evidence_id": evidence.id,
        }


evidence_service = EvidenceService()
