"""Transaction dispute eligibility."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.eligibility import EligibilityResult, evaluate_eligibility
from app.models.user import User
from app.services.transaction_service import get_transaction, is_bank_user

logger = logging.getLogger(__name__)


class EligibilityService:
    """Runs the eligibility rules against a stored transaction."""

    async def check(self, db: AsyncSession, transaction_id: UUID, user: User) -> EligibilityResult:
        """Evaluate a transaction the user may see.

        Raises:
            NotFoundError: Unknown transaction, or one owned by another customer
        """
        transaction = await get_transaction(db, transaction_id, viewer=user)
        result = evaluate_eligibility(transaction)

        logger.info(
            "Eligibility for transaction %s: %s %s",
            transaction.id,
            result.status.value,
            result.ineligible_reasons or "",
        )
        return result

    @staticmethod
    def to_response(transaction_id: UUID, result: EligibilityResult, viewer: User) -> dict:
        """Response body: reasons only when ineligible.

        The write-off flag is internal guidance and only bank users see it.
        """
        body: dict = {"transactionId": transaction_id, "status": result.status.value}
        if result.ineligible_reasons:
            body["ineligibleReasons"] = result.ineligible_reasons
        if result.write_off_recommended and is_bank_user(viewer):
            body["writeOffRecommended"] = True
        return body


eligibility_service = EligibilityService()
