"""Temporary credit bookkeeping.

Every successful ledger call is mirrored by an append-only
``CreditLedgerEntry`` and by the temporary-credit fields on the transaction.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.gateways.base import CreditLedgerGateway, LedgerResult
from app.models.financial import CreditLedgerEntry
from app.models.transaction import Transaction
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


class CreditService:
    """Grant, reverse and finalize temporary credits."""

    async def grant(
        self,
        db: AsyncSession,
        ledger: CreditLedgerGateway,
        transaction: Transaction,
        amount: Decimal,
        currency: str,
    ) -> LedgerResult:
        """Post a temporary credit for the disputed amount."""
        result = await ledger.grant_credit(
            reference_id=str(transaction.id),
            amount=amount,
            currency=currency,
            description=f"Temporary credit for disputed transaction {transaction.transaction_id}",
        )
        if not result.success:
            logger.warning(
                "Temporary credit grant failed for transaction %s: %s",
                transaction.id,
                result.error_message,
            )
            return result

        db.add(
            CreditLedgerEntry(
                transaction_id=transaction.id,
                customer_id=transaction.customer_id,
                entry_type="grant",
                amount=amount,
                currency=currency,
                reference=result.reference,
                description="Temporary credit granted while the chargeback is open",
            )
        )
        transaction.temporary_credit_provided = True
        transaction.temporary_credit_amount = amount
        transaction.temporary_credit_currency = currency
        transaction.temporary_credit_reversal_at = None
        logger.info("Granted temporary credit %s %s on %s", amount, currency, transaction.id)
        return result

    async def reverse(
        self,
        db: AsyncSession,
        ledger: CreditLedgerGateway,
        transaction: Transaction,
        reason: str,
        entry_type: str = "reversal",
    ) -> LedgerResult:
        """Take back the outstanding temporary credit.

        Args:
            db: Database session
            ledger: Credit ledger gateway
            transaction: Transaction holding the credit
            reason: Ledger narrative
            entry_type: ``reversal`` when the customer loses, ``finalize_merchant``
                when the funds are settled to the merchant

        Returns:
            LedgerResult; nothing is written locally when it failed
        """
        amount = transaction.temporary_credit_amount or Decimal("0")
        currency = transaction.temporary_credit_currency or transaction.transaction_currency

        result = await ledger.reverse_credit(
            reference_id=str(transaction.id),
            amount=amount,
            currency=currency,
            reason=reason,
        )
        if not result.success:
            logger.warning(
                "Temporary credit reversal failed for transaction %s: %s",
                transaction.id,
                result.error_message,
            )
            return result

        db.add(
            CreditLedgerEntry(
                transaction_id=transaction.id,
                customer_id=transaction.customer_id,
                entry_type=entry_type,
                amount=amount,
                currency=currency,
                reference=result.reference,
                description=reason,
            )
        )
        transaction.temporary_credit_provided = False
        transaction.temporary_credit_reversal_at = utcnow()
        logger.info("Reversed temporary credit %s %s on %s (%s)", amount, currency, transaction.id, entry_type)
        return result

    @staticmethod
    def reversal_summary(transaction: Transaction, result: LedgerResult | None) -> dict:
        """Caller-facing description of a reversal."""
        if result is None:
            return {"reversed": False}
        return {
            "reversed": result.success,
            "amount": (
                str(transaction.temporary_credit_amount)
                if transaction.temporary_credit_amount is not None
                else None
            ),
            "currency": transaction.temporary_credit_currency,
            "reference": result.reference,
        }


credit_service = CreditService()
