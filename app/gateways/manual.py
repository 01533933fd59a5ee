"""Manual credit ledger adapter for back-office posting."""

from decimal import Decimal

from app.gateways.base import CreditLedgerGateway, GatewayType, LedgerResult


class ManualLedgerGateway(CreditLedgerGateway):
    """Ledger adapter for banks that post credits by hand.

    All operations succeed immediately; back office reconciles from the
    credit ledger entries.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def grant_credit(
        self,
        reference_id: str,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> LedgerResult:
        """Record a manual temporary credit (always succeeds)."""
        return LedgerResult(
            success=True,
            reference=f"manual_credit_{reference_id}",
            raw_response={
                "type": "temporary_credit",
                "status": "pending_posting",
                "amount": str(amount),
                "currency": currency,
                "note": description,
            },
        )

    async def reverse_credit(
        self,
        reference_id: str,
        amount: Decimal,
        currency: str,
        reason: str,
    ) -> LedgerResult:
        """Record a manual credit reversal (always succeeds)."""
        return LedgerResult(
            success=True,
            reference=f"manual_reversal_{reference_id}",
            raw_response={
                "type": "credit_reversal",
                "status": "pending_posting",
                "amount": str(amount),
                "currency": currency,
                "reason": reason,
            },
        )
