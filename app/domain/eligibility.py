"""Dispute eligibility rules.

Rules are evaluated independently and every applicable reason is reported:
- Settlement gate: unsettled transactions cannot be disputed yet
- Refund exhaustion: nothing left to dispute after a full refund
- Secured wallet: strong-auth wallet payments without OTP are excluded
- Dispute window: transactions past the network age limit are excluded

Amounts below the write-off threshold stay eligible but are flagged so the
bank can absorb them instead of filing.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from app.config import settings
from app.utils.dates import days_since


class EligibilityStatus(str, Enum):
    """Eligibility verdicts."""

    ELIGIBLE = "ELIGIBLE"
    INELIGIBLE = "INELIGIBLE"


TOO_EARLY_REASON = (
    "Transaction is too early to dispute: it has not settled yet and typically "
    "settles in 2-3 business days."
)
LONG_PENDING_REASON = (
    "Transaction has been pending settlement for an unusually long time. "
    "Please escalate to support."
)
PENDING_REASON = "Transaction has not settled yet. Please wait for settlement before disputing."
FULLY_REFUNDED_REASON = "Transaction has been fully refunded; there is no remaining amount to dispute."
SECURED_WALLET_REASON = "Secured non-OTP wallet transaction (Apple Pay / Google Pay) is not eligible for dispute."


@dataclass
class EligibilityResult:
    """Outcome of an eligibility evaluation."""

    status: EligibilityStatus
    ineligible_reasons: list[str] = field(default_factory=list)
    write_off_recommended: bool = False
    base_amount: Decimal = Decimal("0")
    remaining_amount: Decimal = Decimal("0")

    @property
    def eligible(self) -> bool:
        return self.status == EligibilityStatus.ELIGIBLE


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def base_amount(tx: Any) -> Decimal:
    """Amount in the bank's base currency when known, else the original amount."""
    local_amount = _decimal(tx.local_transaction_amount)
    if tx.local_transaction_currency == settings.base_currency and local_amount > 0:
        return local_amount
    return _decimal(tx.transaction_amount)


def base_currency(tx: Any) -> str:
    """Currency of ``base_amount``."""
    local_amount = _decimal(tx.local_transaction_amount)
    if tx.local_transaction_currency == settings.base_currency and local_amount > 0:
        return settings.base_currency
    return tx.transaction_currency


def remaining_amount(tx: Any) -> Decimal:
    """Base amount less any refund already received."""
    return base_amount(tx) - _decimal(tx.refund_amount)


def is_otp_secured(tx: Any) -> bool:
    return tx.secured_indication in settings.otp_secured_indications


def settlement_reason(tx: Any, now: datetime | None = None) -> str | None:
    """Reason an unsettled transaction is blocked, or None once settled."""
    if tx.settled:
        return None
    elapsed = days_since(tx.transaction_time, now) or 0
    if elapsed < settings.min_settlement_days:
        return TOO_EARLY_REASON
    if elapsed > settings.max_settlement_days:
        return LONG_PENDING_REASON
    return PENDING_REASON


def is_fully_refunded(tx: Any) -> bool:
    return bool(tx.refund_received) and remaining_amount(tx) <= 0


def is_secured_non_otp_wallet(tx: Any) -> bool:
    return (
        bool(tx.is_wallet_transaction)
        and tx.wallet_type in settings.strong_auth_wallets
        and not is_otp_secured(tx)
    )


def evaluate_eligibility(tx: Any, now: datetime | None = None) -> EligibilityResult:
    """Evaluate whether a transaction may be disputed.

    Args:
        tx: Transaction (ORM row or any object with the same attributes)
        now: Evaluation time, defaults to the current UTC time

    Returns:
        EligibilityResult with every applicable reason, in rule order
    """
    reasons: list[str] = []

    pending = settlement_reason(tx, now)
    if pending:
        reasons.append(pending)

    if is_fully_refunded(tx):
        reasons.append(FULLY_REFUNDED_REASON)

    if is_secured_non_otp_wallet(tx):
        reasons.append(SECURED_WALLET_REASON)

    age = days_since(tx.transaction_time, now) or 0
    if age > settings.max_dispute_age_days:
        reasons.append(
            f"Transaction is older than {settings.max_dispute_age_days} days and cannot be disputed."
        )

    amount = base_amount(tx)
    write_off = amount < Decimal(str(settings.write_off_threshold))

    return EligibilityResult(
        status=EligibilityStatus.INELIGIBLE if reasons else EligibilityStatus.ELIGIBLE,
        ineligible_reasons=reasons,
        write_off_recommended=write_off,
        base_amount=amount,
        remaining_amount=amount - _decimal(tx.refund_amount),
    )
