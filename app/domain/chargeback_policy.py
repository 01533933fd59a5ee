"""Chargeback filing policy.

Decides, for a dispute that passed intake, how it is filed with the card
network and whether the cardholder receives a temporary credit. Rules are
checked in priority order; the first match wins:

1. base amount below the write-off threshold → APPROVE_WRITEOFF
2. magstripe / manual key entry → MANUAL_REVIEW
3. Facebook/Meta settled less than 7 days ago → WAIT_FOR_REFUND
4. OTP-secured → TEMPORARY_CREDIT_ONLY
5. restricted MCC → CHARGEBACK_NO_TEMP
6. unsecured, non-wallet → CHARGEBACK_FILED
7. anything else → MANUAL_REVIEW
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from app.config import settings
from app.domain.dispute_state import DisputeStatus
from app.domain.eligibility import base_amount, is_otp_secured, remaining_amount
from app.utils.dates import days_since


class ChargebackActionType(str, Enum):
    """Filing decisions."""

    APPROVE_WRITEOFF = "APPROVE_WRITEOFF"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    WAIT_FOR_REFUND = "WAIT_FOR_REFUND"
    TEMPORARY_CREDIT_ONLY = "TEMPORARY_CREDIT_ONLY"
    CHARGEBACK_NO_TEMP = "CHARGEBACK_NO_TEMP"
    CHARGEBACK_FILED = "CHARGEBACK_FILED"


# Dispute status each decision leaves the case in
ACTION_STATUS: dict[ChargebackActionType, DisputeStatus] = {
    ChargebackActionType.APPROVE_WRITEOFF: DisputeStatus.WRITTEN_OFF,
    ChargebackActionType.MANUAL_REVIEW: DisputeStatus.MANUAL_REVIEW,
    ChargebackActionType.WAIT_FOR_REFUND: DisputeStatus.AWAITING_MERCHANT_REFUND,
    ChargebackActionType.TEMPORARY_CREDIT_ONLY: DisputeStatus.UNDER_INVESTIGATION,
    ChargebackActionType.CHARGEBACK_NO_TEMP: DisputeStatus.CHARGEBACK_FILED,
    ChargebackActionType.CHARGEBACK_FILED: DisputeStatus.CHARGEBACK_FILED,
}


@dataclass
class ChargebackDecision:
    """A filing decision and the facts it was based on."""

    action_type: ChargebackActionType
    internal_notes: str
    chargeback_filed: bool = False
    temporary_credit_issued: bool = False
    requires_manual_review: bool = False
    net_amount: Decimal = Decimal("0")
    snapshot: dict[str, Any] | None = None

    @property
    def dispute_status(self) -> DisputeStatus:
        return ACTION_STATUS[self.action_type]


def card_network(tx: Any) -> str | None:
    """Card network inferred from the acquirer name."""
    acquirer = (tx.acquirer_name or "").lower()
    if "visa" in acquirer:
        return "visa"
    if "mastercard" in acquirer:
        return "mastercard"
    return None


def compliance_snapshot(tx: Any, now: datetime | None = None) -> dict[str, Any]:
    """Rule inputs recorded with every filing decision and resolver transition."""
    pos_mode = tx.pos_entry_mode
    otp = is_otp_secured(tx)
    return {
        "days_since_transaction": days_since(tx.transaction_time, now),
        "days_since_settlement": (
            days_since(tx.settlement_date, now) if tx.settled and tx.settlement_date else None
        ),
        "net_amount": str(remaining_amount(tx)),
        "is_secured_otp": otp,
        "is_unsecured": not otp and not tx.is_wallet_transaction,
        "is_magstripe": pos_mode in settings.magstripe_pos_modes,
        "is_chip": pos_mode == settings.chip_pos_mode,
        "is_contactless": pos_mode == settings.contactless_pos_mode,
        "merchant_category_code": tx.merchant_category_code,
        "is_restricted_mcc": tx.merchant_category_code in settings.restricted_mccs,
        "network": card_network(tx),
    }


def _is_wait_for_refund_merchant(merchant_name: str | None) -> bool:
    name = (merchant_name or "").lower()
    return any(marker in name for marker in settings.wait_for_refund_merchants)


def decide_chargeback_action(tx: Any, now: datetime | None = None) -> ChargebackDecision:
    """Pick the filing action for a transaction."""
    snapshot = compliance_snapshot(tx, now)
    net = remaining_amount(tx)
    days_settled = snapshot["days_since_settlement"]

    if base_amount(tx) < Decimal(str(settings.write_off_threshold)):
        return ChargebackDecision(
            action_type=ChargebackActionType.APPROVE_WRITEOFF,
            internal_notes="Amount below write-off threshold; bank absorbs the loss without filing.",
            net_amount=net,
            snapshot=snapshot,
        )

    if snapshot["is_magstripe"]:
        return ChargebackDecision(
            action_type=ChargebackActionType.MANUAL_REVIEW,
            internal_notes="Magstripe/manual entry transaction requires manual review before filing chargeback.",
            requires_manual_review=True,
            net_amount=net,
            snapshot=snapshot,
        )

    if (
        _is_wait_for_refund_merchant(tx.merchant_name)
        and days_settled is not None
        and days_settled < settings.wait_for_refund_days
    ):
        remaining_days = settings.wait_for_refund_days - days_settled
        return ChargebackDecision(
            action_type=ChargebackActionType.WAIT_FOR_REFUND,
            internal_notes=(
                f"Facebook/Meta transaction - waiting {settings.wait_for_refund_days} days for automatic "
                f"refund ({days_settled} days elapsed, {remaining_days} days remaining)."
            ),
            net_amount=net,
            snapshot=snapshot,
        )

    if snapshot["is_secured_otp"]:
        return ChargebackDecision(
            action_type=ChargebackActionType.TEMPORARY_CREDIT_ONLY,
            internal_notes="OTP-secured transaction - temporary credit issued. Case under investigation.",
            temporary_credit_issued=True,
            net_amount=net,
            snapshot=snapshot,
        )

    if snapshot["is_restricted_mcc"]:
        return ChargebackDecision(
            action_type=ChargebackActionType.CHARGEBACK_NO_TEMP,
            internal_notes=(
                f"High-risk merchant category (MCC: {tx.merchant_category_code}) - chargeback filed "
                "without temporary credit as per policy."
            ),
            chargeback_filed=True,
            net_amount=net,
            snapshot=snapshot,
        )

    if snapshot["is_unsecured"]:
        return ChargebackDecision(
            action_type=ChargebackActionType.CHARGEBACK_FILED,
            internal_notes="Unsecured transaction - chargeback filed with temporary credit issued.",
            chargeback_filed=True,
            temporary_credit_issued=True,
            net_amount=net,
            snapshot=snapshot,
        )

    return ChargebackDecision(
        action_type=ChargebackActionType.MANUAL_REVIEW,
        internal_notes="Transaction requires manual review due to unclassified security parameters.",
        requires_manual_review=True,
        net_amount=net,
        snapshot=snapshot,
    )
