"""Tests for dispute eligibility rules."""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.exceptions import NotFoundError
from app.domain.eligibility import (
    FULLY_REFUNDED_REASON,
    LONG_PENDING_REASON,
    PENDING_REASON,
    SECURED_WALLET_REASON,
    TOO_EARLY_REASON,
    EligibilityStatus,
    base_amount,
    base_currency,
    evaluate_eligibility,
)
from app.services.eligibility_service import eligibility_service
from tests.factories import NOW, create_transaction, transaction_stub


class TestSettlementGate:
    """Unsettled transactions are always blocked, with a reason by age."""

    def test_settled_transaction_is_eligible(self):
        result = evaluate_eligibility(transaction_stub(), now=NOW)

        assert result.status == EligibilityStatus.ELIGIBLE
        assert result.ineligible_reasons == []
        assert result.write_off_recommended is False

    def test_one_day_unsettled_is_too_early(self):
        """A one-day-old pending transaction typically settles in 2-3 business days."""
        result = evaluate_eligibility(transaction_stub(age_days=1, settled=False), now=NOW)

        assert result.status == EligibilityStatus.INELIGIBLE
        assert result.ineligible_reasons == [TOO_EARLY_REASON]
        assert "2-3 business days" in result.ineligible_reasons[0]

    def test_long_pending_is_escalated(self):
        result = evaluate_eligibility(transaction_stub(age_days=30, settled=False), now=NOW)

        assert result.ineligible_reasons == [LONG_PENDING_REASON]
        assert "unusually long" in result.ineligible_reasons[0]

    @pytest.mark.parametrize("age_days", [3, 10, 21])
    def test_pending_within_window_waits_for_settlement(self, age_days):
        result = evaluate_eligibility(transaction_stub(age_days=age_days, settled=False), now=NOW)

        assert result.ineligible_reasons == [PENDING_REASON]

    @pytest.mark.parametrize(
        "age, reason",
        [
            (timedelta(days=2), TOO_EARLY_REASON),
            (timedelta(days=2, hours=12), PENDING_REASON),
            (timedelta(days=21), PENDING_REASON),
            (timedelta(days=21, hours=12), LONG_PENDING_REASON),
        ],
    )
    def test_started_day_counts_as_whole(self, age, reason):
        tx = transaction_stub(settled=False, transaction_time=NOW - age)

        assert evaluate_eligibility(tx, now=NOW).ineligible_reasons == [reason]

    def test_settlement_reasons_are_mutually_exclusive(self):
        for age_days in range(0, 40):
            result = evaluate_eligibility(transaction_stub(age_days=age_days, settled=False), now=NOW)
            settlement = [
                r for r in result.ineligible_reasons
                if r in (TOO_EARLY_REASON, LONG_PENDING_REASON, PENDING_REASON)
            ]
            assert len(settlement) == 1


class TestRefundExhaustion:
    """Refunds reduce the amount left to dispute."""

    def test_fully_refunded_is_ineligible(self):
        tx = transaction_stub(refund_received=True, refund_amount=Decimal("120.00"))

        result = evaluate_eligibility(tx, now=NOW)

        assert result.status == EligibilityStatus.INELIGIBLE
        assert result.ineligible_reasons == [FULLY_REFUNDED_REASON]
        assert result.remaining_amount == Decimal("0")

    def test_partial_refund_stays_eligible(self):
        tx = transaction_stub(refund_received=True, refund_amount=Decimal("50.00"))

        result = evaluate_eligibility(tx, now=NOW)

        assert result.eligible
        assert result.remaining_amount == Decimal("70.00")

    def test_refund_amount_without_flag_is_not_exhaustion(self):
        tx = transaction_stub(refund_received=False, refund_amount=Decimal("120.00"))

        assert evaluate_eligibility(tx, now=NOW).eligible


class TestSecuredWallet:
    """Strong-auth wallet payments without OTP are excluded."""

    def test_apple_pay_without_otp_is_ineligible(self):
        tx = transaction_stub(is_wallet_transaction=True, wallet_type="Apple Pay", secured_indication=0)

        result = evaluate_eligibility(tx, now=NOW)

        assert result.ineligible_reasons == [SECURED_WALLET_REASON]

    @pytest.mark.parametrize("indication", [2, 212])
    def test_otp_secured_wallet_is_eligible(self, indication):
        tx = transaction_stub(
            is_wallet_transaction=True, wallet_type="Google Pay", secured_indication=indication
        )

        assert evaluate_eligibility(tx, now=NOW).eligible

    def test_other_wallets_are_not_excluded(self):
        tx = transaction_stub(is_wallet_transaction=True, wallet_type="Samsung Pay", secured_indication=0)

        assert evaluate_eligibility(tx, now=NOW).eligible


class TestDisputeWindowAndWriteOff:
    """Age limit and the informational write-off flag."""

    def test_older_than_window_is_ineligible(self):
        result = evaluate_eligibility(transaction_stub(age_days=121), now=NOW)

        assert result.status == EligibilityStatus.INELIGIBLE
        assert "older than 120 days" in result.ineligible_reasons[0]

    def test_window_boundary_is_eligible(self):
        assert evaluate_eligibility(transaction_stub(age_days=120), now=NOW).eligible

    def test_small_amount_recommends_write_off_but_stays_eligible(self):
        tx = transaction_stub(
            transaction_amount=Decimal("9.99"), local_transaction_amount=Decimal("9.99")
        )

        result = evaluate_eligibility(tx, now=NOW)

        assert result.eligible
        assert result.write_off_recommended is True

    def test_all_applicable_reasons_reported_in_rule_order(self):
        tx = transaction_stub(
            age_days=130,
            settled=False,
            is_wallet_transaction=True,
            wallet_type="Apple Pay",
        )

        result = evaluate_eligibility(tx, now=NOW)

        assert result.ineligible_reasons[0] == LONG_PENDING_REASON
        assert result.ineligible_reasons[1] == SECURED_WALLET_REASON
        assert "older than 120 days" in result.ineligible_reasons[2]
        assert len(result.ineligible_reasons) == 3


class TestBaseAmount:
    """The amount rules use, in the bank's base currency when known."""

    def test_local_amount_in_base_currency_is_used(self):
        tx = transaction_stub(
            transaction_amount=Decimal("100.00"),
            transaction_currency="EUR",
            local_transaction_amount=Decimal("108.50"),
            local_transaction_currency="USD",
        )

        assert base_amount(tx) == Decimal("108.50")
        assert base_currency(tx) == "USD"

    def test_foreign_local_amount_falls_back_to_original(self):
        tx = transaction_stub(
            transaction_amount=Decimal("100.00"),
            transaction_currency="EUR",
            local_transaction_amount=Decimal("9000"),
            local_transaction_currency="INR",
        )

        assert base_amount(tx) == Decimal("100.00")
        assert base_currency(tx) == "EUR"

    def test_zero_local_amount_falls_back_to_original(self):
        tx = transaction_stub(local_transaction_amount=Decimal("0"))

        assert base_amount(tx) == Decimal("120.00")


class TestEligibilityService:
    """Eligibility against stored transactions."""

    async def test_check_own_transaction(self, db, customer):
        tx = await create_transaction(db, customer)

        result = await eligibility_service.check(db, tx.id, customer)

        assert result.eligible

    async def test_other_customers_transaction_is_not_found(self, db, customer, other_customer):
        tx = await create_transaction(db, customer)

        with pytest.raises(NotFoundError):
            await eligibility_service.check(db, tx.id, other_customer)

    async def test_bank_staff_can_check_any_transaction(self, db, customer, analyst):
        tx = await create_transaction(db, customer, settled=False)

        result = await eligibility_service.check(db, tx.id, analyst)

        assert result.status == EligibilityStatus.INELIGIBLE

    def test_response_omits_empty_fields(self):
        result = evaluate_eligibility(transaction_stub(), now=NOW)

        body = eligibility_service.to_response("tx-1", result, SimpleNamespace(role="customer"))

        assert body == {"transactionId": "tx-1", "status": "ELIGIBLE"}
