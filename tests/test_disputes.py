"""Tests for opening disputes and filing chargebacks."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import (
    DuplicateDispute,
    ExternalServiceError,
    InvalidDisputeStatus,
    NotFoundError,
    ValidationError,
)
from app.domain.eligibility import FULLY_REFUNDED_REASON
from app.models.admin import AuditLog, ChargebackAction
from app.models.dispute import Representment
from app.models.financial import CreditLedgerEntry
from app.models.message import Conversation
from app.schemas.dispute import DisputeCreate
from app.services.dispute_service import dispute_service
from tests.factories import FakeLedger, create_dispute, create_transaction, days_ago


def dispute_request(tx, **overrides) -> DisputeCreate:
    values = {
        "transaction_id": tx.id,
        "reason_label": "Product not received",
        "custom_reason": "Ordered headphones on the 19th, nothing arrived",
        "category": "not_received",
        "documents": [
            {"name": "Order confirmation", "uploadTypes": "PDF, Image"},
            {"name": "Communication with merchant", "uploadTypes": "PDF"},
        ],
    }
    values.update(overrides)
    return DisputeCreate.model_validate(values)


async def uploaded_dispute(db, customer, **tx_overrides):
    tx = await create_transaction(db, customer, **tx_overrides)
    dispute = await create_dispute(db, customer, tx, status="documents_uploaded")
    return tx, dispute


class TestOpenDispute:
    """Opening a dispute checks eligibility first."""

    async def test_opens_with_conversation(self, db, customer):
        tx = await create_transaction(db, customer)

        dispute = await dispute_service.open_dispute(db, customer, dispute_request(tx))

        assert dispute.status == "eligibility_checked"
        assert dispute.eligibility_status == "ELIGIBLE"
        assert dispute.eligibility_reasons == []
        assert dispute.category == "not_received"
        assert dispute.documents[0] == {"name": "Order confirmation", "uploadTypes": ["PDF", "Image"]}

        conversation = await db.get(Conversation, dispute.conversation_id)
        assert conversation.title == "Dispute - TechStore Online"

        audit = (await db.execute(select(AuditLog).where(AuditLog.action == "dispute_open"))).scalar_one()
        assert audit.new_values["write_off_recommended"] is False

    async def test_small_amount_is_flagged_for_write_off(self, db, customer):
        tx = await create_transaction(
            db, customer, transaction_amount=Decimal("9.99"), local_transaction_amount=Decimal("9.99")
        )

        dispute = await dispute_service.open_dispute(db, customer, dispute_request(tx))

        audit = (await db.execute(select(AuditLog).where(AuditLog.resource_id == dispute.id))).scalar_one()
        assert audit.new_values["write_off_recommended"] is True

    async def test_open_dispute_blocks_another(self, db, customer):
        tx = await create_transaction(db, customer)
        await create_dispute(db, customer, tx)

        with pytest.raises(DuplicateDispute) as exc_info:
            await dispute_service.open_dispute(db, customer, dispute_request(tx))

        assert exc_info.value.status_code == 409

    async def test_closed_dispute_does_not_block(self, db, customer):
        tx = await create_transaction(db, customer)
        await create_dispute(db, customer, tx, status="withdrawn")

        dispute = await dispute_service.open_dispute(db, customer, dispute_request(tx))

        assert dispute.status == "eligibility_checked"

    async def test_ineligible_transaction_is_refused_with_reasons(self, db, customer):
        tx = await create_transaction(db, customer, refund_received=True, refund_amount=Decimal("120.00"))

        with pytest.raises(ValidationError) as exc_info:
            await dispute_service.open_dispute(db, customer, dispute_request(tx))

        assert exc_info.value.detail == "Transaction is not eligible for dispute"
        assert exc_info.value.extra == {"details": [{"reason": FULLY_REFUNDED_REASON}]}

    async def test_other_customers_transaction_is_not_found(self, db, customer, other_customer):
        tx = await create_transaction(db, customer)

        with pytest.raises(NotFoundError):
            await dispute_service.open_dispute(db, other_customer, dispute_request(tx))


class TestFileChargeback:
    """Filing applies the first matching policy rule."""

    async def test_files_with_temporary_credit(self, db, ledger, customer):
        tx, dispute = await uploaded_dispute(db, customer)

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, customer)
        await db.flush()

        assert result["actionType"] == "CHARGEBACK_FILED"
        assert result["disputeStatus"] == "chargeback_filed"
        assert result["chargebackFiled"] is True
        assert result["temporaryCreditIssued"] is True
        assert result["caseId"].startswith("CB-")
        assert len(result["caseId"]) == 11

        assert tx.dispute_status == "chargeback_filed"
        assert tx.needs_attention is False
        assert tx.temporary_credit_provided is True
        assert tx.temporary_credit_amount == Decimal("120.00")
        assert dispute.status == "chargeback_filed"
        assert ledger.grants == [(str(tx.id), Decimal("120.00"), "USD")]

        entry = (await db.execute(select(CreditLedgerEntry))).scalar_one()
        assert entry.entry_type == "grant"
        assert entry.reference == "grant-1"

        representment = (await db.execute(select(Representment))).scalar_one()
        assert representment.status == "no_representment"
        assert representment.has_representment is False

        action = await db.get(ChargebackAction, result["actionId"])
        assert action.compliance_snapshot["network"] == "visa"
        assert action.days_since_transaction == 10

    async def test_credit_is_in_base_currency(self, db, ledger, customer):
        tx, dispute = await uploaded_dispute(
            db,
            customer,
            transaction_amount=Decimal("110.00"),
            transaction_currency="EUR",
            local_transaction_amount=Decimal("120.00"),
            local_transaction_currency="USD",
        )

        await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert ledger.grants == [(str(tx.id), Decimal("120.00"), "USD")]

    async def test_small_amount_is_written_off(self, db, ledger, customer):
        tx, dispute = await uploaded_dispute(
            db, customer, transaction_amount=Decimal("12.00"), local_transaction_amount=Decimal("12.00")
        )

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert result["actionType"] == "APPROVE_WRITEOFF"
        assert result["caseId"] is None
        assert tx.dispute_status == "written_off"
        assert ledger.grants == []
        assert (await db.execute(select(Representment))).first() is None

    async def test_magstripe_goes_to_manual_review(self, db, ledger, customer):
        tx, dispute = await uploaded_dispute(db, customer, pos_entry_mode=90)

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert result["actionType"] == "MANUAL_REVIEW"
        assert tx.dispute_status == "manual_review"
        assert tx.needs_attention is True

    async def test_manual_review_can_be_filed_again(self, db, ledger, customer):
        tx = await create_transaction(db, customer, dispute_status="manual_review")
        dispute = await create_dispute(db, customer, tx, status="manual_review")

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert result["actionType"] == "CHARGEBACK_FILED"

    async def test_recent_meta_charge_waits_for_refund(self, db, ledger, customer):
        tx, dispute = await uploaded_dispute(
            db, customer, merchant_name="Meta Platforms", transaction_time=days_ago(2), settlement_date=days_ago(0)
        )

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert result["actionType"] == "WAIT_FOR_REFUND"
        assert result["disputeStatus"] == "awaiting_merchant_refund"
        assert result["chargebackFiled"] is False

    async def test_otp_transaction_gets_credit_only(self, db, ledger, customer):
        tx, dispute = await uploaded_dispute(db, customer, secured_indication=2)

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert result["actionType"] == "TEMPORARY_CREDIT_ONLY"
        assert result["caseId"] is None
        assert tx.dispute_status == "under_investigation"
        assert len(ledger.grants) == 1

    async def test_restricted_mcc_files_without_credit(self, db, ledger, customer):
        tx, dispute = await uploaded_dispute(db, customer, merchant_category_code=5968)

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert result["actionType"] == "CHARGEBACK_NO_TEMP"
        assert result["caseId"].startswith("CB-")
        assert ledger.grants == []

    async def test_ledger_refusal_is_a_service_error(self, db, customer):
        _, dispute = await uploaded_dispute(db, customer)

        with pytest.raises(ExternalServiceError) as exc_info:
            await dispute_service.file_chargeback(db, FakeLedger(fail_grant=True), dispute.id, customer)

        assert exc_info.value.status_code == 503
        assert "ledger offline" in exc_info.value.detail

    async def test_dispute_without_documents_cannot_be_filed(self, db, ledger, customer):
        tx = await create_transaction(db, customer)
        dispute = await create_dispute(db, customer, tx)

        with pytest.raises(InvalidDisputeStatus) as exc_info:
            await dispute_service.file_chargeback(db, ledger, dispute.id, customer)

        assert exc_info.value.current_status == "eligibility_checked"

    async def test_other_customers_dispute_is_not_found(self, db, ledger, customer, other_customer):
        _, dispute = await uploaded_dispute(db, customer)

        with pytest.raises(NotFoundError):
            await dispute_service.file_chargeback(db, ledger, dispute.id, other_customer)

    async def test_bank_user_can_file_any_dispute(self, db, ledger, customer, admin):
        _, dispute = await uploaded_dispute(db, customer)

        result = await dispute_service.file_chargeback(db, ledger, dispute.id, admin)

        assert result["success"] is True
