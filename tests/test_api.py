"""HTTP-level tests: auth, error bodies and the main case flows."""

import json
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import ClassificationRateLimited
from app.models.dispute import CustomerEvidence
from app.models.transaction import Transaction
from tests.factories import auth_headers, create_dispute, create_filed_case, create_transaction, create_user

API = "/api/v1"


class TestAuth:
    """Bearer tokens and role checks."""

    async def test_missing_token_is_401(self, client, customer, db):
        tx = await create_transaction(db, customer)

        response = await client.post(f"{API}/eligibility/check", json={"transactionId": str(tx.id)})

        assert response.status_code == 401
        assert response.json() == {"error": "Missing bearer token"}

    async def test_garbage_token_is_401(self, client):
        response = await client.get(
            f"{API}/transactions/needs-attention", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    async def test_customer_cannot_resolve_representments(self, client, db, customer):
        tx, _, _ = await create_filed_case(
            db, customer, dispute_status="representment_received", representment_status="representment_received"
        )

        response = await client.post(
            f"{API}/representments/accept",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(customer),
        )

        assert response.status_code == 403
        assert "resolve_representment" in response.json()["error"]

    async def test_analyst_can_check_but_not_resolve(self, client, db, customer, analyst):
        tx, _, _ = await create_filed_case(db, customer)

        check = await client.post(
            f"{API}/representments/check",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(analyst),
        )
        accept = await client.post(
            f"{API}/representments/accept",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(analyst),
        )

        assert check.status_code == 200
        assert accept.status_code == 403


class TestErrorBodies:
    """Every error renders as ``{"error": ...}``."""

    async def test_request_validation_is_400(self, client, customer):
        response = await client.post(
            f"{API}/eligibility/check", json={"transactionId": "nope"}, headers=auth_headers(customer)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert body["details"][0]["loc"] == ["body", "transactionId"]

    async def test_unknown_transaction_is_404(self, client, customer):
        response = await client.post(
            f"{API}/eligibility/check",
            json={"transactionId": str(uuid.uuid4())},
            headers=auth_headers(customer),
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Transaction not found"}

    async def test_unknown_route_uses_same_shape(self, client):
        response = await client.get(f"{API}/nowhere")

        assert response.status_code == 404
        assert "error" in response.json()


class TestEligibilityApi:
    """Camel-case eligibility verdicts."""

    async def test_eligible(self, client, db, customer):
        tx = await create_transaction(db, customer)

        response = await client.post(
            f"{API}/eligibility/check", json={"transactionId": str(tx.id)}, headers=auth_headers(customer)
        )

        assert response.status_code == 200
        assert response.json() == {"transactionId": str(tx.id), "status": "ELIGIBLE"}

    async def test_ineligible_lists_reasons(self, client, db, customer):
        tx = await create_transaction(db, customer, settled=False, settlement_date=None)

        response = await client.post(
            f"{API}/eligibility/check", json={"transactionId": str(tx.id)}, headers=auth_headers(customer)
        )

        body = response.json()
        assert body["status"] == "INELIGIBLE"
        assert len(body["ineligibleReasons"]) == 1

    async def test_write_off_flag_hidden_from_customer(self, client, db, customer):
        tx = await create_transaction(
            db, customer, transaction_amount=Decimal("9.00"), local_transaction_amount=Decimal("9.00")
        )

        response = await client.post(
            f"{API}/eligibility/check", json={"transactionId": str(tx.id)}, headers=auth_headers(customer)
        )

        assert response.json() == {"transactionId": str(tx.id), "status": "ELIGIBLE"}

    @pytest.mark.parametrize("role", ["bank_analyst", "bank_admin"])
    async def test_write_off_flag_shown_to_bank_users(self, client, db, customer, role):
        tx = await create_transaction(
            db, customer, transaction_amount=Decimal("9.00"), local_transaction_amount=Decimal("9.00")
        )
        staff = await create_user(db, role)

        response = await client.post(
            f"{API}/eligibility/check", json={"transactionId": str(tx.id)}, headers=auth_headers(staff)
        )

        assert response.json()["writeOffRecommended"] is True


class TestIntakeApi:
    """Classifier-backed intake over HTTP."""

    async def test_first_question(self, client, customer):
        response = await client.get(f"{API}/intake/first-question", headers=auth_headers(customer))

        assert response.json()["question"].startswith("Could you please tell us")

    async def test_precheck_question(self, client, classifier, customer):
        classifier.responses["generate_question"] = {
            "question": "When was it supposed to arrive?",
            "detected_issue": "non_delivery",
            "merchant_mismatch": False,
        }

        response = await client.post(
            f"{API}/intake/precheck",
            json={
                "step": "generate_q2",
                "merchantName": "TechStore Online",
                "transactionAmount": "120.00",
                "transactionDate": "2025-02-19",
                "answer1": "It never arrived",
            },
            headers=auth_headers(customer),
        )

        assert response.status_code == 200
        assert response.json()["question"] == "When was it supposed to arrive?"

    async def test_provider_throttling_is_429(self, client, classifier, customer):
        classifier.responses["classify_chargeback"] = ClassificationRateLimited()

        response = await client.post(
            f"{API}/intake/classify-reason",
            json={"customReason": "I was charged twice for one order"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 429
        assert response.json() == {"error": "Rate limit exceeded. Please try again later."}

    async def test_classify_reason_is_camel_case(self, client, classifier, customer):
        classifier.responses["classify_chargeback"] = {
            "category": "duplicate",
            "categoryLabel": "Duplicate charge",
            "explanation": "The same order was charged twice.",
            "documents": [
                {"name": "Bank statement showing both charges", "uploadTypes": "PDF"},
                {"name": "Order confirmation", "uploadTypes": "PDF, Image"},
                {"name": "Communication with merchant", "uploadTypes": "PDF, Image"},
            ],
            "userMessage": "Please upload the documents below.",
        }

        response = await client.post(
            f"{API}/intake/classify-reason",
            json={"customReason": "I was charged twice for one order"},
            headers=auth_headers(customer),
        )

        body = response.json()
        assert body["categoryLabel"] == "Duplicate charge"
        assert body["documents"][1]["uploadTypes"] == ["PDF", "Image"]


class TestDisputeFlow:
    """Open, verify and file over HTTP."""

    async def test_open_verify_and_file(self, client, db, classifier, ledger, storage, customer):
        classifier.responses["verify_document"] = {"isValid": True, "reason": "Matches the requirement."}
        tx = await create_transaction(db, customer)
        headers = auth_headers(customer)
        requirements = [
            {"name": "Order confirmation", "uploadTypes": "PDF, Image"},
            {"name": "Communication with merchant", "uploadTypes": "PDF"},
        ]

        opened = await client.post(
            f"{API}/disputes",
            json={
                "transaction_id": str(tx.id),
                "reason_label": "Product not received",
                "category": "not_received",
                "documents": requirements,
            },
            headers=headers,
        )
        assert opened.status_code == 201
        dispute_id = opened.json()["id"]
        assert opened.json()["status"] == "eligibility_checked"

        verified = await client.post(
            f"{API}/evidence/verify",
            data={"requirements": json.dumps(requirements), "disputeId": dispute_id},
            files={
                "Order confirmation": ("order.pdf", b"%PDF-1.7 order", "application/pdf"),
                "Communication with merchant": ("emails.pdf", b"%PDF-1.7 emails", "application/pdf"),
            },
            headers=headers,
        )
        assert verified.status_code == 200
        assert verified.json()["success"] is True
        assert len(storage.objects) == 2

        documents = await client.get(f"{API}/disputes/{dispute_id}/documents", headers=headers)
        assert len(documents.json()) == 2
        assert documents.json()[0]["download_url"].startswith("https://storage.test/")

        filed = await client.post(f"{API}/disputes/{dispute_id}/file-chargeback", headers=headers)
        assert filed.status_code == 200
        body = filed.json()
        assert body["actionType"] == "CHARGEBACK_FILED"
        assert body["caseId"].startswith("CB-")
        assert len(ledger.grants) == 1

        refreshed = await db.get(Transaction, tx.id, populate_existing=True)
        assert refreshed.dispute_status == "chargeback_filed"
        assert refreshed.temporary_credit_provided is True

    async def test_second_open_is_conflict(self, client, db, customer):
        tx = await create_transaction(db, customer)
        await create_dispute(db, customer, tx)

        response = await client.post(
            f"{API}/disputes", json={"transaction_id": str(tx.id)}, headers=auth_headers(customer)
        )

        assert response.status_code == 409

    async def test_ineligible_open_returns_reasons(self, client, db, customer):
        tx = await create_transaction(db, customer, settled=False, settlement_date=None)

        response = await client.post(
            f"{API}/disputes", json={"transaction_id": str(tx.id)}, headers=auth_headers(customer)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Transaction is not eligible for dispute"
        assert "reason" in body["details"][0]

    async def test_verify_requires_requirements(self, client, customer):
        response = await client.post(
            f"{API}/evidence/verify",
            files={"Order confirmation": ("order.pdf", b"%PDF", "application/pdf")},
            headers=auth_headers(customer),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "requirements field is required"}

    async def test_ledger_outage_rolls_back_filing(self, client, db, ledger, customer):
        ledger.fail_grant = True
        tx = await create_transaction(db, customer)
        dispute = await create_dispute(db, customer, tx, status="documents_uploaded")

        response = await client.post(
            f"{API}/disputes/{dispute.id}/file-chargeback", headers=auth_headers(customer)
        )

        assert response.status_code == 503
        await db.refresh(dispute)
        assert dispute.status == "documents_uploaded"


class TestRepresentmentFlow:
    """Bank resolution over HTTP."""

    async def test_check_then_accept(self, client, db, customer, analyst, admin, ledger):
        tx, _, _ = await create_filed_case(db, customer)

        check = await client.post(
            f"{API}/representments/check",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(analyst),
        )
        assert check.json()["message"] == "Representment received"
        assert check.json()["representment"]["reason_code"] == "13.1"

        queue = await client.get(f"{API}/transactions/needs-attention", headers=auth_headers(analyst))
        assert [row["id"] for row in queue.json()] == [str(tx.id)]

        accept = await client.post(
            f"{API}/representments/accept",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(admin),
        )
        assert accept.status_code == 200
        assert accept.json()["new_status"] == "closed_lost"
        assert accept.json()["credit_reversal"]["reversed"] is True

        again = await client.post(
            f"{API}/representments/accept",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(admin),
        )
        assert again.status_code == 400
        assert again.json() == {"error": "Action not allowed in current state", "current_status": "closed_lost"}
        assert len(ledger.reversals) == 1

    async def test_failed_reversal_is_500_and_flags_case(self, client, db, customer, admin, ledger):
        ledger.fail_reversal = True
        tx, _, _ = await create_filed_case(
            db, customer, dispute_status="representment_received", representment_status="representment_received"
        )

        response = await client.post(
            f"{API}/representments/accept",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(admin),
        )

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to reverse temporary credit",
            "message": "Transaction kept in Needs Attention state",
            "sub_status": "reversal_failed",
        }
        await db.refresh(tx)
        assert tx.dispute_status == "representment_received"
        assert tx.dispute_sub_status == "reversal_failed"

    async def test_reject_then_customer_evidence_then_approve(
        self, client, db, classifier, customer, admin
    ):
        classifier.responses["evaluate_evidence"] = {
            "sufficient": True,
            "reasons": ["Mentions the order number", "Shows refund refusal", "Dated near purchase"],
            "summary": "Sufficient.",
        }
        tx, _, _ = await create_filed_case(
            db, customer, dispute_status="representment_received", representment_status="representment_received"
        )

        rejected = await client.post(
            f"{API}/representments/reject",
            json={"transaction_id": str(tx.id), "admin_notes": "Delivery proof is for another address"},
            headers=auth_headers(admin),
        )
        assert rejected.json()["new_status"] == "awaiting_customer_info"
        conversation_id = rejected.json()["conversation_id"]

        chat = await client.get(f"{API}/conversations/{conversation_id}", headers=auth_headers(customer))
        assert chat.json()["messages"][-1]["role"] == "assistant"

        submitted = await client.post(
            f"{API}/evidence/customer",
            json={"transaction_id": str(tx.id), "customer_note": "Order #A-1182, refund refused by email."},
            headers=auth_headers(customer),
        )
        assert submitted.status_code == 200
        evidence_id = submitted.json()["evidence_id"]

        approved = await client.post(
            f"{API}/evidence/customer/approve",
            json={"transaction_id": str(tx.id), "customer_evidence_id": evidence_id},
            headers=auth_headers(admin),
        )
        assert approved.json()["new_status"] == "rebuttal_submitted"

        escalated = await client.post(
            f"{API}/representments/prearbitration",
            json={"transaction_id": str(tx.id)},
            headers=auth_headers(admin),
        )
        assert escalated.json()["new_status"] == "pre_arbitration_filed"

        evidence = (await db.execute(select(CustomerEvidence))).scalar_one()
        assert str(evidence.id) == evidence_id

    async def test_audit_trail(self, client, db, customer, analyst, admin):
        tx, _, _ = await create_filed_case(db, customer)
        await client.post(
            f"{API}/representments/check", json={"transaction_id": str(tx.id)}, headers=auth_headers(analyst)
        )
        await client.post(
            f"{API}/representments/contest", json={"transaction_id": str(tx.id)}, headers=auth_headers(admin)
        )

        response = await client.get(f"{API}/transactions/{tx.id}/audit", headers=auth_headers(analyst))

        assert response.status_code == 200
        entries = {entry["action"]: entry for entry in response.json()}
        assert set(entries) == {"representment_received", "representment_contested"}
        assert entries["representment_received"]["network"] == "visa"
        assert entries["representment_contested"]["compliance_snapshot"]["is_unsecured"] is True

    async def test_customer_cannot_read_audit(self, client, db, customer):
        tx, _, _ = await create_filed_case(db, customer)

        response = await client.get(f"{API}/transactions/{tx.id}/audit", headers=auth_headers(customer))

        assert response.status_code == 403


class TestConversationDeleteApi:
    """Idempotency over HTTP."""

    async def test_delete_twice_with_same_key(self, client, db, customer):
        _, dispute, _ = await create_filed_case(db, customer)
        headers = {**auth_headers(customer), "idempotency-key": "delete-1"}
        body = {"conversationId": str(dispute.conversation_id)}

        first = await client.request("DELETE", f"{API}/conversations", json=body, headers=headers)
        second = await client.request("DELETE", f"{API}/conversations", json=body, headers=headers)

        assert first.status_code == 200
        assert "fromCache" not in first.json()
        assert second.json()["fromCache"] is True
        assert second.json()["deletedAt"] == first.json()["deletedAt"]

    async def test_delete_without_key_is_400(self, client, db, customer):
        _, dispute, _ = await create_filed_case(db, customer)

        response = await client.request(
            "DELETE",
            f"{API}/conversations",
            json={"conversationId": str(dispute.conversation_id)},
            headers=auth_headers(customer),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing idempotency-key header"}

    async def test_delete_someone_elses_conversation_is_404(self, client, db, customer, other_customer):
        _, dispute, _ = await create_filed_case(db, customer)

        response = await client.request(
            "DELETE",
            f"{API}/conversations",
            json={"conversationId": str(dispute.conversation_id)},
            headers={**auth_headers(other_customer), "idempotency-key": "delete-1"},
        )

        assert response.status_code == 404
