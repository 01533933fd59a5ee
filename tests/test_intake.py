"""Tests for the intake dialogue and reason classification."""

import pytest
from pydantic import ValidationError

from app.core.exceptions import (
    ClassificationQuotaExceeded,
    ClassificationRateLimited,
    ClassificationResponseError,
)
from app.schemas.classification import (
    ChargebackCategory,
    EvidenceRequirement,
    IssueType,
    ReasonCategory,
)
from app.schemas.intake import PrecheckRequest, PrecheckStep
from app.services.intake_service import intake_service
from app.services.requirement_service import PRODUCT_PHOTO, photo_first, requirement_service

CONTEXT = {
    "merchantName": "TechStore Online",
    "transactionAmount": "120.00",
    "transactionDate": "2025-02-19",
}

TWO_DOCUMENTS = [
    {"name": "Order confirmation", "uploadTypes": "PDF, Image"},
    {"name": "Communication with merchant", "uploadTypes": "PDF, Image"},
]

THREE_DOCUMENTS = [
    {"name": "Proof of purchase (e.g., invoice, receipt)", "uploadTypes": "PDF, Image"},
    {"name": "Communication with merchant", "uploadTypes": "PDF, Image"},
    {"name": "Bank or credit card statement showing the charge", "uploadTypes": "PDF"},
]


def precheck(step: str, **answers) -> PrecheckRequest:
    return PrecheckRequest.model_validate({"step": step, **CONTEXT, **answers})


class TestPrecheckRequest:
    """Each step needs the answers collected so far."""

    def test_q2_needs_first_answer(self):
        with pytest.raises(ValidationError):
            precheck("generate_q2")

    def test_evaluate_needs_all_answers(self):
        with pytest.raises(ValidationError):
            precheck("evaluate", answer1="Never arrived", answer2="Two weeks ago")

    def test_blank_answers_count_as_missing(self):
        with pytest.raises(ValidationError):
            precheck("generate_q3", answer1="Never arrived", answer2="   ")

    def test_unknown_step_is_rejected(self):
        with pytest.raises(ValidationError):
            precheck("generate_q4", answer1="x")


class TestIntakeSteps:
    """One classification per step."""

    async def test_second_question(self, ai, classifier):
        classifier.responses["generate_question"] = {
            "question": "When was the order supposed to arrive?",
            "detected_issue": "non_delivery",
            "merchant_mismatch": False,
        }

        result = await intake_service.run_step(ai, precheck("generate_q2", answer1="It never arrived"))

        assert result.question == "When was the order supposed to arrive?"
        assert result.detected_issue == IssueType.NON_DELIVERY
        request = classifier.requests[0]
        assert "It never arrived" in request.system_prompt
        assert "TechStore Online" in request.system_prompt

    async def test_merchant_mismatch_takes_priority(self, ai, classifier):
        classifier.responses["generate_question"] = {
            "question": "I see this transaction is with TechStore Online. Did you mean them?",
            "detected_issue": "non_delivery",
            "merchant_mismatch": True,
        }

        result = await intake_service.run_step(
            ai, precheck("generate_q2", answer1="My GadgetHub order never came")
        )

        assert result.merchant_mismatch is True
        assert result.detected_issue == IssueType.MERCHANT_MISMATCH

    async def test_third_question_sees_both_answers(self, ai, classifier):
        classifier.responses["generate_question"] = {
            "question": "Have you contacted the merchant?",
            "merchant_mismatch": False,
        }

        result = await intake_service.run_step(
            ai, precheck("generate_q3", answer1="It never arrived", answer2="Due two weeks ago")
        )

        assert result.question == "Have you contacted the merchant?"
        assert "Due two weeks ago" in classifier.requests[0].system_prompt

    async def test_evaluation_keeps_exactly_two_documents(self, ai, classifier):
        classifier.responses["evaluate_chargeback"] = {
            "chargeback_possible": True,
            "reasoning": "Goods not delivered after the promised date",
            "category": "not_received",
            "required_documents": TWO_DOCUMENTS + [{"name": "Tracking page", "uploadTypes": "Image"}],
            "customer_message": "Your transaction qualifies. Please upload the documents below.",
        }

        result = await intake_service.run_step(
            ai,
            precheck("evaluate", answer1="Never arrived", answer2="Due Feb 1", answer3="Merchant ignores me"),
        )

        assert result.chargeback_possible is True
        assert result.category == ChargebackCategory.NOT_RECEIVED
        assert [d.name for d in result.required_documents] == [
            "Order confirmation",
            "Communication with merchant",
        ]
        assert result.required_documents[0].upload_types == ["PDF", "Image"]

    async def test_evaluation_not_possible_has_no_documents(self, ai, classifier):
        classifier.responses["evaluate_chargeback"] = {
            "chargeback_possible": False,
            "reasoning": "Customer has not contacted the merchant",
            "category": "not_received",
            "required_documents": TWO_DOCUMENTS,
            "customer_message": "Please contact the merchant first.",
        }

        result = await intake_service.run_step(
            ai, precheck("evaluate", answer1="Late", answer2="Yesterday", answer3="No")
        )

        assert result.chargeback_possible is False
        assert result.required_documents == []
        assert result.category is None

    async def test_evaluation_with_one_document_is_malformed(self, ai, classifier):
        classifier.responses["evaluate_chargeback"] = {
            "chargeback_possible": True,
            "reasoning": "Duplicate",
            "category": "duplicate",
            "required_documents": TWO_DOCUMENTS[:1],
            "customer_message": "Upload your statement.",
        }

        with pytest.raises(ClassificationResponseError):
            await intake_service.run_step(
                ai, precheck("evaluate", answer1="Charged twice", answer2="Same order", answer3="Yes")
            )

    @pytest.mark.parametrize(
        "error", [ClassificationRateLimited(), ClassificationQuotaExceeded()]
    )
    async def test_provider_limits_surface_unchanged(self, ai, classifier, error):
        classifier.responses["generate_question"] = error

        with pytest.raises(type(error)):
            await intake_service.run_step(ai, precheck("generate_q2", answer1="Never arrived"))

    def test_first_question_is_fixed(self):
        assert intake_service.first_question.startswith("Could you please tell us")
        assert PrecheckStep("evaluate") == PrecheckStep.EVALUATE


class TestReasonClassification:
    """Free-text reason to category and evidence list."""

    async def test_three_documents(self, ai, classifier):
        classifier.responses["classify_chargeback"] = {
            "category": "not_received",
            "categoryLabel": "Goods or services not received",
            "explanation": "The customer paid but nothing arrived.",
            "documents": THREE_DOCUMENTS,
            "userMessage": "Please upload the three documents below.",
        }

        result = await requirement_service.classify(ai, "I paid for headphones and they never arrived")

        assert result.category == ReasonCategory.NOT_RECEIVED
        assert len(result.documents) == 3
        assert result.model_dump(by_alias=True)["categoryLabel"] == "Goods or services not received"

    async def test_extra_documents_are_trimmed(self, ai, classifier):
        classifier.responses["classify_chargeback"] = {
            "category": "billing_error",
            "categoryLabel": "Billing error",
            "explanation": "Charged after cancelling.",
            "documents": THREE_DOCUMENTS + [{"name": "Cancellation email", "uploadTypes": "PDF"}],
            "userMessage": "Upload the documents.",
        }

        result = await requirement_service.classify(ai, "Charged after I cancelled my plan")

        assert len(result.documents) == 3

    async def test_not_eligible_has_no_documents(self, ai, classifier):
        classifier.responses["classify_chargeback"] = {
            "category": "not_eligible",
            "categoryLabel": "Not eligible",
            "explanation": "Buyer's remorse is not a chargeback reason.",
            "documents": THREE_DOCUMENTS,
            "userMessage": "This does not qualify.",
        }

        result = await requirement_service.classify(ai, "I changed my mind about the purchase")

        assert result.documents == []

    async def test_too_few_documents_is_malformed(self, ai, classifier):
        classifier.responses["classify_chargeback"] = {
            "category": "fraud",
            "categoryLabel": "Fraud",
            "explanation": "Unauthorized.",
            "documents": THREE_DOCUMENTS[:2],
            "userMessage": "Upload.",
        }

        with pytest.raises(ClassificationResponseError):
            await requirement_service.classify(ai, "I did not make this purchase")

    async def test_product_issue_puts_photo_first(self, ai, classifier):
        classifier.responses["classify_chargeback"] = {
            "category": "defective",
            "categoryLabel": "Defective product",
            "explanation": "The item arrived broken.",
            "documents": THREE_DOCUMENTS,
            "userMessage": "Upload the documents.",
        }

        result = await requirement_service.classify(ai, "The blender arrived damaged")

        assert result.documents[0] == PRODUCT_PHOTO
        assert len(result.documents) == 3

    async def test_wrong_size_counts_as_product_issue(self, ai, classifier):
        classifier.responses["classify_chargeback"] = {
            "category": "billing_error",
            "categoryLabel": "Billing error",
            "explanation": "Customer received the wrong size.",
            "documents": THREE_DOCUMENTS,
            "userMessage": "Upload the documents.",
        }

        result = await requirement_service.classify(ai, "They sent the wrong size and won't exchange it")

        assert result.documents[0].name == PRODUCT_PHOTO.name


class TestPhotoFirst:
    """Ordering of the product photo requirement."""

    def test_existing_photo_moves_to_front(self):
        docs = [
            EvidenceRequirement(name="Receipt", upload_types=["PDF"]),
            EvidenceRequirement(name="Photo of the damage", upload_types=["Image"]),
            EvidenceRequirement(name="Emails", upload_types=["PDF"]),
        ]

        ordered = photo_first(docs)

        assert [d.name for d in ordered] == ["Photo of the damage", "Receipt", "Emails"]

    def test_missing_photo_is_inserted(self):
        docs = [EvidenceRequirement(name=f"Doc {i}", upload_types=["PDF"]) for i in range(3)]

        ordered = photo_first(docs)

        assert ordered[0] == PRODUCT_PHOTO
        assert [d.name for d in ordered[1:]] == ["Doc 0", "Doc 1"]

    def test_photo_of_paperwork_is_not_the_product_photo(self):
        docs = [
            EvidenceRequirement(name="Order confirmation", upload_types=["PDF"]),
            EvidenceRequirement(name="Photo of receipt", upload_types=["Image"]),
            EvidenceRequirement(name="Emails", upload_types=["PDF"]),
        ]

        ordered = photo_first(docs)

        assert ordered[0] == PRODUCT_PHOTO
        assert [d.name for d in ordered[1:]] == ["Order confirmation", "Photo of receipt"]
