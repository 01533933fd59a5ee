"""Classification service: prompts and typed contracts over the classification gateway.

CRITICAL: AI is ASSISTIVE ONLY. It classifies and asks questions; every
money movement and final dispute outcome is decided by rules or by a bank
operator.
"""

import logging
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ClassificationResponseError
from app.gateways.base import ClassificationGateway, ClassificationRequest, ImageInput
from app.schemas.classification import (
    ChargebackCategory,
    DocumentJudgment,
    EvidenceEvaluation,
    EvidenceRequirement,
    IssueType,
    PrecheckEvaluation,
    QuestionResult,
    ReasonCategory,
    ReasonClassification,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

FIRST_QUESTION = "Could you please tell us what this transaction was about and what went wrong?"

# Guidance only; the model weighs these against the answers
CHARGEBACK_POSSIBLE_WHEN = """- Transaction appears unauthorized by the customer
- Customer did not receive goods/services after promised delivery
- Merchant promised refund but didn't deliver it
- Same transaction was charged twice (duplicate)
- Customer was charged incorrect amount and merchant hasn't corrected it
- Product received was defective/not as described"""

CHARGEBACK_NOT_POSSIBLE_WHEN = """- Customer admits receiving goods/service as expected
- Merchant has already refunded or replacement is in process
- Customer hasn't waited sufficient time for delivery/refund window
- Customer misunderstood an authorized or recurring payment
- Customer cannot describe a specific problem related to payment
- Issue is within merchant's return/refund policy timeframe
- Customer hasn't attempted to contact merchant yet"""

_REQUIREMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "uploadTypes": {"type": "string", "description": "Comma-separated, e.g. PDF, Image"},
    },
    "required": ["name", "uploadTypes"],
}

QUESTION_Q2_SCHEMA = {
    "type": "object",
    "properties": {
        "question": {"type": "string", "description": "The follow-up question to ask the customer"},
        "detected_issue": {
            "type": "string",
            "enum": [issue.value for issue in IssueType],
            "description": "The type of issue detected from their answer",
        },
        "merchant_mismatch": {
            "type": "boolean",
            "description": "True if customer mentioned a different merchant name than the transaction merchant",
        },
    },
    "required": ["question", "detected_issue", "merchant_mismatch"],
}

QUESTION_Q3_SCHEMA = {
    "type": "object",
    "properties": {
        "question": {"type": "string", "description": "The final follow-up question to ask the customer"},
        "merchant_mismatch": {
            "type": "boolean",
            "description": "True if customer mentioned a different merchant name than the transaction merchant",
        },
    },
    "required": ["question", "merchant_mismatch"],
}

PRECHECK_EVALUATION_SCHEMA = {
    "type": "object",
    "properties": {
        "chargeback_possible": {"type": "boolean"},
        "reasoning": {
            "type": "string",
            "description": "Internal explanation for the decision (bank view only)",
        },
        "category": {"type": "string", "enum": [c.value for c in ChargebackCategory]},
        "required_documents": {
            "type": "array",
            "items": _REQUIREMENT_SCHEMA,
            "description": "Exactly two evidence items when a chargeback is possible",
        },
        "customer_message": {
            "type": "string",
            "description": (
                "Message confirming eligibility and the documents needed. Do NOT mention "
                "temporary credit, chargeback filing, or investigation timeline."
            ),
        },
    },
    "required": ["chargeback_possible", "reasoning", "required_documents", "customer_message"],
}

REASON_CLASSIFICATION_SCHEMA = {
    "type": "object",
    "properties": {
        "category": {"type": "string", "enum": [c.value for c in ReasonCategory]},
        "categoryLabel": {"type": "string"},
        "explanation": {"type": "string"},
        "documents": {"type": "array", "items": _REQUIREMENT_SCHEMA},
        "userMessage": {"type": "string"},
    },
    "required": ["category", "categoryLabel", "explanation", "documents", "userMessage"],
}

DOCUMENT_JUDGMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "isValid": {"type": "boolean"},
        "reason": {
            "type": "string",
            "description": "Short, specific explanation. If invalid, say exactly what to upload instead.",
        },
    },
    "required": ["isValid", "reason"],
}

EVIDENCE_EVALUATION_SCHEMA = {
    "type": "object",
    "properties": {
        "sufficient": {"type": "boolean"},
        "reasons": {"type": "array", "items": {"type": "string"}},
        "summary": {"type": "string"},
    },
    "required": ["sufficient", "reasons", "summary"],
}


def _transaction_block(merchant_name: str, transaction_amount: Any, transaction_date: str) -> str:
    return f"""The customer has selected a transaction:
- Merchant: {merchant_name}
- Amount: {transaction_amount}
- Date: {transaction_date}"""


def _context_block(reason_label: str | None, customer_reason: str | None) -> str:
    if not reason_label and not customer_reason:
        return ""
    return f"""
DISPUTE CONTEXT:
- Reason: {reason_label or 'Not provided'}
- Customer's explanation: {customer_reason or 'Not provided'}
"""


class AIService:
    """Typed classification use cases over a ClassificationGateway."""

    def __init__(self, gateway: ClassificationGateway) -> None:
        self.gateway = gateway

    async def _run(self, request: ClassificationRequest, model: type[ModelT]) -> ModelT:
        """Call the gateway and validate its output into ``model``."""
        raw = await self.gateway.classify(request)
        try:
            return model.model_validate(raw)
        except PydanticValidationError as e:
            logger.error("Malformed %s result from classifier: %s", request.tool_name, e)
            raise ClassificationResponseError(f"Malformed {request.tool_name} result") from e

    async def generate_second_question(
        self,
        answer1: str,
        merchant_name: str,
        transaction_amount: Any,
        transaction_date: str,
    ) -> QuestionResult:
        """Generate Q2 from the customer's first answer.

        Args:
            answer1: Answer to the fixed first question
            merchant_name: Merchant on the disputed transaction
            transaction_amount: Transaction amount as shown to the customer
            transaction_date: Transaction date as shown to the customer

        Returns:
            QuestionResult with the detected issue type
        """
        system_prompt = f"""You are a chargeback specialist helping determine if a customer's transaction issue qualifies for a chargeback.

{_transaction_block(merchant_name, transaction_amount, transaction_date)}

They just answered Question 1: "{FIRST_QUESTION}"

Their answer: "{answer1}"

CRITICAL VALIDATION: First, check if the customer mentioned a different merchant name in their answer.
- If they mention a merchant name that doesn't match "{merchant_name}", set merchant_mismatch to true and detected_issue to merchant_mismatch
- If merchant_mismatch is true, ask: "I see this transaction is with {merchant_name}. Are you referring to a different transaction, or did you mean {merchant_name}?"
- Only proceed with normal follow-up questions if merchant names match or no merchant was mentioned

Otherwise tailor the follow-up to the issue:
- "didn't receive" → ask about delivery date or updates from merchant
- "charged twice/duplicate" → ask if both were for same order or separate
- "wrong amount" → ask what amount they expected
- "unauthorized" → ask about card access or OTP confirmation
- "refund" → ask when merchant promised the refund
- "defective" → ask what is wrong with the product and whether they contacted the merchant
- unclear/vague → ask what they were expecting from the transaction

The question should be conversational and always reference the correct merchant name."""

        return await self._run(
            ClassificationRequest(
                tool_name="generate_question",
                tool_description="Generate a contextual follow-up question",
                system_prompt=system_prompt,
                user_prompt="Generate the second follow-up question based on the customer's first answer.",
                output_schema=QUESTION_Q2_SCHEMA,
            ),
            QuestionResult,
        )

    async def generate_third_question(
        self,
        answer1: str,
        answer2: str,
        merchant_name: str,
        transaction_amount: Any,
        transaction_date: str,
    ) -> QuestionResult:
        """Generate Q3 from the first two answers."""
        system_prompt = f"""You are a chargeback specialist helping determine if a customer's transaction issue qualifies for a chargeback.

{_transaction_block(merchant_name, transaction_amount, transaction_date)}

Previous answers:
Question 1: "{FIRST_QUESTION}"
Answer 1: "{answer1}"

Question 2: [Dynamic follow-up]
Answer 2: "{answer2}"

CRITICAL VALIDATION: Check if the customer mentioned a different merchant name in any of their answers.
- If they mention a merchant that doesn't match "{merchant_name}", set merchant_mismatch to true
- If merchant_mismatch is true, ask: "I notice you mentioned [other merchant]. This transaction is with {merchant_name}. Are you referring to a different transaction?"
- Only ask normal follow-up questions if merchant names are consistent

Your task is to generate the third and final question that:
1. Validates merchant name consistency first (highest priority)
2. Helps determine if they've taken reasonable steps to resolve with the merchant
3. Clarifies timing and urgency of the issue
4. Confirms key facts needed to assess chargeback eligibility"""

        return await self._run(
            ClassificationRequest(
                tool_name="generate_question",
                tool_description="Generate a contextual follow-up question",
                system_prompt=system_prompt,
                user_prompt="Generate the third follow-up question based on both previous answers.",
                output_schema=QUESTION_Q3_SCHEMA,
            ),
            QuestionResult,
        )

    async def evaluate_precheck(
        self,
        answer1: str,
        answer2: str,
        answer3: str,
        merchant_name: str,
        transaction_amount: Any,
        transaction_date: str,
    ) -> PrecheckEvaluation:
        """Decide whether the three answers describe a chargeable dispute."""
        system_prompt = f"""You are a chargeback specialist making the final determination on whether a customer's situation qualifies for a chargeback.

{_transaction_block(merchant_name, transaction_amount, transaction_date)}

Their responses to our 3 questions:

Question 1: "{FIRST_QUESTION}"
Answer 1: "{answer1}"

Question 2: [Dynamic follow-up]
Answer 2: "{answer2}"

Question 3: [Dynamic follow-up]
Answer 3: "{answer3}"

Set chargeback_possible = TRUE when:
{CHARGEBACK_POSSIBLE_WHEN}

Set chargeback_possible = FALSE when:
{CHARGEBACK_NOT_POSSIBLE_WHEN}

When a chargeback is possible, pick the category and list EXACTLY TWO documents the customer must upload.
When it is not possible, return an empty required_documents array.

CRITICAL: The customer_message should ONLY confirm whether the transaction is valid for a chargeback and, if so, which documents are needed.
DO NOT mention temporary credit, proceeding with chargeback, investigation timeline, or any next steps after document verification."""

        return await self._run(
            ClassificationRequest(
                tool_name="evaluate_chargeback",
                tool_description="Evaluate if chargeback is possible based on customer responses",
                system_prompt=system_prompt,
                user_prompt=(
                    "Based on all three customer responses, determine if a chargeback is possible "
                    "and provide clear reasoning."
                ),
                output_schema=PRECHECK_EVALUATION_SCHEMA,
            ),
            PrecheckEvaluation,
        )

    async def classify_reason(self, custom_reason: str) -> ReasonClassification:
        """Classify a free-text dispute reason and list the evidence it needs."""
        system_prompt = """You are a chargeback classification expert. Analyze the customer's dispute reason and classify it into one of these categories:

1. "fraud" - Fraudulent or unauthorized transactions
2. "not_received" - Goods or services not received
3. "duplicate" - Duplicate charges
4. "incorrect_amount" - Incorrect transaction amount
5. "defective" - Defective or not as described goods
6. "billing_error" - Billing errors or processing issues
7. "not_eligible" - Does not qualify for chargeback

Important:
- ALWAYS return exactly 3 documents (except for not_eligible which should have an empty documents array)
- For generic document types, give helpful examples in the document name, e.g.
  * "Proof of purchase (e.g., invoice, receipt, order confirmation)"
  * "Communication with merchant (e.g., emails, chat transcripts, support tickets)"
  * "Bank or credit card statement showing the charge"
- For product-related issues (defective, damaged, wrong size, wrong color, not as described), ALWAYS include "Photo of the product showing the issue" with uploadTypes "Image" as the FIRST document
- Only classify as not_eligible if it truly doesn't qualify"""

        return await self._run(
            ClassificationRequest(
                tool_name="classify_chargeback",
                tool_description="Classify a chargeback reason and determine required documents",
                system_prompt=system_prompt,
                user_prompt=f'Analyze this chargeback reason: "{custom_reason}"',
                output_schema=REASON_CLASSIFICATION_SCHEMA,
            ),
            ReasonClassification,
        )

    async def judge_image(
        self,
        requirement: EvidenceRequirement,
        file_name: str,
        media_type: str,
        data_b64: str,
        reason_label: str | None = None,
        customer_reason: str | None = None,
    ) -> DocumentJudgment:
        """Judge an image upload by its content."""
        system_prompt = f"""You are verifying an image uploaded as chargeback evidence.
{_context_block(reason_label, customer_reason)}
Understand the dispute context. For example:
- If the issue is "received wrong/different item", a photo of the received item IS valid evidence
- If the issue is "damaged/defective", look for visible damage or defects
- If the issue is "not as described", the photo should show how it differs from the description

Judge three things:
1. Relevance: does the image plausibly show what the requirement asks for?
2. Sufficiency: would it support the customer's claim?
3. Legibility: is the content readable (not blank, corrupted or pure noise)?

Be reasonable, not pedantic: accept screenshots, photos and scans that show the right kind of content."""

        return await self._run(
            ClassificationRequest(
                tool_name="verify_document",
                tool_description="Record whether the uploaded document satisfies the requirement",
                system_prompt=system_prompt,
                user_prompt=(
                    f'REQUIREMENT: "{requirement.name}"\n'
                    f"Expected types: {', '.join(requirement.upload_types) or 'any'}\n"
                    f"File provided: {file_name} ({media_type})"
                ),
                output_schema=DOCUMENT_JUDGMENT_SCHEMA,
                images=[ImageInput(media_type=media_type, data=data_b64)],
            ),
            DocumentJudgment,
        )

    async def judge_by_metadata(
        self,
        requirement: EvidenceRequirement,
        file_name: str,
        media_type: str,
        size_bytes: int,
        strictness: str,
        reason_label: str | None = None,
        customer_reason: str | None = None,
    ) -> DocumentJudgment:
        """Judge a non-image upload from its name, type and size only."""
        system_prompt = f"""You are verifying a document for a chargeback dispute.
{_context_block(reason_label, customer_reason)}
Full content analysis is not available for this file. Judge from the filename, type and size whether it is a plausible document for the requirement.

{strictness}"""

        return await self._run(
            ClassificationRequest(
                tool_name="verify_document",
                tool_description="Record whether the uploaded document satisfies the requirement",
                system_prompt=system_prompt,
                user_prompt=(
                    f'The document should be: "{requirement.name}"\n'
                    f"Expected types: {', '.join(requirement.upload_types) or 'any'}\n"
                    f"File provided: {file_name} ({media_type}, {size_bytes / 1024:.2f} KB)"
                ),
                output_schema=DOCUMENT_JUDGMENT_SCHEMA,
            ),
            DocumentJudgment,
        )

    async def evaluate_customer_evidence(
        self,
        merchant_name: str,
        amount: str,
        transaction_date: str,
        network_transaction_id: Any,
        customer_note: str | None,
        files: list[dict[str, Any]],
    ) -> EvidenceEvaluation:
        """Score rebuttal evidence against the five sufficiency criteria."""
        file_lines = "\n".join(
            f"{i}. {f.get('type', 'unknown')} - {f.get('name', 'unnamed')}" for i, f in enumerate(files, 1)
        ) or "No files"

        prompt = f"""You are evaluating customer-provided evidence for a chargeback dispute.

Transaction Details:
- Merchant: {merchant_name}
- Amount: {amount}
- Date: {transaction_date}
- Transaction ID: {network_transaction_id}

Customer's Explanation:
{customer_note or 'No explanation provided'}

Evidence Files Provided: {len(files)} file(s)
{file_lines}

Evaluation Criteria (mark sufficient if >=3 are met):
1. Mentions the merchant name, invoice, or order number
2. Shows attempt to resolve (e.g., "merchant refused refund," "contacted support")
3. Contains relevant date close to the transaction date
4. Contains merchant's acknowledgment (e.g., "service delivered," "non-refundable")
5. Document is clear, readable, and relevant

Based on the information provided, evaluate whether the evidence is sufficient to support continuing the chargeback dispute."""

        return await self._run(
            ClassificationRequest(
                tool_name="evaluate_evidence",
                tool_description="Record the sufficiency verdict for the customer's evidence",
                system_prompt="You are an expert at evaluating dispute evidence.",
                user_prompt=prompt,
                output_schema=EVIDENCE_EVALUATION_SCHEMA,
            ),
            EvidenceEvaluation,
        )
