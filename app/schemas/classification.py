"""Typed contracts for classification results.

Each use case validates the raw provider output into one of these models;
a ``pydantic.ValidationError`` means the provider answer was malformed.
"""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

PRECHECK_DOCUMENT_COUNT = 2
INTAKE_DOCUMENT_COUNT = 3


class IssueType(str, Enum):
    """Issue detected from the customer's intake answers."""

    MERCHANT_MISMATCH = "merchant_mismatch"
    NON_DELIVERY = "non_delivery"
    DUPLICATE_CHARGE = "duplicate_charge"
    WRONG_AMOUNT = "wrong_amount"
    UNAUTHORIZED = "unauthorized"
    REFUND_NOT_RECEIVED = "refund_not_received"
    DEFECTIVE_PRODUCT = "defective_product"
    UNCLEAR = "unclear"


class ChargebackCategory(str, Enum):
    """Chargeback categories a dispute can be filed under."""

    FRAUD = "fraud"
    NOT_RECEIVED = "not_received"
    DUPLICATE = "duplicate"
    INCORRECT_AMOUNT = "incorrect_amount"
    DEFECTIVE = "defective"
    BILLING_ERROR = "billing_error"


class ReasonCategory(str, Enum):
    """Free-text reason taxonomy (chargeback categories plus not_eligible)."""

    FRAUD = "fraud"
    NOT_RECEIVED = "not_received"
    DUPLICATE = "duplicate"
    INCORRECT_AMOUNT = "incorrect_amount"
    DEFECTIVE = "defective"
    BILLING_ERROR = "billing_error"
    NOT_ELIGIBLE = "not_eligible"


class EvidenceRequirement(BaseModel):
    """A required evidence item and the upload types it accepts."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    upload_types: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("uploadTypes", "uploadType", "upload_types"),
        serialization_alias="uploadTypes",
    )

    @field_validator("upload_types", mode="before")
    @classmethod
    def split_upload_types(cls, value):
        """Accept "PDF, Image" as well as ["PDF", "Image"]."""
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class QuestionResult(BaseModel):
    """Follow-up question produced by an intake step."""

    question: str = Field(..., min_length=1)
    detected_issue: IssueType | None = None
    merchant_mismatch: bool = False

    @model_validator(mode="after")
    def mismatch_is_the_issue(self) -> "QuestionResult":
        if self.merchant_mismatch and self.detected_issue is not None:
            self.detected_issue = IssueType.MERCHANT_MISMATCH
        return self


class PrecheckEvaluation(BaseModel):
    """Final intake verdict over all three answers."""

    chargeback_possible: bool
    reasoning: str
    category: ChargebackCategory | None = None
    required_documents: list[EvidenceRequirement] = Field(default_factory=list)
    customer_message: str

    @model_validator(mode="after")
    def enforce_document_count(self) -> "PrecheckEvaluation":
        if not self.chargeback_possible:
            self.required_documents = []
            self.category = None
            return self
        if len(self.required_documents) < PRECHECK_DOCUMENT_COUNT:
            raise ValueError(
                f"expected {PRECHECK_DOCUMENT_COUNT} required documents, "
                f"got {len(self.required_documents)}"
            )
        self.required_documents = self.required_documents[:PRECHECK_DOCUMENT_COUNT]
        return self


class ReasonClassification(BaseModel):
    """Free-text reason classified into the taxonomy with its evidence list."""

    model_config = ConfigDict(populate_by_name=True)

    category: ReasonCategory
    category_label: str = Field(
        ...,
        validation_alias=AliasChoices("categoryLabel", "category_label"),
        serialization_alias="categoryLabel",
    )
    explanation: str
    documents: list[EvidenceRequirement] = Field(default_factory=list)
    user_message: str = Field(
        ...,
        validation_alias=AliasChoices("userMessage", "user_message"),
        serialization_alias="userMessage",
    )

    @model_validator(mode="after")
    def enforce_document_count(self) -> "ReasonClassification":
        if self.category == ReasonCategory.NOT_ELIGIBLE:
            self.documents = []
            return self
        if len(self.documents) < INTAKE_DOCUMENT_COUNT:
            raise ValueError(
                f"expected {INTAKE_DOCUMENT_COUNT} documents, got {len(self.documents)}"
            )
        self.documents = self.documents[:INTAKE_DOCUMENT_COUNT]
        return self


class DocumentJudgment(BaseModel):
    """Verdict on one uploaded document."""

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., validation_alias=AliasChoices("isValid", "is_valid"))
    reason: str


class EvidenceEvaluation(BaseModel):
    """Sufficiency verdict on customer rebuttal evidence."""

    sufficient: bool
    reasons: list[str] = Field(default_factory=list)
    summary: str
