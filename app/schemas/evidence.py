"""Evidence verification and customer evidence schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DisputeContext(BaseModel):
    """What the dispute is about, used to judge uploads in context."""

    model_config = ConfigDict(populate_by_name=True)

    category: str | None = None
    reason_label: str | None = Field(None, alias="reasonLabel")
    customer_reason: str | None = Field(None, alias="customerReason")


class VerificationResult(BaseModel):
    """Verdict on one requirement."""

    model_config = ConfigDict(populate_by_name=True)

    requirement_name: str = Field(..., alias="requirementName")
    file_name: str = Field(..., alias="fileName")
    is_valid: bool = Field(..., alias="isValid")
    reason: str


class InvalidDocument(BaseModel):
    """A requirement the customer must upload again."""

    model_config = ConfigDict(populate_by_name=True)

    requirement: str
    file_name: str = Field(..., alias="fileName")
    reason: str


class VerificationResponse(BaseModel):
    """Aggregate verification outcome."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    results: list[VerificationResult]
    invalid_docs: list[InvalidDocument] = Field(default_factory=list, alias="invalidDocs")


class EvidenceFile(BaseModel):
    """Metadata of a customer evidence file already in the document store."""

    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(default="application/octet-stream", max_length=100)
    size: int | None = Field(None, ge=0)
    path: str | None = None


class CustomerEvidenceSubmit(BaseModel):
    """Schema for customer rebuttal evidence."""

    transaction_id: UUID
    customer_note: str | None = Field(None, max_length=5000)
    evidence_files: list[EvidenceFile] = Field(default_factory=list)


class EvidenceEvaluationOut(BaseModel):
    """Sufficiency verdict as returned to the caller."""

    sufficient: bool
    reasons: list[str]
    summary: str


class CustomerEvidenceResponse(BaseModel):
    """Schema for a stored customer evidence submission."""

    success: bool
    evaluation: EvidenceEvaluationOut
    evidence_id: UUID


class CustomerEvidenceReviewRequest(BaseModel):
    """Schema for a bank decision on customer evidence."""

    transaction_id: UUID
    customer_evidence_id: UUID
    review_notes: str | None = Field(None, max_length=5000)

