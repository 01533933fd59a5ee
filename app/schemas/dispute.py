"""Dispute intake and filing schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.classification import EvidenceRequirement, ReasonCategory


class DisputeCreate(BaseModel):
    """Schema for opening a dispute."""

    transaction_id: UUID
    reason_id: str | None = Field(None, max_length=50)
    reason_label: str | None = Field(None, max_length=200)
    custom_reason: str | None = Field(None, max_length=2000)
    category: ReasonCategory | None = None
    documents: list[EvidenceRequirement] = Field(default_factory=list)
    conversation_id: UUID | None = None


class DisputeDocumentResponse(BaseModel):
    """Schema for a stored dispute document."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    requirement_name: str
    file_name: str
    file_type: str
    file_size: int
    storage_path: str
    download_url: str | None = None
    created_at: datetime


class DisputeResponse(BaseModel):
    """Schema for dispute response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    transaction_id: UUID
    conversation_id: UUID | None
    reason_id: str | None
    reason_label: str | None
    custom_reason: str | None
    category: str | None
    eligibility_status: str | None
    eligibility_reasons: list[str] | None
    documents: list[dict] | None
    status: str
    created_at: datetime
    updated_at: datetime


class FileChargebackResponse(BaseModel):
    """Schema for a chargeback filing decision."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    action_type: str = Field(..., alias="actionType")
    action_id: UUID = Field(..., alias="actionId")
    dispute_status: str = Field(..., alias="disputeStatus")
    case_id: str | None = Field(None, alias="caseId")
    temporary_credit_issued: bool = Field(..., alias="temporaryCreditIssued")
    chargeback_filed: bool = Field(..., alias="chargebackFiled")
    internal_notes: str = Field(..., alias="internalNotes")


class AuditLogResponse(BaseModel):
    """Schema for an audit trail entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID | None
    action: str
    resource_type: str
    resource_id: UUID | None
    note: str | None
    network: str | None
    old_values: dict | None
    new_values: dict | None
    compliance_snapshot: dict | None
    created_at: datetime
