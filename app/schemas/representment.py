"""Representment resolution schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RepresentmentCheckRequest(BaseModel):
    """Schema for checking a transaction for a merchant representment."""

    transaction_id: UUID


class RepresentmentAcceptRequest(BaseModel):
    """Schema for accepting the merchant's representment."""

    transaction_id: UUID
    notes: str | None = Field(None, max_length=5000)


class RepresentmentRejectRequest(BaseModel):
    """Schema for rejecting the representment and asking the customer for evidence."""

    transaction_id: UUID
    admin_notes: str | None = Field(None, max_length=5000)


class RepresentmentActionRequest(BaseModel):
    """Schema for contest, close-after-evidence and pre-arbitration."""

    transaction_id: UUID
    notes: str | None = Field(None, max_length=5000)


class RepresentmentDetail(BaseModel):
    """Merchant representment as shown on the bank dashboard."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: str
    has_representment: bool
    reason_code: str | None
    reason_text: str | None
    document_url: str | None
    source: str | None
    representment_created_at: datetime | None


class RepresentmentCheckResponse(BaseModel):
    """Dashboard payload for a representment check."""

    success: bool = True
    message: str | None = None
    has_representment: bool
    needs_attention: bool
    transaction_id: UUID
    dispute_status: str | None = None
    representment: RepresentmentDetail | None = None


class CreditReversalOut(BaseModel):
    """Outcome of a temporary credit reversal."""

    reversed: bool
    amount: str | None = None
    currency: str | None = None
    reference: str | None = None


class RepresentmentActionResponse(BaseModel):
    """Result of a resolver transition."""

    success: bool
    message: str
    transaction_id: UUID
    new_status: str
    credit_reversal: CreditReversalOut | None = None
    credit_reversed: bool | None = None
    conversation_id: UUID | None = None
