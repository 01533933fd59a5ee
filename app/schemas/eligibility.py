"""Eligibility check schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EligibilityCheckRequest(BaseModel):
    """Schema for an eligibility check."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: UUID = Field(..., alias="transactionId")


class EligibilityCheckResponse(BaseModel):
    """Schema for an eligibility verdict."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: UUID = Field(..., alias="transactionId")
    status: str
    ineligible_reasons: list[str] | None = Field(None, alias="ineligibleReasons")
    write_off_recommended: bool | None = Field(None, alias="writeOffRecommended")
