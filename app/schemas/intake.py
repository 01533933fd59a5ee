"""Intake dialogue and reason classification schemas."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PrecheckStep(str, Enum):
    """Steps of the three-question intake dialogue."""

    GENERATE_Q2 = "generate_q2"
    GENERATE_Q3 = "generate_q3"
    EVALUATE = "evaluate"


# Answers each step needs
STEP_ANSWERS: dict[PrecheckStep, tuple[str, ...]] = {
    PrecheckStep.GENERATE_Q2: ("answer1",),
    PrecheckStep.GENERATE_Q3: ("answer1", "answer2"),
    PrecheckStep.EVALUATE: ("answer1", "answer2", "answer3"),
}


class PrecheckRequest(BaseModel):
    """Schema for one intake step."""

    model_config = ConfigDict(populate_by_name=True)

    step: PrecheckStep
    answer1: str | None = Field(None, max_length=2000)
    answer2: str | None = Field(None, max_length=2000)
    answer3: str | None = Field(None, max_length=2000)
    merchant_name: str = Field(..., alias="merchantName", min_length=1, max_length=255)
    transaction_amount: Decimal | str = Field(..., alias="transactionAmount")
    transaction_date: str = Field(..., alias="transactionDate", min_length=1)

    @model_validator(mode="after")
    def require_step_answers(self) -> "PrecheckRequest":
        missing = [
            name for name in STEP_ANSWERS[self.step]
            if not (getattr(self, name) or "").strip()
        ]
        if missing:
            raise ValueError(f"{self.step.value} requires {', '.join(missing)}")
        return self


class ClassifyReasonRequest(BaseModel):
    """Schema for classifying a free-text dispute reason."""

    model_config = ConfigDict(populate_by_name=True)

    custom_reason: str = Field(..., alias="customReason", min_length=3, max_length=2000)
