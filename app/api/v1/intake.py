"""Intake dialogue endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import AI, get_current_active_user
from app.core.middleware import classification_limiter
from app.models.user import User
from app.schemas.classification import ReasonClassification
from app.schemas.intake import ClassifyReasonRequest, PrecheckRequest
from app.services.intake_service import intake_service
from app.services.requirement_service import requirement_service

router = APIRouter(dependencies=[Depends(classification_limiter)])


@router.get("/first-question")
async def get_first_question(
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> dict:
    """The fixed opening question of the intake dialogue."""
    return {"question": intake_service.first_question}


@router.post("/precheck")
async def precheck(
    data: PrecheckRequest,
    ai: AI,
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> dict:
    """Run one intake step: next question, or the final evaluation."""
    result = await intake_service.run_step(ai, data)
    return result.model_dump(mode="json", by_alias=True)


@router.post("/classify-reason", response_model=ReasonClassification)
async def classify_reason(
    data: ClassifyReasonRequest,
    ai: AI,
    current_user: Annotated[User, Depends(get_current_active_user)],
) -> ReasonClassification:
    """Classify a free-text reason and list the evidence it needs."""
    return await requirement_service.classify(ai, data.custom_reason)
