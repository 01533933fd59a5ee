"""Eligibility endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user, get_db
from app.models.user import User
from app.schemas.eligibility import EligibilityCheckRequest, EligibilityCheckResponse
from app.services.eligibility_service import eligibility_service

router = APIRouter()


@router.post("/check", response_model=EligibilityCheckResponse, response_model_exclude_none=True)
async def check_eligibility(
    data: EligibilityCheckRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Check whether a transaction can be disputed."""
    result = await eligibility_service.check(db, data.transaction_id, current_user)
    return eligibility_service.to_response(data.transaction_id, result, current_user)
