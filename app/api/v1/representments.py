"""Representment endpoints for bank staff."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Ledger, get_db
from app.core.permissions import require_representment_check, require_representment_resolve
from app.models.user import User
from app.schemas.representment import (
    RepresentmentAcceptRequest,
    RepresentmentActionRequest,
    RepresentmentActionResponse,
    RepresentmentCheckRequest,
    RepresentmentCheckResponse,
    RepresentmentRejectRequest,
)
from app.services.representment_service import representment_service

router = APIRouter()


@router.post("/check", response_model=RepresentmentCheckResponse)
async def check_representment(
    data: RepresentmentCheckRequest,
    current_user: Annotated[User, Depends(require_representment_check)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Detect a merchant representment and flag the case for review."""
    return await representment_service.check(db, data.transaction_id, current_user)


@router.post("/accept", response_model=RepresentmentActionResponse, response_model_exclude_none=True)
async def accept_representment(
    data: RepresentmentAcceptRequest,
    ledger: Ledger,
    current_user: Annotated[User, Depends(require_representment_resolve)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Accept the merchant's proof; reverses any temporary credit."""
    return await representment_service.accept(
        db, ledger, data.transaction_id, current_user, notes=data.notes
    )


@router.post("/reject", response_model=RepresentmentActionResponse, response_model_exclude_none=True)
async def reject_representment(
    data: RepresentmentRejectRequest,
    current_user: Annotated[User, Depends(require_representment_resolve)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Reject the merchant's proof and ask the customer for evidence."""
    return await representment_service.reject(
        db, data.transaction_id, current_user, admin_notes=data.admin_notes
    )


@router.post("/contest", response_model=RepresentmentActionResponse, response_model_exclude_none=True)
async def contest_representment(
    data: RepresentmentActionRequest,
    current_user: Annotated[User, Depends(require_representment_resolve)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Contest the representment directly with the card network."""
    return await representment_service.contest(
        db, data.transaction_id, current_user, notes=data.notes
    )


@router.post(
    "/close-after-customer-evidence",
    response_model=RepresentmentActionResponse,
    response_model_exclude_none=True,
)
async def close_after_customer_evidence(
    data: RepresentmentActionRequest,
    ledger: Ledger,
    current_user: Annotated[User, Depends(require_representment_resolve)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Close the case lost after insufficient customer evidence."""
    return await representment_service.close_after_customer_evidence(
        db, ledger, data.transaction_id, current_user, notes=data.notes
    )


@router.post("/prearbitration", response_model=RepresentmentActionResponse, response_model_exclude_none=True)
async def file_prearbitration(
    data: RepresentmentActionRequest,
    current_user: Annotated[User, Depends(require_representment_resolve)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Escalate a submitted rebuttal to pre-arbitration."""
    return await representment_service.file_prearbitration(
        db, data.transaction_id, current_user, notes=data.notes
    )
