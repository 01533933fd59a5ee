"""Dispute intake and filing endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Ledger, Storage, get_current_active_user, get_db
from app.core.permissions import Permission, require_permission
from app.models.dispute import Dispute
from app.models.user import User
from app.schemas.dispute import (
    DisputeCreate,
    DisputeDocumentResponse,
    DisputeResponse,
    FileChargebackResponse,
)
from app.services.dispute_service import dispute_service

router = APIRouter()


@router.post("", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def open_dispute(
    data: DisputeCreate,
    current_user: Annotated[User, Depends(require_permission(Permission.OPEN_DISPUTE))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Dispute:
    """Open a dispute for one of the customer's transactions."""
    return await dispute_service.open_dispute(db, current_user, data)


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: UUID,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Dispute:
    """Get dispute details."""
    return await dispute_service.get_dispute(db, dispute_id, current_user)


@router.get("/{dispute_id}/documents", response_model=list[DisputeDocumentResponse])
async def list_dispute_documents(
    dispute_id: UUID,
    storage: Storage,
    current_user: Annotated[User, Depends(get_current_active_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[dict]:
    """List verified documents with short-lived download links."""
    dispute = await dispute_service.get_dispute(db, dispute_id, current_user)
    documents = await dispute_service.list_documents(db, dispute)
    return [
        {
            **DisputeDocumentResponse.model_validate(doc).model_dump(),
            "download_url": storage.get_presigned_url(doc.storage_path),
        }
        for doc in documents
    ]


@router.post("/{dispute_id}/file-chargeback", response_model=FileChargebackResponse)
async def file_chargeback(
    dispute_id: UUID,
    ledger: Ledger,
    current_user: Annotated[User, Depends(require_permission(Permission.OPEN_DISPUTE))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Decide and record the filing action for a verified dispute."""
    return await dispute_service.file_chargeback(db, ledger, dispute_id, current_user)
