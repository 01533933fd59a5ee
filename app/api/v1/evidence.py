"""Evidence verification and customer evidence endpoints."""

import json
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from app.api.deps import AI, Ledger, Storage, get_db
from app.core.exceptions import ValidationError
from app.core.middleware import verification_limiter
from app.core.permissions import Permission, require_evidence_review, require_permission
from app.models.user import User
from app.schemas.classification import EvidenceRequirement
from app.schemas.evidence import (
    CustomerEvidenceResponse,
    CustomerEvidenceReviewRequest,
    CustomerEvidenceSubmit,
    DisputeContext,
    VerificationResponse,
)
from app.schemas.representment import RepresentmentActionResponse
from app.services.evidence_service import evidence_service
from app.services.representment_service import representment_service
from app.services.verification_service import verification_service

router = APIRouter()

_requirements_adapter = TypeAdapter(list[EvidenceRequirement])


def _error_details(exc: PydanticValidationError) -> list[dict]:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
        for err in exc.errors()
    ]


def _parse_json_field(raw, field: str):
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        raise ValidationError(f"{field} must be a JSON document")


@router.post(
    "/verify",
    response_model=VerificationResponse,
    dependencies=[Depends(verification_limiter)],
)
async def verify_documents(
    request: Request,
    ai: AI,
    storage: Storage,
    current_user: Annotated[User, Depends(require_permission(Permission.SUBMIT_EVIDENCE))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Verify uploaded evidence, one file per requirement.

    Multipart fields: ``requirements`` (JSON list of ``{name, uploadTypes}``),
    a file part named after each requirement, and optionally
    ``disputeContext`` (JSON) and ``disputeId``.
    """
    form = await request.form()

    if "requirements" not in form:
        raise ValidationError("requirements field is required")
    try:
        requirements = _requirements_adapter.validate_python(
            _parse_json_field(form["requirements"], "requirements")
        )
    except PydanticValidationError as e:
        raise ValidationError("Invalid requirements", errors=_error_details(e))
    if not requirements:
        raise ValidationError("At least one requirement is needed")

    context = None
    if form.get("disputeContext"):
        try:
            context = DisputeContext.model_validate(
                _parse_json_field(form["disputeContext"], "disputeContext")
            )
        except PydanticValidationError as e:
            raise ValidationError("Invalid disputeContext", errors=_error_details(e))

    dispute_id = None
    if form.get("disputeId"):
        try:
            dispute_id = UUID(str(form["disputeId"]))
        except ValueError:
            raise ValidationError("disputeId must be a UUID")

    files = {
        name: value
        for name, value in form.multi_items()
        if isinstance(value, UploadFile)
    }

    return await verification_service.verify(
        db,
        ai,
        storage,
        current_user,
        requirements,
        files,
        context=context,
        dispute_id=dispute_id,
    )


@router.post("/customer", response_model=CustomerEvidenceResponse)
async def submit_customer_evidence(
    data: CustomerEvidenceSubmit,
    ai: AI,
    current_user: Annotated[User, Depends(require_permission(Permission.SUBMIT_EVIDENCE))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Submit rebuttal evidence after the bank asked for it."""
    return await evidence_service.submit(db, ai, current_user, data)


@router.post(
    "/customer/approve",
    response_model=RepresentmentActionResponse,
    response_model_exclude_none=True,
)
async def approve_customer_evidence(
    data: CustomerEvidenceReviewRequest,
    current_user: Annotated[User, Depends(require_evidence_review)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Approve the customer's evidence and submit the rebuttal (bank admin)."""
    return await representment_service.approve_customer_evidence(
        db,
        transaction_id=data.transaction_id,
        evidence_id=data.customer_evidence_id,
        user=current_user,
        review_notes=data.review_notes,
    )


@router.post(
    "/customer/reject",
    response_model=RepresentmentActionResponse,
    response_model_exclude_none=True,
)
async def reject_customer_evidence(
    data: CustomerEvidenceReviewRequest,
    ledger: Ledger,
    current_user: Annotated[User, Depends(require_evidence_review)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Reject the customer's evidence; the merchant keeps the funds (bank admin)."""
    return await representment_service.reject_customer_evidence(
        db,
        ledger,
        transaction_id=data.transaction_id,
        evidence_id=data.customer_evidence_id,
        user=current_user,
        review_notes=data.review_notes,
    )
