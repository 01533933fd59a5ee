"""Evidence upload verification."""

import base64
import logging
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.domain.dispute_state import DisputeStatus, can_transition_dispute
from app.models.dispute import Dispute, DisputeDocument
from app.models.user import User
from app.schemas.classification import DocumentJudgment, EvidenceRequirement
from app.schemas.evidence import DisputeContext
from app.services.ai_service import AIService
from app.services.audit_service import audit_service
from app.services.storage_service import StorageService
from app.utils.validators import mime_family, resolve_mime_type

logger = logging.getLogger(__name__)

# Largest image sent to the vision model; bigger images are judged on metadata
MAX_VISION_BYTES = 5 * 1024 * 1024

PDF_GUIDANCE = (
    "Be moderately lenient. Accept a PDF whose name and size plausibly match the requirement "
    "and the dispute, and reject only obvious mismatches, such as a file clearly about a "
    "different purchase or an unrelated personal document."
)
OTHER_GUIDANCE = (
    "Be lenient. Accept the file unless its name or type clearly has nothing to do with "
    "the requirement."
)

NOT_UPLOADED = "Not uploaded"


def _result(requirement: str, file_name: str, is_valid: bool, reason: str) -> dict:
    return {
        "requirementName": requirement,
        "fileName": file_name,
        "isValid": is_valid,
        "reason": reason,
    }


class VerificationService:
    """Checks each uploaded file against the requirement it is meant to satisfy."""

    async def _get_dispute(self, db: AsyncSession, dispute_id: UUID, user: User) -> Dispute:
        result = await db.execute(
            select(Dispute).where(Dispute.id == dispute_id, Dispute.customer_id == user.id)
        )
        dispute = result.scalar_one_or_none()
        if not dispute:
            raise NotFoundError("Dispute")
        return dispute

    async def judge(
        self,
        ai: AIService,
        requirement: EvidenceRequirement,
        file_name: str,
        mime_type: str,
        data: bytes,
        context: DisputeContext,
    ) -> DocumentJudgment:
        """Pick the strategy for the file type and ask the classifier."""
        family = mime_family(mime_type)
        reason_label = context.reason_label or context.category

        if family == "image" and len(data) <= MAX_VISION_BYTES:
            return await ai.judge_image(
                requirement,
                file_name=file_name,
                media_type=mime_type,
                data_b64=base64.b64encode(data).decode("ascii"),
                reason_label=reason_label,
                customer_reason=context.customer_reason,
            )

        return await ai.judge_by_metadata(
            requirement,
            file_name=file_name,
            media_type=mime_type,
            size_bytes=len(data),
            strictness=PDF_GUIDANCE if family == "pdf" else OTHER_GUIDANCE,
            reason_label=reason_label,
            customer_reason=context.customer_reason,
        )

    async def verify(
        self,
        db: AsyncSession,
        ai: AIService,
        storage: StorageService,
        user: User,
        requirements: list[EvidenceRequirement],
        files: dict[str, UploadFile],
        context: DisputeContext | None = None,
        dispute_id: UUID | None = None,
    ) -> dict:
        """Verify one file per requirement.

        Args:
            db: Database session
            ai: Classification use cases
            storage: Document store for files that pass
            user: Uploading customer
            requirements: Evidence items the customer was asked for
            files: Uploads keyed by requirement name
            context: What the dispute is about
            dispute_id: Dispute to attach valid files to

        Returns:
            dict with ``success`` (every requirement satisfied), per-requirement
            ``results`` and the ``invalidDocs`` to ask for again
        """
        dispute = await self._get_dispute(db, dispute_id, user) if dispute_id else None
        if context is None:
            context = DisputeContext(
                category=dispute.category if dispute else None,
                reason_label=dispute.reason_label if dispute else None,
                customer_reason=dispute.custom_reason if dispute else None,
            )

        results: list[dict] = []
        accepted: list[tuple[EvidenceRequirement, str, str, bytes]] = []
        for requirement in requirements:
            upload = files.get(requirement.name)
            if upload is None or not upload.filename:
                results.append(
                    _result(requirement.name, NOT_UPLOADED, False, "Document was not uploaded")
                )
                continue

            data = await upload.read()
            if not data:
                results.append(_result(requirement.name, upload.filename, False, "File is empty"))
                continue
            if len(data) > storage.MAX_DOCUMENT_SIZE:
                results.append(
                    _result(
                        requirement.name,
                        upload.filename,
                        False,
                        f"File exceeds the {storage.MAX_DOCUMENT_SIZE // 1024 // 1024}MB limit",
                    )
                )
                continue

            mime_type = resolve_mime_type(upload.content_type, upload.filename)
            judgment = await self.judge(ai, requirement, upload.filename, mime_type, data, context)
            results.append(
                _result(requirement.name, upload.filename, judgment.is_valid, judgment.reason)
            )

            if judgment.is_valid:
                accepted.append((requirement, upload.filename, mime_type, data))

        # Nothing is stored until every file has been judged
        if dispute is not None:
            for requirement, file_name, mime_type, data in accepted:
                key = storage.document_key(str(user.id), str(dispute.id), requirement.name, file_name)
                await storage.upload_document(data, key, mime_type)
                db.add(
                    DisputeDocument(
                        dispute_id=dispute.id,
                        customer_id=user.id,
                        requirement_name=requirement.name,
                        file_name=file_name,
                        file_type=mime_type,
                        file_size=len(data),
                        storage_path=key,
                    )
                )

        success = bool(results) and all(r["isValid"] for r in results)
        invalid_docs = [
            {"requirement": r["requirementName"], "fileName": r["fileName"], "reason": r["reason"]}
            for r in results
            if not r["isValid"]
        ]

        if dispute is not None:
            await self._record_on_dispute(db, dispute, user, success, results)

        logger.info(
            "Verified %d documents for user %s: %d invalid",
            len(results),
            user.id,
            len(invalid_docs),
        )
        return {"success": success, "results": results, "invalidDocs": invalid_docs}

    async def _record_on_dispute(
        self,
        db: AsyncSession,
        dispute: Dispute,
        user: User,
        success: bool,
        results: list[dict],
    ) -> None:
        old_status = dispute.status
        if success and can_transition_dispute(dispute.status, DisputeStatus.DOCUMENTS_UPLOADED):
            dispute.status = DisputeStatus.DOCUMENTS_UPLOADED.value

        await audit_service.log_action(
            db,
            user_id=user.id,
            action="documents_verified",
            resource_type="dispute",
            resource_id=dispute.id,
            transaction_id=dispute.transaction_id,
            old_values={"status": old_status},
            new_values={
                "status": dispute.status,
                "valid": [r["requirementName"] for r in results if r["isValid"]],
                "invalid": [r["requirementName"] for r in results if not r["isValid"]],
            },
        )


verification_service = VerificationService()
