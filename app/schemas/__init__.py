"""Pydantic schemas for API validation."""

from app.schemas.classification import (
    DocumentJudgment,
    EvidenceEvaluation,
    EvidenceRequirement,
    PrecheckEvaluation,
    QuestionResult,
    ReasonClassification,
)
from app.schemas.conversation import (
    ConversationDeleteRequest,
    ConversationDeleteResponse,
    ConversationResponse,
)
from app.schemas.dispute import DisputeCreate, DisputeResponse, FileChargebackResponse
from app.schemas.eligibility import EligibilityCheckRequest, EligibilityCheckResponse
from app.schemas.evidence import (
    CustomerEvidenceResponse,
    CustomerEvidenceReviewRequest,
    CustomerEvidenceSubmit,
    VerificationResponse,
)
from app.schemas.intake import ClassifyReasonRequest, PrecheckRequest
from app.schemas.representment import (
    RepresentmentAcceptRequest,
    RepresentmentActionResponse,
    RepresentmentCheckResponse,
    RepresentmentRejectRequest,
)

__all__ = [
    # Classification
    "DocumentJudgment",
    "EvidenceEvaluation",
    "EvidenceRequirement",
    "PrecheckEvaluation",
    "QuestionResult",
    "ReasonClassification",
    # Conversation
    "ConversationDeleteRequest",
    "ConversationDeleteResponse",
    "ConversationResponse",
    # Dispute
    "DisputeCreate",
    "DisputeResponse",
    "FileChargebackResponse",
    # Eligibility
    "EligibilityCheckRequest",
    "EligibilityCheckResponse",
    # Evidence
    "CustomerEvidenceResponse",
    "CustomerEvidenceReviewRequest",
    "CustomerEvidenceSubmit",
    "VerificationResponse",
    # Intake
    "ClassifyReasonRequest",
    "PrecheckRequest",
    # Representment
    "RepresentmentAcceptRequest",
    "RepresentmentActionResponse",
    "RepresentmentCheckResponse",
    "RepresentmentRejectRequest",
]
