"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ClassificationQuotaExceeded,
    ClassificationRateLimited,
    ClassificationResponseError,
    ClassificationUnavailable,
    CreditReversalFailed,
    IdempotencyKeyMissing,
    InvalidDisputeStatus,
    NotFoundError,
    ValidationError,
)
from app.core.security import create_access_token, create_token_for, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ClassificationQuotaExceeded",
    "ClassificationRateLimited",
    "ClassificationResponseError",
    "ClassificationUnavailable",
    "CreditReversalFailed",
    "IdempotencyKeyMissing",
    "InvalidDisputeStatus",
    "NotFoundError",
    "ValidationError",
    "create_access_token",
    "create_token_for",
    "verify_token",
]
