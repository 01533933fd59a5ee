"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception.

    ``extra`` is merged into the JSON error body next to ``error``.
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.extra = extra or {}
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            extra={"details": errors} if errors else None,
        )


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidDisputeStatus(AppException):
    """Operation not allowed for the current dispute or representment status."""

    def __init__(self, current_status: str, detail: str = "Action not allowed in current state") -> None:
        self.current_status = current_status
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            extra={"current_status": current_status},
        )


class DuplicateDispute(AppException):
    """An active dispute already exists for the transaction."""

    def __init__(self, detail: str = "A dispute is already open for this transaction") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ClassificationRateLimited(AppException):
    """The classification service throttled the request."""

    def __init__(self, detail: str = "Rate limit exceeded. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class ClassificationQuotaExceeded(AppException):
    """The classification service is out of credit or capacity."""

    def __init__(self, detail: str = "Payment required. Please add credits to your workspace.") -> None:
        super().__init__(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)


class ClassificationResponseError(AppException):
    """The classification service returned no usable structured result."""

    def __init__(self, detail: str = "No structured result returned from classification service") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class ClassificationUnavailable(AppException):
    """The classification service could not be reached or failed the call."""

    def __init__(self, detail: str = "Classification service unavailable") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class CreditReversalFailed(AppException):
    """Temporary credit could not be reversed; the case stays with the bank."""

    def __init__(self, detail: str = "Failed to reverse temporary credit") -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            extra={
                "message": "Transaction kept in Needs Attention state",
                "sub_status": "reversal_failed",
            },
        )


class IdempotencyKeyMissing(AppException):
    """Destructive request sent without an idempotency key."""

    def __init__(self, detail: str = "Missing idempotency-key header") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RateLimitExceeded(AppException):
    """Rate limit exceeded exception."""

    def __init__(self, detail: str = "Too many requests. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class ExternalServiceError(AppException):
    """External service error."""

    def __init__(self, service: str, detail: str | None = None) -> None:
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
