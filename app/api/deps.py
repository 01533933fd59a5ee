"""API dependencies for authentication and gateway access."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import verify_token
from app.database import get_db
from app.gateways.base import ClassificationGateway, CreditLedgerGateway
from app.models.user import User
from app.services.ai_service import AIService
from app.services.gateway_service import gateway_service
from app.services.storage_service import StorageService, storage_service

# Security scheme; missing credentials are reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    if credentials is None:
        raise AuthenticationError("Missing bearer token")

    payload = verify_token(credentials.credentials, token_type="access")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise AuthenticationError("Invalid token subject")

    # Fetch user from database
    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")

    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are active."""
    if not current_user.is_active:
        raise AuthorizationError("User account is deactivated")
    return current_user


def get_classification_gateway() -> ClassificationGateway:
    """Classification gateway; overridden in tests."""
    return gateway_service.get_classifier()


def get_ai_service(
    gateway: Annotated[ClassificationGateway, Depends(get_classification_gateway)],
) -> AIService:
    """Typed classification use cases over the configured gateway."""
    return AIService(gateway)


def get_ledger_gateway() -> CreditLedgerGateway:
    """Credit ledger gateway; overridden in tests."""
    return gateway_service.get_ledger()


def get_storage() -> StorageService:
    """Document store; overridden in tests."""
    return storage_service


CurrentUser = Annotated[User, Depends(get_current_active_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
AI = Annotated[AIService, Depends(get_ai_service)]
Ledger = Annotated[CreditLedgerGateway, Depends(get_ledger_gateway)]
Storage = Annotated[StorageService, Depends(get_storage)]
