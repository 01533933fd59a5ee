"""Role-based access control and permissions."""

from enum import Enum
from typing import Any, Callable

from fastapi import Depends

from app.api.deps import get_current_active_user
from app.core.exceptions import AuthorizationError
from app.models.user import User


class UserRole(str, Enum):
    """User roles in the system."""

    CUSTOMER = "customer"
    BANK_ANALYST = "bank_analyst"  # Can view cases and audit trails, not resolve them
    BANK_ADMIN = "bank_admin"


class Permission(str, Enum):
    """System permissions."""

    # Customer permissions
    OPEN_DISPUTE = "open_dispute"
    SUBMIT_EVIDENCE = "submit_evidence"
    DELETE_CONVERSATION = "delete_conversation"

    # Bank permissions
    VIEW_CASES = "view_cases"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    CHECK_REPRESENTMENT = "check_representment"
    RESOLVE_REPRESENTMENT = "resolve_representment"
    REVIEW_CUSTOMER_EVIDENCE = "review_customer_evidence"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.CUSTOMER: {
        Permission.OPEN_DISPUTE,
        Permission.SUBMIT_EVIDENCE,
        Permission.DELETE_CONVERSATION,
    },
    UserRole.BANK_ANALYST: {
        Permission.VIEW_CASES,
        Permission.VIEW_AUDIT_LOGS,
        Permission.CHECK_REPRESENTMENT,
    },
    UserRole.BANK_ADMIN: {
        # Bank admins have all permissions
        perm for perm in Permission
    },
}


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())


def _role_of(user: User) -> UserRole | None:
    try:
        return UserRole(user.role)
    except ValueError:
        return None


def require_role(*allowed_roles: UserRole) -> Callable[..., Any]:
    """Dependency to require specific roles."""

    async def role_checker(current_user: User = Depends(get_current_active_user)) -> User:
        if _role_of(current_user) not in allowed_roles:
            raise AuthorizationError(f"Role '{current_user.role}' is not authorized for this action")
        return current_user

    return role_checker


def require_permission(permission: Permission) -> Callable[..., Any]:
    """Dependency to require a specific permission."""

    async def permission_checker(current_user: User = Depends(get_current_active_user)) -> User:
        role = _role_of(current_user)
        if role is None or not has_permission(role, permission):
            raise AuthorizationError(f"Permission '{permission.value}' is required for this action")
        return current_user

    return permission_checker


# Convenience dependencies
require_bank_admin = require_role(UserRole.BANK_ADMIN)
require_bank_staff = require_role(UserRole.BANK_ANALYST, UserRole.BANK_ADMIN)

# Case operation dependencies
require_representment_check = require_permission(Permission.CHECK_REPRESENTMENT)
require_representment_resolve = require_permission(Permission.RESOLVE_REPRESENTMENT)
require_evidence_review = require_permission(Permission.REVIEW_CUSTOMER_EVIDENCE)
require_audit_view = require_permission(Permission.VIEW_AUDIT_LOGS)
