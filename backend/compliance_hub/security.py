"""Security helpers (RBAC matrix, organization scoping, and access checks)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional
from uuid import UUID

from .domain_errors import (
    DomainError,
    Forbidden,
    NoOrganization,
    OrganizationMismatch,
    Unauthenticated,
    ValidationFailed,
)

SUPER_ADMIN = "SUPER_ADMIN"
ACCOUNT_ADMIN = "ACCOUNT_ADMIN"
USER = "USER"


# Role permissions matrix
ROLE_PERMISSIONS: dict[str, dict[str, bool]] = {
    SUPER_ADMIN: {
        "canManageTasks": True,
        "canManageEvents": True,
        "canDeleteData": True,
        "canViewAudit": True,
        "canViewResponsibilities": True,
        "canManageResponsibilities": True,
        "canViewSuggestions": True,
        "canReviewSuggestions": True,
        "canClassifyArtefacts": True,
        "canManageAgents": True,
    },
    ACCOUNT_ADMIN: {
        "canManageTasks": True,
        "canManageEvents": True,
        "canDeleteData": True,
        "canViewAudit": True,
        "canViewResponsibilities": True,
        "canManageResponsibilities": True,
        "canViewSuggestions": True,
        "canReviewSuggestions": True,
        "canClassifyArtefacts": True,
        "canManageAgents": True,
    },
    USER: {
        "canManageTasks": True,
        "canManageEvents": True,
        "canDeleteData": False,
        "canViewAudit": False,
        "canViewResponsibilities": True,
        "canManageResponsibilities": False,
        "canViewSuggestions": True,
        "canReviewSuggestions": False,
        "canClassifyArtefacts": True,
        "canManageAgents": False,
    },
}


def _role_value(role: Any) -> str:
    return getattr(role, "value", role)


def check_permission(principal: Any, permission: str) -> bool:
    """Check if principal's role has a specific permission."""
    permissions = ROLE_PERMISSIONS.get(_role_value(principal.role), {})
    return permissions.get(permission, False)


def roles_with_permission(permission: str) -> frozenset[str]:
    """Roles that hold the given permission in the matrix."""
    return frozenset(role for role, perms in ROLE_PERMISSIONS.items() if perms.get(permission, False))


@dataclass(frozen=True)
class AccessDecision:
    """Allow, or deny with the error that explains why."""

    allowed: bool
    error: Optional[DomainError] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: DomainError) -> "AccessDecision":
        return cls(allowed=False, error=error)


def evaluate_access(
    principal: Any,
    required_roles: Iterable[str] = (),
    resource_org_id: Optional[UUID] = None,
) -> AccessDecision:
    """Evaluate a principal against a role set and a resource's organization.

    Order: authentication, role, organization membership, organization match.
    SUPER_ADMIN is exempt from organization scoping.
    """
    if principal is None:
        return AccessDecision.deny(Unauthenticated("Authentication required"))
    if not getattr(principal, "is_active", True):
        return AccessDecision.deny(Unauthenticated("Principal is inactive", code="PRINCIPAL_INACTIVE"))

    role = _role_value(principal.role)
    roles = {_role_value(r) for r in required_roles}
    if roles and role not in roles:
        return AccessDecision.deny(
            Forbidden(
                f"Role {role} is not allowed to perform this operation",
                details={"required_roles": sorted(roles)},
            )
        )

    if role == SUPER_ADMIN:
        return AccessDecision.allow()

    org_id = getattr(principal, "organization_id", None)
    if org_id is None:
        return AccessDecision.deny(NoOrganization("Principal does not belong to an organization"))
    if resource_org_id is not None and resource_org_id != org_id:
        return AccessDecision.deny(OrganizationMismatch("Resource belongs to another organization"))
    return AccessDecision.allow()


def authorize(
    principal: Any,
    required_roles: Iterable[str] = (),
    resource_org_id: Optional[UUID] = None,
) -> None:
    """Raise the denial error, if any, for the given access request."""
    decision = evaluate_access(principal, required_roles, resource_org_id)
    if not decision.allowed:
        raise decision.error


def require_permission(principal: Any, permission: str, resource_org_id: Optional[UUID] = None) -> None:
    """Enforce a role permission server-side, with organization scoping."""
    authorize(principal, roles_with_permission(permission), resource_org_id)


def scope_org_id(principal: Any) -> Optional[UUID]:
    """Organization filter for store reads; None (unscoped) only for SUPER_ADMIN."""
    if _role_value(principal.role) == SUPER_ADMIN:
        return None
    return principal.organization_id


def resolve_target_org_id(principal: Any, requested_org_id: Optional[UUID] = None) -> UUID:
    """Organization a new record is written into.

    Regular principals always write into their own organization. SUPER_ADMIN
    has none, so the caller must name one.
    """
    if _role_value(principal.role) != SUPER_ADMIN:
        return principal.organization_id
    if requested_org_id is None:
        raise ValidationFailed(
            "organization_id is required when acting as SUPER_ADMIN",
            code="ORGANIZATION_REQUIRED",
        )
    return requested_org_id
