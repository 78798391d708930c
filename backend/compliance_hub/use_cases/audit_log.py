"""Audit log read-model."""
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from ..context import ServiceContext
from ..schemas import Principal
from ..security import require_permission, scope_org_id
from ..services.store import AUDIT_LOG


def list_audit_logs_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    action: Optional[str] = None,
    limit: int = 200,
) -> list[Any]:
    """Recent audit entries for the organization, newest first."""
    require_permission(principal, "canViewAudit")
    filters: dict[str, Any] = {}
    if entity_type:
        filters["entity_type"] = entity_type
    if entity_id is not None:
        filters["entity_id"] = entity_id
    if action:
        filters["action"] = action
    return ctx.store.list(
        AUDIT_LOG,
        org_id=scope_org_id(principal),
        filters=filters,
        order_by=("-created_at",),
        limit=limit,
    )
