"""Audit log endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ..auth import PermissionChecker
from ..context import ServiceContext, get_service_context
from ..schemas import AuditLogResponse, Principal
from ..use_cases.audit_log import list_audit_logs_use_case

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=list[AuditLogResponse])
def get_audit_logs(
    entity_type: Optional[str] = Query(None, alias="entityType"),
    entity_id: Optional[UUID] = Query(None, alias="entityId"),
    action: Optional[str] = None,
    limit: int = Query(200, ge=1, le=1000),
    principal: Principal = Depends(PermissionChecker("canViewAudit")),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Get recent audit entries for organization (optionally scoped to one entity)."""
    return list_audit_logs_use_case(
        ctx=ctx,
        principal=principal,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        limit=limit,
    )
