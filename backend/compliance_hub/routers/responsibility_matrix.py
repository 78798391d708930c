"""Responsibility matrix endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_current_principal
from ..context import ServiceContext, get_service_context
from ..schemas import (
    AssignmentUpdate,
    AvailableAssignees,
    Principal,
    ResponsibilityAssignment,
    ResponsibilityMatrixFilters,
    ResponsibilityMatrixStats,
    UnassignedItems,
)
from ..use_cases.responsibility import (
    get_responsibility_matrix_stats_use_case,
    list_available_assignees_use_case,
    list_unassigned_items_use_case,
    reassign_responsibility_use_case,
    resolve_responsibility_matrix_use_case,
)

router = APIRouter(prefix="/responsibility-matrix", tags=["responsibility-matrix"])


@router.get("", response_model=list[ResponsibilityAssignment])
def get_responsibility_matrix(
    filters: ResponsibilityMatrixFilters = Depends(),
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return resolve_responsibility_matrix_use_case(ctx=ctx, principal=principal, filters=filters)


@router.get("/stats", response_model=ResponsibilityMatrixStats)
def get_responsibility_matrix_stats(
    filters: ResponsibilityMatrixFilters = Depends(),
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return get_responsibility_matrix_stats_use_case(ctx=ctx, principal=principal, filters=filters)


@router.put("/assignment", response_model=ResponsibilityAssignment)
def update_assignment(
    data: AssignmentUpdate,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Reassign (or unassign, with assignee_id null) one clause or artefact."""
    return reassign_responsibility_use_case(ctx=ctx, update=data, principal=principal)


@router.get("/available-assignees", response_model=AvailableAssignees)
def get_available_assignees(
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return list_available_assignees_use_case(ctx=ctx, principal=principal)


@router.get("/unassigned", response_model=UnassignedItems)
def get_unassigned_items(
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return list_unassigned_items_use_case(ctx=ctx, principal=principal)
