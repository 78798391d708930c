"""Responsibility matrix use-cases: resolve, reassign, stats and pickers."""
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from ..context import ServiceContext
from ..domain_errors import Conflict, NotFound
from ..schemas import (
    AgentBrief,
    AssigneeType,
    AssignmentUpdate,
    AvailableAssignees,
    Principal,
    ResponsibilityAssignment,
    ResponsibilityEntityType,
    ResponsibilityMatrixFilters,
    ResponsibilityMatrixStats,
    UnassignedArtefact,
    UnassignedClause,
    UnassignedItems,
    UserBrief,
)
from ..security import require_permission, scope_org_id
from ..services.responsibility_matrix import artefact_row, build_matrix, clause_row, compute_matrix_stats
from ..services.store import AI_AGENT, ARTEFACT, CLAUSE, USER, unit_of_work

_ENTITY_KINDS = {
    ResponsibilityEntityType.CLAUSE: CLAUSE,
    ResponsibilityEntityType.ARTEFACT: ARTEFACT,
}


def visible_agents(ctx: ServiceContext, org_id: Optional[UUID], *, active_only: bool = False) -> list[Any]:
    """Shared agents plus the organization's own; every agent when unscoped."""
    filters = {"is_active": True} if active_only else {}
    agents = ctx.store.list(AI_AGENT, org_id=None, filters=filters, order_by=("name",))
    if org_id is None:
        return agents
    return [agent for agent in agents if agent.org_id is None or agent.org_id == org_id]


def resolve_responsibility_matrix_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    filters: Optional[ResponsibilityMatrixFilters] = None,
) -> list[ResponsibilityAssignment]:
    require_permission(principal, "canViewResponsibilities")
    org_id = scope_org_id(principal)
    return build_matrix(
        clauses=ctx.store.list(CLAUSE, org_id=org_id),
        artefacts=ctx.store.list(ARTEFACT, org_id=org_id),
        users=ctx.store.list(USER, org_id=org_id),
        agents=visible_agents(ctx, org_id),
        filters=filters,
    )


def get_responsibility_matrix_stats_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    filters: Optional[ResponsibilityMatrixFilters] = None,
) -> ResponsibilityMatrixStats:
    rows = resolve_responsibility_matrix_use_case(ctx=ctx, principal=principal, filters=filters)
    return compute_matrix_stats(rows)


def _resolve_new_assignee(ctx: ServiceContext, update: AssignmentUpdate, entity_org_id: UUID) -> tuple[Any, Any]:
    """(user, agent) to assign; both None means unassign."""
    if update.assignee_id is None:
        return None, None

    if update.assignee_type == AssigneeType.USER:
        user = ctx.store.get(USER, update.assignee_id, org_id=entity_org_id)
        if not user:
            raise NotFound("User not found in organization", code="ASSIGNEE_NOT_FOUND")
        if not user.is_active:
            raise Conflict("Cannot assign responsibility to an inactive user", code="ASSIGNEE_INACTIVE")
        return user, None

    agent = ctx.store.get(AI_AGENT, update.assignee_id, org_id=None)
    if not agent or (agent.org_id is not None and agent.org_id != entity_org_id):
        raise NotFound("AI agent not found", code="ASSIGNEE_NOT_FOUND")
    if not agent.is_active:
        raise Conflict("Cannot assign responsibility to an inactive AI agent", code="ASSIGNEE_INACTIVE")
    return None, agent


def reassign_responsibility_use_case(
    *,
    ctx: ServiceContext,
    update: AssignmentUpdate,
    principal: Principal,
) -> ResponsibilityAssignment:
    """Point one clause or artefact at a new assignee, with its audit entry in the same commit."""
    require_permission(principal, "canManageResponsibilities")
    kind = _ENTITY_KINDS[update.entity_type]
    entity = ctx.store.get(kind, update.entity_id, org_id=scope_org_id(principal))
    if not entity:
        raise NotFound(f"{update.entity_type.value.title()} not found", code=f"{kind.upper()}_NOT_FOUND")

    user, agent = _resolve_new_assignee(ctx, update, entity.org_id)
    previous = {
        "assignee_user_id": str(entity.assignee_user_id) if entity.assignee_user_id else None,
        "assignee_agent_id": str(entity.assignee_agent_id) if entity.assignee_agent_id else None,
    }

    now = ctx.clock()
    patch = {
        "assignee_user_id": user.id if user else None,
        "assignee_agent_id": agent.id if agent else None,
        "assigned_at": now if (user or agent) else None,
        "updated_at": now,
    }
    with unit_of_work(ctx.store):
        entity = ctx.store.update(kind, entity.id, patch, org_id=entity.org_id)
        ctx.audit.record(
            "responsibility.updated",
            kind,
            entity.id,
            principal.id,
            org_id=entity.org_id,
            details={
                "entity_type": update.entity_type.value,
                "assignee_type": update.assignee_type.value if update.assignee_id else None,
                "assignee_id": str(update.assignee_id) if update.assignee_id else None,
                "previous": previous,
            },
        )

    users_by_id = {user.id: user} if user else {}
    agents_by_id = {agent.id: agent} if agent else {}
    build_row = clause_row if kind == CLAUSE else artefact_row
    return build_row(entity, users_by_id, agents_by_id)


def list_available_assignees_use_case(*, ctx: ServiceContext, principal: Principal) -> AvailableAssignees:
    require_permission(principal, "canManageResponsibilities")
    org_id = scope_org_id(principal)
    users = ctx.store.list(USER, org_id=org_id, filters={"is_active": True}, order_by=("name", "email"))
    return AvailableAssignees(
        users=[UserBrief.model_validate(user) for user in users],
        agents=[AgentBrief.model_validate(agent) for agent in visible_agents(ctx, org_id, active_only=True)],
    )


def list_unassigned_items_use_case(*, ctx: ServiceContext, principal: Principal) -> UnassignedItems:
    require_permission(principal, "canViewResponsibilities")
    org_id = scope_org_id(principal)
    unassigned = {"assignee_user_id": None, "assignee_agent_id": None}
    clauses = ctx.store.list(CLAUSE, org_id=org_id, filters=unassigned, order_by=("standard", "clause_number"))
    artefacts = ctx.store.list(ARTEFACT, org_id=org_id, filters=unassigned, order_by=("title",))
    return UnassignedItems(
        clauses=[UnassignedClause.model_validate(clause) for clause in clauses],
        artefacts=[UnassignedArtefact.model_validate(artefact) for artefact in artefacts],
    )
