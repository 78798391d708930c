"""AI agent management: the agents that own clauses and raise suggestions."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from ..context import ServiceContext
from ..domain_errors import Forbidden, NotFound
from ..schemas import AgentCreate, AgentUpdate, Principal
from ..security import check_permission, require_permission, resolve_target_org_id, scope_org_id
from ..services.store import AI_AGENT, unit_of_work
from .responsibility import visible_agents

_REQUIRED_FIELDS = ("name", "is_active")


def list_agents_use_case(*, ctx: ServiceContext, principal: Principal, include_inactive: bool = False) -> list[Any]:
    """Shared agents plus the organization's own, by name.

    Inactive agents are listed only for principals that manage agents.
    """
    require_permission(principal, "canViewSuggestions")
    active_only = not (include_inactive and check_permission(principal, "canManageAgents"))
    return visible_agents(ctx, scope_org_id(principal), active_only=active_only)


def get_agent_or_404(*, ctx: ServiceContext, agent_id: UUID, principal: Principal) -> Any:
    agent = ctx.store.get(AI_AGENT, agent_id, org_id=None)
    org_id = scope_org_id(principal)
    if not agent or (org_id is not None and agent.org_id not in (None, org_id)):
        raise NotFound("AI agent not found", code="AGENT_NOT_FOUND")
    return agent


def create_agent_use_case(*, ctx: ServiceContext, payload: AgentCreate, principal: Principal) -> Any:
    require_permission(principal, "canManageAgents")
    org_id = payload.organization_id if principal.is_super_admin else resolve_target_org_id(principal)

    now = ctx.clock()
    with unit_of_work(ctx.store):
        agent = ctx.store.create(
            AI_AGENT,
            {
                "org_id": org_id,
                "name": payload.name,
                "type": payload.type.value,
                "description": payload.description,
                "config": payload.config,
                "is_active": True,
                "created_at": now,
                "updated_at": now,
            },
        )
        ctx.audit.record(
            "ai_agent.created",
            "ai_agent",
            agent.id,
            principal.id,
            org_id=org_id,
            details={"name": payload.name, "type": payload.type.value},
        )
    return agent


def update_agent_use_case(*, ctx: ServiceContext, agent_id: UUID, patch: AgentUpdate, principal: Principal) -> Any:
    require_permission(principal, "canManageAgents")
    agent = get_agent_or_404(ctx=ctx, agent_id=agent_id, principal=principal)
    if agent.org_id is None and not principal.is_super_admin:
        raise Forbidden("Shared agents are managed by SUPER_ADMIN", code="SHARED_AGENT_READ_ONLY")

    changes = patch.model_dump(exclude_unset=True)
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            changes.pop(field)
    details: dict[str, Any] = {"fields": sorted(changes)}
    if "is_active" in changes and changes["is_active"] != agent.is_active:
        details["isActive"] = changes["is_active"]
    changes["updated_at"] = ctx.clock()

    with unit_of_work(ctx.store):
        agent = ctx.store.update(AI_AGENT, agent.id, changes, org_id=None)
        ctx.audit.record("ai_agent.updated", "ai_agent", agent.id, principal.id, org_id=agent.org_id, details=details)
    return agent
