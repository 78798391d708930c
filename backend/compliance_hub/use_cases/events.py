"""Event (nonconformity, complaint, incident, ...) use-cases."""
from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from ..context import ServiceContext
from ..domain_errors import NotFound, ValidationFailed
from ..schemas import EventCreate, EventFilter, EventStats, EventStatus, EventUpdate, Principal
from ..security import require_permission, resolve_target_org_id, scope_org_id
from ..services.event_suggestions import (
    SUGGESTING_AGENT_TYPE,
    SUGGESTION_CONFIDENCE,
    SUGGESTION_TYPE,
    suggestions_for_event_type,
)
from ..services.filters import event_store_filters, normalize_event_filters
from ..services.statistics import compute_event_stats
from ..services.store import AI_AGENT, AI_SUGGESTION, EVENT, unit_of_work

CLOSED = EventStatus.CLOSED.value


def _validate_severity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationFailed(
            "Severity must be an integer between 1 and 5",
            code="INVALID_SEVERITY",
            details={"severity": value},
        )
    return value


def get_event_or_404(*, ctx: ServiceContext, event_id: UUID, principal: Principal) -> Any:
    event = ctx.store.get(EVENT, event_id, org_id=scope_org_id(principal))
    if not event:
        raise NotFound("Event not found", code="EVENT_NOT_FOUND")
    return event


def _suggesting_agent(ctx: ServiceContext, org_id: UUID) -> Optional[Any]:
    agents = ctx.store.list(
        AI_AGENT,
        org_id=None,
        filters={"type": SUGGESTING_AGENT_TYPE, "is_active": True},
        order_by=("name",),
    )
    own = [agent for agent in agents if agent.org_id == org_id]
    shared = [agent for agent in agents if agent.org_id is None]
    return (own or shared or [None])[0]


def _raise_event_suggestions(ctx: ServiceContext, event: Any) -> list[Any]:
    agent = _suggesting_agent(ctx, event.org_id)
    if agent is None:
        return []
    now = ctx.clock()
    return [
        ctx.store.create(
            AI_SUGGESTION,
            {
                "org_id": event.org_id,
                "agent_id": agent.id,
                "type": SUGGESTION_TYPE,
                "title": template.title,
                "content": template.content,
                "rationale": template.rationale,
                "confidence": SUGGESTION_CONFIDENCE,
                "status": "PENDING",
                "metadata": {
                    "event_id": str(event.id),
                    "event_type": event.type,
                    "severity": event.severity,
                },
                "created_at": now,
                "updated_at": now,
            },
        )
        for template in suggestions_for_event_type(event.type)
    ]


def create_event_use_case(*, ctx: ServiceContext, payload: EventCreate, principal: Principal) -> Any:
    """Report an event; follow-up suggestions are written in the same commit."""
    require_permission(principal, "canManageEvents")
    severity = _validate_severity(payload.severity)
    org_id = resolve_target_org_id(principal, payload.organization_id)

    now = ctx.clock()
    with unit_of_work(ctx.store):
        event = ctx.store.create(
            EVENT,
            {
                "org_id": org_id,
                "type": payload.type.value,
                "title": payload.title,
                "description": payload.description,
                "severity": severity,
                "status": EventStatus.OPEN.value,
                "reported_by_id": principal.id,
                "metadata": dict(payload.metadata),
                "created_at": now,
                "updated_at": now,
            },
        )
        ctx.audit.record(
            "event.created",
            "event",
            event.id,
            principal.id,
            org_id=org_id,
            details={"type": event.type, "severity": severity, "title": payload.title},
        )
        _raise_event_suggestions(ctx, event)
    return event


def get_event_use_case(*, ctx: ServiceContext, event_id: UUID, principal: Principal) -> Any:
    require_permission(principal, "canManageEvents")
    return get_event_or_404(ctx=ctx, event_id=event_id, principal=principal)


def list_events_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    raw_filters: Optional[Mapping[str, Any]] = None,
    event_filter: Optional[EventFilter] = None,
) -> list[Any]:
    """Events in scope, newest first."""
    require_permission(principal, "canManageEvents")
    if event_filter is None:
        event_filter = normalize_event_filters(raw_filters or {})
    return ctx.store.list(
        EVENT,
        org_id=scope_org_id(principal),
        filters=event_store_filters(event_filter),
        order_by=("-created_at",),
    )


def update_event_use_case(*, ctx: ServiceContext, event_id: UUID, patch: EventUpdate, principal: Principal) -> Any:
    require_permission(principal, "canManageEvents")
    event = get_event_or_404(ctx=ctx, event_id=event_id, principal=principal)

    changes = patch.model_dump(exclude_unset=True)
    if changes.get("status") is None:
        changes.pop("status", None)
    else:
        changes["status"] = EventStatus(changes["status"]).value
    if "metadata" in changes and changes["metadata"] is None:
        changes["metadata"] = {}

    now = ctx.clock()
    old_status = event.status
    new_status = changes.get("status", old_status)
    if new_status == CLOSED and old_status != CLOSED:
        changes["closed_at"] = now
    elif old_status == CLOSED and new_status != CLOSED:
        changes["closed_at"] = None
    changes["updated_at"] = now

    details: dict[str, Any] = {"fields": sorted(k for k in changes if k != "updated_at")}
    if new_status != old_status:
        details.update({"oldStatus": old_status, "newStatus": new_status})

    with unit_of_work(ctx.store):
        event = ctx.store.update(EVENT, event.id, changes, org_id=event.org_id)
        ctx.audit.record("event.updated", "event", event.id, principal.id, org_id=event.org_id, details=details)
    return event


def delete_event_use_case(*, ctx: ServiceContext, event_id: UUID, principal: Principal) -> None:
    require_permission(principal, "canDeleteData")
    event = get_event_or_404(ctx=ctx, event_id=event_id, principal=principal)
    org_id, title = event.org_id, event.title
    with unit_of_work(ctx.store):
        ctx.store.delete(EVENT, event.id, org_id=org_id)
        ctx.audit.record("event.deleted", "event", event_id, principal.id, org_id=org_id, details={"title": title})


def get_event_stats_use_case(*, ctx: ServiceContext, principal: Principal) -> EventStats:
    require_permission(principal, "canManageEvents")
    events = ctx.store.list(EVENT, org_id=scope_org_id(principal), order_by=("-created_at",))
    return compute_event_stats(events)
