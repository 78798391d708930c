"""Task use-cases used by task router endpoints."""
from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from ..context import ServiceContext
from ..domain_errors import Conflict, NotFound
from ..schemas import Principal, TaskCreate, TaskFilter, TaskStatus, TaskUpdate
from ..security import require_permission, resolve_target_org_id, scope_org_id
from ..services.filters import normalize_task_filters, task_store_filters, validate_priority
from ..services.store import ARTEFACT, TASK, USER, unit_of_work
from ..services.timeutil import as_utc

COMPLETED = TaskStatus.COMPLETED.value
# Columns a patch may not null out.
_REQUIRED_FIELDS = ("title", "priority", "status")


def get_task_or_404(*, ctx: ServiceContext, task_id: UUID, principal: Principal) -> Any:
    task = ctx.store.get(TASK, task_id, org_id=scope_org_id(principal))
    if not task:
        raise NotFound("Task not found", code="TASK_NOT_FOUND")
    return task


def _ensure_assignee(ctx: ServiceContext, *, org_id: UUID, assignee_id: Optional[UUID]) -> None:
    if assignee_id is None:
        return
    user = ctx.store.get(USER, assignee_id, org_id=org_id)
    if not user:
        raise NotFound("Assignee not found in organization", code="ASSIGNEE_NOT_FOUND")
    if not user.is_active:
        raise Conflict("Assignee is inactive", code="ASSIGNEE_INACTIVE")


def _ensure_artefact(ctx: ServiceContext, *, org_id: UUID, artefact_id: Optional[UUID]) -> None:
    if artefact_id is None:
        return
    if not ctx.store.get(ARTEFACT, artefact_id, org_id=org_id):
        raise NotFound("Artefact not found in organization", code="ARTEFACT_NOT_FOUND")


def resolve_task_org_id(*, ctx: ServiceContext, payload: TaskCreate, principal: Principal) -> UUID:
    """Organization for a new task.

    SUPER_ADMIN inherits it from the linked artefact when it names none.
    """
    if principal.is_super_admin and payload.organization_id is None and payload.artefact_id is not None:
        artefact = ctx.store.get(ARTEFACT, payload.artefact_id, org_id=None)
        if not artefact:
            raise NotFound("Artefact not found", code="ARTEFACT_NOT_FOUND")
        return artefact.org_id
    return resolve_target_org_id(principal, payload.organization_id)


def prepare_task_create(*, ctx: ServiceContext, payload: TaskCreate, principal: Principal) -> tuple[UUID, int]:
    """All checks a new task needs before anything is written."""
    require_permission(principal, "canManageTasks")
    priority = validate_priority(payload.priority)
    org_id = resolve_task_org_id(ctx=ctx, payload=payload, principal=principal)
    _ensure_assignee(ctx, org_id=org_id, assignee_id=payload.assignee_id)
    _ensure_artefact(ctx, org_id=org_id, artefact_id=payload.artefact_id)
    return org_id, priority


def insert_task(
    *,
    ctx: ServiceContext,
    payload: TaskCreate,
    org_id: UUID,
    principal: Principal,
    audit_details: Optional[dict[str, Any]] = None,
) -> Any:
    """Write one task plus its audit entry; the caller commits."""
    now = ctx.clock()
    task = ctx.store.create(
        TASK,
        {
            "org_id": org_id,
            "title": payload.title,
            "description": payload.description,
            "due_date": as_utc(payload.due_date),
            "priority": payload.priority,
            "status": TaskStatus.PENDING.value,
            "assignee_id": payload.assignee_id,
            "artefact_id": payload.artefact_id,
            "created_by_id": principal.id,
            "completed_at": None,
            "created_at": now,
            "updated_at": now,
        },
    )
    details = {"title": payload.title, "priority": payload.priority}
    details.update(audit_details or {})
    ctx.audit.record("task.created", "task", task.id, principal.id, org_id=org_id, details=details)
    return task


def create_task_use_case(*, ctx: ServiceContext, payload: TaskCreate, principal: Principal) -> Any:
    """Create a task in PENDING status."""
    org_id, priority = prepare_task_create(ctx=ctx, payload=payload, principal=principal)
    payload = payload.model_copy(update={"priority": priority})
    with unit_of_work(ctx.store):
        task = insert_task(ctx=ctx, payload=payload, org_id=org_id, principal=principal)
    return task


def get_task_use_case(*, ctx: ServiceContext, task_id: UUID, principal: Principal) -> Any:
    require_permission(principal, "canManageTasks")
    return get_task_or_404(ctx=ctx, task_id=task_id, principal=principal)


def list_tasks_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    raw_filters: Optional[Mapping[str, Any]] = None,
    task_filter: Optional[TaskFilter] = None,
) -> list[Any]:
    """Tasks in scope, soonest due first, then newest."""
    require_permission(principal, "canManageTasks")
    if task_filter is None:
        task_filter = normalize_task_filters(raw_filters or {})
    return ctx.store.list(
        TASK,
        org_id=scope_org_id(principal),
        filters=task_store_filters(task_filter),
        order_by=("due_date", "-created_at"),
    )


def apply_status_transition(*, old_status: str, new_status: str, now) -> dict[str, Any]:
    """completed_at follows the COMPLETED status in both directions."""
    if new_status == COMPLETED and old_status != COMPLETED:
        return {"completed_at": now}
    if old_status == COMPLETED and new_status != COMPLETED:
        return {"completed_at": None}
    return {}


def update_task_use_case(*, ctx: ServiceContext, task_id: UUID, patch: TaskUpdate, principal: Principal) -> Any:
    require_permission(principal, "canManageTasks")
    task = get_task_or_404(ctx=ctx, task_id=task_id, principal=principal)

    changes = patch.model_dump(exclude_unset=True)
    for field in _REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            changes.pop(field)
    if "priority" in changes:
        changes["priority"] = validate_priority(changes["priority"])
    if "status" in changes:
        changes["status"] = TaskStatus(changes["status"]).value
    if "due_date" in changes:
        changes["due_date"] = as_utc(changes["due_date"])
    if changes.get("assignee_id") is not None and changes["assignee_id"] != task.assignee_id:
        _ensure_assignee(ctx, org_id=task.org_id, assignee_id=changes["assignee_id"])
    if changes.get("artefact_id") is not None and changes["artefact_id"] != task.artefact_id:
        _ensure_artefact(ctx, org_id=task.org_id, artefact_id=changes["artefact_id"])

    now = ctx.clock()
    old_status = task.status
    new_status = changes.get("status", old_status)
    changes.update(apply_status_transition(old_status=old_status, new_status=new_status, now=now))
    changes["updated_at"] = now

    details: dict[str, Any] = {"fields": sorted(k for k in changes if k != "updated_at")}
    if new_status != old_status:
        details.update({"oldStatus": old_status, "newStatus": new_status})

    with unit_of_work(ctx.store):
        task = ctx.store.update(TASK, task.id, changes, org_id=task.org_id)
        ctx.audit.record("task.updated", "task", task.id, principal.id, org_id=task.org_id, details=details)
    return task


def delete_task_use_case(*, ctx: ServiceContext, task_id: UUID, principal: Principal) -> None:
    require_permission(principal, "canDeleteData")
    task = get_task_or_404(ctx=ctx, task_id=task_id, principal=principal)
    org_id, title = task.org_id, task.title
    with unit_of_work(ctx.store):
        ctx.store.delete(TASK, task.id, org_id=org_id)
        ctx.audit.record("task.deleted", "task", task_id, principal.id, org_id=org_id, details={"title": title})
