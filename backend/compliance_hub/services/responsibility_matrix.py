"""Read-time responsibility matrix over clauses and artefacts.

Nothing here is persisted: the owning Clause or Artefact row carries the
assignee columns, and the matrix is rebuilt from them on every read.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID

from ..schemas import (
    AssigneeType,
    ResponsibilityAssignment,
    ResponsibilityEntityType,
    ResponsibilityMatrixFilters,
    ResponsibilityMatrixStats,
)

UNASSIGNED = "Unassigned"


def _value(raw: Any) -> Any:
    return getattr(raw, "value", raw)


def user_projection(user: Any) -> dict[str, Any]:
    return {"id": str(user.id), "email": user.email, "name": user.name, "role": _value(user.role)}


def agent_projection(agent: Any) -> dict[str, Any]:
    return {"id": str(agent.id), "name": agent.name, "type": _value(agent.type), "is_active": bool(agent.is_active)}


def _assignee_fields(
    entity: Any,
    users_by_id: Mapping[UUID, Any],
    agents_by_id: Mapping[UUID, Any],
) -> dict[str, Any]:
    user = users_by_id.get(entity.assignee_user_id) if entity.assignee_user_id else None
    if user is not None:
        return {
            "assignee_id": user.id,
            "assignee_name": user.name or user.email,
            "assignee_type": AssigneeType.USER,
            "assignee_details": user_projection(user),
        }
    agent = agents_by_id.get(entity.assignee_agent_id) if entity.assignee_agent_id else None
    if agent is not None:
        return {
            "assignee_id": agent.id,
            "assignee_name": agent.name,
            "assignee_type": AssigneeType.AI_AGENT,
            "assignee_details": agent_projection(agent),
        }
    return {
        "assignee_id": None,
        "assignee_name": UNASSIGNED,
        "assignee_type": None,
        "assignee_details": {},
    }


def clause_row(clause: Any, users_by_id: Mapping[UUID, Any], agents_by_id: Mapping[UUID, Any]) -> ResponsibilityAssignment:
    return ResponsibilityAssignment(
        id=f"clause-{clause.id}",
        type=ResponsibilityEntityType.CLAUSE,
        entity_id=clause.id,
        entity_name=f"{clause.clause_number} - {clause.title}",
        entity_details={"clause_number": clause.clause_number, "standard": _value(clause.standard)},
        assigned_at=clause.assigned_at,
        updated_at=getattr(clause, "updated_at", None),
        **_assignee_fields(clause, users_by_id, agents_by_id),
    )


def artefact_row(artefact: Any, users_by_id: Mapping[UUID, Any], agents_by_id: Mapping[UUID, Any]) -> ResponsibilityAssignment:
    return ResponsibilityAssignment(
        id=f"artefact-{artefact.id}",
        type=ResponsibilityEntityType.ARTEFACT,
        entity_id=artefact.id,
        entity_name=artefact.title,
        entity_details={"artefact_status": _value(artefact.status), "file_url": artefact.file_url},
        assigned_at=artefact.assigned_at,
        updated_at=getattr(artefact, "updated_at", None),
        **_assignee_fields(artefact, users_by_id, agents_by_id),
    )


def _matches(row: ResponsibilityAssignment, filters: ResponsibilityMatrixFilters) -> bool:
    if filters.entity_type is not None and row.type != filters.entity_type:
        return False

    if row.type == ResponsibilityEntityType.CLAUSE:
        if filters.clause_id is not None and row.entity_id != filters.clause_id:
            return False
        if filters.iso_standard is not None and row.entity_details["standard"] != filters.iso_standard.value:
            return False
        if filters.clause_number is not None and row.entity_details["clause_number"] != filters.clause_number:
            return False
    elif filters.artefact_status is not None and row.entity_details["artefact_status"] != filters.artefact_status:
        return False

    if filters.assignee_type is not None and row.assignee_type != filters.assignee_type:
        return False
    if filters.agent_type is not None and (
        row.assignee_type != AssigneeType.AI_AGENT or row.assignee_details.get("type") != filters.agent_type.value
    ):
        return False
    if filters.role is not None and (
        row.assignee_type != AssigneeType.USER or row.assignee_details.get("role") != filters.role.value
    ):
        return False
    return True


def build_matrix(
    clauses: Iterable[Any],
    artefacts: Iterable[Any],
    users: Iterable[Any],
    agents: Iterable[Any],
    filters: Optional[ResponsibilityMatrixFilters] = None,
) -> list[ResponsibilityAssignment]:
    """One row per clause and per artefact, clauses first, each by entity name.

    Clause-only filters (standard, clause id/number) never drop artefact rows
    and artefact_status never drops clause rows.
    """
    filters = filters or ResponsibilityMatrixFilters()
    users_by_id = {user.id: user for user in users}
    agents_by_id = {agent.id: agent for agent in agents}

    clause_rows = [clause_row(clause, users_by_id, agents_by_id) for clause in clauses]
    artefact_rows = [artefact_row(artefact, users_by_id, agents_by_id) for artefact in artefacts]

    def by_name(row: ResponsibilityAssignment):
        return (row.entity_name.lower(), str(row.entity_id))

    rows = sorted(clause_rows, key=by_name) + sorted(artefact_rows, key=by_name)
    return [row for row in rows if _matches(row, filters)]


def compute_matrix_stats(rows: Iterable[ResponsibilityAssignment]) -> ResponsibilityMatrixStats:
    """Aggregate counts derived from build_matrix output only."""
    assigned: list[ResponsibilityAssignment] = []
    unassigned = Counter()
    for row in rows:
        if row.assignee_type is None:
            unassigned[row.type] += 1
        else:
            assigned.append(row)

    by_standard = Counter(
        row.entity_details["standard"] for row in assigned if row.type == ResponsibilityEntityType.CLAUSE
    )
    by_role = Counter(row.assignee_details["role"] for row in assigned if row.assignee_type == AssigneeType.USER)
    by_agent_type = Counter(
        row.assignee_details["type"] for row in assigned if row.assignee_type == AssigneeType.AI_AGENT
    )
    return ResponsibilityMatrixStats(
        total_assignments=len(assigned),
        clause_assignments=sum(1 for row in assigned if row.type == ResponsibilityEntityType.CLAUSE),
        artefact_assignments=sum(1 for row in assigned if row.type == ResponsibilityEntityType.ARTEFACT),
        user_assignments=sum(by_role.values()),
        ai_assignments=sum(by_agent_type.values()),
        by_standard=dict(by_standard),
        by_role=dict(by_role),
        by_agent_type=dict(by_agent_type),
        unassigned_clauses=unassigned[ResponsibilityEntityType.CLAUSE],
        unassigned_artefacts=unassigned[ResponsibilityEntityType.ARTEFACT],
    )
