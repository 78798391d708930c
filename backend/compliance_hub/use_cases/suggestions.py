"""AI suggestion use-cases: listing, lookup, review, deletion, stats and artefact classification."""
from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from ..context import ServiceContext
from ..domain_errors import Conflict, NotFound, ValidationFailed
from ..schemas import (
    ArtefactClassificationRequest,
    ArtefactClassificationResult,
    ClauseMappingResponse,
    Principal,
    SuggestedLabel,
    SuggestionResponse,
    SuggestionReview,
    SuggestionStats,
    SuggestionStatus,
)
from ..security import require_permission, scope_org_id
from ..services.statistics import compute_suggestion_stats
from ..services.store import AI_AGENT, AI_SUGGESTION, ARTEFACT, CLAUSE, CLAUSE_MAPPING, unit_of_work

logger = logging.getLogger(__name__)

CLAUSE_MAPPING_SUGGESTION = "clause_mapping"
CLASSIFYING_AGENT_TYPE = "DOCUMENT_REVIEWER"


def list_suggestions_use_case(
    *,
    ctx: ServiceContext,
    principal: Principal,
    status: Optional[SuggestionStatus] = None,
    suggestion_type: Optional[str] = None,
) -> list[Any]:
    require_permission(principal, "canViewSuggestions")
    filters: dict[str, Any] = {}
    if status is not None:
        filters["status"] = status.value
    if suggestion_type:
        filters["type"] = suggestion_type
    return ctx.store.list(AI_SUGGESTION, org_id=scope_org_id(principal), filters=filters, order_by=("-created_at",))


def get_suggestion_or_404(*, ctx: ServiceContext, suggestion_id: UUID, principal: Principal) -> Any:
    suggestion = ctx.store.get(AI_SUGGESTION, suggestion_id, org_id=scope_org_id(principal))
    if not suggestion:
        raise NotFound("Suggestion not found", code="SUGGESTION_NOT_FOUND")
    return suggestion


def get_suggestion_use_case(*, ctx: ServiceContext, suggestion_id: UUID, principal: Principal) -> Any:
    require_permission(principal, "canViewSuggestions")
    return get_suggestion_or_404(ctx=ctx, suggestion_id=suggestion_id, principal=principal)


def delete_suggestion_use_case(*, ctx: ServiceContext, suggestion_id: UUID, principal: Principal) -> None:
    require_permission(principal, "canDeleteData")
    suggestion = get_suggestion_or_404(ctx=ctx, suggestion_id=suggestion_id, principal=principal)
    org_id = suggestion.org_id
    details = {"type": suggestion.type, "status": suggestion.status}
    with unit_of_work(ctx.store):
        ctx.store.delete(AI_SUGGESTION, suggestion.id, org_id=org_id)
        ctx.audit.record("ai_suggestion.deleted", "ai_suggestion", suggestion_id, principal.id, org_id=org_id, details=details)


def review_suggestion_use_case(
    *,
    ctx: ServiceContext,
    suggestion_id: UUID,
    review: SuggestionReview,
    principal: Principal,
) -> Any:
    """Accept or reject a pending suggestion; a decision is final."""
    require_permission(principal, "canReviewSuggestions")
    if review.status == SuggestionStatus.PENDING:
        raise ValidationFailed("Review must accept or reject the suggestion", code="INVALID_REVIEW_STATUS")

    suggestion = get_suggestion_or_404(ctx=ctx, suggestion_id=suggestion_id, principal=principal)
    if suggestion.status != SuggestionStatus.PENDING.value:
        raise Conflict(
            "Suggestion has already been reviewed",
            code="SUGGESTION_ALREADY_REVIEWED",
            details={"status": suggestion.status},
        )

    now = ctx.clock()
    with unit_of_work(ctx.store):
        suggestion = ctx.store.update(
            AI_SUGGESTION,
            suggestion.id,
            {
                "status": review.status.value,
                "reviewed_by_id": principal.id,
                "reviewed_at": now,
                "review_notes": review.review_notes,
                "updated_at": now,
            },
            org_id=suggestion.org_id,
        )
        ctx.audit.record(
            "ai_suggestion.reviewed",
            "ai_suggestion",
            suggestion.id,
            principal.id,
            org_id=suggestion.org_id,
            details={"status": review.status.value, "type": suggestion.type},
        )
    return suggestion


def get_suggestion_stats_use_case(*, ctx: ServiceContext, principal: Principal) -> SuggestionStats:
    require_permission(principal, "canViewSuggestions")
    return compute_suggestion_stats(ctx.store.list(AI_SUGGESTION, org_id=scope_org_id(principal)))


def _classifying_agent_id(ctx: ServiceContext, org_id: UUID) -> Optional[UUID]:
    agents = ctx.store.list(
        AI_AGENT,
        org_id=None,
        filters={"type": CLASSIFYING_AGENT_TYPE, "is_active": True},
        order_by=("name",),
    )
    for agent in agents:
        if agent.org_id is None or agent.org_id == org_id:
            return agent.id
    return None


def classify_artefact_use_case(
    *,
    ctx: ServiceContext,
    artefact_id: UUID,
    request: ArtefactClassificationRequest,
    principal: Principal,
) -> ArtefactClassificationResult:
    """Map an artefact onto clauses from oracle labels.

    Labels at or above the confidence threshold become clause mappings right
    away; the rest are stored as pending suggestions for review. Labels that
    name no known clause are returned as ignored.
    """
    require_permission(principal, "canClassifyArtefacts")
    artefact = ctx.store.get(ARTEFACT, artefact_id, org_id=scope_org_id(principal))
    if not artefact:
        raise NotFound("Artefact not found", code="ARTEFACT_NOT_FOUND")

    clause_filters = {"standard": request.standard.value} if request.standard else {}
    clauses = ctx.store.list(CLAUSE, org_id=artefact.org_id, filters=clause_filters, order_by=("clause_number",))
    clauses_by_number = {clause.clause_number: clause for clause in clauses}
    threshold = (
        request.min_confidence
        if request.min_confidence is not None
        else ctx.settings.AI_AUTO_APPLY_MIN_CONFIDENCE
    )

    labels = ctx.oracle.classify(
        request.text,
        {
            "artefact_title": artefact.title,
            "standard": request.standard.value if request.standard else None,
            "clauses": [{"clause_number": c.clause_number, "title": c.title} for c in clauses],
        },
    )

    existing = {
        mapping.clause_id
        for mapping in ctx.store.list(CLAUSE_MAPPING, org_id=artefact.org_id, filters={"artefact_id": artefact.id})
    }
    agent_id = _classifying_agent_id(ctx, artefact.org_id)
    now = ctx.clock()

    applied: list[Any] = []
    pending: list[Any] = []
    ignored: list[SuggestedLabel] = []
    with unit_of_work(ctx.store):
        for label in sorted(labels, key=lambda item: item.confidence, reverse=True):
            clause = clauses_by_number.get(label.label)
            if clause is None or clause.id in existing:
                ignored.append(label)
                continue
            existing.add(clause.id)
            if label.confidence >= threshold:
                applied.append(
                    ctx.store.create(
                        CLAUSE_MAPPING,
                        {
                            "org_id": artefact.org_id,
                            "artefact_id": artefact.id,
                            "clause_id": clause.id,
                            "confidence": label.confidence,
                            "rationale": label.rationale,
                            "created_at": now,
                        },
                    )
                )
            else:
                pending.append(
                    ctx.store.create(
                        AI_SUGGESTION,
                        {
                            "org_id": artefact.org_id,
                            "agent_id": agent_id,
                            "type": CLAUSE_MAPPING_SUGGESTION,
                            "title": f"Map '{artefact.title}' to clause {clause.clause_number}",
                            "content": f"{clause.clause_number} - {clause.title}",
                            "rationale": label.rationale,
                            "confidence": label.confidence,
                            "status": SuggestionStatus.PENDING.value,
                            "metadata": {
                                "artefact_id": str(artefact.id),
                                "clause_id": str(clause.id),
                                "clause_number": clause.clause_number,
                            },
                            "created_at": now,
                            "updated_at": now,
                        },
                    )
                )
        ctx.audit.record(
            "artefact.classified",
            "artefact",
            artefact.id,
            principal.id,
            org_id=artefact.org_id,
            details={
                "threshold": threshold,
                "applied": [str(m.clause_id) for m in applied],
                "pending": len(pending),
                "ignored": len(ignored),
            },
        )

    logger.info(
        "Classified artefact %s: %s applied, %s pending, %s ignored",
        artefact.id,
        len(applied),
        len(pending),
        len(ignored),
    )
    return ArtefactClassificationResult(
        applied=[ClauseMappingResponse.model_validate(m) for m in applied],
        pending=[SuggestionResponse.model_validate(s) for s in pending],
        ignored=ignored,
    )
