"""AI suggestion and AI agent endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..auth import get_current_principal
from ..context import ServiceContext, get_service_context
from ..schemas import (
    AgentCreate,
    AgentResponse,
    AgentUpdate,
    ArtefactClassificationRequest,
    ArtefactClassificationResult,
    Principal,
    SuggestionResponse,
    SuggestionReview,
    SuggestionStats,
    SuggestionStatus,
)
from ..use_cases.agents import create_agent_use_case, list_agents_use_case, update_agent_use_case
from ..use_cases.suggestions import (
    classify_artefact_use_case,
    delete_suggestion_use_case,
    get_suggestion_stats_use_case,
    get_suggestion_use_case,
    list_suggestions_use_case,
    review_suggestion_use_case,
)

router = APIRouter(prefix="/ai-suggestions", tags=["ai-suggestions"])


@router.get("", response_model=list[SuggestionResponse])
def list_suggestions(
    status: Optional[SuggestionStatus] = None,
    suggestion_type: Optional[str] = Query(None, alias="type"),
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return list_suggestions_use_case(ctx=ctx, principal=principal, status=status, suggestion_type=suggestion_type)


@router.get("/stats", response_model=SuggestionStats)
def get_suggestion_stats(
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return get_suggestion_stats_use_case(ctx=ctx, principal=principal)


# AI agents
@router.get("/agents", response_model=list[AgentResponse])
def list_agents(
    include_inactive: bool = Query(False, alias="includeInactive"),
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return list_agents_use_case(ctx=ctx, principal=principal, include_inactive=include_inactive)


@router.post("/agents", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
def create_agent(
    data: AgentCreate,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return create_agent_use_case(ctx=ctx, payload=data, principal=principal)


@router.put("/agents/{agent_id}", response_model=AgentResponse)
def update_agent(
    agent_id: UUID,
    data: AgentUpdate,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return update_agent_use_case(ctx=ctx, agent_id=agent_id, patch=data, principal=principal)


@router.post("/classify/{artefact_id}", response_model=ArtefactClassificationResult)
def classify_artefact(
    artefact_id: UUID,
    data: ArtefactClassificationRequest,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Classify artefact text against clauses; confident matches are applied."""
    return classify_artefact_use_case(ctx=ctx, artefact_id=artefact_id, request=data, principal=principal)


@router.get("/{suggestion_id}", response_model=SuggestionResponse)
def get_suggestion(
    suggestion_id: UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return get_suggestion_use_case(ctx=ctx, suggestion_id=suggestion_id, principal=principal)


@router.post("/{suggestion_id}/review", response_model=SuggestionResponse)
def review_suggestion(
    suggestion_id: UUID,
    data: SuggestionReview,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return review_suggestion_use_case(ctx=ctx, suggestion_id=suggestion_id, review=data, principal=principal)


@router.delete("/{suggestion_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_suggestion(
    suggestion_id: UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    delete_suggestion_use_case(ctx=ctx, suggestion_id=suggestion_id, principal=principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
