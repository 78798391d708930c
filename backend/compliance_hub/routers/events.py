"""Event endpoints."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status

from ..auth import get_current_principal
from ..context import ServiceContext, get_service_context
from ..schemas import EventCreate, EventResponse, EventStats, EventUpdate, Principal
from ..use_cases.events import (
    create_event_use_case,
    delete_event_use_case,
    get_event_stats_use_case,
    get_event_use_case,
    list_events_use_case,
    update_event_use_case,
)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[EventResponse])
def list_events(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    """List events. Accepts type, status, reportedById, startDate, endDate."""
    return list_events_use_case(ctx=ctx, principal=principal, raw_filters=dict(request.query_params))


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    data: EventCreate,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return create_event_use_case(ctx=ctx, payload=data, principal=principal)


@router.get("/stats", response_model=EventStats)
def get_event_stats(
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return get_event_stats_use_case(ctx=ctx, principal=principal)


@router.get("/{event_id}", response_model=EventResponse)
def get_event(
    event_id: UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return get_event_use_case(ctx=ctx, event_id=event_id, principal=principal)


@router.patch("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: UUID,
    data: EventUpdate,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    return update_event_use_case(ctx=ctx, event_id=event_id, patch=data, principal=principal)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: UUID,
    principal: Principal = Depends(get_current_principal),
    ctx: ServiceContext = Depends(get_service_context),
):
    delete_event_use_case(ctx=ctx, event_id=event_id, principal=principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
