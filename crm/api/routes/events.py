"""
Event Routes - /api/v1/events.

Events list with offset pagination ordered by start time. Related
events for a lead, contact, account, opportunity or quote come from
GET /related/{who|what}/{type}/{id}.
"""
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from crm.api.dependencies import RequestContext, get_repos, get_request_context
from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes
from crm.core.validators import ensure_uuid
from crm.models.common import OffsetPage
from crm.models.records import Event, EventCreate, EventUpdate, WhatType, WhoType
from crm.repositories.base import MAX_PAGE_SIZE
from crm.repositories.events import EventListParams
from crm.repositories.registry import Repositories

router = APIRouter(prefix="/api/v1/events", tags=["Events"], responses=COMMON_RESPONSES)

SortColumn = Literal["created_at", "updated_at", "subject", "start_date_time", "end_date_time"]


@router.get("", response_model=OffsetPage[Event], summary="List events")
def list_events(
    owner_id: Optional[str] = Query(None),
    who_type: Optional[WhoType] = Query(None),
    who_id: Optional[str] = Query(None),
    what_type: Optional[WhatType] = Query(None),
    what_id: Optional[str] = Query(None),
    start_from: Optional[datetime] = Query(None, description="Events starting at or after"),
    start_to: Optional[datetime] = Query(None, description="Events starting at or before"),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    sort_by: SortColumn = Query("start_date_time"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    params = EventListParams(
        owner_id=ensure_uuid(owner_id, "owner_id") if owner_id else None,
        who_type=who_type,
        who_id=ensure_uuid(who_id, "who_id") if who_id else None,
        what_type=what_type,
        what_id=ensure_uuid(what_id, "what_id") if what_id else None,
        start_from=start_from,
        start_to=start_to,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return repos.events.list_events(ctx.tenant_id, params)


@router.get(
    "/related/{relation}/{record_type}/{record_id}",
    response_model=List[Event],
    summary="Events linked to a record",
)
def list_related_events(
    relation: Literal["who", "what"],
    record_type: str,
    record_id: str,
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.events.list_by_related_record(
        ctx.tenant_id, relation, record_type, ensure_uuid(record_id, "record_id"), limit=limit
    )


register_crud_routes(
    router,
    "events",
    "events",
    Event,
    EventCreate,
    EventUpdate,
    include_list=False,
)
