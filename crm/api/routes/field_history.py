"""
Field History Routes - /api/v1/field-history.

Endpoints:
- /settings                       : which fields are tracked per object (CRUD)
- GET /                           : change log, newest first, cursor paginated
- GET /{id}                       : one change
- GET /record/{object}/{record_id}: changes of one record

Changing a tracking setting clears the tracked-field cache so the next
update picks it up.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from crm.api.dependencies import RequestContext, get_repos, get_request_context
from crm.api.routes.crud import COMMON_RESPONSES
from crm.core.exceptions import NotFoundError
from crm.core.validators import ensure_uuid
from crm.models.common import Page
from crm.models.workflow import (
    FieldHistory,
    FieldTrackingSetting,
    FieldTrackingSettingCreate,
    FieldTrackingSettingUpdate,
)
from crm.repositories.base import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from crm.repositories.registry import Repositories

router = APIRouter(prefix="/api/v1/field-history", tags=["Field History"], responses=COMMON_RESPONSES)


# ============================================================
# Tracking settings
# ============================================================

@router.get("/settings", response_model=List[FieldTrackingSetting], summary="List tracking settings")
def list_tracking_settings(
    object_name: Optional[str] = Query(None),
    is_tracked: Optional[bool] = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.field_history.list_tracking_settings(ctx.tenant_id, object_name, is_tracked)


@router.get("/settings/{setting_id}", response_model=FieldTrackingSetting, summary="Get a tracking setting")
def get_tracking_setting(
    setting_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    setting = repos.field_history.find_tracking_setting(ctx.tenant_id, ensure_uuid(setting_id))
    if setting is None:
        raise NotFoundError("FieldTrackingSetting", setting_id)
    return setting


@router.post(
    "/settings",
    response_model=FieldTrackingSetting,
    status_code=status.HTTP_201_CREATED,
    summary="Track a field",
)
def create_tracking_setting(
    payload: FieldTrackingSettingCreate,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.history_service.create_tracking_setting(
        ctx.tenant_id,
        ctx.user_id,
        payload.object_name,
        payload.field_name,
        payload.is_tracked,
    )


@router.patch("/settings/{setting_id}", response_model=FieldTrackingSetting, summary="Update a tracking setting")
def update_tracking_setting(
    setting_id: str,
    payload: FieldTrackingSettingUpdate,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.history_service.update_tracking_setting(
        ctx.tenant_id, ctx.user_id, ensure_uuid(setting_id), payload.is_tracked
    )


@router.delete(
    "/settings/{setting_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a tracking setting",
)
def delete_tracking_setting(
    setting_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    repos.history_service.delete_tracking_setting(ctx.tenant_id, ensure_uuid(setting_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================
# History
# ============================================================

@router.get("", response_model=Page[FieldHistory], summary="List field changes")
def list_field_history(
    object_name: Optional[str] = Query(None),
    record_id: Optional[str] = Query(None),
    field_name: Optional[str] = Query(None),
    changed_by: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    cursor: Optional[str] = Query(None, description="changed_at of the last entry of the previous page"),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.field_history.list_history(
        ctx.tenant_id,
        limit=limit,
        cursor=cursor,
        object_name=object_name,
        record_id=ensure_uuid(record_id, "record_id") if record_id else None,
        field_name=field_name,
        changed_by=ensure_uuid(changed_by, "changed_by") if changed_by else None,
    )


@router.get(
    "/record/{object_name}/{record_id}",
    response_model=Page[FieldHistory],
    summary="Field changes of one record",
)
def list_record_history(
    object_name: str,
    record_id: str,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    cursor: Optional[str] = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.field_history.list_history(
        ctx.tenant_id,
        limit=limit,
        cursor=cursor,
        object_name=object_name,
        record_id=ensure_uuid(record_id, "record_id"),
    )


@router.get("/{history_id}", response_model=FieldHistory, summary="Get a field change")
def get_field_history(
    history_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    entry = repos.field_history.find_history_by_id(ctx.tenant_id, ensure_uuid(history_id))
    if entry is None:
        raise NotFoundError("FieldHistory", history_id)
    return entry
