"""
Approval Routes - /api/v1/approvals.

Endpoints:
- /processes                      : approval process definitions (CRUD)
- POST /submit                    : submit a record for approval
- GET  /instances                 : approval requests, filterable
- GET  /my-submissions            : requests the caller submitted
- GET  /instances/{id}            : one request
- GET  /instances/{id}/history    : its history, oldest first
- POST /instances/{id}/recall     : withdraw a pending request
- GET  /work-items                : the caller's work items (Pending by default)
- GET  /work-items/{id}           : one work item
- POST /work-items/{id}/decide    : approve or reject
- POST /work-items/{id}/reassign  : hand a work item to someone else
"""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from crm.api.dependencies import RequestContext, get_repos, get_request_context
from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes
from crm.core.exceptions import NotFoundError
from crm.core.validators import ensure_uuid
from crm.models.common import OffsetPage
from crm.models.workflow import (
    ApprovalHistoryEntry,
    ApprovalInstance,
    ApprovalProcess,
    ApprovalProcessCreate,
    ApprovalProcessUpdate,
    ApprovalWorkItem,
    DecideRequest,
    ReassignRequest,
    RecallRequest,
    SubmitRequest,
)
from crm.repositories.base import MAX_PAGE_SIZE
from crm.repositories.registry import Repositories

InstanceStatus = Literal["Pending", "Approved", "Rejected", "Recalled"]
WorkItemStatus = Literal["Pending", "Approved", "Rejected", "Reassigned"]

router = APIRouter(prefix="/api/v1/approvals", tags=["Approvals"], responses=COMMON_RESPONSES)
process_router = APIRouter(
    prefix="/api/v1/approvals/processes",
    tags=["Approvals"],
    responses=COMMON_RESPONSES,
)

register_crud_routes(
    process_router,
    "approval_processes",
    "approval processes",
    ApprovalProcess,
    ApprovalProcessCreate,
    ApprovalProcessUpdate,
    filter_fields=("object_name", "is_active"),
)


# ============================================================
# Instances
# ============================================================

@router.post(
    "/submit",
    response_model=ApprovalInstance,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a record for approval",
)
def submit_for_approval(
    payload: SubmitRequest,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.submit(
        ctx.tenant_id,
        ctx.user_id,
        payload.process_definition_id,
        payload.target_object_name,
        payload.target_record_id,
        payload.comments,
    )


@router.get("/instances", response_model=OffsetPage[ApprovalInstance], summary="List approval requests")
def list_instances(
    status_filter: Optional[InstanceStatus] = Query(None, alias="status"),
    target_object_name: Optional[str] = Query(None),
    target_record_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.list_instances(
        ctx.tenant_id,
        status=status_filter,
        target_object_name=target_object_name,
        target_record_id=ensure_uuid(target_record_id, "target_record_id") if target_record_id else None,
        limit=limit,
    )


@router.get(
    "/my-submissions",
    response_model=OffsetPage[ApprovalInstance],
    summary="Approval requests submitted by the caller",
)
def list_my_submissions(
    status_filter: Optional[InstanceStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.list_instances(
        ctx.tenant_id,
        status=status_filter,
        submitted_by=ctx.user_id,
        limit=limit,
    )


@router.get("/instances/{instance_id}", response_model=ApprovalInstance, summary="Get an approval request")
def get_instance(
    instance_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.find_instance_or_raise(ctx.tenant_id, ensure_uuid(instance_id))


@router.get(
    "/instances/{instance_id}/history",
    response_model=List[ApprovalHistoryEntry],
    summary="History of an approval request",
)
def get_instance_history(
    instance_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.get_history(ctx.tenant_id, ensure_uuid(instance_id))


@router.post(
    "/instances/{instance_id}/recall",
    response_model=ApprovalInstance,
    summary="Recall a pending approval request",
    responses={403: {"description": "Caller is not the submitter"}},
)
def recall_instance(
    instance_id: str,
    payload: Optional[RecallRequest] = None,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    comments = payload.comments if payload else None
    return repos.approvals.recall(ctx.tenant_id, ctx.user_id, ensure_uuid(instance_id), comments)


# ============================================================
# Work items
# ============================================================

@router.get("/work-items", response_model=OffsetPage[ApprovalWorkItem], summary="The caller's work items")
def list_my_work_items(
    status_filter: WorkItemStatus = Query("Pending", alias="status"),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.list_my_work_items(ctx.tenant_id, ctx.user_id, status=status_filter, limit=limit)


@router.get("/work-items/{work_item_id}", response_model=ApprovalWorkItem, summary="Get a work item")
def get_work_item(
    work_item_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    item = repos.approvals.find_work_item(ctx.tenant_id, ensure_uuid(work_item_id))
    if item is None:
        raise NotFoundError("ApprovalWorkItem", work_item_id)
    return item


@router.post(
    "/work-items/{work_item_id}/decide",
    response_model=ApprovalInstance,
    summary="Approve or reject a work item",
    responses={403: {"description": "Caller is not the assigned approver"}},
)
def decide_work_item(
    work_item_id: str,
    payload: DecideRequest,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.decide(
        ctx.tenant_id,
        ctx.user_id,
        ensure_uuid(work_item_id),
        payload.action,
        payload.comments,
    )


@router.post(
    "/work-items/{work_item_id}/reassign",
    response_model=ApprovalWorkItem,
    summary="Reassign a work item",
)
def reassign_work_item(
    work_item_id: str,
    payload: ReassignRequest,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    return repos.approvals.reassign(
        ctx.tenant_id,
        ctx.user_id,
        ensure_uuid(work_item_id),
        payload.new_approver_id,
        payload.comments,
    )
