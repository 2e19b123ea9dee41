"""
Sharing Rule Routes - /api/v1/sharing-rules.

Rules are stored and validated; they are not evaluated into record access.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from crm.api.dependencies import RequestContext, get_repos, get_request_context
from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes
from crm.models.common import Page
from crm.models.workflow import SharingRule, SharingRuleCreate, SharingRuleUpdate
from crm.repositories.base import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ListParams
from crm.repositories.registry import Repositories

router = APIRouter(prefix="/api/v1/sharing-rules", tags=["Sharing Rules"], responses=COMMON_RESPONSES)


@router.get("", response_model=Page[SharingRule], summary="List sharing rules")
def list_sharing_rules(
    object_name: Optional[str] = Query(None),
    rule_type: Optional[str] = Query(None),
    active_only: bool = Query(False),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    cursor: Optional[str] = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    filters = {"object_name": object_name, "rule_type": rule_type}
    if active_only:
        filters["is_active"] = True
    params = ListParams(limit=limit, cursor=cursor, filters=filters)
    return repos.sharing_rules.list(ctx.tenant_id, params)


register_crud_routes(
    router,
    "sharing_rules",
    "sharing rules",
    SharingRule,
    SharingRuleCreate,
    SharingRuleUpdate,
    include_list=False,
)
