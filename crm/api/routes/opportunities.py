"""
Opportunity Routes - /api/v1/opportunities.

Besides the standard record endpoints:
- POST /{id}/stage : move to a stage; probability and forecast follow it
- POST /{id}/close : close as won or lost
- GET  /{id}/quotes : quotes of the opportunity, primary first
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Response

from crm.api.dependencies import RequestContext, get_repos, get_request_context, parse_etag
from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes, set_etag
from crm.core.validators import ensure_uuid
from crm.models.records import (
    CloseRequest,
    Opportunity,
    OpportunityCreate,
    OpportunityUpdate,
    Quote,
    StageChangeRequest,
)
from crm.repositories.registry import Repositories

router = APIRouter(prefix="/api/v1/opportunities", tags=["Opportunities"], responses=COMMON_RESPONSES)

register_crud_routes(
    router,
    "opportunities",
    "opportunities",
    Opportunity,
    OpportunityCreate,
    OpportunityUpdate,
    filter_fields=("account_id", "stage_name", "owner_id", "is_closed", "is_won", "forecast_category"),
)


@router.post("/{opportunity_id}/stage", response_model=Opportunity, summary="Change stage")
def change_stage(
    opportunity_id: str,
    payload: StageChangeRequest,
    response: Response,
    if_match: Optional[str] = Header(default=None),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    record = repos.opportunities.change_stage(
        ctx.tenant_id,
        ctx.user_id,
        ensure_uuid(opportunity_id),
        payload.stage_name,
        etag=parse_etag(if_match),
    )
    set_etag(response, record)
    return record


@router.post("/{opportunity_id}/close", response_model=Opportunity, summary="Close as won or lost")
def close_opportunity(
    opportunity_id: str,
    payload: CloseRequest,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    record = repos.opportunities.close(
        ctx.tenant_id,
        ctx.user_id,
        ensure_uuid(opportunity_id),
        is_won=payload.is_won,
        lost_reason=payload.lost_reason,
    )
    set_etag(response, record)
    return record


@router.get("/{opportunity_id}/quotes", response_model=List[Quote], summary="Quotes of an opportunity")
def list_opportunity_quotes(
    opportunity_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    opportunity = repos.opportunities.find_by_id_or_raise(ctx.tenant_id, ensure_uuid(opportunity_id))
    return repos.quotes.find_by_opportunity_id(ctx.tenant_id, opportunity["id"])
