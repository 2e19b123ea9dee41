"""
Quote Routes - /api/v1/quotes.

- POST /{id}/set-primary : make this the opportunity's only primary quote
- POST /{id}/status      : change the quote status
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Response

from crm.api.dependencies import RequestContext, get_repos, get_request_context, parse_etag
from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes, set_etag
from crm.core.validators import ensure_uuid
from crm.models.records import Quote, QuoteCreate, QuoteStatusRequest, QuoteUpdate
from crm.repositories.registry import Repositories

router = APIRouter(prefix="/api/v1/quotes", tags=["Quotes"], responses=COMMON_RESPONSES)

register_crud_routes(
    router,
    "quotes",
    "quotes",
    Quote,
    QuoteCreate,
    QuoteUpdate,
    filter_fields=("opportunity_id", "status", "is_primary", "owner_id"),
)


@router.post("/{quote_id}/set-primary", response_model=Quote, summary="Make the primary quote")
def set_primary_quote(
    quote_id: str,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    record = repos.quotes.set_primary(ctx.tenant_id, ctx.user_id, ensure_uuid(quote_id))
    set_etag(response, record)
    return record


@router.post("/{quote_id}/status", response_model=Quote, summary="Change quote status")
def change_quote_status(
    quote_id: str,
    payload: QuoteStatusRequest,
    response: Response,
    if_match: Optional[str] = Header(default=None),
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    record = repos.quotes.change_status(
        ctx.tenant_id,
        ctx.user_id,
        ensure_uuid(quote_id),
        payload.status,
        etag=parse_etag(if_match),
    )
    set_etag(response, record)
    return record
