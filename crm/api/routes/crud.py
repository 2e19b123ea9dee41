"""
Standard record endpoints.

register_crud_routes() adds the five routes every record type shares to a
router:

- GET    ""             : cursor-paginated list with search and filters
- GET    "/{record_id}" : one record, with its ETag
- POST   ""             : create (201)
- PATCH  "/{record_id}" : partial update honoring If-Match
- DELETE "/{record_id}" : soft delete (204)
"""
from typing import Literal, Optional, Sequence, Type

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status
from pydantic import BaseModel

from crm.api.dependencies import RequestContext, get_repos, get_request_context, parse_etag
from crm.core.validators import ensure_uuid
from crm.models.common import ErrorResponse, Page
from crm.models.records import dump_changes
from crm.repositories.base import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ListParams
from crm.repositories.registry import Repositories

COMMON_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
    404: {"model": ErrorResponse, "description": "Record not found"},
}


def set_etag(response: Response, record: dict) -> None:
    response.headers["ETag"] = f'"{record["system_modstamp"]}"'


def read_filters(request: Request, filter_fields: Sequence[str]) -> dict:
    """Equality filters taken from the query string; *_id values must be UUIDs."""
    filters = {}
    for name in filter_fields:
        value = request.query_params.get(name)
        if value in (None, ""):
            continue
        filters[name] = ensure_uuid(value, name) if name.endswith("_id") else value
    return filters


def register_crud_routes(
    router: APIRouter,
    repo_name: str,
    label: str,
    record_model: Type[BaseModel],
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
    filter_fields: Sequence[str] = (),
    include_list: bool = True,
) -> None:
    """
    Add list/get/create/update/delete routes for one record type.

    Args:
        router: Router to extend (already carries the prefix)
        repo_name: Attribute of Repositories holding the repository
        label: Plural name used in summaries ("accounts")
        record_model: Response model of a stored record
        create_model: Request body for POST
        update_model: Request body for PATCH
        filter_fields: Columns accepted as equality query filters
        include_list: False when the router defines its own list route
    """
    if include_list:
        @router.get("", response_model=Page[record_model], summary=f"List {label}")
        def list_records(
            request: Request,
            limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
            cursor: Optional[str] = Query(None, description="created_at of the last record of the previous page"),
            order_by: str = Query("created_at"),
            order_dir: Literal["asc", "desc"] = Query("desc"),
            search: Optional[str] = Query(None, max_length=200),
            ctx: RequestContext = Depends(get_request_context),
            repos: Repositories = Depends(get_repos),
        ):
            params = ListParams(
                limit=limit,
                cursor=cursor,
                order_by=order_by,
                order_dir=order_dir,
                search=search,
                filters=read_filters(request, filter_fields),
            )
            return getattr(repos, repo_name).list(ctx.tenant_id, params)

    @router.get("/{record_id}", response_model=record_model, summary=f"Get one of the {label}")
    def get_record(
        record_id: str,
        response: Response,
        ctx: RequestContext = Depends(get_request_context),
        repos: Repositories = Depends(get_repos),
    ):
        record = getattr(repos, repo_name).find_by_id_or_raise(ctx.tenant_id, ensure_uuid(record_id))
        set_etag(response, record)
        return record

    @router.post(
        "",
        response_model=record_model,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create one of the {label}",
    )
    def create_record(
        payload: create_model,
        response: Response,
        ctx: RequestContext = Depends(get_request_context),
        repos: Repositories = Depends(get_repos),
    ):
        record = getattr(repos, repo_name).create(ctx.tenant_id, ctx.user_id, dump_changes(payload))
        set_etag(response, record)
        return record

    @router.patch(
        "/{record_id}",
        response_model=record_model,
        summary=f"Update one of the {label}",
        responses={409: {"model": ErrorResponse, "description": "If-Match does not match"}},
    )
    def update_record(
        record_id: str,
        payload: update_model,
        response: Response,
        if_match: Optional[str] = Header(default=None),
        ctx: RequestContext = Depends(get_request_context),
        repos: Repositories = Depends(get_repos),
    ):
        record = getattr(repos, repo_name).update(
            ctx.tenant_id,
            ctx.user_id,
            ensure_uuid(record_id),
            dump_changes(payload),
            etag=parse_etag(if_match),
        )
        set_etag(response, record)
        return record

    @router.delete(
        "/{record_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
        summary=f"Delete one of the {label}",
    )
    def delete_record(
        record_id: str,
        ctx: RequestContext = Depends(get_request_context),
        repos: Repositories = Depends(get_repos),
    ):
        getattr(repos, repo_name).delete(ctx.tenant_id, ctx.user_id, ensure_uuid(record_id))
        return Response(status_code=status.HTTP_204_NO_CONTENT)
