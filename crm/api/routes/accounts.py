"""
Account Routes - /api/v1/accounts.

Standard record endpoints plus the account's related lists:
- GET /{id}/contacts      : contacts of the account, primary first
- GET /{id}/opportunities : opportunities of the account, latest close date first
"""
from typing import List

from fastapi import APIRouter, Depends

from crm.api.dependencies import RequestContext, get_repos, get_request_context
from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes
from crm.core.validators import ensure_uuid
from crm.models.records import Account, AccountCreate, AccountUpdate, Contact, Opportunity
from crm.repositories.registry import Repositories

router = APIRouter(prefix="/api/v1/accounts", tags=["Accounts"], responses=COMMON_RESPONSES)

register_crud_routes(
    router,
    "accounts",
    "accounts",
    Account,
    AccountCreate,
    AccountUpdate,
    filter_fields=("type", "status", "industry", "owner_id", "parent_id"),
)


@router.get("/{account_id}/contacts", response_model=List[Contact], summary="Contacts of an account")
def list_account_contacts(
    account_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    account = repos.accounts.find_by_id_or_raise(ctx.tenant_id, ensure_uuid(account_id))
    return repos.contacts.find_by_account_id(ctx.tenant_id, account["id"])


@router.get(
    "/{account_id}/opportunities",
    response_model=List[Opportunity],
    summary="Opportunities of an account",
)
def list_account_opportunities(
    account_id: str,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
):
    account = repos.accounts.find_by_id_or_raise(ctx.tenant_id, ensure_uuid(account_id))
    return repos.opportunities.find_by_account_id(ctx.tenant_id, account["id"])
