"""
Lead Routes - /api/v1/leads.

POST /{id}/convert turns a lead into an account, a primary contact and
optionally an opportunity. The whole conversion commits or nothing does.
"""
from fastapi import APIRouter, Depends

from crm.api.dependencies import RequestContext, get_repos, get_request_context
from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes
from crm.core.logging_config import get_logger
from crm.core.validators import ensure_uuid
from crm.models.records import Lead, LeadConvertRequest, LeadConvertResponse, LeadCreate, LeadUpdate
from crm.repositories.leads import ConvertOptions
from crm.repositories.registry import Repositories

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/leads", tags=["Leads"], responses=COMMON_RESPONSES)

register_crud_routes(
    router,
    "leads",
    "leads",
    Lead,
    LeadCreate,
    LeadUpdate,
    filter_fields=("status", "rating", "lead_source", "owner_id", "is_converted"),
)


@router.post(
    "/{lead_id}/convert",
    response_model=LeadConvertResponse,
    summary="Convert a lead",
    description="""
    Convert a lead in a single transaction:

    - creates an account from the lead's company, or uses `existing_account_id`
    - creates a primary contact from the lead's name and contact details
    - creates an opportunity when `create_opportunity` is true
    - marks the lead as converted

    Converting an already converted lead returns 400.
    """,
)
def convert_lead(
    lead_id: str,
    payload: LeadConvertRequest,
    ctx: RequestContext = Depends(get_request_context),
    repos: Repositories = Depends(get_repos),
) -> LeadConvertResponse:
    options = ConvertOptions(**payload.model_dump())
    result = repos.leads.convert(ctx.tenant_id, ctx.user_id, ensure_uuid(lead_id), options)
    logger.info(f"Lead {lead_id} converted: account={result['account_id']} contact={result['contact_id']}")
    return LeadConvertResponse(**result)
