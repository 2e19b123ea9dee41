"""Contact Routes - /api/v1/contacts."""
from fastapi import APIRouter

from crm.api.routes.crud import COMMON_RESPONSES, register_crud_routes
from crm.models.records import Contact, ContactCreate, ContactUpdate

router = APIRouter(prefix="/api/v1/contacts", tags=["Contacts"], responses=COMMON_RESPONSES)

register_crud_routes(
    router,
    "contacts",
    "contacts",
    Contact,
    ContactCreate,
    ContactUpdate,
    filter_fields=("account_id", "owner_id", "is_primary"),
)
