"""
API Routes module - Endpoint definitions.

Each file in this module defines routes for a specific domain:
- health.py        : Health check endpoints
- crud.py          : Shared list/get/create/update/delete routes
- accounts.py      : Accounts and their related lists
- contacts.py      : Contacts
- leads.py         : Leads and lead conversion
- opportunities.py : Opportunities, stages and closing
- quotes.py        : Quotes and the primary quote
- products.py      : Products and pricebooks
- events.py        : Calendar events
- sharing_rules.py : Sharing rule definitions
- approvals.py     : Approval processes, requests and work items
- field_history.py : Field tracking settings and the change log
"""
from crm.api.routes.accounts import router as accounts_router
from crm.api.routes.approvals import process_router as approval_process_router
from crm.api.routes.approvals import router as approvals_router
from crm.api.routes.contacts import router as contacts_router
from crm.api.routes.events import router as events_router
from crm.api.routes.field_history import router as field_history_router
from crm.api.routes.health import router as health_router
from crm.api.routes.leads import router as leads_router
from crm.api.routes.opportunities import router as opportunities_router
from crm.api.routes.products import pricebook_router as pricebooks_router
from crm.api.routes.products import router as products_router
from crm.api.routes.quotes import router as quotes_router
from crm.api.routes.sharing_rules import router as sharing_rules_router

__all__ = [
    "accounts_router",
    "approval_process_router",
    "approvals_router",
    "contacts_router",
    "events_router",
    "field_history_router",
    "health_router",
    "leads_router",
    "opportunities_router",
    "pricebooks_router",
    "products_router",
    "quotes_router",
    "sharing_rules_router",
]
