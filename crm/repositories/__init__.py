"""
Repositories module - tenant-scoped record access.

- base.py          : BaseRepository (CRUD, cursor paging, ETag checks)
- accounts.py ...  : one repository per record type
- approvals.py     : approval processes, instances and work items
- field_history.py : tracked field settings and change log
- registry.py      : Repositories bundle shared by the API
"""
from crm.repositories.accounts import AccountRepository
from crm.repositories.approvals import ApprovalProcessRepository, ApprovalRepository
from crm.repositories.base import BaseRepository, ListParams
from crm.repositories.contacts import ContactRepository
from crm.repositories.events import EventListParams, EventRepository
from crm.repositories.field_history import FieldHistoryRepository
from crm.repositories.leads import ConvertOptions, LeadRepository
from crm.repositories.opportunities import OpportunityRepository
from crm.repositories.products import PricebookRepository, ProductRepository
from crm.repositories.quotes import QuoteRepository
from crm.repositories.sharing_rules import SharingRuleRepository

__all__ = [
    "BaseRepository",
    "ListParams",
    "AccountRepository",
    "ContactRepository",
    "LeadRepository",
    "ConvertOptions",
    "OpportunityRepository",
    "QuoteRepository",
    "ProductRepository",
    "PricebookRepository",
    "EventRepository",
    "EventListParams",
    "SharingRuleRepository",
    "ApprovalProcessRepository",
    "ApprovalRepository",
    "FieldHistoryRepository",
]
