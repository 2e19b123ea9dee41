"""
Repository registry.

Repositories is the per-database bundle the API resolves once and shares:
every repository gets the same DatabaseConnection and the same
FieldHistoryService (and with it the tracked-field cache).
"""
from functools import lru_cache

from crm.database.connection import DatabaseConnection
from crm.repositories.accounts import AccountRepository
from crm.repositories.approvals import ApprovalProcessRepository, ApprovalRepository
from crm.repositories.contacts import ContactRepository
from crm.repositories.events import EventRepository
from crm.repositories.field_history import FieldHistoryRepository
from crm.repositories.leads import LeadRepository
from crm.repositories.opportunities import OpportunityRepository
from crm.repositories.products import PricebookRepository, ProductRepository
from crm.repositories.quotes import QuoteRepository
from crm.repositories.sharing_rules import SharingRuleRepository
from crm.services.field_history_service import FieldHistoryService


class Repositories:
    """All repositories bound to one database."""

    def __init__(self, db: DatabaseConnection):
        self.db = db
        self.field_history = FieldHistoryRepository(db)
        self.history_service = FieldHistoryService(self.field_history)

        self.accounts = AccountRepository(db, self.history_service)
        self.contacts = ContactRepository(db, self.history_service)
        self.opportunities = OpportunityRepository(db, self.history_service)
        self.leads = LeadRepository(
            db,
            self.history_service,
            accounts=self.accounts,
            contacts=self.contacts,
            opportunities=self.opportunities,
        )
        self.quotes = QuoteRepository(db, self.history_service)
        self.products = ProductRepository(db, self.history_service)
        self.pricebooks = PricebookRepository(db, self.history_service)
        self.events = EventRepository(db, self.history_service)
        self.sharing_rules = SharingRuleRepository(db)
        self.approval_processes = ApprovalProcessRepository(db)
        self.approvals = ApprovalRepository(db)


@lru_cache(maxsize=8)
def get_repositories(db: DatabaseConnection) -> Repositories:
    """Repositories for a database, built once per DatabaseConnection."""
    return Repositories(db)
