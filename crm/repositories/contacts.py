"""Contact repository."""
from typing import Any, Dict, List

from sqlalchemy import select

from crm.database.tables import contacts
from crm.repositories.base import BaseRepository


class ContactRepository(BaseRepository):
    table = contacts
    resource_name = "Contact"
    trackable_object_name = "Contact"
    search_columns = ("first_name", "last_name", "email", "title")
    address_groups = {"mailing_address": "mailing_"}

    def find_by_account_id(self, tenant_id: str, account_id: str) -> List[Dict[str, Any]]:
        """Live contacts of an account, primary contacts first."""
        t = self.table
        stmt = (
            select(t)
            .where(self._live(tenant_id), t.c.account_id == account_id)
            .order_by(t.c.is_primary.desc(), t.c.last_name, t.c.first_name)
        )
        return [self.to_record(row) for row in self.db.fetch_all(stmt)]
