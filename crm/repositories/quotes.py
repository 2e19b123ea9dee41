"""
Quote repository.

An opportunity has at most one primary quote; set_primary() moves the flag
and records the quote on the opportunity in a single transaction.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from crm.core.serialization import utcnow
from crm.core.validators import ensure_choice
from crm.database.tables import opportunities, quotes
from crm.repositories.base import BaseRepository, new_modstamp

QUOTE_STATUSES = ("Draft", "Presented", "Accepted", "Rejected")


class QuoteRepository(BaseRepository):
    table = quotes
    resource_name = "Quote"
    trackable_object_name = "Quote"
    search_columns = ("name", "description")
    address_groups = {
        "billing_address": "billing_",
        "shipping_address": "shipping_",
    }

    def validate_create(self, data: Dict[str, Any]) -> None:
        ensure_choice(data.get("status"), QUOTE_STATUSES, "status")

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        ensure_choice(changes.get("status"), QUOTE_STATUSES, "status")

    def find_by_opportunity_id(self, tenant_id: str, opportunity_id: str) -> List[Dict[str, Any]]:
        t = self.table
        stmt = (
            select(t)
            .where(self._live(tenant_id), t.c.opportunity_id == opportunity_id)
            .order_by(t.c.is_primary.desc(), t.c.created_at.desc())
        )
        return [self.to_record(row) for row in self.db.fetch_all(stmt)]

    def change_status(
        self,
        tenant_id: str,
        user_id: str,
        quote_id: str,
        status: str,
        etag: Optional[str] = None,
    ) -> Dict[str, Any]:
        ensure_choice(status, QUOTE_STATUSES, "status")
        return self.update(tenant_id, user_id, quote_id, {"status": status}, etag)

    def set_primary(self, tenant_id: str, user_id: str, quote_id: str) -> Dict[str, Any]:
        """
        Make a quote the primary quote of its opportunity.

        Clears is_primary on the opportunity's other quotes, sets it on this
        one and stores primary_quote_id on the opportunity, atomically.
        """
        t = self.table
        now = utcnow()
        with self.db.transaction() as conn:
            quote = self._lock(conn, tenant_id, quote_id)
            opportunity_id = quote["opportunity_id"]

            self.db.execute(
                update(t)
                .where(
                    self._live(tenant_id),
                    t.c.opportunity_id == opportunity_id,
                    t.c.id != quote_id,
                    t.c.is_primary.is_(True),
                )
                .values(is_primary=False, updated_at=now, updated_by=user_id, system_modstamp=new_modstamp()),
                conn=conn,
            )
            _, updated = self._update(conn, tenant_id, user_id, quote_id, {"is_primary": True})

            o = opportunities
            self.db.execute(
                update(o)
                .where(o.c.tenant_id == tenant_id, o.c.id == opportunity_id)
                .values(primary_quote_id=quote_id, updated_at=now, updated_by=user_id, system_modstamp=new_modstamp()),
                conn=conn,
            )

        self.logger.info(f"Quote {quote_id} set as primary for opportunity {opportunity_id}")
        return updated
