"""
Lead repository and lead conversion.

Converting a lead creates (or reuses) an account, creates a primary
contact, optionally creates an opportunity, and marks the lead converted.
All of it happens in one transaction: if any step fails, nothing is written.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import update

from crm.core.exceptions import NotFoundError, ValidationError
from crm.core.serialization import utcnow
from crm.core.validators import ensure_choice
from crm.database.tables import leads
from crm.repositories.accounts import AccountRepository
from crm.repositories.base import BaseRepository, new_modstamp
from crm.repositories.contacts import ContactRepository
from crm.repositories.opportunities import OpportunityRepository

LEAD_STATUSES = ("New", "Working", "Qualified", "Unqualified")
LEAD_RATINGS = ("Hot", "Warm", "Cold")

CONVERTED_OPPORTUNITY_DAYS = 30


@dataclass
class ConvertOptions:
    create_account: bool = True
    existing_account_id: Optional[str] = None
    create_opportunity: bool = False
    opportunity_name: Optional[str] = None


class LeadRepository(BaseRepository):
    table = leads
    resource_name = "Lead"
    trackable_object_name = "Lead"
    search_columns = ("first_name", "last_name", "company", "email")
    address_groups = {"address": ""}

    def __init__(
        self,
        db,
        history_service=None,
        accounts: Optional[AccountRepository] = None,
        contacts: Optional[ContactRepository] = None,
        opportunities: Optional[OpportunityRepository] = None,
    ):
        super().__init__(db, history_service)
        self.accounts = accounts or AccountRepository(db, history_service)
        self.contacts = contacts or ContactRepository(db, history_service)
        self.opportunities = opportunities or OpportunityRepository(db, history_service)

    def _check(self, data: Dict[str, Any]) -> None:
        ensure_choice(data.get("status"), LEAD_STATUSES, "status")
        ensure_choice(data.get("rating"), LEAD_RATINGS, "rating")

    def validate_create(self, data: Dict[str, Any]) -> None:
        self._check(data)

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        if existing.get("is_converted"):
            raise ValidationError("Converted leads cannot be modified")
        self._check(changes)

    def convert(
        self,
        tenant_id: str,
        user_id: str,
        lead_id: str,
        options: Optional[ConvertOptions] = None,
    ) -> Dict[str, Optional[str]]:
        """
        Convert a lead into account, contact and optional opportunity.

        Returns:
            {"account_id", "contact_id", "opportunity_id"}

        Raises:
            NotFoundError: If the lead or the existing account does not exist
            ValidationError: If the lead is already converted
        """
        options = options or ConvertOptions()

        with self.db.transaction() as conn:
            lead = self.to_record(self._lock(conn, tenant_id, lead_id))
            if lead["is_converted"]:
                raise ValidationError("Lead is already converted")

            owner_id = lead.get("owner_id") or user_id
            account_id: Optional[str] = None

            if options.existing_account_id:
                account = self.accounts.find_by_id(tenant_id, options.existing_account_id, conn=conn)
                if account is None:
                    raise NotFoundError("Account", options.existing_account_id)
                account_id = account["id"]
            elif options.create_account:
                account = self.accounts._insert(conn, tenant_id, user_id, {
                    "name": lead["company"],
                    "industry": lead.get("industry"),
                    "phone": lead.get("phone"),
                    "billing_address": lead.get("address"),
                    "type": "Prospect",
                    "status": "Active",
                    "owner_id": owner_id,
                })
                account_id = account["id"]

            contact = self.contacts._insert(conn, tenant_id, user_id, {
                "account_id": account_id,
                "first_name": lead.get("first_name"),
                "last_name": lead["last_name"],
                "email": lead.get("email"),
                "phone": lead.get("phone"),
                "title": lead.get("title"),
                "mailing_address": lead.get("address"),
                "is_primary": True,
                "owner_id": owner_id,
            })

            opportunity_id: Optional[str] = None
            if options.create_opportunity:
                opportunity_data = self.opportunities.prepare_create({
                    "account_id": account_id,
                    "name": options.opportunity_name or f"{lead['company']} - New Opportunity",
                    "stage_name": "Prospecting",
                    "close_date": (utcnow() + timedelta(days=CONVERTED_OPPORTUNITY_DAYS)).date(),
                    "lead_source": lead.get("lead_source"),
                    "owner_id": owner_id,
                })
                opportunity = self.opportunities._insert(conn, tenant_id, user_id, opportunity_data)
                opportunity_id = opportunity["id"]

            self._mark_converted(conn, tenant_id, user_id, lead_id, account_id, contact["id"], opportunity_id)

        self.logger.info(
            f"Lead {lead_id} converted: account={account_id} contact={contact['id']} "
            f"opportunity={opportunity_id}"
        )
        return {
            "account_id": account_id,
            "contact_id": contact["id"],
            "opportunity_id": opportunity_id,
        }

    def _mark_converted(self, conn, tenant_id, user_id, lead_id, account_id, contact_id, opportunity_id):
        # Bypasses validate_update, which rejects converted leads
        now = utcnow()
        self.db.execute(
            update(self.table)
            .where(self._live(tenant_id), self.table.c.id == lead_id)
            .values(
                is_converted=True,
                status="Qualified",
                converted_at=now,
                converted_account_id=account_id,
                converted_contact_id=contact_id,
                converted_opportunity_id=opportunity_id,
                updated_at=now,
                updated_by=user_id,
                system_modstamp=new_modstamp(),
            ),
            conn=conn,
        )
