"""Account repository."""
from typing import Any, Dict

from crm.core.validators import ensure_choice
from crm.database.tables import accounts
from crm.repositories.base import BaseRepository

ACCOUNT_TYPES = ("Prospect", "Customer", "Partner", "Competitor", "Other")
ACCOUNT_STATUSES = ("Active", "Inactive")


class AccountRepository(BaseRepository):
    table = accounts
    resource_name = "Account"
    trackable_object_name = "Account"
    search_columns = ("name", "industry", "website", "phone")
    address_groups = {
        "billing_address": "billing_",
        "shipping_address": "shipping_",
    }

    def _check(self, data: Dict[str, Any]) -> None:
        ensure_choice(data.get("type"), ACCOUNT_TYPES, "type")
        ensure_choice(data.get("status"), ACCOUNT_STATUSES, "status")

    def validate_create(self, data: Dict[str, Any]) -> None:
        self._check(data)

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        self._check(changes)
