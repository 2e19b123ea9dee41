"""
Sharing rule repository.

Rules are stored and validated here; evaluating them into record access is
outside this service.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from crm.core.exceptions import ValidationError
from crm.core.validators import ensure_choice
from crm.database.tables import sharing_rules
from crm.repositories.base import BaseRepository

RULE_TYPES = ("OwnerBased", "CriteriaBased")
SOURCE_TYPES = ("Role", "RoleAndSubordinates", "PublicGroup")
TARGET_TYPES = ("Role", "RoleAndSubordinates", "PublicGroup", "User")
ACCESS_LEVELS = ("Read", "ReadWrite")


class SharingRuleRepository(BaseRepository):
    table = sharing_rules
    resource_name = "SharingRule"
    search_columns = ("name", "object_name", "description")
    owned = False

    def _check(self, rule: Dict[str, Any]) -> None:
        ensure_choice(rule.get("rule_type"), RULE_TYPES, "rule_type")
        ensure_choice(rule.get("source_type"), SOURCE_TYPES, "source_type")
        ensure_choice(rule.get("target_type"), TARGET_TYPES, "target_type")
        ensure_choice(rule.get("access_level"), ACCESS_LEVELS, "access_level")

        if rule.get("rule_type") == "OwnerBased" and not (rule.get("source_type") and rule.get("source_id")):
            raise ValidationError(
                "Owner-based rules require source_type and source_id",
                errors=[
                    {"field": "source_type", "message": "required for OwnerBased rules"},
                    {"field": "source_id", "message": "required for OwnerBased rules"},
                ],
            )
        if rule.get("rule_type") == "CriteriaBased":
            criteria = rule.get("filter_criteria")
            if not isinstance(criteria, dict) or not criteria:
                raise ValidationError(
                    "Criteria-based rules require filter_criteria",
                    field="filter_criteria",
                )

    def prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("access_level") is None:
            data["access_level"] = "Read"
        return data

    def validate_create(self, data: Dict[str, Any]) -> None:
        self._check(data)

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        self._check({**existing, **changes})

    def find_all(
        self,
        tenant_id: str,
        object_name: Optional[str] = None,
        active_only: bool = False,
    ) -> List[Dict[str, Any]]:
        t = self.table
        conditions = [self._live(tenant_id)]
        if object_name:
            conditions.append(t.c.object_name == object_name)
        if active_only:
            conditions.append(t.c.is_active.is_(True))
        stmt = select(t).where(*conditions).order_by(t.c.object_name, t.c.name)
        return [self.to_record(row) for row in self.db.fetch_all(stmt)]
