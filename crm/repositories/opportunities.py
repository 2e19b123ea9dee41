"""
Opportunity repository.

Stage changes drive probability, forecast category and the closed/won
flags through STAGE_CONFIG.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from crm.core.exceptions import ValidationError
from crm.database.tables import opportunities
from crm.repositories.base import BaseRepository

STAGE_CONFIG: Dict[str, Dict[str, Any]] = {
    "Prospecting": {"probability": 10, "forecast_category": "Pipeline", "is_closed": False, "is_won": False},
    "Qualification": {"probability": 20, "forecast_category": "Pipeline", "is_closed": False, "is_won": False},
    "Needs Analysis": {"probability": 30, "forecast_category": "Pipeline", "is_closed": False, "is_won": False},
    "Value Proposition": {"probability": 50, "forecast_category": "Best Case", "is_closed": False, "is_won": False},
    "Proposal/Price Quote": {"probability": 75, "forecast_category": "Best Case", "is_closed": False, "is_won": False},
    "Negotiation/Review": {"probability": 90, "forecast_category": "Commit", "is_closed": False, "is_won": False},
    "Closed Won": {"probability": 100, "forecast_category": "Closed", "is_closed": True, "is_won": True},
    "Closed Lost": {"probability": 0, "forecast_category": "Closed", "is_closed": True, "is_won": False},
}

DEFAULT_STAGE = "Prospecting"
FORECAST_CATEGORIES = ("Pipeline", "Best Case", "Commit", "Omitted", "Closed")


def stage_values(stage_name: str) -> Dict[str, Any]:
    """Derived fields for a stage, raising ValidationError for unknown stages."""
    config = STAGE_CONFIG.get(stage_name)
    if config is None:
        raise ValidationError(
            f"Invalid stage: {stage_name}. Valid stages: {', '.join(STAGE_CONFIG)}",
            field="stage_name",
        )
    return {"stage_name": stage_name, **config}


class OpportunityRepository(BaseRepository):
    table = opportunities
    resource_name = "Opportunity"
    trackable_object_name = "Opportunity"
    search_columns = ("name", "next_step", "lead_source")

    def prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # Explicit probability/forecast values win over stage defaults
        derived = stage_values(data.get("stage_name") or DEFAULT_STAGE)
        for key, value in derived.items():
            if data.get(key) is None:
                data[key] = value
        data["is_closed"] = derived["is_closed"]
        data["is_won"] = derived["is_won"]
        return data

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        if "stage_name" in changes:
            derived = stage_values(changes["stage_name"])
            changes["is_closed"] = derived["is_closed"]
            changes["is_won"] = derived["is_won"]
            changes.setdefault("probability", derived["probability"])
            changes.setdefault("forecast_category", derived["forecast_category"])

    def find_by_account_id(self, tenant_id: str, account_id: str) -> List[Dict[str, Any]]:
        t = self.table
        stmt = (
            select(t)
            .where(self._live(tenant_id), t.c.account_id == account_id)
            .order_by(t.c.close_date.desc())
        )
        return [self.to_record(row) for row in self.db.fetch_all(stmt)]

    def change_stage(
        self,
        tenant_id: str,
        user_id: str,
        opportunity_id: str,
        stage_name: str,
        etag: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Move to a stage, resetting probability and forecast category."""
        return self.update(tenant_id, user_id, opportunity_id, stage_values(stage_name), etag)

    def close(
        self,
        tenant_id: str,
        user_id: str,
        opportunity_id: str,
        is_won: bool,
        lost_reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Close as won or lost; lost_reason is only kept for lost deals."""
        data = stage_values("Closed Won" if is_won else "Closed Lost")
        data["lost_reason"] = None if is_won else lost_reason
        return self.update(tenant_id, user_id, opportunity_id, data)
