"""
Event repository.

Events use offset pagination ordered by start time and link to one "who"
(Lead or Contact) and one "what" (Account, Opportunity or Quote).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from crm.core.exceptions import ValidationError
from crm.core.serialization import as_utc
from crm.core.validators import ensure_choice
from crm.database.tables import events
from crm.repositories.base import MAX_PAGE_SIZE, BaseRepository

WHO_TYPES = ("Lead", "Contact")
WHAT_TYPES = ("Account", "Opportunity", "Quote")
SORT_COLUMNS = ("created_at", "updated_at", "subject", "start_date_time", "end_date_time")


@dataclass
class EventListParams:
    owner_id: Optional[str] = None
    who_type: Optional[str] = None
    who_id: Optional[str] = None
    what_type: Optional[str] = None
    what_id: Optional[str] = None
    start_from: Optional[datetime] = None
    start_to: Optional[datetime] = None
    limit: int = 50
    offset: int = 0
    sort_by: str = "start_date_time"
    sort_order: str = "asc"


class EventRepository(BaseRepository):
    table = events
    resource_name = "Event"
    trackable_object_name = "Event"
    search_columns = ("subject", "location")

    def _check_links(self, data: Dict[str, Any]) -> None:
        ensure_choice(data.get("who_type"), WHO_TYPES, "who_type")
        ensure_choice(data.get("what_type"), WHAT_TYPES, "what_type")

    @staticmethod
    def _check_window(start: Optional[datetime], end: Optional[datetime]) -> None:
        if start is not None and end is not None and as_utc(end) < as_utc(start):
            raise ValidationError("End date/time must be after start date/time", field="end_date_time")

    def validate_create(self, data: Dict[str, Any]) -> None:
        errors = [
            {"field": name, "message": f"{name} is required"}
            for name in ("subject", "start_date_time", "end_date_time")
            if not data.get(name)
        ]
        if errors:
            raise ValidationError("Missing required fields", errors=errors)
        self._check_links(data)
        self._check_window(data["start_date_time"], data["end_date_time"])

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        for name in ("subject", "start_date_time", "end_date_time"):
            if name in changes and not changes[name]:
                raise ValidationError(f"{name} is required", field=name)
        self._check_links(changes)
        self._check_window(
            changes.get("start_date_time", existing.get("start_date_time")),
            changes.get("end_date_time", existing.get("end_date_time")),
        )

    def list_events(self, tenant_id: str, params: Optional[EventListParams] = None) -> Dict[str, Any]:
        """
        Filtered, offset-paginated event list.

        Unknown sort columns fall back to start_date_time.
        """
        params = params or EventListParams()
        t = self.table

        conditions = [self._live(tenant_id)]
        for name in ("owner_id", "who_type", "who_id", "what_type", "what_id"):
            value = getattr(params, name)
            if value:
                conditions.append(t.c[name] == value)
        if params.start_from:
            conditions.append(t.c.start_date_time >= params.start_from)
        if params.start_to:
            conditions.append(t.c.start_date_time <= params.start_to)

        total = self.db.fetch_one(
            select(func.count().label("total")).select_from(t).where(*conditions)
        )["total"]

        sort_column = t.c[params.sort_by if params.sort_by in SORT_COLUMNS else "start_date_time"]
        ordering = sort_column.asc() if params.sort_order.lower() == "asc" else sort_column.desc()
        limit = max(1, min(params.limit, MAX_PAGE_SIZE))

        stmt = (
            select(t)
            .where(*conditions)
            .order_by(ordering, t.c.id)
            .limit(limit)
            .offset(max(0, params.offset))
        )
        return {
            "records": [self.to_record(row) for row in self.db.fetch_all(stmt)],
            "total_size": total,
        }

    def list_by_related_record(
        self,
        tenant_id: str,
        relation: str,
        record_type: str,
        record_id: str,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """
        Most recent events linked to a record.

        Args:
            relation: "who" or "what"
        """
        if relation == "who":
            ensure_choice(record_type, WHO_TYPES, "who_type")
        elif relation == "what":
            ensure_choice(record_type, WHAT_TYPES, "what_type")
        else:
            raise ValidationError("relation must be 'who' or 'what'", field="relation")

        t = self.table
        stmt = (
            select(t)
            .where(
                self._live(tenant_id),
                t.c[f"{relation}_type"] == record_type,
                t.c[f"{relation}_id"] == record_id,
            )
            .order_by(t.c.start_date_time.desc())
            .limit(max(1, min(limit, MAX_PAGE_SIZE)))
        )
        return [self.to_record(row) for row in self.db.fetch_all(stmt)]
