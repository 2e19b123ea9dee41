"""
Field history storage: tracked-field settings and the change log.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from crm.core.exceptions import NotFoundError, ValidationError
from crm.core.logging_config import LoggerMixin
from crm.core.serialization import to_json_value, utcnow
from crm.core.validators import parse_cursor
from crm.database.connection import DatabaseConnection
from crm.database.tables import field_histories, field_tracking_settings
from crm.repositories.base import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

TRACKABLE_OBJECTS = (
    "Account",
    "Contact",
    "Lead",
    "Opportunity",
    "Quote",
    "Product",
    "Pricebook",
    "Event",
)


class FieldHistoryRepository(LoggerMixin):
    """Data access for field_histories and field_tracking_settings."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    # ==================== Field History ====================

    def find_history_by_id(self, tenant_id: str, history_id: str) -> Optional[Dict[str, Any]]:
        t = field_histories
        return self.db.fetch_one(select(t).where(t.c.tenant_id == tenant_id, t.c.id == history_id))

    def list_history(
        self,
        tenant_id: str,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: Optional[str] = None,
        object_name: Optional[str] = None,
        record_id: Optional[str] = None,
        field_name: Optional[str] = None,
        changed_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Newest changes first, paged by changed_at."""
        t = field_histories
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        conditions = [t.c.tenant_id == tenant_id]
        if object_name:
            conditions.append(t.c.object_name == object_name)
        if record_id:
            conditions.append(t.c.record_id == record_id)
        if field_name:
            conditions.append(t.c.field_name == field_name)
        if changed_by:
            conditions.append(t.c.changed_by == changed_by)

        total = self.db.fetch_one(
            select(func.count().label("total")).select_from(t).where(and_(*conditions))
        )["total"]

        parsed_cursor = parse_cursor(cursor)
        if parsed_cursor is not None:
            conditions.append(t.c.changed_at < parsed_cursor)

        stmt = select(t).where(and_(*conditions)).order_by(t.c.changed_at.desc(), t.c.id).limit(limit + 1)
        rows = self.db.fetch_all(stmt)
        page = rows[:limit]
        return {
            "records": page,
            "total_size": total,
            "next_cursor": to_json_value(page[-1]["changed_at"]) if len(rows) > limit else None,
        }

    def record_changes(
        self,
        tenant_id: str,
        user_id: str,
        object_name: str,
        record_id: str,
        changes: List[Dict[str, Any]],
    ) -> int:
        """Write one history row per {field_name, old_value, new_value} change."""
        if not changes:
            return 0
        now = utcnow()
        rows = [
            {
                "id": str(uuid.uuid4()),
                "tenant_id": tenant_id,
                "object_name": object_name,
                "record_id": record_id,
                "field_name": change["field_name"],
                "old_value": to_json_value(change["old_value"]),
                "new_value": to_json_value(change["new_value"]),
                "changed_at": now,
                "changed_by": user_id,
            }
            for change in changes
        ]
        self.db.execute(insert(field_histories), rows)
        self.logger.debug(f"Recorded {len(rows)} field change(s) for {object_name} {record_id}")
        return len(rows)

    # ==================== Tracking Settings ====================

    def get_tracked_fields(self, tenant_id: str, object_name: str) -> List[str]:
        t = field_tracking_settings
        stmt = (
            select(t.c.field_name)
            .where(t.c.tenant_id == tenant_id, t.c.object_name == object_name, t.c.is_tracked.is_(True))
            .order_by(t.c.field_name)
        )
        return [row["field_name"] for row in self.db.fetch_all(stmt)]

    def list_tracking_settings(
        self,
        tenant_id: str,
        object_name: Optional[str] = None,
        is_tracked: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        t = field_tracking_settings
        conditions = [t.c.tenant_id == tenant_id]
        if object_name:
            conditions.append(t.c.object_name == object_name)
        if is_tracked is not None:
            conditions.append(t.c.is_tracked.is_(is_tracked))
        stmt = select(t).where(*conditions).order_by(t.c.object_name, t.c.field_name)
        return self.db.fetch_all(stmt)

    def find_tracking_setting(self, tenant_id: str, setting_id: str) -> Optional[Dict[str, Any]]:
        t = field_tracking_settings
        return self.db.fetch_one(select(t).where(t.c.tenant_id == tenant_id, t.c.id == setting_id))

    def create_tracking_setting(
        self,
        tenant_id: str,
        user_id: str,
        object_name: str,
        field_name: str,
        is_tracked: bool = True,
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: For unknown objects or an existing setting
        """
        if object_name not in TRACKABLE_OBJECTS:
            raise ValidationError(f"Object {object_name} does not support field history", field="object_name")

        t = field_tracking_settings
        existing = self.db.fetch_one(
            select(t.c.id).where(
                t.c.tenant_id == tenant_id,
                t.c.object_name == object_name,
                t.c.field_name == field_name,
            )
        )
        if existing:
            raise ValidationError(
                f"Field tracking setting already exists for {object_name}.{field_name}",
                field="field_name",
            )

        now = utcnow()
        stmt = (
            insert(t)
            .values(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                object_name=object_name,
                field_name=field_name,
                is_tracked=is_tracked,
                created_at=now,
                created_by=user_id,
                updated_at=now,
                updated_by=user_id,
            )
            .returning(*t.c)
        )
        try:
            return self.db.fetch_one(stmt)
        except IntegrityError as e:
            raise ValidationError(
                f"Field tracking setting already exists for {object_name}.{field_name}",
                field="field_name",
            ) from e

    def update_tracking_setting(
        self,
        tenant_id: str,
        user_id: str,
        setting_id: str,
        is_tracked: bool,
    ) -> Dict[str, Any]:
        t = field_tracking_settings
        stmt = (
            update(t)
            .where(t.c.tenant_id == tenant_id, t.c.id == setting_id)
            .values(is_tracked=is_tracked, updated_at=utcnow(), updated_by=user_id)
            .returning(*t.c)
        )
        row = self.db.fetch_one(stmt)
        if row is None:
            raise NotFoundError("FieldTrackingSetting", setting_id)
        return row

    def delete_tracking_setting(self, tenant_id: str, setting_id: str) -> Dict[str, Any]:
        """Hard-delete a setting and return the removed row."""
        t = field_tracking_settings
        with self.db.transaction() as conn:
            row = self.db.fetch_one(
                select(t).where(t.c.tenant_id == tenant_id, t.c.id == setting_id), conn=conn
            )
            if row is None:
                raise NotFoundError("FieldTrackingSetting", setting_id)
            self.db.execute(delete(t).where(t.c.id == setting_id), conn=conn)
        return row
