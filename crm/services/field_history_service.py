"""
Field History Service - records changes to tracked fields.

Repositories call track_changes() after a successful update with the
record before and after the change. Only fields enabled in the tenant's
field tracking settings are compared, and one history row is written per
changed field.

The list of tracked fields per (tenant, object) is cached for five
minutes. Changing a tracking setting through this service clears the
tenant's cache entries.
"""
import threading
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from crm.core.logging_config import get_logger
from crm.core.serialization import as_utc, to_json_value
from crm.repositories.field_history import FieldHistoryRepository

logger = get_logger(__name__)

CACHE_TTL_SECONDS = 5 * 60


def values_equal(a: Any, b: Any) -> bool:
    """
    Compare two field values the way history tracking needs.

    None and missing are the same; datetimes compare as instants; dates,
    decimals and nested objects compare by their JSON form.
    """
    if a is None or b is None:
        return a is None and b is None

    if isinstance(a, datetime) and isinstance(b, datetime):
        return as_utc(a) == as_utc(b)

    return to_json_value(a) == to_json_value(b)


class FieldHistoryService:
    """
    Tracks field changes for audit purposes.

    Example:
        >>> service = FieldHistoryService(FieldHistoryRepository(db))
        >>> service.track_changes(tenant_id, user_id, "Account", account_id, old, new)
    """

    def __init__(self, repository: FieldHistoryRepository, ttl_seconds: float = CACHE_TTL_SECONDS):
        self.repository = repository
        self.ttl_seconds = ttl_seconds
        self._cache: Dict[Tuple[str, str], Tuple[List[str], float]] = {}
        self._lock = threading.Lock()

    def get_tracked_fields(self, tenant_id: str, object_name: str) -> List[str]:
        key = (tenant_id, object_name)
        now = time.monotonic()
        with self._lock:
            cached = self._cache.get(key)
            if cached and cached[1] > now:
                return cached[0]

        fields = self.repository.get_tracked_fields(tenant_id, object_name)
        with self._lock:
            self._cache[key] = (fields, now + self.ttl_seconds)
        return fields

    def clear_cache(self, tenant_id: str, object_name: Optional[str] = None) -> None:
        """Drop cached tracked fields for one object, or for the whole tenant."""
        with self._lock:
            if object_name:
                self._cache.pop((tenant_id, object_name), None)
            else:
                for key in [k for k in self._cache if k[0] == tenant_id]:
                    del self._cache[key]

    def diff(
        self,
        tracked_fields: List[str],
        old_record: Optional[Dict[str, Any]],
        new_record: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        changes = []
        for field_name in tracked_fields:
            old_value = old_record.get(field_name) if old_record else None
            new_value = new_record.get(field_name)
            if not values_equal(old_value, new_value):
                changes.append({
                    "field_name": field_name,
                    "old_value": old_value,
                    "new_value": new_value,
                })
        return changes

    def track_changes(
        self,
        tenant_id: str,
        user_id: str,
        object_name: str,
        record_id: str,
        old_record: Optional[Dict[str, Any]],
        new_record: Dict[str, Any],
    ) -> int:
        """
        Record a history row for every tracked field that changed.

        Returns:
            Number of history rows written
        """
        tracked_fields = self.get_tracked_fields(tenant_id, object_name)
        if not tracked_fields:
            return 0

        changes = self.diff(tracked_fields, old_record, new_record)
        if not changes:
            return 0

        logger.debug(
            f"Tracking {len(changes)} change(s) on {object_name} {record_id}: "
            f"{', '.join(c['field_name'] for c in changes)}"
        )
        return self.repository.record_changes(tenant_id, user_id, object_name, record_id, changes)

    # Tracking settings changes go through here so the cache stays fresh.

    def create_tracking_setting(self, tenant_id: str, user_id: str, object_name: str,
                                field_name: str, is_tracked: bool = True) -> Dict[str, Any]:
        setting = self.repository.create_tracking_setting(
            tenant_id, user_id, object_name, field_name, is_tracked
        )
        self.clear_cache(tenant_id, object_name)
        return setting

    def update_tracking_setting(self, tenant_id: str, user_id: str, setting_id: str,
                                is_tracked: bool) -> Dict[str, Any]:
        setting = self.repository.update_tracking_setting(tenant_id, user_id, setting_id, is_tracked)
        self.clear_cache(tenant_id, setting["object_name"])
        return setting

    def delete_tracking_setting(self, tenant_id: str, setting_id: str) -> None:
        setting = self.repository.delete_tracking_setting(tenant_id, setting_id)
        self.clear_cache(tenant_id, setting["object_name"])
