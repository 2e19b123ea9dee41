"""
Services module - logic spanning several repositories.

- field_history_service.py : tracked-field cache and change recording
"""
from crm.services.field_history_service import FieldHistoryService, values_equal

__all__ = [
    "FieldHistoryService",
    "values_equal",
]
