"""
Input Validators - Small checks shared by routes and repositories.

Each helper raises ValidationError with the offending field name, so
callers do not have to build error payloads themselves.
"""
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from crm.core.exceptions import ValidationError
from crm.core.logging_config import get_logger

logger = get_logger(__name__)


def is_uuid(value: Optional[str]) -> bool:
    """Check whether value parses as a UUID."""
    if not value:
        return False
    try:
        uuid.UUID(str(value))
    except (ValueError, AttributeError):
        return False
    return True


def ensure_uuid(value: Optional[str], field: str = "id") -> str:
    """
    Validate and normalize a UUID string.

    Args:
        value: Candidate identifier
        field: Field name reported on failure

    Returns:
        The canonical lowercase string form

    Raises:
        ValidationError: If value is empty or not a UUID
    """
    if not is_uuid(value):
        logger.debug(f"Rejected non-UUID value for {field}")
        raise ValidationError(f"Invalid {field} format", field=field)
    return str(uuid.UUID(str(value)))


def ensure_choice(value: Optional[str], allowed: Iterable[str], field: str) -> Optional[str]:
    """Allow None or one of the allowed values."""
    if value is None:
        return None
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValidationError(
            f"Invalid {field}: {value}. Must be one of: {', '.join(allowed)}",
            field=field,
        )
    return value


def parse_cursor(cursor: Optional[str]) -> Optional[datetime]:
    """
    Parse a pagination cursor (an ISO-8601 timestamp).

    Naive timestamps are taken as UTC.
    """
    if not cursor:
        return None
    try:
        parsed = datetime.fromisoformat(cursor.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("Invalid cursor", field="cursor")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
