"""
Base repository - tenant-scoped CRUD shared by every record type.

A repository maps between API records (nested address objects, snake_case
fields) and flat table rows, and builds every statement with SQLAlchemy
Core so values are always bound parameters.

Conventions:
- Every query is scoped to one tenant and hides soft-deleted rows
- Each write stamps updated_at/updated_by and a new system_modstamp
- system_modstamp doubles as the ETag for optimistic concurrency
- Private helpers take an open connection so callers can compose several
  writes into one transaction
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Boolean, Table, and_, func, insert, or_, select, update
from sqlalchemy.engine import Connection

from crm.core.exceptions import ConflictError, NotFoundError, ValidationError
from crm.core.logging_config import LoggerMixin
from crm.core.serialization import to_json_value, utcnow
from crm.core.validators import parse_cursor
from crm.database.connection import DatabaseConnection

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

ADDRESS_PARTS = ("street", "city", "state", "postal_code", "country")

# Columns callers can never write directly
PROTECTED_COLUMNS = frozenset({
    "id",
    "tenant_id",
    "created_at",
    "created_by",
    "updated_at",
    "updated_by",
    "is_deleted",
    "system_modstamp",
})


@dataclass
class ListParams:
    """Paging, ordering, search and equality filters for list()."""
    limit: int = DEFAULT_PAGE_SIZE
    cursor: Optional[str] = None
    order_by: str = "created_at"
    order_dir: str = "desc"
    search: Optional[str] = None
    filters: Dict[str, Any] = field(default_factory=dict)


def new_modstamp() -> str:
    return str(uuid.uuid4())


class BaseRepository(LoggerMixin):
    """
    Generic repository for a soft-deletable, tenant-scoped table.

    Subclasses set:
        table: the SQLAlchemy table
        resource_name: name used in errors ("Account")
        trackable_object_name: object name for field history, or None
        search_columns: columns matched by the search parameter
        owned: whether rows carry owner_id
        address_groups: API field -> column prefix for nested addresses
    """

    table: Table
    resource_name: str = "Record"
    trackable_object_name: Optional[str] = None
    search_columns: Tuple[str, ...] = ("name",)
    owned: bool = True
    address_groups: Dict[str, str] = {}

    def __init__(self, db: DatabaseConnection, history_service=None):
        self.db = db
        self.history_service = history_service

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.table.columns]

    def to_record(self, row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Convert a table row into an API record (nesting addresses)."""
        if row is None:
            return None
        record = dict(row)
        for api_field, prefix in self.address_groups.items():
            record[api_field] = {part: record.pop(f"{prefix}{part}", None) for part in ADDRESS_PARTS}
        return record

    def to_row(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert API data into column values (flattening addresses).

        Keys that are not columns are dropped, as are protected columns.
        Address objects only write the parts they contain.
        """
        row: Dict[str, Any] = {}
        columns = set(self.column_names)
        for key, value in data.items():
            if key in self.address_groups:
                prefix = self.address_groups[key]
                for part, part_value in (value or {}).items():
                    if part in ADDRESS_PARTS:
                        row[f"{prefix}{part}"] = part_value
                if value is None:
                    for part in ADDRESS_PARTS:
                        row[f"{prefix}{part}"] = None
                continue
            if key in columns and key not in PROTECTED_COLUMNS:
                row[key] = value
        return row

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def validate_create(self, data: Dict[str, Any]) -> None:
        """Raise ValidationError for invalid new records."""

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        """Raise ValidationError for invalid changes to an existing record."""

    def prepare_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Fill derived values before insert."""
        return data

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _live(self, tenant_id: str):
        t = self.table
        return and_(t.c.tenant_id == tenant_id, t.c.is_deleted.is_(False))

    def find_by_id(
        self,
        tenant_id: str,
        record_id: str,
        conn: Optional[Connection] = None,
    ) -> Optional[Dict[str, Any]]:
        """Return the live record, or None when missing or soft-deleted."""
        stmt = select(self.table).where(self._live(tenant_id), self.table.c.id == record_id)
        return self.to_record(self.db.fetch_one(stmt, conn=conn))

    def find_by_id_or_raise(
        self,
        tenant_id: str,
        record_id: str,
        conn: Optional[Connection] = None,
    ) -> Dict[str, Any]:
        record = self.find_by_id(tenant_id, record_id, conn=conn)
        if record is None:
            raise NotFoundError(self.resource_name, record_id)
        return record

    def _filter_conditions(self, filters: Dict[str, Any]) -> list:
        conditions = []
        for name, value in filters.items():
            if value is None or value == "":
                continue
            if name not in self.table.c or name in ("tenant_id", "is_deleted"):
                raise ValidationError(f"Unknown filter field: {name}", field=name)
            column = self.table.c[name]
            if isinstance(value, str) and isinstance(column.type, Boolean):
                value = value.lower() in ("true", "1", "yes")
            conditions.append(column == value)
        return conditions

    def _search_condition(self, search: str):
        escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        return or_(*[self.table.c[name].ilike(pattern, escape="\\") for name in self.search_columns])

    def list(
        self,
        tenant_id: str,
        params: Optional[ListParams] = None,
        conn: Optional[Connection] = None,
    ) -> Dict[str, Any]:
        """
        List live records with cursor pagination.

        The cursor is the created_at of the last record on the previous
        page; the next page holds strictly older rows, or strictly newer
        ones with order_dir="asc". Cursors only page through created_at
        ordering: other orderings return no next_cursor and reject one.
        total_size counts every match, ignoring the cursor.

        Returns:
            {"records": [...], "total_size": int, "next_cursor": str | None}
        """
        params = params or ListParams()
        t = self.table

        if params.order_by not in t.c:
            raise ValidationError(f"Invalid order_by field: {params.order_by}", field="order_by")
        if params.order_dir.lower() not in ("asc", "desc"):
            raise ValidationError("order_dir must be 'asc' or 'desc'", field="order_dir")
        limit = max(1, min(params.limit, MAX_PAGE_SIZE))

        conditions = [self._live(tenant_id), *self._filter_conditions(params.filters)]
        if params.search:
            conditions.append(self._search_condition(params.search))

        count_stmt = select(func.count().label("total")).select_from(t).where(*conditions)
        total = self.db.fetch_one(count_stmt, conn=conn)["total"]

        ascending = params.order_dir.lower() == "asc"
        pageable = params.order_by == "created_at"
        cursor = parse_cursor(params.cursor)
        if cursor is not None:
            if not pageable:
                raise ValidationError("cursor requires order_by=created_at", field="cursor")
            conditions.append(t.c.created_at > cursor if ascending else t.c.created_at < cursor)

        order_column = t.c[params.order_by]
        ordering = order_column.asc() if ascending else order_column.desc()
        stmt = select(t).where(*conditions).order_by(ordering, t.c.id).limit(limit + 1)

        rows = self.db.fetch_all(stmt, conn=conn)
        page = rows[:limit]
        has_more = len(rows) > limit

        return {
            "records": [self.to_record(r) for r in page],
            "total_size": total,
            "next_cursor": to_json_value(page[-1]["created_at"]) if pageable and has_more and page else None,
        }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _insert(
        self,
        conn: Connection,
        tenant_id: str,
        user_id: str,
        data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Insert a record on an open connection and return it."""
        now = utcnow()
        row = self.to_row(data)
        row.update(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            created_at=now,
            created_by=user_id,
            updated_at=now,
            updated_by=user_id,
            is_deleted=False,
            system_modstamp=new_modstamp(),
        )
        if self.owned:
            row["owner_id"] = data.get("owner_id") or user_id

        stmt = insert(self.table).values(**row).returning(*self.table.c)
        created = self.to_record(self.db.fetch_one(stmt, conn=conn))
        self.logger.debug(f"Created {self.resource_name} {created['id']}")
        return created

    def create(self, tenant_id: str, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a record with a fresh id, owner, audit columns and modstamp.

        Raises:
            ValidationError: If the data fails validate_create()
        """
        data = self.prepare_create(dict(data))
        self.validate_create(data)
        with self.db.transaction() as conn:
            record = self._insert(conn, tenant_id, user_id, data)
        self.logger.info(f"{self.resource_name} created: {record['id']}")
        return record

    def _lock(self, conn: Connection, tenant_id: str, record_id: str) -> Dict[str, Any]:
        """SELECT ... FOR UPDATE the live row, raising NotFoundError if absent."""
        stmt = (
            select(self.table)
            .where(self._live(tenant_id), self.table.c.id == record_id)
            .with_for_update()
        )
        row = self.db.fetch_one(stmt, conn=conn)
        if row is None:
            raise NotFoundError(self.resource_name, record_id)
        return row

    def _update(
        self,
        conn: Connection,
        tenant_id: str,
        user_id: str,
        record_id: str,
        data: Dict[str, Any],
        etag: Optional[str] = None,
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Lock, check the ETag and update a record on an open connection.

        Returns:
            (old_record, new_record)

        Raises:
            NotFoundError: If the record is missing or soft-deleted
            ConflictError: If etag is given and differs from system_modstamp
        """
        locked = self._lock(conn, tenant_id, record_id)
        if etag and locked["system_modstamp"] != etag:
            raise ConflictError()

        old_record = self.to_record(locked)
        changes = self.to_row(data)
        self.validate_update(old_record, changes)
        changes.update(
            updated_at=utcnow(),
            updated_by=user_id,
            system_modstamp=new_modstamp(),
        )

        stmt = (
            update(self.table)
            .where(self._live(tenant_id), self.table.c.id == record_id)
            .values(**changes)
            .returning(*self.table.c)
        )
        new_record = self.to_record(self.db.fetch_one(stmt, conn=conn))
        return old_record, new_record

    def update(
        self,
        tenant_id: str,
        user_id: str,
        record_id: str,
        data: Dict[str, Any],
        etag: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Update a record inside one transaction, then record field history.

        History tracking happens after commit; its failures are logged and
        do not undo the update.
        """
        with self.db.transaction() as conn:
            old_record, new_record = self._update(conn, tenant_id, user_id, record_id, data, etag)

        self.logger.info(f"{self.resource_name} updated: {record_id}")
        self.track_history(tenant_id, user_id, record_id, old_record, new_record)
        return new_record

    def track_history(
        self,
        tenant_id: str,
        user_id: str,
        record_id: str,
        old_record: Dict[str, Any],
        new_record: Dict[str, Any],
    ) -> None:
        if not self.trackable_object_name or self.history_service is None:
            return
        try:
            self.history_service.track_changes(
                tenant_id,
                user_id,
                self.trackable_object_name,
                record_id,
                old_record,
                new_record,
            )
        except Exception:
            self.logger.exception(
                f"Field history tracking failed for {self.resource_name} {record_id}"
            )

    def delete(self, tenant_id: str, user_id: str, record_id: str) -> None:
        """
        Soft-delete a record.

        Raises:
            NotFoundError: If no live record matched
        """
        stmt = (
            update(self.table)
            .where(self._live(tenant_id), self.table.c.id == record_id)
            .values(
                is_deleted=True,
                updated_at=utcnow(),
                updated_by=user_id,
                system_modstamp=new_modstamp(),
            )
        )
        if self.db.execute(stmt) == 0:
            raise NotFoundError(self.resource_name, record_id)
        self.logger.info(f"{self.resource_name} deleted: {record_id}")
