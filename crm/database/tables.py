"""
Table metadata for the CRM schema.

These SQLAlchemy Core tables mirror migrations/*.sql so repositories can
build statements with bound parameters instead of string concatenation.
Foreign keys, indexes and check constraints live in the migrations only;
tests create this metadata on SQLite.
"""
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

JSONType = JSON().with_variant(JSONB(), "postgresql")
Money = Numeric(18, 2, asdecimal=False)


def _id() -> Column:
    return Column("id", Uuid(as_uuid=False), primary_key=True)


def _tenant() -> Column:
    return Column("tenant_id", Uuid(as_uuid=False), nullable=False, index=True)


def _record_columns(owned: bool = True) -> list:
    """id, tenant, optional owner, audit columns, soft delete flag and modstamp."""
    columns = [_id(), _tenant()]
    if owned:
        columns.append(Column("owner_id", Uuid(as_uuid=False)))
    columns.extend([
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("created_by", Uuid(as_uuid=False)),
        Column("updated_at", DateTime(timezone=True), nullable=False),
        Column("updated_by", Uuid(as_uuid=False)),
        Column("is_deleted", Boolean, nullable=False, default=False),
        Column("system_modstamp", String(36), nullable=False),
    ])
    return columns


def _address(prefix: str) -> list:
    head = f"{prefix}_" if prefix else ""
    return [
        Column(f"{head}street", Text),
        Column(f"{head}city", String(100)),
        Column(f"{head}state", String(100)),
        Column(f"{head}postal_code", String(20)),
        Column(f"{head}country", String(100)),
    ]


schema_migrations = Table(
    "schema_migrations",
    metadata,
    Column("version", String(255), primary_key=True),
    Column("executed_at", DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP")),
)

tenants = Table(
    "tenants",
    metadata,
    _id(),
    Column("name", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP")),
)

users = Table(
    "users",
    metadata,
    _id(),
    _tenant(),
    Column("email", String(255), nullable=False),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP")),
)

accounts = Table(
    "accounts",
    metadata,
    *_record_columns(),
    Column("name", String(255), nullable=False),
    Column("type", String(40)),
    Column("parent_id", Uuid(as_uuid=False)),
    Column("industry", String(100)),
    Column("website", String(255)),
    Column("phone", String(40)),
    *_address("billing"),
    *_address("shipping"),
    Column("annual_revenue", Money),
    Column("number_of_employees", Integer),
    Column("status", String(20), nullable=False, default="Active"),
    Column("description", Text),
)

contacts = Table(
    "contacts",
    metadata,
    *_record_columns(),
    Column("account_id", Uuid(as_uuid=False), index=True),
    Column("first_name", String(100)),
    Column("last_name", String(100), nullable=False),
    Column("email", String(255)),
    Column("phone", String(40)),
    Column("mobile_phone", String(40)),
    Column("title", String(128)),
    Column("department", String(100)),
    *_address("mailing"),
    Column("is_primary", Boolean, nullable=False, default=False),
    Column("description", Text),
)

leads = Table(
    "leads",
    metadata,
    *_record_columns(),
    Column("first_name", String(100)),
    Column("last_name", String(100), nullable=False),
    Column("company", String(255), nullable=False),
    Column("email", String(255)),
    Column("phone", String(40)),
    Column("title", String(128)),
    Column("industry", String(100)),
    Column("lead_source", String(100)),
    Column("status", String(40), nullable=False, default="New"),
    Column("rating", String(20)),
    *_address(""),
    Column("description", Text),
    Column("is_converted", Boolean, nullable=False, default=False),
    Column("converted_at", DateTime(timezone=True)),
    Column("converted_account_id", Uuid(as_uuid=False)),
    Column("converted_contact_id", Uuid(as_uuid=False)),
    Column("converted_opportunity_id", Uuid(as_uuid=False)),
)

opportunities = Table(
    "opportunities",
    metadata,
    *_record_columns(),
    Column("account_id", Uuid(as_uuid=False), index=True),
    Column("name", String(255), nullable=False),
    Column("stage_name", String(40), nullable=False),
    Column("amount", Money),
    Column("close_date", Date, nullable=False),
    Column("probability", Integer),
    Column("forecast_category", String(40)),
    Column("is_closed", Boolean, nullable=False, default=False),
    Column("is_won", Boolean, nullable=False, default=False),
    Column("lost_reason", Text),
    Column("type", String(40)),
    Column("lead_source", String(100)),
    Column("next_step", String(255)),
    Column("description", Text),
    Column("pricebook_id", Uuid(as_uuid=False)),
    Column("primary_quote_id", Uuid(as_uuid=False)),
)

quotes = Table(
    "quotes",
    metadata,
    *_record_columns(),
    Column("opportunity_id", Uuid(as_uuid=False), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("status", String(20), nullable=False, default="Draft"),
    Column("is_primary", Boolean, nullable=False, default=False),
    Column("expiration_date", Date),
    Column("subtotal", Money),
    Column("discount", Money),
    Column("total_price", Money),
    Column("tax_amount", Money),
    Column("grand_total", Money),
    *_address("billing"),
    *_address("shipping"),
    Column("pricebook_id", Uuid(as_uuid=False)),
    Column("description", Text),
)

products = Table(
    "products",
    metadata,
    *_record_columns(owned=False),
    Column("name", String(255), nullable=False),
    Column("product_code", String(100)),
    Column("description", Text),
    Column("family", String(100)),
    Column("is_active", Boolean, nullable=False, default=True),
)

pricebooks = Table(
    "pricebooks",
    metadata,
    *_record_columns(owned=False),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("is_standard", Boolean, nullable=False, default=False),
)

events = Table(
    "events",
    metadata,
    *_record_columns(),
    Column("subject", String(255), nullable=False),
    Column("start_date_time", DateTime(timezone=True), nullable=False),
    Column("end_date_time", DateTime(timezone=True), nullable=False),
    Column("is_all_day_event", Boolean, nullable=False, default=False),
    Column("location", String(255)),
    Column("who_type", String(20)),
    Column("who_id", Uuid(as_uuid=False)),
    Column("what_type", String(20)),
    Column("what_id", Uuid(as_uuid=False)),
    Column("description", Text),
)

sharing_rules = Table(
    "sharing_rules",
    metadata,
    *_record_columns(owned=False),
    Column("name", String(255), nullable=False),
    Column("object_name", String(100), nullable=False),
    Column("rule_type", String(20), nullable=False),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("source_type", String(40)),
    Column("source_id", Uuid(as_uuid=False)),
    Column("target_type", String(40), nullable=False),
    Column("target_id", Uuid(as_uuid=False), nullable=False),
    Column("access_level", String(20), nullable=False, default="Read"),
    Column("filter_criteria", JSONType),
)

approval_processes = Table(
    "approval_processes",
    metadata,
    *_record_columns(owned=False),
    Column("name", String(255), nullable=False),
    Column("object_name", String(100), nullable=False),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("steps", JSONType, nullable=False),
)

approval_instances = Table(
    "approval_instances",
    metadata,
    _id(),
    _tenant(),
    Column("process_definition_id", Uuid(as_uuid=False), nullable=False),
    Column("target_object_name", String(100), nullable=False),
    Column("target_record_id", Uuid(as_uuid=False), nullable=False, index=True),
    Column("submitted_by", Uuid(as_uuid=False), nullable=False),
    Column("submitted_at", DateTime(timezone=True), nullable=False),
    Column("status", String(20), nullable=False),
    Column("current_step", Integer, nullable=False, default=1),
    Column("completed_at", DateTime(timezone=True)),
    Column("comments", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

approval_work_items = Table(
    "approval_work_items",
    metadata,
    _id(),
    _tenant(),
    Column("approval_instance_id", Uuid(as_uuid=False), nullable=False, index=True),
    Column("step_number", Integer, nullable=False),
    Column("approver_id", Uuid(as_uuid=False), nullable=False),
    Column("original_approver_id", Uuid(as_uuid=False)),
    Column("status", String(20), nullable=False),
    Column("comments", Text),
    Column("decided_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

approval_history = Table(
    "approval_history",
    metadata,
    _id(),
    _tenant(),
    Column("approval_instance_id", Uuid(as_uuid=False), nullable=False, index=True),
    Column("step_number", Integer),
    Column("action", String(20), nullable=False),
    Column("actor_id", Uuid(as_uuid=False), nullable=False),
    Column("comments", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

field_histories = Table(
    "field_histories",
    metadata,
    _id(),
    _tenant(),
    Column("object_name", String(100), nullable=False),
    Column("record_id", Uuid(as_uuid=False), nullable=False, index=True),
    Column("field_name", String(100), nullable=False),
    Column("old_value", JSONType),
    Column("new_value", JSONType),
    Column("changed_at", DateTime(timezone=True), nullable=False),
    Column("changed_by", Uuid(as_uuid=False), nullable=False),
)

field_tracking_settings = Table(
    "field_tracking_settings",
    metadata,
    _id(),
    _tenant(),
    Column("object_name", String(100), nullable=False),
    Column("field_name", String(100), nullable=False),
    Column("is_tracked", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("created_by", Uuid(as_uuid=False)),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("updated_by", Uuid(as_uuid=False)),
    UniqueConstraint("tenant_id", "object_name", "field_name", name="uq_field_tracking"),
)
