"""
Shared request and response models.

These Pydantic models define the parts of the contract every record
endpoint has in common: addresses, audit fields, paging envelopes and
error bodies.
"""
from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class Address(BaseModel):
    """Postal address; stored as five flat columns."""
    model_config = ConfigDict(extra="forbid")

    street: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)


class WriteModel(BaseModel):
    """Base for create/update bodies: unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid")


class RecordModel(BaseModel):
    """Fields every stored record carries."""
    id: str
    tenant_id: str
    created_at: datetime
    created_by: Optional[str] = None
    updated_at: datetime
    updated_by: Optional[str] = None
    is_deleted: bool = False
    system_modstamp: str


class OwnedRecordModel(RecordModel):
    owner_id: Optional[str] = None


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Cursor-paginated list response."""
    records: List[T]
    total_size: int = Field(..., description="Number of matching records")
    next_cursor: Optional[str] = Field(
        default=None,
        description="Pass as cursor to fetch the next page; absent on the last page",
    )


class OffsetPage(BaseModel, Generic[T]):
    """Offset-paginated list response."""
    records: List[T]
    total_size: int


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Additional error details")
    correlation_id: Optional[str] = Field(default=None, description="Request correlation id")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Service health status", examples=["healthy"])
    version: str = Field(..., description="Application version", examples=["0.1.0"])
    timestamp: datetime = Field(..., description="Check timestamp")
    database: Optional[str] = Field(default=None, description="Database status (readiness only)")
