"""
Request and response models for the standard record types.

Each record type has:
- <Name>Create : body for POST (required fields enforced)
- <Name>Update : body for PATCH (every field optional, only sent fields change)
- <Name>       : stored record returned by the API
"""
import uuid
from datetime import date, datetime
from typing import Annotated, Any, Dict, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, model_validator

from crm.core.serialization import as_utc
from crm.models.common import Address, OwnedRecordModel, RecordModel, WriteModel


def _check_uuid(value: str) -> str:
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise ValueError("must be a UUID")


UUIDStr = Annotated[str, AfterValidator(_check_uuid)]

AccountType = Literal["Prospect", "Customer", "Partner", "Competitor", "Other"]
AccountStatus = Literal["Active", "Inactive"]
LeadStatus = Literal["New", "Working", "Qualified", "Unqualified"]
LeadRating = Literal["Hot", "Warm", "Cold"]
QuoteStatus = Literal["Draft", "Presented", "Accepted", "Rejected"]
WhoType = Literal["Lead", "Contact"]
WhatType = Literal["Account", "Opportunity", "Quote"]


# ============================================================
# Account
# ============================================================

class AccountUpdate(WriteModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[AccountType] = None
    parent_id: Optional[UUIDStr] = None
    industry: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=40)
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    annual_revenue: Optional[float] = Field(default=None, ge=0)
    number_of_employees: Optional[int] = Field(default=None, ge=0)
    status: Optional[AccountStatus] = None
    description: Optional[str] = None
    owner_id: Optional[UUIDStr] = None


class AccountCreate(AccountUpdate):
    name: str = Field(..., min_length=1, max_length=255, examples=["Acme Corporation"])


class Account(OwnedRecordModel):
    name: str
    type: Optional[str] = None
    parent_id: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Address
    shipping_address: Address
    annual_revenue: Optional[float] = None
    number_of_employees: Optional[int] = None
    status: str
    description: Optional[str] = None


# ============================================================
# Contact
# ============================================================

class ContactUpdate(WriteModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    account_id: Optional[UUIDStr] = None
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=40)
    mobile_phone: Optional[str] = Field(default=None, max_length=40)
    title: Optional[str] = Field(default=None, max_length=128)
    department: Optional[str] = Field(default=None, max_length=100)
    mailing_address: Optional[Address] = None
    is_primary: Optional[bool] = None
    description: Optional[str] = None
    owner_id: Optional[UUIDStr] = None


class ContactCreate(ContactUpdate):
    last_name: str = Field(..., min_length=1, max_length=100)


class Contact(OwnedRecordModel):
    first_name: Optional[str] = None
    last_name: str
    account_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mobile_phone: Optional[str] = None
    title: Optional[str] = None
    department: Optional[str] = None
    mailing_address: Address
    is_primary: bool = False
    description: Optional[str] = None


# ============================================================
# Lead
# ============================================================

class LeadUpdate(WriteModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    company: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=40)
    title: Optional[str] = Field(default=None, max_length=128)
    industry: Optional[str] = Field(default=None, max_length=100)
    lead_source: Optional[str] = Field(default=None, max_length=100)
    status: Optional[LeadStatus] = None
    rating: Optional[LeadRating] = None
    address: Optional[Address] = None
    description: Optional[str] = None
    owner_id: Optional[UUIDStr] = None


class LeadCreate(LeadUpdate):
    last_name: str = Field(..., min_length=1, max_length=100)
    company: str = Field(..., min_length=1, max_length=255)


class Lead(OwnedRecordModel):
    first_name: Optional[str] = None
    last_name: str
    company: str
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    industry: Optional[str] = None
    lead_source: Optional[str] = None
    status: str
    rating: Optional[str] = None
    address: Address
    description: Optional[str] = None
    is_converted: bool = False
    converted_at: Optional[datetime] = None
    converted_account_id: Optional[str] = None
    converted_contact_id: Optional[str] = None
    converted_opportunity_id: Optional[str] = None


class LeadConvertRequest(WriteModel):
    create_account: bool = True
    existing_account_id: Optional[UUIDStr] = None
    create_opportunity: bool = False
    opportunity_name: Optional[str] = Field(default=None, max_length=255)


class LeadConvertResponse(BaseModel):
    account_id: Optional[str] = None
    contact_id: str
    opportunity_id: Optional[str] = None


# ============================================================
# Opportunity
# ============================================================

class OpportunityUpdate(WriteModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    account_id: Optional[UUIDStr] = None
    stage_name: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    close_date: Optional[date] = None
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    forecast_category: Optional[str] = None
    lost_reason: Optional[str] = None
    type: Optional[str] = Field(default=None, max_length=40)
    lead_source: Optional[str] = Field(default=None, max_length=100)
    next_step: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    pricebook_id: Optional[UUIDStr] = None
    owner_id: Optional[UUIDStr] = None


class OpportunityCreate(OpportunityUpdate):
    name: str = Field(..., min_length=1, max_length=255)
    account_id: UUIDStr
    close_date: date


class Opportunity(OwnedRecordModel):
    name: str
    account_id: Optional[str] = None
    stage_name: str
    amount: Optional[float] = None
    close_date: date
    probability: Optional[int] = None
    forecast_category: Optional[str] = None
    is_closed: bool = False
    is_won: bool = False
    lost_reason: Optional[str] = None
    type: Optional[str] = None
    lead_source: Optional[str] = None
    next_step: Optional[str] = None
    description: Optional[str] = None
    pricebook_id: Optional[str] = None
    primary_quote_id: Optional[str] = None


class StageChangeRequest(WriteModel):
    stage_name: str = Field(..., min_length=1)


class CloseRequest(WriteModel):
    is_won: bool
    lost_reason: Optional[str] = None


# ============================================================
# Quote
# ============================================================

class QuoteUpdate(WriteModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[QuoteStatus] = None
    expiration_date: Optional[date] = None
    subtotal: Optional[float] = None
    discount: Optional[float] = None
    total_price: Optional[float] = None
    tax_amount: Optional[float] = None
    grand_total: Optional[float] = None
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    pricebook_id: Optional[UUIDStr] = None
    description: Optional[str] = None
    owner_id: Optional[UUIDStr] = None


class QuoteCreate(QuoteUpdate):
    name: str = Field(..., min_length=1, max_length=255)
    opportunity_id: UUIDStr


class Quote(OwnedRecordModel):
    opportunity_id: str
    name: str
    status: str
    is_primary: bool = False
    expiration_date: Optional[date] = None
    subtotal: Optional[float] = None
    discount: Optional[float] = None
    total_price: Optional[float] = None
    tax_amount: Optional[float] = None
    grand_total: Optional[float] = None
    billing_address: Address
    shipping_address: Address
    pricebook_id: Optional[str] = None
    description: Optional[str] = None


class QuoteStatusRequest(WriteModel):
    status: QuoteStatus


# ============================================================
# Product / Pricebook
# ============================================================

class ProductUpdate(WriteModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    product_code: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    family: Optional[str] = Field(default=None, max_length=100)
    is_active: Optional[bool] = None


class ProductCreate(ProductUpdate):
    name: str = Field(..., min_length=1, max_length=255)


class Product(RecordModel):
    name: str
    product_code: Optional[str] = None
    description: Optional[str] = None
    family: Optional[str] = None
    is_active: bool = True


class PricebookUpdate(WriteModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    is_standard: Optional[bool] = None


class PricebookCreate(PricebookUpdate):
    name: str = Field(..., min_length=1, max_length=255)


class Pricebook(RecordModel):
    name: str
    description: Optional[str] = None
    is_active: bool = True
    is_standard: bool = False


# ============================================================
# Event
# ============================================================

class EventUpdate(WriteModel):
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    is_all_day_event: Optional[bool] = None
    location: Optional[str] = Field(default=None, max_length=255)
    who_type: Optional[WhoType] = None
    who_id: Optional[UUIDStr] = None
    what_type: Optional[WhatType] = None
    what_id: Optional[UUIDStr] = None
    description: Optional[str] = None
    owner_id: Optional[UUIDStr] = None


class EventCreate(EventUpdate):
    subject: str = Field(..., min_length=1, max_length=255)
    start_date_time: datetime
    end_date_time: datetime

    @model_validator(mode="after")
    def _end_after_start(self):
        if as_utc(self.end_date_time) < as_utc(self.start_date_time):
            raise ValueError("end_date_time must not be before start_date_time")
        return self


class Event(OwnedRecordModel):
    subject: str
    start_date_time: datetime
    end_date_time: datetime
    is_all_day_event: bool = False
    location: Optional[str] = None
    who_type: Optional[str] = None
    who_id: Optional[str] = None
    what_type: Optional[str] = None
    what_id: Optional[str] = None
    description: Optional[str] = None


def dump_changes(model: WriteModel) -> Dict[str, Any]:
    """Fields the client actually sent, nested models included."""
    return model.model_dump(exclude_unset=True)


