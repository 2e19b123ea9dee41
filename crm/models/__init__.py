"""
Models module - Pydantic request/response schemas.

- common.py   : addresses, paging envelopes, error and health bodies
- records.py  : accounts, contacts, leads, opportunities, quotes,
                products, pricebooks, events
- workflow.py : sharing rules, approvals, field history
"""
from crm.models.common import Address, ErrorResponse, HealthResponse, OffsetPage, Page

__all__ = [
    "Address",
    "ErrorResponse",
    "HealthResponse",
    "OffsetPage",
    "Page",
]
