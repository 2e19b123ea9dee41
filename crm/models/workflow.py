"""
Models for sharing rules, approvals and field history.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from crm.models.common import RecordModel, WriteModel
from crm.models.records import UUIDStr

RuleType = Literal["OwnerBased", "CriteriaBased"]
SourceType = Literal["Role", "RoleAndSubordinates", "PublicGroup"]
TargetType = Literal["Role", "RoleAndSubordinates", "PublicGroup", "User"]
AccessLevel = Literal["Read", "ReadWrite"]
Decision = Literal["Approve", "Reject"]


# ============================================================
# Sharing rules
# ============================================================

class SharingRuleUpdate(WriteModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    source_type: Optional[SourceType] = None
    source_id: Optional[UUIDStr] = None
    target_type: Optional[TargetType] = None
    target_id: Optional[UUIDStr] = None
    access_level: Optional[AccessLevel] = None
    filter_criteria: Optional[Dict[str, Any]] = None


class SharingRuleCreate(SharingRuleUpdate):
    name: str = Field(..., min_length=1, max_length=255)
    object_name: str = Field(..., min_length=1, max_length=100, examples=["Account"])
    rule_type: RuleType
    target_type: TargetType
    target_id: UUIDStr


class SharingRule(RecordModel):
    name: str
    object_name: str
    rule_type: str
    description: Optional[str] = None
    is_active: bool = True
    source_type: Optional[str] = None
    source_id: Optional[str] = None
    target_type: str
    target_id: str
    access_level: str
    filter_criteria: Optional[Dict[str, Any]] = None


# ============================================================
# Approvals
# ============================================================

class Approver(BaseModel):
    id: UUIDStr


class ApprovalStep(BaseModel):
    name: Optional[str] = None
    approvers: List[Approver] = Field(..., min_length=1)


class ApprovalProcessUpdate(WriteModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    steps: Optional[List[ApprovalStep]] = Field(default=None, min_length=1)


class ApprovalProcessCreate(ApprovalProcessUpdate):
    name: str = Field(..., min_length=1, max_length=255)
    object_name: str = Field(..., min_length=1, max_length=100)
    steps: List[ApprovalStep] = Field(..., min_length=1)


class ApprovalProcess(RecordModel):
    name: str
    object_name: str
    description: Optional[str] = None
    is_active: bool = True
    steps: List[Dict[str, Any]]


class SubmitRequest(WriteModel):
    process_definition_id: UUIDStr
    target_object_name: str = Field(..., min_length=1, max_length=100)
    target_record_id: UUIDStr
    comments: Optional[str] = None


class RecallRequest(WriteModel):
    comments: Optional[str] = None


class DecideRequest(WriteModel):
    action: Decision
    comments: Optional[str] = None


class ReassignRequest(WriteModel):
    new_approver_id: UUIDStr
    comments: Optional[str] = None


class ApprovalInstance(BaseModel):
    id: str
    tenant_id: str
    process_definition_id: str
    target_object_name: str
    target_record_id: str
    submitted_by: str
    submitted_at: datetime
    status: str
    current_step: int
    completed_at: Optional[datetime] = None
    comments: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ApprovalWorkItem(BaseModel):
    id: str
    tenant_id: str
    approval_instance_id: str
    step_number: int
    approver_id: str
    original_approver_id: Optional[str] = None
    status: str
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    target_object_name: Optional[str] = None
    target_record_id: Optional[str] = None
    submitted_by: Optional[str] = None


class ApprovalHistoryEntry(BaseModel):
    id: str
    approval_instance_id: str
    step_number: Optional[int] = None
    action: str
    actor_id: str
    comments: Optional[str] = None
    created_at: datetime


# ============================================================
# Field history
# ============================================================

class FieldHistory(BaseModel):
    id: str
    tenant_id: str
    object_name: str
    record_id: str
    field_name: str
    old_value: Any = None
    new_value: Any = None
    changed_at: datetime
    changed_by: str


class FieldTrackingSettingCreate(WriteModel):
    object_name: str = Field(..., min_length=1, max_length=100, examples=["Account"])
    field_name: str = Field(..., min_length=1, max_length=100, examples=["name"])
    is_tracked: bool = True


class FieldTrackingSettingUpdate(WriteModel):
    is_tracked: bool


class FieldTrackingSetting(BaseModel):
    id: str
    tenant_id: str
    object_name: str
    field_name: str
    is_tracked: bool
    created_at: datetime
    created_by: Optional[str] = None
    updated_at: datetime
    updated_by: Optional[str] = None
