"""
Approval processes, instances, work items and history.

A process defines ordered steps, each with a list of approvers. Submitting a
record starts an instance at step 1 and creates one pending work item per
step approver. When every work item of a step is approved the instance
advances to the next step, or completes as Approved after the last one.
A single rejection completes it as Rejected. Each operation runs in one
transaction and appends to the instance history.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, insert, select, update
from sqlalchemy.engine import Connection

from crm.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from crm.core.logging_config import LoggerMixin
from crm.core.serialization import utcnow
from crm.database.connection import DatabaseConnection
from crm.database.tables import (
    approval_history,
    approval_instances,
    approval_processes,
    approval_work_items,
)
from crm.repositories.base import MAX_PAGE_SIZE, BaseRepository

INSTANCE_STATUSES = ("Pending", "Approved", "Rejected", "Recalled")
WORK_ITEM_STATUSES = ("Pending", "Approved", "Rejected", "Reassigned")
HISTORY_ACTIONS = ("Submit", "Approve", "Reject", "Recall", "Reassign")
DECISIONS = ("Approve", "Reject")


def step_approver_ids(steps: List[Dict[str, Any]], step_number: int) -> List[str]:
    """Approver ids of a 1-based step, or [] when the step does not exist."""
    if step_number < 1 or step_number > len(steps):
        return []
    approvers = steps[step_number - 1].get("approvers") or []
    return [str(a["id"]) for a in approvers if a.get("id")]


class ApprovalProcessRepository(BaseRepository):
    table = approval_processes
    resource_name = "ApprovalProcess"
    search_columns = ("name", "object_name", "description")
    owned = False

    def _check_steps(self, steps: Any) -> None:
        if not isinstance(steps, list) or not steps:
            raise ValidationError("At least one step is required", field="steps")
        for index, step in enumerate(steps, start=1):
            if not step_approver_ids(steps, index):
                raise ValidationError(f"Step {index} has no approvers", field="steps")

    def validate_create(self, data: Dict[str, Any]) -> None:
        self._check_steps(data.get("steps"))

    def validate_update(self, existing: Dict[str, Any], changes: Dict[str, Any]) -> None:
        if "steps" in changes:
            self._check_steps(changes["steps"])


class ApprovalRepository(LoggerMixin):
    """Instances, work items and history of approval requests."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    # ==================== Reads ====================

    def find_instance(self, tenant_id: str, instance_id: str,
                      conn: Optional[Connection] = None) -> Optional[Dict[str, Any]]:
        t = approval_instances
        stmt = select(t).where(t.c.tenant_id == tenant_id, t.c.id == instance_id)
        if conn is not None:
            stmt = stmt.with_for_update()
        return self.db.fetch_one(stmt, conn=conn)

    def find_instance_or_raise(self, tenant_id: str, instance_id: str,
                               conn: Optional[Connection] = None) -> Dict[str, Any]:
        instance = self.find_instance(tenant_id, instance_id, conn=conn)
        if instance is None:
            raise NotFoundError("ApprovalInstance", instance_id)
        return instance

    def list_instances(
        self,
        tenant_id: str,
        status: Optional[str] = None,
        target_object_name: Optional[str] = None,
        target_record_id: Optional[str] = None,
        submitted_by: Optional[str] = None,
        limit: int = 50,
    ) -> Dict[str, Any]:
        t = approval_instances
        conditions = [t.c.tenant_id == tenant_id]
        if status:
            conditions.append(t.c.status == status)
        if target_object_name:
            conditions.append(t.c.target_object_name == target_object_name)
        if target_record_id:
            conditions.append(t.c.target_record_id == target_record_id)
        if submitted_by:
            conditions.append(t.c.submitted_by == submitted_by)

        total = self.db.fetch_one(
            select(func.count().label("total")).select_from(t).where(*conditions)
        )["total"]
        stmt = (
            select(t)
            .where(*conditions)
            .order_by(t.c.submitted_at.desc(), t.c.id)
            .limit(max(1, min(limit, MAX_PAGE_SIZE)))
        )
        return {"records": self.db.fetch_all(stmt), "total_size": total}

    def find_work_item(self, tenant_id: str, work_item_id: str,
                       conn: Optional[Connection] = None) -> Optional[Dict[str, Any]]:
        w = approval_work_items
        stmt = select(w).where(w.c.tenant_id == tenant_id, w.c.id == work_item_id)
        if conn is not None:
            stmt = stmt.with_for_update()
        return self.db.fetch_one(stmt, conn=conn)

    def find_work_item_or_raise(self, tenant_id: str, work_item_id: str,
                                conn: Optional[Connection] = None) -> Dict[str, Any]:
        item = self.find_work_item(tenant_id, work_item_id, conn=conn)
        if item is None:
            raise NotFoundError("ApprovalWorkItem", work_item_id)
        return item

    def list_my_work_items(
        self,
        tenant_id: str,
        user_id: str,
        status: Optional[str] = "Pending",
        limit: int = 50,
    ) -> Dict[str, Any]:
        """Work items assigned to a user, Pending unless another status is asked for."""
        w = approval_work_items
        i = approval_instances
        conditions = [w.c.tenant_id == tenant_id, w.c.approver_id == user_id]
        if status:
            conditions.append(w.c.status == status)

        stmt = (
            select(w, i.c.target_object_name, i.c.target_record_id, i.c.submitted_by)
            .join(i, i.c.id == w.c.approval_instance_id)
            .where(*conditions)
            .order_by(w.c.created_at.desc(), w.c.id)
            .limit(max(1, min(limit, MAX_PAGE_SIZE)))
        )
        records = self.db.fetch_all(stmt)
        return {"records": records, "total_size": len(records)}

    def get_history(self, tenant_id: str, instance_id: str) -> List[Dict[str, Any]]:
        h = approval_history
        self.find_instance_or_raise(tenant_id, instance_id)
        # Submit sorts first when several entries share a timestamp
        stmt = (
            select(h)
            .where(h.c.tenant_id == tenant_id, h.c.approval_instance_id == instance_id)
            .order_by(h.c.created_at, case((h.c.action == "Submit", 0), else_=1))
        )
        return self.db.fetch_all(stmt)

    # ==================== Helpers ====================

    def _add_history(self, conn: Connection, tenant_id: str, instance_id: str, action: str,
                     actor_id: str, step_number: Optional[int], comments: Optional[str]) -> None:
        self.db.execute(
            insert(approval_history).values(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                approval_instance_id=instance_id,
                step_number=step_number,
                action=action,
                actor_id=actor_id,
                comments=comments,
                created_at=utcnow(),
            ),
            conn=conn,
        )

    def _create_work_items(self, conn: Connection, tenant_id: str, instance_id: str,
                           step_number: int, approver_ids: List[str]) -> None:
        now = utcnow()
        rows = [
            {
                "id": str(uuid.uuid4()),
                "tenant_id": tenant_id,
                "approval_instance_id": instance_id,
                "step_number": step_number,
                "approver_id": approver_id,
                "status": "Pending",
                "created_at": now,
                "updated_at": now,
            }
            for approver_id in approver_ids
        ]
        if rows:
            self.db.execute(insert(approval_work_items), rows, conn=conn)

    def _set_instance(self, conn: Connection, tenant_id: str, instance_id: str, **values) -> None:
        t = approval_instances
        values["updated_at"] = utcnow()
        self.db.execute(
            update(t).where(t.c.tenant_id == tenant_id, t.c.id == instance_id).values(**values),
            conn=conn,
        )

    def _load_process(self, conn: Connection, tenant_id: str, process_id: str) -> Dict[str, Any]:
        p = approval_processes
        process = self.db.fetch_one(
            select(p).where(
                p.c.tenant_id == tenant_id,
                p.c.id == process_id,
                p.c.is_deleted.is_(False),
            ),
            conn=conn,
        )
        if process is None or not process["is_active"]:
            raise ValidationError(
                "Approval process not found or inactive",
                field="process_definition_id",
            )
        return process

    # ==================== Writes ====================

    def submit(
        self,
        tenant_id: str,
        user_id: str,
        process_definition_id: str,
        target_object_name: str,
        target_record_id: str,
        comments: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Submit a record for approval.

        Raises:
            ValidationError: If the record already has a pending request, or
                the process is missing, inactive or has no steps
        """
        t = approval_instances
        with self.db.transaction() as conn:
            pending = self.db.fetch_one(
                select(t.c.id).where(
                    t.c.tenant_id == tenant_id,
                    t.c.target_record_id == target_record_id,
                    t.c.status == "Pending",
                ),
                conn=conn,
            )
            if pending:
                raise ValidationError(
                    "This record already has a pending approval request",
                    field="target_record_id",
                )

            process = self._load_process(conn, tenant_id, process_definition_id)
            steps = process["steps"] or []
            approver_ids = step_approver_ids(steps, 1)
            if not approver_ids:
                raise ValidationError(
                    "Approval process has no steps defined",
                    field="process_definition_id",
                )

            now = utcnow()
            instance_id = str(uuid.uuid4())
            self.db.execute(
                insert(t).values(
                    id=instance_id,
                    tenant_id=tenant_id,
                    process_definition_id=process_definition_id,
                    target_object_name=target_object_name,
                    target_record_id=target_record_id,
                    submitted_by=user_id,
                    submitted_at=now,
                    status="Pending",
                    current_step=1,
                    comments=comments,
                    created_at=now,
                    updated_at=now,
                ),
                conn=conn,
            )
            self._create_work_items(conn, tenant_id, instance_id, 1, approver_ids)
            self._add_history(conn, tenant_id, instance_id, "Submit", user_id, 1, comments)
            instance = self.find_instance_or_raise(tenant_id, instance_id, conn=conn)

        self.logger.info(f"Approval submitted: instance={instance_id} record={target_record_id}")
        return instance

    def recall(self, tenant_id: str, user_id: str, instance_id: str,
               comments: Optional[str] = None) -> Dict[str, Any]:
        """
        Withdraw a pending request. Only the submitter may recall.
        """
        with self.db.transaction() as conn:
            instance = self.find_instance_or_raise(tenant_id, instance_id, conn=conn)
            if instance["status"] != "Pending":
                raise ValidationError("Only pending approvals can be recalled", field="status")
            if instance["submitted_by"] != user_id:
                raise ForbiddenError("Only the submitter can recall this approval")

            now = utcnow()
            self._set_instance(conn, tenant_id, instance_id, status="Recalled", completed_at=now)
            self._close_pending_items(conn, tenant_id, instance_id, now)
            self._add_history(conn, tenant_id, instance_id, "Recall", user_id,
                              instance["current_step"], comments)
            instance = self.find_instance_or_raise(tenant_id, instance_id, conn=conn)

        self.logger.info(f"Approval recalled: instance={instance_id}")
        return instance

    def decide(
        self,
        tenant_id: str,
        user_id: str,
        work_item_id: str,
        action: str,
        comments: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Approve or reject a pending work item assigned to the caller.

        Returns:
            The updated approval instance
        """
        if action not in DECISIONS:
            raise ValidationError("action must be 'Approve' or 'Reject'", field="action")

        w = approval_work_items
        with self.db.transaction() as conn:
            item = self.find_work_item_or_raise(tenant_id, work_item_id, conn=conn)
            if item["status"] != "Pending":
                raise ValidationError("This work item is no longer pending", field="status")
            if item["approver_id"] != user_id:
                raise ForbiddenError("You are not the assigned approver for this work item")

            instance_id = item["approval_instance_id"]
            instance = self.find_instance_or_raise(tenant_id, instance_id, conn=conn)
            if instance["status"] != "Pending":
                raise ValidationError("This approval is no longer pending", field="status")
            step_number = item["step_number"]
            now = utcnow()

            self.db.execute(
                update(w)
                .where(w.c.id == work_item_id)
                .values(
                    status="Approved" if action == "Approve" else "Rejected",
                    comments=comments,
                    decided_at=now,
                    updated_at=now,
                ),
                conn=conn,
            )
            self._add_history(conn, tenant_id, instance_id, action, user_id, step_number, comments)

            if action == "Reject":
                self._set_instance(conn, tenant_id, instance_id, status="Rejected", completed_at=now)
                self._close_pending_items(conn, tenant_id, instance_id, now)
            else:
                self._advance(conn, tenant_id, instance_id, step_number)

            instance = self.find_instance_or_raise(tenant_id, instance_id, conn=conn)

        self.logger.info(f"Work item {work_item_id} decided: {action} (instance={instance_id})")
        return instance

    def _close_pending_items(self, conn: Connection, tenant_id: str, instance_id: str, now) -> None:
        """Take the remaining pending work items of a finished request out of every queue."""
        w = approval_work_items
        self.db.execute(
            update(w)
            .where(
                w.c.tenant_id == tenant_id,
                w.c.approval_instance_id == instance_id,
                w.c.status == "Pending",
            )
            .values(status="Reassigned", updated_at=now),
            conn=conn,
        )

    def _advance(self, conn: Connection, tenant_id: str, instance_id: str, step_number: int) -> None:
        """Move to the next step once the current step has no pending items."""
        w = approval_work_items
        remaining = self.db.fetch_one(
            select(func.count().label("total")).select_from(w).where(
                and_(
                    w.c.tenant_id == tenant_id,
                    w.c.approval_instance_id == instance_id,
                    w.c.step_number == step_number,
                    w.c.status == "Pending",
                )
            ),
            conn=conn,
        )["total"]
        if remaining:
            return

        instance = self.find_instance_or_raise(tenant_id, instance_id, conn=conn)
        p = approval_processes
        process = self.db.fetch_one(
            select(p.c.steps).where(p.c.id == instance["process_definition_id"]), conn=conn
        )
        steps = (process or {}).get("steps") or []
        next_step = step_number + 1
        next_approvers = step_approver_ids(steps, next_step)

        if next_approvers:
            self._set_instance(conn, tenant_id, instance_id, current_step=next_step)
            self._create_work_items(conn, tenant_id, instance_id, next_step, next_approvers)
        else:
            self._set_instance(conn, tenant_id, instance_id, status="Approved", completed_at=utcnow())

    def reassign(
        self,
        tenant_id: str,
        user_id: str,
        work_item_id: str,
        new_approver_id: str,
        comments: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Hand a pending work item to another approver.

        original_approver_id keeps the first approver across reassignments.
        """
        w = approval_work_items
        with self.db.transaction() as conn:
            item = self.find_work_item_or_raise(tenant_id, work_item_id, conn=conn)
            if item["status"] != "Pending":
                raise ValidationError("This work item is no longer pending", field="status")

            self.db.execute(
                update(w)
                .where(w.c.tenant_id == tenant_id, w.c.id == work_item_id)
                .values(
                    approver_id=new_approver_id,
                    original_approver_id=func.coalesce(w.c.original_approver_id, w.c.approver_id),
                    comments=comments,
                    updated_at=utcnow(),
                ),
                conn=conn,
            )
            self._add_history(conn, tenant_id, item["approval_instance_id"], "Reassign",
                              user_id, item["step_number"], comments)
            item = self.find_work_item_or_raise(tenant_id, work_item_id, conn=conn)

        self.logger.info(f"Work item {work_item_id} reassigned to {new_approver_id}")
        return item
