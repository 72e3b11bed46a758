"""Department tracking state machine.

Every transition reads the row, checks the precondition, and writes through
``WorkflowRepository.transition_tracking`` so that only one of two racing
writers can succeed.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from goldworks.exceptions import (
    AlreadyStartedError,
    ForbiddenError,
    InvalidTransitionError,
    NotStartedError,
    ValidationError,
)
from goldworks.models.activity import ActivityAction
from goldworks.models.department import (
    DEPARTMENT_DISPLAY_NAMES,
    DepartmentName,
    DepartmentStatus,
    DepartmentTracking,
    is_valid_transition,
    next_department,
    resolve_department,
)
from goldworks.models.order import Order, OrderStatus
from goldworks.models.user import Capability, User
from goldworks.repository import WorkflowRepository, utcnow
from goldworks.services import progress
from goldworks.services.activity import ActivityLog

logger = logging.getLogger(__name__)


def require_weight(value: Any, field: str) -> float:
    """Validate a gold weight: present, numeric and not negative."""
    if value is None:
        raise ValidationError(f"{field} is required", details={"field": field})
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    if value < 0:
        raise ValidationError(f"{field} cannot be negative", details={"field": field})
    return float(value)


def check_row_owner(tracking: DepartmentTracking, actor: Optional[User]) -> None:
    """Workers without department management rights may only touch their own rows."""
    if actor is None or actor.can(Capability.MANAGE_DEPARTMENTS):
        return
    if not actor.can(Capability.WORK_DEPARTMENT):
        raise ForbiddenError("Not enough permissions")
    if tracking.assigned_to_id != actor.id:
        raise ForbiddenError(
            "You can only work on departments assigned to you",
            details={"department": tracking.department_name},
        )


class DepartmentWorkflow:
    """Start, complete, hold, resume, unassign and record work on tracking rows."""

    def __init__(self, repo: WorkflowRepository) -> None:
        self.repo = repo
        self.activity = ActivityLog(repo)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list_departments(self, order_id: str) -> Tuple[Order, List[DepartmentTracking]]:
        order = self.repo.get_order(order_id)
        return order, self.repo.list_tracking(order_id)

    def get_department(self, order_id: str, department: str) -> DepartmentTracking:
        self.repo.get_order(order_id)
        return self.repo.get_tracking(order_id, resolve_department(department).value)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(
        self,
        order_id: str,
        department: str,
        gold_weight_in: Any,
        estimated_hours: Optional[float] = None,
        notes: Optional[str] = None,
        actor: Optional[User] = None,
    ) -> DepartmentTracking:
        dept = resolve_department(department)
        order = self.repo.get_order(order_id)
        tracking = self.repo.get_tracking(order_id, dept.value)
        check_row_owner(tracking, actor)

        weight_in = require_weight(gold_weight_in, "gold_weight_in")
        if estimated_hours is not None and estimated_hours <= 0:
            raise ValidationError("estimated_hours must be positive", details={"field": "estimated_hours"})

        current = DepartmentStatus(tracking.status)
        if current != DepartmentStatus.NOT_STARTED:
            if current == DepartmentStatus.PENDING_ASSIGNMENT:
                message = f"{DEPARTMENT_DISPLAY_NAMES[dept]} has no worker assigned yet"
            else:
                message = f"{DEPARTMENT_DISPLAY_NAMES[dept]} has already been started"
            raise AlreadyStartedError(message, details={"status": current.value})

        if order.status not in (OrderStatus.DRAFT.value, OrderStatus.IN_FACTORY.value):
            raise InvalidTransitionError(
                f"Cannot start work on an order in status {order.status}",
                details={"order_status": order.status},
            )

        blocking = progress.blocking_department(self.repo.list_tracking(order_id), dept)
        if blocking is not None:
            raise InvalidTransitionError(
                f"{DEPARTMENT_DISPLAY_NAMES[blocking]} must be completed before starting "
                f"{DEPARTMENT_DISPLAY_NAMES[dept]}",
                details={"blocking_department": blocking.value},
            )

        values: Dict[str, Any] = {
            "status": DepartmentStatus.IN_PROGRESS.value,
            "started_at": utcnow(),
            "gold_weight_in": weight_in,
        }
        if estimated_hours is not None:
            values["estimated_hours"] = estimated_hours
        if notes is not None:
            values["notes"] = notes

        actor_id = actor.id if actor else None
        with self.repo.atomic():
            tracking = self.repo.transition_tracking(tracking.id, current, tracking.version, values)
            if order.status == OrderStatus.DRAFT.value:
                self.repo.set_order_status(order, OrderStatus.IN_FACTORY.value)
                self.activity.status_change(order.id, OrderStatus.DRAFT.value, OrderStatus.IN_FACTORY.value, actor_id)
            self.activity.record(
                order.id,
                ActivityAction.DEPT_STARTED,
                f"Started {DEPARTMENT_DISPLAY_NAMES[dept]}",
                description=f"Gold weight in: {weight_in}g",
                user_id=actor_id,
                details={"department": dept.value, "gold_weight_in": weight_in},
            )

        logger.info("Department %s started for order %s by %s", dept.value, order_id, actor_id)
        return tracking

    def complete(
        self,
        order_id: str,
        department: str,
        gold_weight_out: Any,
        notes: Optional[str] = None,
        issues: Optional[str] = None,
        actor: Optional[User] = None,
    ) -> DepartmentTracking:
        dept = resolve_department(department)
        self.repo.get_order(order_id)
        tracking = self.repo.get_tracking(order_id, dept.value)
        check_row_owner(tracking, actor)

        weight_out = require_weight(gold_weight_out, "gold_weight_out")
        current = DepartmentStatus(tracking.status)
        if current != DepartmentStatus.IN_PROGRESS:
            raise NotStartedError(
                f"{DEPARTMENT_DISPLAY_NAMES[dept]} is not in progress",
                details={"status": current.value},
            )

        gold_loss = None
        if tracking.gold_weight_in is not None:
            gold_loss = round(tracking.gold_weight_in - weight_out, 3)

        values: Dict[str, Any] = {
            "status": DepartmentStatus.COMPLETED.value,
            "completed_at": utcnow(),
            "gold_weight_out": weight_out,
            "gold_loss": gold_loss,
        }
        if notes is not None:
            values["notes"] = notes
        if issues is not None:
            values["issues"] = issues

        following = next_department(dept)
        actor_id = actor.id if actor else None
        with self.repo.atomic():
            tracking = self.repo.transition_tracking(tracking.id, current, tracking.version, values)
            self.activity.record(
                order_id,
                ActivityAction.DEPT_COMPLETED,
                f"Completed {DEPARTMENT_DISPLAY_NAMES[dept]}",
                description=f"Gold weight out: {weight_out}g, loss: {gold_loss}g",
                user_id=actor_id,
                details={
                    "department": dept.value,
                    "gold_weight_out": weight_out,
                    "gold_loss": gold_loss,
                    "next_department": following.value if following else None,
                },
            )

        if gold_loss is not None and gold_loss < 0:
            logger.warning(
                "Weight gain of %sg in %s for order %s", abs(gold_loss), dept.value, order_id
            )
        logger.info("Department %s completed for order %s by %s", dept.value, order_id, actor_id)
        return tracking

    def hold(self, order_id: str, department: str, reason: str, actor: Optional[User] = None) -> DepartmentTracking:
        dept = resolve_department(department)
        self.repo.get_order(order_id)
        tracking = self.repo.get_tracking(order_id, dept.value)
        check_row_owner(tracking, actor)

        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required to put work on hold", details={"field": "reason"})
        self._check_transition(tracking, DepartmentStatus.ON_HOLD, "put on hold")

        actor_id = actor.id if actor else None
        with self.repo.atomic():
            tracking = self.repo.transition_tracking(
                tracking.id,
                DepartmentStatus.IN_PROGRESS,
                tracking.version,
                {"status": DepartmentStatus.ON_HOLD.value, "issues": reason},
            )
            self.activity.record(
                order_id,
                ActivityAction.DEPT_ON_HOLD,
                f"{DEPARTMENT_DISPLAY_NAMES[dept]} put on hold",
                description=reason,
                user_id=actor_id,
                details={"department": dept.value},
            )

        logger.info("Department %s on hold for order %s by %s", dept.value, order_id, actor_id)
        return tracking

    def resume(self, order_id: str, department: str, actor: Optional[User] = None) -> DepartmentTracking:
        dept = resolve_department(department)
        self.repo.get_order(order_id)
        tracking = self.repo.get_tracking(order_id, dept.value)
        check_row_owner(tracking, actor)
        if DepartmentStatus(tracking.status) != DepartmentStatus.ON_HOLD:
            raise InvalidTransitionError(
                f"{DEPARTMENT_DISPLAY_NAMES[dept]} is not on hold",
                details={"status": tracking.status},
            )

        actor_id = actor.id if actor else None
        with self.repo.atomic():
            tracking = self.repo.transition_tracking(
                tracking.id,
                DepartmentStatus.ON_HOLD,
                tracking.version,
                {"status": DepartmentStatus.IN_PROGRESS.value, "issues": None},
            )
            self.activity.record(
                order_id,
                ActivityAction.DEPT_RESUMED,
                f"{DEPARTMENT_DISPLAY_NAMES[dept]} resumed",
                user_id=actor_id,
                details={"department": dept.value},
            )

        logger.info("Department %s resumed for order %s by %s", dept.value, order_id, actor_id)
        return tracking

    def unassign(self, order_id: str, department: str, actor: Optional[User] = None) -> DepartmentTracking:
        dept = resolve_department(department)
        self.repo.get_order(order_id)
        tracking = self.repo.get_tracking(order_id, dept.value)
        self._check_transition(tracking, DepartmentStatus.PENDING_ASSIGNMENT, "unassigned")

        previous_worker = tracking.assigned_to_id
        actor_id = actor.id if actor else None
        with self.repo.atomic():
            tracking = self.repo.transition_tracking(
                tracking.id,
                DepartmentStatus.NOT_STARTED,
                tracking.version,
                {"status": DepartmentStatus.PENDING_ASSIGNMENT.value, "assigned_to_id": None},
            )
            self.activity.record(
                order_id,
                ActivityAction.WORKER_UNASSIGNED,
                f"Worker unassigned from {DEPARTMENT_DISPLAY_NAMES[dept]}",
                user_id=actor_id,
                details={"department": dept.value, "worker_id": previous_worker},
            )

        logger.info("Worker %s unassigned from %s on order %s", previous_worker, dept.value, order_id)
        return tracking

    def record_work(
        self,
        order_id: str,
        department: str,
        form_data: Optional[Dict[str, Any]] = None,
        photos: Optional[List[str]] = None,
        files: Optional[List[str]] = None,
        notes: Optional[str] = None,
        actor: Optional[User] = None,
    ) -> DepartmentTracking:
        """Merge form data and uploaded photo/file URLs into the row's work data."""
        dept = resolve_department(department)
        self.repo.get_order(order_id)
        tracking = self.repo.get_tracking(order_id, dept.value)
        check_row_owner(tracking, actor)

        current = DepartmentStatus(tracking.status)
        if current == DepartmentStatus.COMPLETED:
            raise InvalidTransitionError(
                f"{DEPARTMENT_DISPLAY_NAMES[dept]} is already completed",
                details={"status": current.value},
            )

        existing = dict(tracking.work_data or {})
        merged_form = dict(existing.get("form_data") or {})
        merged_form.update(form_data or {})
        work_data = {
            "form_data": merged_form,
            "uploaded_photos": list(existing.get("uploaded_photos") or []) + list(photos or []),
            "uploaded_files": list(existing.get("uploaded_files") or []) + list(files or []),
        }
        values: Dict[str, Any] = {
            "work_data": work_data,
            "photos": list(tracking.photos or []) + list(photos or []),
        }
        if notes is not None:
            values["notes"] = notes

        actor_id = actor.id if actor else None
        with self.repo.atomic():
            tracking = self.repo.transition_tracking(tracking.id, current, tracking.version, values)
            if photos or files:
                self.activity.record(
                    order_id,
                    ActivityAction.FILE_UPLOADED,
                    f"Files uploaded to {DEPARTMENT_DISPLAY_NAMES[dept]}",
                    user_id=actor_id,
                    details={"department": dept.value, "photos": len(photos or []), "files": len(files or [])},
                )

        logger.info("Work data recorded for %s on order %s by %s", dept.value, order_id, actor_id)
        return tracking

    @staticmethod
    def _check_transition(tracking: DepartmentTracking, target: DepartmentStatus, verb: str) -> None:
        current = DepartmentStatus(tracking.status)
        if not is_valid_transition(current, target):
            dept = DepartmentName(tracking.department_name)
            raise InvalidTransitionError(
                f"{DEPARTMENT_DISPLAY_NAMES[dept]} cannot be {verb} while {current.value}",
                details={"status": current.value},
            )
