"""Worker assignment: admin-directed, self-service, workload and the pending queue."""
import logging
from typing import Any, Dict, List, Optional

from goldworks.exceptions import ForbiddenError, InvalidTransitionError, ValidationError
from goldworks.models.activity import ActivityAction, NotificationType
from goldworks.models.department import (
    DEPARTMENT_DISPLAY_NAMES,
    DepartmentName,
    DepartmentStatus,
    DepartmentTracking,
    resolve_department,
)
from goldworks.models.order import Order, OrderStatus
from goldworks.models.user import User, UserRole
from goldworks.repository import WorkflowRepository
from goldworks.services import progress
from goldworks.services.activity import ActivityLog
from goldworks.services.notifications import NotificationDispatcher, NotificationMessage

logger = logging.getLogger(__name__)


def validate_worker(worker: User, department: DepartmentName) -> None:
    """A worker is assignable to a department only if active and configured for it."""
    if not worker.is_active:
        raise ValidationError("Cannot assign work to an inactive worker", details={"worker_id": worker.id})
    if worker.role != UserRole.DEPARTMENT_WORKER:
        raise ValidationError("User is not a department worker", details={"worker_id": worker.id})
    if worker.department != DepartmentName(department).value:
        raise ValidationError(
            f"Worker is not configured for {DEPARTMENT_DISPLAY_NAMES[DepartmentName(department)]}",
            details={"worker_id": worker.id, "worker_department": worker.department},
        )


class AssignmentResolver:
    """Binds workers to pending department rows."""

    def __init__(
        self,
        repo: WorkflowRepository,
        notifier: Optional[NotificationDispatcher] = None,
        urgent_priority: int = 8,
    ) -> None:
        self.repo = repo
        self.notifier = notifier
        self.urgent_priority = urgent_priority
        self.activity = ActivityLog(repo)

    def assign(
        self,
        order_id: str,
        department: str,
        worker_id: str,
        actor_id: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> DepartmentTracking:
        dept = resolve_department(department)
        order = self.repo.get_order(order_id)
        worker = self.repo.require_user(worker_id)
        validate_worker(worker, dept)
        tracking = self.repo.get_tracking(order_id, dept.value)

        tracking = self._claim(order, tracking, worker, actor_id, False, estimated_hours, notes)
        logger.info("Worker %s assigned to %s on order %s by %s", worker.id, dept.value, order_id, actor_id)
        self._notify_worker(order, dept, worker)
        return tracking

    def self_assign(
        self,
        order_id: str,
        department: str,
        worker_id: str,
        worker_department: Optional[str],
    ) -> DepartmentTracking:
        dept = resolve_department(department)
        if worker_department is None or worker_department != dept.value:
            raise ForbiddenError(
                "You can only pick up work in your own department",
                details={"department": dept.value, "worker_department": worker_department},
            )
        order = self.repo.get_order(order_id)
        worker = self.repo.require_user(worker_id)
        validate_worker(worker, dept)
        tracking = self.repo.get_tracking(order_id, dept.value)

        tracking = self._claim(order, tracking, worker, worker.id, True)
        logger.info("Worker %s self-assigned to %s on order %s", worker.id, dept.value, order_id)
        return tracking

    def workload(self, department: str) -> List[Dict[str, Any]]:
        """Active workers of a department with their open assignment counts, least busy first."""
        dept = resolve_department(department)
        workers = [
            {
                "id": worker.id,
                "name": worker.name,
                "email": worker.email,
                "current_workload": self.repo.count_active_assignments(worker.id),
            }
            for worker in self.repo.department_workers(dept.value)
        ]
        workers.sort(key=lambda item: (item["current_workload"], item["name"]))
        return workers

    def pending_for_department(self, department: str) -> List[DepartmentTracking]:
        """Unassigned rows of a department whose earlier departments are all complete."""
        dept = resolve_department(department)
        pending = []
        for tracking in self.repo.tracking_by_status(dept.value, DepartmentStatus.PENDING_ASSIGNMENT):
            order = tracking.order
            if order.status == OrderStatus.COMPLETED.value:
                continue
            if progress.blocking_department(order.department_tracking, dept) is None:
                pending.append(tracking)
        return pending

    def _claim(
        self,
        order: Order,
        tracking: DepartmentTracking,
        worker: User,
        actor_id: Optional[str],
        self_assigned: bool,
        estimated_hours: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> DepartmentTracking:
        current = DepartmentStatus(tracking.status)
        if current != DepartmentStatus.PENDING_ASSIGNMENT:
            raise InvalidTransitionError(
                "Department is not pending assignment",
                details={"status": current.value},
            )

        values: Dict[str, Any] = {
            "status": DepartmentStatus.NOT_STARTED.value,
            "assigned_to_id": worker.id,
        }
        if estimated_hours is not None:
            values["estimated_hours"] = estimated_hours
        if notes is not None:
            values["notes"] = notes

        dept = DepartmentName(tracking.department_name)
        with self.repo.atomic():
            tracking = self.repo.transition_tracking(tracking.id, current, tracking.version, values)
            self.activity.record(
                order.id,
                ActivityAction.WORKER_ASSIGNED,
                f"{worker.name} assigned to {DEPARTMENT_DISPLAY_NAMES[dept]}",
                user_id=actor_id,
                details={"department": dept.value, "worker_id": worker.id, "self_assigned": self_assigned},
            )
        return tracking

    def _notify_worker(self, order: Order, department: DepartmentName, worker: User) -> None:
        if self.notifier is None:
            return
        urgent = (order.priority or 0) >= self.urgent_priority
        prefix = "URGENT: " if urgent else ""
        self.notifier.dispatch(NotificationMessage(
            type=NotificationType.ASSIGNMENT,
            title=f"{prefix}New assignment in {DEPARTMENT_DISPLAY_NAMES[department]}",
            message=f"Order {order.order_number} has been assigned to you",
            recipient_ids=[worker.id],
            order_id=order.id,
            order_number=order.order_number,
            urgent=urgent,
        ))
