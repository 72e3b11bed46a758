"""Order lifecycle: creation with its nine department rows, edits, status moves and deletion."""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from goldworks.exceptions import ConflictError, InvalidTransitionError
from goldworks.models.activity import ActivityAction, OrderActivity
from goldworks.models.department import (
    DEPARTMENT_ORDER,
    DepartmentStatus,
    DepartmentTracking,
    department_sequence,
)
from goldworks.models.order import Order, OrderDetails, OrderStatus, Stone
from goldworks.models.user import User
from goldworks.repository import WorkflowRepository, utcnow
from goldworks.schemas.order import OrderCreate, OrderUpdate, StoneCreate
from goldworks.services.activity import ActivityLog
from goldworks.services.assignment import validate_worker
from goldworks.services.order_numbers import OrderNumberGenerator
from goldworks.services.visibility import can_view_customer

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 5


class OrderService:
    """Create, edit, move and delete orders."""

    def __init__(self, repo: WorkflowRepository, numbers: Optional[OrderNumberGenerator] = None) -> None:
        self.repo = repo
        self.numbers = numbers or OrderNumberGenerator()
        self.activity = ActivityLog(repo)

    def get_order(self, order_id: str) -> Order:
        return self.repo.get_order(order_id)

    def list_orders(self, status: Optional[str] = None, search: Optional[str] = None,
                    skip: int = 0, limit: int = 100, viewer: Optional[User] = None) -> List[Order]:
        """List orders. Viewers without customer access search by order number only."""
        search_customer = viewer is None or can_view_customer(viewer)
        return self.repo.list_orders(
            status=status, search=search, skip=skip, limit=limit, search_customer=search_customer,
        )

    def list_activity(self, order_id: str, limit: int = 100) -> List[OrderActivity]:
        self.repo.get_order(order_id)
        return self.repo.list_activity(order_id, limit)

    def stats(self, today: Optional[date] = None) -> Dict[str, Any]:
        """Order counts by status plus open orders overdue or due today."""
        today = today or utcnow().date()
        counts = self.repo.order_counts_by_status()
        return {
            "total": sum(counts.values()),
            "by_status": {status.value: counts.get(status.value, 0) for status in OrderStatus},
            "overdue_count": self.repo.count_open_orders_due(before=today),
            "due_today_count": self.repo.count_open_orders_due(on=today),
        }

    def create_order(self, payload: OrderCreate, actor: Optional[User] = None) -> Order:
        """Create an order in DRAFT with details, stones and one row per department."""
        # Resolve pre-assigned workers before touching the database
        workers = {}
        for department, worker_id in payload.assignments.items():
            worker = self.repo.require_user(worker_id)
            validate_worker(worker, department)
            workers[department] = worker

        actor_id = actor.id if actor else None
        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            order_number = self.numbers.generate(self.repo.latest_order_number(self.numbers.year_prefix()))
            try:
                with self.repo.atomic():
                    order = self._build_order(payload, order_number, workers, actor_id)
                break
            except IntegrityError:
                logger.warning("Order number %s already taken (attempt %d)", order_number, attempt)
        else:
            raise ConflictError("Could not allocate a unique order number, please retry")

        self.repo.refresh(order)
        logger.info("Order %s created by %s", order.order_number, actor_id)
        return order

    def _build_order(self, payload: OrderCreate, order_number: str, workers: dict,
                     actor_id: Optional[str]) -> Order:
        order = Order(
            order_number=order_number,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            customer_email=payload.customer_email,
            product_photo_url=payload.product_photo_url,
            priority=payload.priority,
            status=OrderStatus.DRAFT.value,
            created_by_id=actor_id,
        )
        order.details = OrderDetails(**payload.details.model_dump())
        order.stones = [Stone(**stone.model_dump()) for stone in payload.stones]
        for department in DEPARTMENT_ORDER:
            worker = workers.get(department)
            order.department_tracking.append(DepartmentTracking(
                department_name=department.value,
                sequence_order=department_sequence(department),
                status=(DepartmentStatus.NOT_STARTED if worker else DepartmentStatus.PENDING_ASSIGNMENT).value,
                assigned_to_id=worker.id if worker else None,
                photos=[],
                version=1,
            ))
        self.repo.add(order)
        self.repo.flush()

        self.activity.record(
            order.id,
            ActivityAction.ORDER_CREATED,
            f"Order {order_number} created",
            user_id=actor_id,
            details={"priority": payload.priority},
        )
        for department, worker in workers.items():
            self.activity.record(
                order.id,
                ActivityAction.WORKER_ASSIGNED,
                f"{worker.name} assigned to {department.value}",
                user_id=actor_id,
                details={"department": department.value, "worker_id": worker.id, "self_assigned": False},
            )
        return order

    def update_order(self, order_id: str, changes: OrderUpdate, actor: Optional[User] = None) -> Order:
        order = self.repo.get_order(order_id)
        self._require_editable(order)

        update_data = changes.model_dump(exclude_unset=True, exclude={"details"})
        detail_data = changes.details.model_dump(exclude_unset=True) if changes.details else {}
        with self.repo.atomic():
            for field, value in update_data.items():
                setattr(order, field, value)
            for field, value in detail_data.items():
                setattr(order.details, field, value)
            self.activity.record(
                order.id,
                ActivityAction.ORDER_UPDATED,
                "Order updated",
                user_id=actor.id if actor else None,
                details={"fields": sorted(list(update_data) + [f"details.{name}" for name in detail_data])},
            )
        self.repo.refresh(order)
        logger.info("Order %s updated", order_id)
        return order

    def add_stones(self, order_id: str, stones: List[StoneCreate]) -> Order:
        order = self.repo.get_order(order_id)
        self._require_editable(order)
        with self.repo.atomic():
            for stone in stones:
                order.stones.append(Stone(**stone.model_dump()))
        self.repo.refresh(order)
        return order

    def send_to_factory(self, order_id: str, actor: Optional[User] = None) -> Order:
        return self._move(order_id, OrderStatus.DRAFT, OrderStatus.IN_FACTORY, actor)

    def revert_to_draft(self, order_id: str, actor: Optional[User] = None) -> Order:
        order = self.repo.get_order(order_id)
        started = [
            row.department_name
            for row in self.repo.list_tracking(order_id)
            if row.status in (
                DepartmentStatus.IN_PROGRESS.value,
                DepartmentStatus.ON_HOLD.value,
                DepartmentStatus.COMPLETED.value,
            )
        ]
        if started:
            raise InvalidTransitionError(
                "Cannot revert to draft after work has started",
                details={"started_departments": started},
            )
        return self._move(order.id, OrderStatus.IN_FACTORY, OrderStatus.DRAFT, actor)

    def delete_order(self, order_id: str, actor: Optional[User] = None) -> None:
        order = self.repo.get_order(order_id)
        order_number = order.order_number
        with self.repo.atomic():
            self.repo.delete_order(order)
        logger.warning("Order %s deleted by %s", order_number, actor.id if actor else None)

    def _move(self, order_id: str, source: OrderStatus, target: OrderStatus, actor: Optional[User]) -> Order:
        order = self.repo.get_order(order_id)
        if order.status != source.value:
            raise InvalidTransitionError(
                f"Order must be {source.value} to move to {target.value}. Current status: {order.status}",
                details={"order_status": order.status},
            )
        actor_id = actor.id if actor else None
        with self.repo.atomic():
            self.repo.set_order_status(order, target.value)
            self.activity.status_change(order.id, source.value, target.value, actor_id)
        self.repo.refresh(order)
        logger.info("Order %s moved from %s to %s by %s", order_id, source.value, target.value, actor_id)
        return order

    @staticmethod
    def _require_editable(order: Order) -> None:
        if order.status == OrderStatus.COMPLETED.value:
            raise InvalidTransitionError(
                "Completed orders cannot be modified",
                details={"order_status": order.status},
            )
