"""Repository wrapping a SQLAlchemy session for the workflow services.

Services receive a ``WorkflowRepository`` instead of reaching for a global
session. All reads and writes of one workflow operation go through the same
repository, so ``commit``/``rollback`` delimit the operation's transaction.
"""
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from goldworks.exceptions import ConflictError, NotFoundError
from goldworks.models.activity import OrderActivity
from goldworks.models.department import DepartmentStatus, DepartmentTracking
from goldworks.models.order import Order, OrderDetails, OrderStatus, Stone
from goldworks.models.submission import FinalSubmission
from goldworks.models.user import User, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowRepository:
    """Persistence operations used by the workflow services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Transaction control
    # ------------------------------------------------------------------
    def add(self, instance: Any) -> None:
        self.db.add(instance)

    def flush(self) -> None:
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def refresh(self, instance: Any) -> None:
        self.db.refresh(instance)

    @contextmanager
    def atomic(self):
        """Commit on success, roll back on any error."""
        try:
            yield self
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def require_user(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if not user:
            raise NotFoundError(f"Worker with ID {user_id} not found")
        return user

    def list_users(self, role: Optional[UserRole] = None, department: Optional[str] = None) -> List[User]:
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        if department is not None:
            query = query.filter(User.department == department)
        return query.order_by(User.name).all()

    def active_users_with_roles(self, roles: Iterable[UserRole]) -> List[User]:
        return (
            self.db.query(User)
            .filter(User.role.in_(list(roles)), User.is_active.is_(True))
            .all()
        )

    def department_workers(self, department: str) -> List[User]:
        return (
            self.db.query(User)
            .filter(
                User.role == UserRole.DEPARTMENT_WORKER,
                User.department == department,
                User.is_active.is_(True),
            )
            .all()
        )

    def count_active_assignments(self, worker_id: str) -> int:
        return (
            self.db.query(func.count(DepartmentTracking.id))
            .filter(
                DepartmentTracking.assigned_to_id == worker_id,
                DepartmentTracking.status.in_([
                    DepartmentStatus.NOT_STARTED.value,
                    DepartmentStatus.IN_PROGRESS.value,
                ]),
            )
            .scalar()
        ) or 0

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def get_order(self, order_id: str) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError(f"Order with ID {order_id} not found")
        return order

    def latest_order_number(self, prefix: str) -> Optional[str]:
        row = (
            self.db.query(Order.order_number)
            .filter(Order.order_number.like(f"{prefix}%"))
            # Longer numbers carry a longer sequence once it outgrows its padding
            .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
            .first()
        )
        return row[0] if row else None

    def list_orders(self, status: Optional[str] = None, search: Optional[str] = None,
                    skip: int = 0, limit: int = 100, search_customer: bool = True) -> List[Order]:
        """List orders, highest priority first.

        ``search_customer`` widens the search to the customer name; callers
        that may not see customer info search order numbers only.
        """
        query = self.db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        if search:
            pattern = f"%{search}%"
            if search_customer:
                query = query.filter(or_(Order.order_number.ilike(pattern), Order.customer_name.ilike(pattern)))
            else:
                query = query.filter(Order.order_number.ilike(pattern))
        return (
            query.order_by(Order.priority.desc(), Order.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def transition_order(self, order: Order, expected_status: OrderStatus, status: OrderStatus,
                         **values: Any) -> Order:
        """Move ``order`` to ``status`` only if it is still in ``expected_status``.

        Raises ConflictError when another writer moved the order first.
        """
        values["status"] = OrderStatus(status).value
        values["updated_at"] = utcnow()
        result = self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus(expected_status).value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise ConflictError(
                "Order status was changed concurrently; reload and retry",
                details={"order_id": order.id, "expected_status": OrderStatus(expected_status).value},
            )
        self.db.refresh(order)
        return order

    def set_order_status(self, order: Order, status: str, **values: Any) -> None:
        order.status = status
        for field, value in values.items():
            setattr(order, field, value)
        order.updated_at = utcnow()

    def order_counts_by_status(self) -> Dict[str, int]:
        rows = self.db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        return {status: count for status, count in rows}

    def count_open_orders_due(self, before: Optional[date] = None, on: Optional[date] = None) -> int:
        """Count orders not yet completed whose due date is before or on a day."""
        query = (
            self.db.query(func.count(Order.id))
            .join(OrderDetails, OrderDetails.order_id == Order.id)
            .filter(Order.status != OrderStatus.COMPLETED.value)
        )
        if before is not None:
            query = query.filter(OrderDetails.due_date < before)
        if on is not None:
            query = query.filter(OrderDetails.due_date == on)
        return query.scalar() or 0

    def orders_with_status(self, status: OrderStatus) -> List[Order]:
        return self.db.query(Order).filter(Order.status == OrderStatus(status).value).all()

    def count_completed_since(self, since: datetime) -> int:
        return (
            self.db.query(func.count(Order.id))
            .filter(Order.status == OrderStatus.COMPLETED.value, Order.completed_at >= since)
            .scalar()
        ) or 0

    def recently_completed(self, limit: int = 100) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.status == OrderStatus.COMPLETED.value, Order.completed_at.isnot(None))
            .order_by(Order.completed_at.desc())
            .limit(limit)
            .all()
        )

    def delete_order(self, order: Order) -> None:
        """Delete an order and everything it owns in the current transaction."""
        order_id = order.id
        self.db.query(FinalSubmission).filter(FinalSubmission.order_id == order_id).delete(synchronize_session=False)
        self.db.query(DepartmentTracking).filter(DepartmentTracking.order_id == order_id).delete(synchronize_session=False)
        self.db.query(Stone).filter(Stone.order_id == order_id).delete(synchronize_session=False)
        self.db.query(OrderDetails).filter(OrderDetails.order_id == order_id).delete(synchronize_session=False)
        self.db.query(OrderActivity).filter(OrderActivity.order_id == order_id).delete(synchronize_session=False)
        self.db.query(Order).filter(Order.id == order_id).delete(synchronize_session=False)
        self.db.expunge(order)

    # ------------------------------------------------------------------
    # Department tracking
    # ------------------------------------------------------------------
    def list_tracking(self, order_id: str) -> List[DepartmentTracking]:
        return (
            self.db.query(DepartmentTracking)
            .filter(DepartmentTracking.order_id == order_id)
            .order_by(DepartmentTracking.sequence_order)
            .all()
        )

    def get_tracking(self, order_id: str, department: str) -> DepartmentTracking:
        tracking = (
            self.db.query(DepartmentTracking)
            .filter(
                DepartmentTracking.order_id == order_id,
                DepartmentTracking.department_name == department,
            )
            .first()
        )
        if not tracking:
            raise NotFoundError(f"Department tracking for {department} not found for order {order_id}")
        return tracking

    def tracking_by_status(self, department: str, status: DepartmentStatus) -> List[DepartmentTracking]:
        return (
            self.db.query(DepartmentTracking)
            .join(Order, Order.id == DepartmentTracking.order_id)
            .filter(
                DepartmentTracking.department_name == department,
                DepartmentTracking.status == status.value,
            )
            .order_by(Order.priority.desc(), DepartmentTracking.created_at)
            .all()
        )

    def list_movements(self, order_id: Optional[str] = None, skip: int = 0,
                       limit: int = 20) -> Tuple[List[DepartmentTracking], int]:
        """Tracking rows that took gold in, newest first, with the total count."""
        query = self.db.query(DepartmentTracking).filter(DepartmentTracking.gold_weight_in.isnot(None))
        if order_id is not None:
            query = query.filter(DepartmentTracking.order_id == order_id)
        total = query.count()
        rows = (
            query.order_by(DepartmentTracking.started_at.desc(), DepartmentTracking.sequence_order.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return rows, total

    def transition_tracking(self, tracking_id: str, expected_status: DepartmentStatus,
                            expected_version: int, values: Dict[str, Any]) -> DepartmentTracking:
        """Write ``values`` only if the row still has the status and version we read.

        Raises ConflictError when another writer got there first.
        """
        values = dict(values)
        values["version"] = expected_version + 1
        values["updated_at"] = utcnow()
        result = self.db.execute(
            update(DepartmentTracking)
            .where(
                DepartmentTracking.id == tracking_id,
                DepartmentTracking.status == DepartmentStatus(expected_status).value,
                DepartmentTracking.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise ConflictError(
                "Department tracking was modified concurrently; reload and retry",
                details={"tracking_id": tracking_id, "expected_status": DepartmentStatus(expected_status).value},
            )
        tracking = self.db.get(DepartmentTracking, tracking_id)
        self.db.refresh(tracking)
        return tracking

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------
    def get_submission(self, submission_id: str) -> FinalSubmission:
        submission = self.db.query(FinalSubmission).filter(FinalSubmission.id == submission_id).first()
        if not submission:
            raise NotFoundError(f"Submission with ID {submission_id} not found")
        return submission

    def submission_for_order(self, order_id: str) -> Optional[FinalSubmission]:
        return self.db.query(FinalSubmission).filter(FinalSubmission.order_id == order_id).first()

    def list_submissions(self, approved: Optional[bool] = None) -> List[FinalSubmission]:
        query = self.db.query(FinalSubmission)
        if approved is not None:
            query = query.filter(FinalSubmission.customer_approved.is_(approved))
        return query.order_by(FinalSubmission.submitted_at.desc()).all()

    def delete_submission(self, submission: FinalSubmission) -> None:
        self.db.delete(submission)

    # ------------------------------------------------------------------
    # Activity
    # ------------------------------------------------------------------
    def list_activity(self, order_id: str, limit: int = 100) -> List[OrderActivity]:
        return (
            self.db.query(OrderActivity)
            .filter(OrderActivity.order_id == order_id)
            .order_by(OrderActivity.created_at.desc(), OrderActivity.id.desc())
            .limit(limit)
            .all()
        )
