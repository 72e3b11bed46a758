"""Factory floor reporting: gold held in production and per-department gold movements."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from goldworks.models.department import (
    DEPARTMENT_DISPLAY_NAMES,
    DEPARTMENT_ORDER,
    DepartmentName,
    DepartmentTracking,
)
from goldworks.models.order import OrderStatus
from goldworks.repository import WorkflowRepository, utcnow
from goldworks.services import progress

# Completed orders averaged for production time
PRODUCTION_TIME_WINDOW = 100


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def movement(row: DepartmentTracking) -> Dict[str, Any]:
    """One department's gold in/out for an order."""
    department = DepartmentName(row.department_name)
    return {
        "id": row.id,
        "order_id": row.order_id,
        "order_number": row.order.order_number,
        "department": department.value,
        "display_name": DEPARTMENT_DISPLAY_NAMES[department],
        "status": row.status,
        "worker_name": row.assigned_to.name if row.assigned_to else None,
        "gold_weight_in": row.gold_weight_in,
        "gold_weight_out": row.gold_weight_out,
        "gold_loss": row.gold_loss,
        "is_weight_gain": row.gold_loss is not None and row.gold_loss < 0,
        "started_at": row.started_at,
        "completed_at": row.completed_at,
    }


class FactoryReport:
    """Read-only gold reconciliation views over orders and tracking rows."""

    def __init__(self, repo: WorkflowRepository) -> None:
        self.repo = repo

    def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        orders = self.repo.orders_with_status(OrderStatus.IN_FACTORY)

        total_gold = 0.0
        loads: Dict[DepartmentName, Dict[str, float]] = {}
        for order in orders:
            weight = order.details.gold_weight_initial if order.details else 0.0
            total_gold += weight
            current = progress.current_department(order.department_tracking)
            if current is None:
                continue
            load = loads.setdefault(current, {"count": 0, "weight": 0.0})
            load["count"] += 1
            load["weight"] += weight

        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return {
            "total_gold_in_factory": round(total_gold, 2),
            "orders_in_factory": len(orders),
            "orders_by_department": [
                {
                    "department": department.value,
                    "display_name": DEPARTMENT_DISPLAY_NAMES[department],
                    "count": int(loads[department]["count"]),
                    "total_weight": round(loads[department]["weight"], 2),
                }
                for department in DEPARTMENT_ORDER
                if department in loads
            ],
            "completed_today": self.repo.count_completed_since(day_start),
            "average_production_days": self._average_production_days(),
        }

    def gold_movements(self, order_id: Optional[str] = None, skip: int = 0,
                       limit: int = 20) -> Tuple[List[Dict[str, Any]], int]:
        if order_id is not None:
            self.repo.get_order(order_id)
        rows, total = self.repo.list_movements(order_id, skip, limit)
        return [movement(row) for row in rows], total

    def _average_production_days(self) -> float:
        durations = [
            (_as_utc(order.completed_at) - _as_utc(order.created_at)).total_seconds() / 86400
            for order in self.repo.recently_completed(PRODUCTION_TIME_WINDOW)
            if order.created_at and order.completed_at
        ]
        if not durations:
            return 0.0
        return round(sum(durations) / len(durations), 1)
