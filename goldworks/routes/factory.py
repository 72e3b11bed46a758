"""Factory reporting routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from goldworks.auth import require_department_manager
from goldworks.deps import get_factory_report
from goldworks.models.user import User
from goldworks.schemas.factory import FactoryStats, GoldMovementList
from goldworks.services.factory import FactoryReport

router = APIRouter(prefix="/factory", tags=["Factory"])


@router.get("/stats", response_model=FactoryStats)
async def factory_stats(
    report: FactoryReport = Depends(get_factory_report),
    current_user: User = Depends(require_department_manager)
):
    """Gold in production, orders per department and throughput."""
    return report.stats()


@router.get("/movements", response_model=GoldMovementList)
async def gold_movements(
    order_id: Optional[str] = None,
    skip: int = 0,
    limit: int = Query(20, le=200),
    report: FactoryReport = Depends(get_factory_report),
    current_user: User = Depends(require_department_manager)
):
    """Gold in and out of each department, newest first."""
    movements, total = report.gold_movements(order_id=order_id, skip=skip, limit=limit)
    return {"movements": movements, "total": total}
