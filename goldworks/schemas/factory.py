"""Factory reporting schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from goldworks.models.department import DepartmentName


class DepartmentLoad(BaseModel):
    """Orders currently sitting at one department."""
    department: DepartmentName
    display_name: str
    count: int
    total_weight: float


class FactoryStats(BaseModel):
    """Gold held in production and throughput."""
    total_gold_in_factory: float
    orders_in_factory: int
    orders_by_department: List[DepartmentLoad] = []
    completed_today: int
    average_production_days: float


class GoldMovement(BaseModel):
    """Gold taken in and handed on by one department for one order."""
    id: str
    order_id: str
    order_number: str
    department: DepartmentName
    display_name: str
    status: str
    worker_name: Optional[str] = None
    gold_weight_in: Optional[float] = None
    gold_weight_out: Optional[float] = None
    gold_loss: Optional[float] = None
    is_weight_gain: bool = False
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class GoldMovementList(BaseModel):
    movements: List[GoldMovement]
    total: int
