"""Department tracking schemas."""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from goldworks.models.department import DepartmentName, DepartmentStatus


class StartDepartmentRequest(BaseModel):
    """Schema for starting work in a department."""
    gold_weight_in: float = Field(..., ge=0)
    estimated_hours: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=2000)


class CompleteDepartmentRequest(BaseModel):
    """Schema for completing a department."""
    gold_weight_out: float = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=2000)
    issues: Optional[str] = Field(None, max_length=2000)


class HoldDepartmentRequest(BaseModel):
    """Schema for putting a department on hold."""
    reason: str = Field(..., min_length=1, max_length=500)


class AssignWorkerRequest(BaseModel):
    """Schema for admin assignment of a worker."""
    worker_id: str
    estimated_hours: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = Field(None, max_length=2000)


class WorkDataRequest(BaseModel):
    """Schema for recording department work (form fields and uploaded file URLs)."""
    form_data: Dict[str, Any] = {}
    photos: List[str] = Field(default_factory=list, max_length=10)
    files: List[str] = Field(default_factory=list, max_length=10)
    notes: Optional[str] = Field(None, max_length=500)


class WorkerSummary(BaseModel):
    """Worker reference embedded in tracking responses."""
    id: str
    name: str
    email: str
    department: Optional[str] = None

    class Config:
        from_attributes = True


class DepartmentTrackingResponse(BaseModel):
    """Response schema for one department tracking row."""
    id: str
    order_id: str
    department_name: DepartmentName
    display_name: str
    sequence_order: int
    status: DepartmentStatus
    assigned_to: Optional[WorkerSummary] = None
    gold_weight_in: Optional[float] = None
    gold_weight_out: Optional[float] = None
    gold_loss: Optional[float] = None
    is_weight_gain: bool = False
    estimated_hours: Optional[float] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_hours: Optional[float] = None
    notes: Optional[str] = None
    issues: Optional[str] = None
    photos: List[str] = []
    work_data: Optional[Dict[str, Any]] = None
    work_progress: int = 0
    version: int


class DepartmentSummary(BaseModel):
    """Order-level progress summary."""
    total_departments: int
    completed_departments: int
    current_department: Optional[DepartmentName] = None
    completion_percentage: int
    total_estimated_hours: Optional[float] = None
    total_actual_hours: Optional[float] = None
    total_gold_loss: Optional[float] = None


class OrderDepartmentsResponse(BaseModel):
    """All department rows of an order plus the summary."""
    order_id: str
    order_number: str
    order_status: str
    departments: List[DepartmentTrackingResponse]
    summary: DepartmentSummary


class WorkerWorkload(BaseModel):
    """Worker with the number of rows currently on their plate."""
    id: str
    name: str
    email: str
    current_workload: int


class PendingAssignment(BaseModel):
    """A row waiting in the self-assign queue."""
    tracking_id: str
    order_id: str
    order_number: str
    department_name: DepartmentName
    priority: int
    created_at: Optional[datetime] = None
