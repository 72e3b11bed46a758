"""Department tracking routes."""
from fastapi import APIRouter, Depends

from goldworks.auth import (
    require_department_access,
    require_department_manager,
    require_viewer,
    require_worker,
)
from goldworks.deps import get_assignment_resolver, get_workflow
from goldworks.models.user import User
from goldworks.schemas.department import (
    AssignWorkerRequest,
    CompleteDepartmentRequest,
    DepartmentTrackingResponse,
    HoldDepartmentRequest,
    OrderDepartmentsResponse,
    StartDepartmentRequest,
    WorkDataRequest,
)
from goldworks.services.assignment import AssignmentResolver
from goldworks.services.tracking import DepartmentWorkflow
from goldworks.services.visibility import departments_response, tracking_response

router = APIRouter(prefix="/orders", tags=["Departments"])


@router.get("/{order_id}/departments", response_model=OrderDepartmentsResponse)
async def list_departments(
    order_id: str,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_viewer)
):
    """All department rows of an order with a progress summary."""
    order, rows = workflow.list_departments(order_id)
    return departments_response(order, rows)


@router.get("/{order_id}/departments/{department}", response_model=DepartmentTrackingResponse)
async def get_department(
    order_id: str,
    department: str,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_viewer)
):
    """One department row."""
    return tracking_response(workflow.get_department(order_id, department))


@router.post("/{order_id}/departments/{department}/start", response_model=DepartmentTrackingResponse)
async def start_department(
    order_id: str,
    department: str,
    data: StartDepartmentRequest,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_department_access)
):
    """Start work, recording the gold weight received."""
    tracking = workflow.start(
        order_id, department, data.gold_weight_in,
        estimated_hours=data.estimated_hours, notes=data.notes, actor=current_user,
    )
    return tracking_response(tracking)


@router.post("/{order_id}/departments/{department}/complete", response_model=DepartmentTrackingResponse)
async def complete_department(
    order_id: str,
    department: str,
    data: CompleteDepartmentRequest,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_department_access)
):
    """Complete work, recording the gold weight handed on."""
    tracking = workflow.complete(
        order_id, department, data.gold_weight_out,
        notes=data.notes, issues=data.issues, actor=current_user,
    )
    return tracking_response(tracking)


@router.post("/{order_id}/departments/{department}/hold", response_model=DepartmentTrackingResponse)
async def hold_department(
    order_id: str,
    department: str,
    data: HoldDepartmentRequest,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_department_access)
):
    """Put work on hold with a reason."""
    return tracking_response(workflow.hold(order_id, department, data.reason, actor=current_user))


@router.post("/{order_id}/departments/{department}/resume", response_model=DepartmentTrackingResponse)
async def resume_department(
    order_id: str,
    department: str,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_department_access)
):
    """Resume work that was on hold."""
    return tracking_response(workflow.resume(order_id, department, actor=current_user))


@router.post("/{order_id}/departments/{department}/assign", response_model=DepartmentTrackingResponse)
async def assign_worker(
    order_id: str,
    department: str,
    data: AssignWorkerRequest,
    resolver: AssignmentResolver = Depends(get_assignment_resolver),
    current_user: User = Depends(require_department_manager)
):
    """Assign a worker to a pending department."""
    tracking = resolver.assign(
        order_id, department, data.worker_id, current_user.id,
        estimated_hours=data.estimated_hours, notes=data.notes,
    )
    return tracking_response(tracking)


@router.post("/{order_id}/departments/{department}/self-assign", response_model=DepartmentTrackingResponse)
async def self_assign(
    order_id: str,
    department: str,
    resolver: AssignmentResolver = Depends(get_assignment_resolver),
    current_user: User = Depends(require_worker)
):
    """Pick up pending work in the caller's own department."""
    tracking = resolver.self_assign(order_id, department, current_user.id, current_user.department)
    return tracking_response(tracking)


@router.post("/{order_id}/departments/{department}/unassign", response_model=DepartmentTrackingResponse)
async def unassign_worker(
    order_id: str,
    department: str,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_department_manager)
):
    """Remove the worker from a department that has not started."""
    return tracking_response(workflow.unassign(order_id, department, actor=current_user))


@router.post("/{order_id}/departments/{department}/work", response_model=DepartmentTrackingResponse)
async def record_work(
    order_id: str,
    department: str,
    data: WorkDataRequest,
    workflow: DepartmentWorkflow = Depends(get_workflow),
    current_user: User = Depends(require_department_access)
):
    """Save department form data and uploaded photo/file URLs."""
    tracking = workflow.record_work(
        order_id, department,
        form_data=data.form_data, photos=data.photos, files=data.files, notes=data.notes,
        actor=current_user,
    )
    return tracking_response(tracking)
