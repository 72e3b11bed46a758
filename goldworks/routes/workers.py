"""Worker workload and self-assign queue routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from goldworks.auth import require_department_manager, require_worker
from goldworks.deps import get_assignment_resolver
from goldworks.models.user import User
from goldworks.schemas.department import PendingAssignment, WorkerWorkload
from goldworks.services.assignment import AssignmentResolver

router = APIRouter(prefix="/workers", tags=["Workers"])


@router.get("/departments/{department}", response_model=List[WorkerWorkload])
async def department_workload(
    department: str,
    resolver: AssignmentResolver = Depends(get_assignment_resolver),
    current_user: User = Depends(require_department_manager)
):
    """Workers of a department, least busy first."""
    return resolver.workload(department)


@router.get("/me/pending", response_model=List[PendingAssignment])
async def my_pending_work(
    resolver: AssignmentResolver = Depends(get_assignment_resolver),
    current_user: User = Depends(require_worker)
):
    """Work waiting to be picked up in the caller's department."""
    if not current_user.department:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User has no department"
        )
    return [
        PendingAssignment(
            tracking_id=tracking.id,
            order_id=tracking.order_id,
            order_number=tracking.order.order_number,
            department_name=tracking.department_name,
            priority=tracking.order.priority,
            created_at=tracking.created_at,
        )
        for tracking in resolver.pending_for_department(current_user.department)
    ]
