"""Final submission routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from goldworks.auth import require_any, require_approver, require_submitter, require_viewer
from goldworks.deps import get_submission_service
from goldworks.models.user import Capability, User
from goldworks.schemas.submission import (
    ApprovalUpdate,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionListSummary,
    SubmissionResponse,
    SubmissionStats,
)
from goldworks.services.submissions import SubmissionService
from goldworks.services.visibility import submission_response

router = APIRouter(tags=["Submissions"])


@router.post("/orders/{order_id}/submission", response_model=SubmissionResponse,
             status_code=status.HTTP_201_CREATED)
async def submit_order(
    order_id: str,
    data: SubmissionCreate,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_submitter)
):
    """Submit a finished order back to the office."""
    submission = service.submit(order_id, data, current_user)
    return submission_response(submission, current_user, service.threshold)


@router.get("/orders/{order_id}/submission", response_model=SubmissionResponse)
async def get_order_submission(
    order_id: str,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_viewer)
):
    """The submission of an order."""
    return submission_response(service.submission_for_order(order_id), current_user, service.threshold)


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    approved: Optional[bool] = Query(None, description="Filter by customer approval"),
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_viewer)
):
    """List submissions with a variance summary."""
    submissions, summary = service.list_submissions(approved)
    return SubmissionListResponse(
        data=[submission_response(s, current_user, service.threshold) for s in submissions],
        summary=SubmissionListSummary(**summary),
    )


@router.get("/submissions/stats", response_model=SubmissionStats)
async def submission_stats(
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_viewer)
):
    """Submission statistics."""
    return SubmissionStats(**service.stats())


@router.get("/submissions/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_viewer)
):
    """Get a specific submission."""
    return submission_response(service.get_submission(submission_id), current_user, service.threshold)


@router.put("/submissions/{submission_id}/approval", response_model=SubmissionResponse)
async def update_approval(
    submission_id: str,
    data: ApprovalUpdate,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_approver)
):
    """Record the customer approval decision."""
    submission = service.set_approval(submission_id, data.approved, data.notes, current_user)
    return submission_response(submission, current_user, service.threshold)


@router.delete("/submissions/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_submission(
    submission_id: str,
    service: SubmissionService = Depends(get_submission_service),
    current_user: User = Depends(require_any(Capability.SUBMIT_FINAL, Capability.APPROVE_SUBMISSION))
):
    """Withdraw an unapproved submission so the order can be resubmitted."""
    service.withdraw(submission_id, current_user)
    return None
