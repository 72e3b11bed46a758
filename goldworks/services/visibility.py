"""Response shaping.

Role-based field visibility is applied here: callers without
``Capability.VIEW_CUSTOMER_INFO`` never receive customer fields, and order
search skips the customer name for them.
"""
from typing import List, Optional

from goldworks.models.department import DEPARTMENT_DISPLAY_NAMES, DepartmentName, DepartmentTracking
from goldworks.models.order import Order
from goldworks.models.submission import FinalSubmission
from goldworks.models.user import Capability, User
from goldworks.schemas.department import (
    DepartmentSummary,
    DepartmentTrackingResponse,
    OrderDepartmentsResponse,
    WorkerSummary,
)
from goldworks.schemas.order import OrderDetailsResponse, OrderResponse, OrderSummary, StoneResponse
from goldworks.schemas.submission import SubmissionResponse, WeightVarianceResponse
from goldworks.services import progress
from goldworks.services.variance import calculate_weight_variance


def can_view_customer(viewer: Optional[User]) -> bool:
    return viewer is not None and viewer.can(Capability.VIEW_CUSTOMER_INFO)


def tracking_response(tracking: DepartmentTracking) -> DepartmentTrackingResponse:
    department = DepartmentName(tracking.department_name)
    return DepartmentTrackingResponse(
        id=tracking.id,
        order_id=tracking.order_id,
        department_name=department,
        display_name=DEPARTMENT_DISPLAY_NAMES[department],
        sequence_order=tracking.sequence_order,
        status=tracking.status,
        assigned_to=WorkerSummary.model_validate(tracking.assigned_to) if tracking.assigned_to else None,
        gold_weight_in=tracking.gold_weight_in,
        gold_weight_out=tracking.gold_weight_out,
        gold_loss=tracking.gold_loss,
        is_weight_gain=tracking.gold_loss is not None and tracking.gold_loss < 0,
        estimated_hours=tracking.estimated_hours,
        started_at=tracking.started_at,
        completed_at=tracking.completed_at,
        duration_hours=progress.duration_hours(tracking),
        notes=tracking.notes,
        issues=tracking.issues,
        photos=tracking.photos or [],
        work_data=tracking.work_data,
        work_progress=progress.department_progress(department, tracking.work_data),
        version=tracking.version,
    )


def departments_response(order: Order, rows: List[DepartmentTracking]) -> OrderDepartmentsResponse:
    return OrderDepartmentsResponse(
        order_id=order.id,
        order_number=order.order_number,
        order_status=order.status,
        departments=[tracking_response(row) for row in rows],
        summary=DepartmentSummary(**progress.summarize(rows)),
    )


def order_response(order: Order, viewer: Optional[User]) -> OrderResponse:
    show_customer = can_view_customer(viewer)
    rows = order.department_tracking
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name if show_customer else None,
        customer_phone=order.customer_phone if show_customer else None,
        customer_email=order.customer_email if show_customer else None,
        product_photo_url=order.product_photo_url,
        priority=order.priority,
        status=order.status,
        current_department=progress.current_department(rows),
        completion_percentage=progress.completion_percentage(rows),
        details=OrderDetailsResponse.model_validate(order.details) if order.details else None,
        stones=[StoneResponse.model_validate(stone) for stone in order.stones],
        has_submission=order.final_submission is not None,
        created_at=order.created_at,
        updated_at=order.updated_at,
        completed_at=order.completed_at,
    )


def order_summary(order: Order, viewer: Optional[User]) -> OrderSummary:
    rows = order.department_tracking
    return OrderSummary(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name if can_view_customer(viewer) else None,
        priority=order.priority,
        status=order.status,
        current_department=progress.current_department(rows),
        completion_percentage=progress.completion_percentage(rows),
        due_date=order.details.due_date if order.details else None,
        created_at=order.created_at,
    )


def submission_response(submission: FinalSubmission, viewer: Optional[User], threshold: float) -> SubmissionResponse:
    order = submission.order
    initial = order.details.gold_weight_initial if order.details else 0.0
    variance = calculate_weight_variance(initial, submission.final_gold_weight, threshold)
    return SubmissionResponse(
        id=submission.id,
        order_id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name if can_view_customer(viewer) else None,
        final_gold_weight=submission.final_gold_weight,
        final_stone_weight=submission.final_stone_weight,
        final_purity=submission.final_purity,
        number_of_pieces=submission.number_of_pieces,
        total_weight=submission.total_weight,
        quality_grade=submission.quality_grade,
        quality_notes=submission.quality_notes,
        completion_photos=submission.completion_photos or [],
        certificate_url=submission.certificate_url,
        submitted_by_id=submission.submitted_by_id,
        submitted_at=submission.submitted_at,
        weight_variance=WeightVarianceResponse(**variance.to_dict()),
        customer_approved=submission.customer_approved,
        approval_notes=submission.approval_notes,
        approval_date=submission.approval_date,
    )
