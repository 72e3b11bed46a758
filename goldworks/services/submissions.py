"""Final submission, weight variance gate, approval and withdrawal."""
import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from goldworks.exceptions import (
    AlreadyExistsError,
    HighVarianceUnacknowledgedError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from goldworks.models.activity import ActivityAction, NotificationType
from goldworks.models.order import Order, OrderStatus
from goldworks.models.submission import FinalSubmission
from goldworks.models.user import User, UserRole
from goldworks.repository import WorkflowRepository, utcnow
from goldworks.schemas.submission import SubmissionCreate
from goldworks.services import progress
from goldworks.services.activity import ActivityLog
from goldworks.services.notifications import NotificationDispatcher, NotificationMessage
from goldworks.services.variance import DEFAULT_VARIANCE_THRESHOLD, WeightVariance, calculate_weight_variance

logger = logging.getLogger(__name__)

NOTIFICATION_RECIPIENT_ROLES = (UserRole.ADMIN, UserRole.OFFICE_STAFF)


class SubmissionService:
    """Hands a finished order from the factory back to the office."""

    def __init__(
        self,
        repo: WorkflowRepository,
        notifier: Optional[NotificationDispatcher] = None,
        threshold: float = DEFAULT_VARIANCE_THRESHOLD,
    ) -> None:
        self.repo = repo
        self.notifier = notifier
        self.threshold = threshold
        self.activity = ActivityLog(repo)

    def variance_for(self, submission: FinalSubmission) -> WeightVariance:
        order = submission.order
        initial = order.details.gold_weight_initial if order.details else 0.0
        return calculate_weight_variance(initial, submission.final_gold_weight, self.threshold)

    def submit(self, order_id: str, payload: SubmissionCreate, actor: Optional[User] = None) -> FinalSubmission:
        order = self.repo.get_order(order_id)

        existing = self.repo.submission_for_order(order_id)
        if existing is not None:
            raise AlreadyExistsError(
                "This order has already been submitted",
                details={"existing_submission_id": existing.id},
            )

        if order.status != OrderStatus.IN_FACTORY.value:
            raise InvalidTransitionError(
                f"Order must be IN_FACTORY to submit. Current status: {order.status}",
                details={"order_status": order.status},
            )

        incomplete = progress.incomplete_departments(self.repo.list_tracking(order_id))
        if incomplete:
            raise InvalidTransitionError(
                f"Cannot submit order - {len(incomplete)} department(s) not completed",
                details={"incomplete_departments": [dept.value for dept in incomplete]},
            )

        initial = order.details.gold_weight_initial if order.details else 0.0
        if initial is None or initial <= 0:
            raise ValidationError("Order has no positive initial gold weight", details={"field": "gold_weight_initial"})
        if payload.final_gold_weight is None or payload.final_gold_weight <= 0:
            raise ValidationError("final_gold_weight must be positive", details={"field": "final_gold_weight"})

        variance = calculate_weight_variance(initial, payload.final_gold_weight, self.threshold)
        if variance.is_high_variance and not payload.acknowledge_variance:
            raise HighVarianceUnacknowledgedError(
                f"Weight variance of {variance.percentage_variance}% exceeds {self.threshold}% threshold. "
                "Please acknowledge to proceed.",
                details={"weight_variance": variance.to_dict()},
            )

        actor_id = actor.id if actor else None
        data = payload.model_dump(exclude={"acknowledge_variance"})
        try:
            with self.repo.atomic():
                self.repo.transition_order(order, OrderStatus.IN_FACTORY, OrderStatus.COMPLETED, completed_at=utcnow())
                submission = FinalSubmission(order_id=order_id, submitted_by_id=actor_id, **data)
                self.repo.add(submission)
                self.repo.flush()
                self.activity.status_change(
                    order_id, OrderStatus.IN_FACTORY.value, OrderStatus.COMPLETED.value, actor_id
                )
                self.activity.record(
                    order_id,
                    ActivityAction.ORDER_SUBMITTED,
                    "Order submitted from factory",
                    description=f"Final gold weight {payload.final_gold_weight}g "
                                f"({variance.percentage_variance}% variance)",
                    user_id=actor_id,
                    details={"weight_variance": variance.to_dict()},
                )
        except IntegrityError:
            raise AlreadyExistsError(
                "This order has already been submitted",
                details={"order_id": order_id},
            )
        self.repo.refresh(submission)

        if variance.is_high_variance:
            logger.warning(
                "High weight variance %s%% on order %s (initial %sg, final %sg)",
                variance.percentage_variance, order_id, variance.initial_weight, variance.final_weight,
            )
        logger.info("Order %s submitted by %s", order_id, actor_id)
        self._notify_submitted(order, variance, actor)
        return submission

    def set_approval(self, submission_id: str, approved: bool, notes: Optional[str] = None,
                     actor: Optional[User] = None) -> FinalSubmission:
        """Record the customer decision. Repeatable, and never touches the order status."""
        submission = self.repo.get_submission(submission_id)
        actor_id = actor.id if actor else None
        with self.repo.atomic():
            submission.customer_approved = approved
            submission.approval_notes = notes
            submission.approval_date = utcnow()
            self.activity.record(
                submission.order_id,
                ActivityAction.SUBMISSION_APPROVAL,
                "Submission approved" if approved else "Submission approval withdrawn",
                description=notes,
                user_id=actor_id,
                details={"approved": approved},
            )
        self.repo.refresh(submission)
        logger.info("Submission %s approval set to %s by %s", submission_id, approved, actor_id)
        return submission

    def withdraw(self, submission_id: str, actor: Optional[User] = None) -> Order:
        """Delete an unapproved submission and send the order back to the factory."""
        submission = self.repo.get_submission(submission_id)
        if submission.customer_approved:
            raise InvalidTransitionError(
                "An approved submission cannot be withdrawn",
                details={"submission_id": submission_id},
            )

        order = submission.order
        actor_id = actor.id if actor else None
        with self.repo.atomic():
            self.repo.delete_submission(submission)
            self.repo.transition_order(order, OrderStatus.COMPLETED, OrderStatus.IN_FACTORY, completed_at=None)
            self.activity.status_change(order.id, OrderStatus.COMPLETED.value, OrderStatus.IN_FACTORY.value, actor_id)
            self.activity.record(
                order.id,
                ActivityAction.SUBMISSION_WITHDRAWN,
                "Submission withdrawn",
                user_id=actor_id,
                details={"submission_id": submission_id},
            )
        logger.info("Submission %s withdrawn by %s; order %s back in factory", submission_id, actor_id, order.id)
        return order

    def get_submission(self, submission_id: str) -> FinalSubmission:
        return self.repo.get_submission(submission_id)

    def submission_for_order(self, order_id: str) -> FinalSubmission:
        self.repo.get_order(order_id)
        submission = self.repo.submission_for_order(order_id)
        if submission is None:
            raise NotFoundError(f"No submission found for order {order_id}")
        return submission

    def list_submissions(self, approved: Optional[bool] = None) -> Tuple[List[FinalSubmission], Dict[str, Any]]:
        submissions = self.repo.list_submissions(approved)
        return submissions, self._summary(submissions)

    def stats(self) -> Dict[str, Any]:
        submissions = self.repo.list_submissions()
        summary = self._summary(submissions)
        summary["by_quality_grade"] = dict(Counter(
            submission.quality_grade for submission in submissions if submission.quality_grade
        ))
        return summary

    def _summary(self, submissions: List[FinalSubmission]) -> Dict[str, Any]:
        variances = [self.variance_for(submission) for submission in submissions]
        average = sum(v.percentage_variance for v in variances) / len(variances) if variances else 0.0
        return {
            "total_submissions": len(submissions),
            "high_variance_count": sum(1 for v in variances if v.is_high_variance),
            "pending_approval_count": sum(1 for s in submissions if not s.customer_approved),
            "average_variance": round(average, 2),
        }

    def _notify_submitted(self, order: Order, variance: WeightVariance, actor: Optional[User]) -> None:
        if self.notifier is None:
            return
        recipients = [user.id for user in self.repo.active_users_with_roles(NOTIFICATION_RECIPIENT_ROLES)]
        submitter = actor.name if actor else "Unknown"
        self.notifier.dispatch(NotificationMessage(
            type=NotificationType.ORDER_SUBMITTED,
            title="Order Submitted",
            message=f"Order {order.order_number} has been submitted from factory by {submitter}",
            recipient_ids=recipients,
            order_id=order.id,
            order_number=order.order_number,
        ))
        if variance.is_high_variance:
            self.notifier.dispatch(NotificationMessage(
                type=NotificationType.HIGH_VARIANCE_ALERT,
                title="High Variance Alert",
                message=(
                    f"High weight variance ({variance.percentage_variance}%) on order {order.order_number}. "
                    f"Initial: {variance.initial_weight}g, Final: {variance.final_weight}g"
                ),
                recipient_ids=recipients,
                order_id=order.id,
                order_number=order.order_number,
                urgent=True,
            ))
