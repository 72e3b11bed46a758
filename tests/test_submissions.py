import pytest
from sqlalchemy.orm.attributes import set_committed_value

from goldworks.exceptions import (
    AlreadyExistsError,
    ConflictError,
    HighVarianceUnacknowledgedError,
    InvalidTransitionError,
    ValidationError,
)
from goldworks.models.activity import Notification, NotificationType
from goldworks.models.order import OrderStatus
from goldworks.repository import WorkflowRepository
from goldworks.schemas.submission import SubmissionCreate
from goldworks.services.orders import OrderService
from goldworks.services.submissions import SubmissionService


@pytest.fixture()
def service(repo, notifier):
    return SubmissionService(repo, notifier, threshold=5.0)


@pytest.fixture()
def finished_order(make_order, finish_departments):
    order = make_order()
    finish_departments(order.id)
    return order


def submission(weight, **extra):
    return SubmissionCreate(final_gold_weight=weight, final_purity=22, **extra)


def test_submit_requires_all_departments(service, repo, make_order, users):
    order = make_order()
    OrderService(repo).send_to_factory(order.id)

    with pytest.raises(InvalidTransitionError) as excinfo:
        service.submit(order.id, submission(24.8), users["manager"])
    assert len(excinfo.value.details["incomplete_departments"]) == 9


def test_submit_requires_order_in_factory(service, make_order, users):
    order = make_order()
    with pytest.raises(InvalidTransitionError):
        service.submit(order.id, submission(24.8), users["manager"])


def test_submit_completes_order(service, repo, finished_order, users):
    created = service.submit(finished_order.id, submission(24.8, quality_grade="A+"), users["manager"])

    order = repo.get_order(finished_order.id)
    assert order.status == OrderStatus.COMPLETED.value
    assert order.completed_at is not None
    assert created.submitted_by_id == users["manager"].id
    variance = service.variance_for(created)
    assert variance.percentage_variance == 2.75
    assert not variance.is_high_variance


def test_high_variance_needs_acknowledgement(service, repo, finished_order, users):
    with pytest.raises(HighVarianceUnacknowledgedError) as excinfo:
        service.submit(finished_order.id, submission(23.0), users["manager"])
    assert excinfo.value.details["weight_variance"]["percentage_variance"] == 9.8

    assert repo.submission_for_order(finished_order.id) is None
    assert repo.get_order(finished_order.id).status == OrderStatus.IN_FACTORY.value


def test_acknowledged_high_variance_alerts_office(service, repo, session, finished_order, users):
    service.submit(finished_order.id, submission(23.0, acknowledge_variance=True), users["manager"])

    assert repo.submission_for_order(finished_order.id) is not None
    alerts = (
        session.query(Notification)
        .filter(Notification.type == NotificationType.HIGH_VARIANCE_ALERT.value)
        .all()
    )
    assert {alert.user_id for alert in alerts} == {users["admin"].id, users["office"].id}


def test_second_submission_fails(service, finished_order, users):
    service.submit(finished_order.id, submission(24.8), users["manager"])
    with pytest.raises(AlreadyExistsError):
        service.submit(finished_order.id, submission(24.8), users["manager"])


@pytest.fixture()
def stale_repo(app):
    """A second session, as held by a request that raced another one."""
    repo = WorkflowRepository(app.state.session_factory())
    yield repo
    repo.db.close()


def test_racing_submission_gets_conflict(service, repo, stale_repo, finished_order, users, monkeypatch):
    # The racing request read the order and found no submission before the winner committed
    stale_repo.get_order(finished_order.id)
    monkeypatch.setattr(stale_repo, "submission_for_order", lambda order_id: None)

    winner = service.submit(finished_order.id, submission(24.8), users["manager"])

    with pytest.raises(ConflictError):
        SubmissionService(stale_repo).submit(finished_order.id, submission(24.7), users["manager"])

    assert repo.submission_for_order(finished_order.id).id == winner.id
    assert repo.submission_for_order(finished_order.id).final_gold_weight == 24.8


def test_duplicate_submission_row_maps_to_already_exists(service, stale_repo, finished_order, users, monkeypatch):
    service.submit(finished_order.id, submission(24.8), users["manager"])

    set_committed_value(stale_repo.get_order(finished_order.id), "status", OrderStatus.IN_FACTORY.value)
    monkeypatch.setattr(stale_repo, "submission_for_order", lambda order_id: None)
    monkeypatch.setattr(stale_repo, "transition_order", lambda order, *args, **values: order)

    with pytest.raises(AlreadyExistsError):
        SubmissionService(stale_repo).submit(finished_order.id, submission(24.7), users["manager"])


def test_non_positive_weight_is_rejected(service, finished_order, users):
    payload = SubmissionCreate.model_construct(final_gold_weight=0.0, final_purity=22, acknowledge_variance=True)
    with pytest.raises(ValidationError):
        service.submit(finished_order.id, payload, users["manager"])


def test_approval_is_repeatable_and_keeps_order_completed(service, repo, finished_order, users):
    created = service.submit(finished_order.id, submission(24.8), users["manager"])

    approved = service.set_approval(created.id, True, "Customer happy", users["office"])
    assert approved.customer_approved is True
    assert approved.approval_notes == "Customer happy"
    first_date = approved.approval_date
    assert first_date is not None

    revoked = service.set_approval(created.id, False, None, users["office"])
    assert revoked.customer_approved is False
    assert revoked.approval_notes is None
    assert revoked.approval_date >= first_date
    assert repo.get_order(finished_order.id).status == OrderStatus.COMPLETED.value


def test_withdraw_allows_resubmission(service, repo, finished_order, users):
    created = service.submit(finished_order.id, submission(24.8), users["manager"])

    order = service.withdraw(created.id, users["manager"])
    assert order.status == OrderStatus.IN_FACTORY.value
    assert order.completed_at is None
    assert repo.submission_for_order(finished_order.id) is None

    again = service.submit(finished_order.id, submission(24.9), users["manager"])
    assert again.final_gold_weight == 24.9


def test_approved_submission_cannot_be_withdrawn(service, finished_order, users):
    created = service.submit(finished_order.id, submission(24.8), users["manager"])
    service.set_approval(created.id, True)
    with pytest.raises(InvalidTransitionError):
        service.withdraw(created.id)


def test_list_and_stats(service, make_order, finish_departments, users):
    first = make_order()
    second = make_order()
    finish_departments(first.id)
    finish_departments(second.id)
    approved = service.submit(first.id, submission(24.8, quality_grade="A"), users["manager"])
    service.submit(second.id, submission(23.0, quality_grade="A", acknowledge_variance=True), users["manager"])
    service.set_approval(approved.id, True)

    submissions, summary = service.list_submissions()
    assert len(submissions) == 2
    assert summary["total_submissions"] == 2
    assert summary["high_variance_count"] == 1
    assert summary["pending_approval_count"] == 1
    assert summary["average_variance"] == round((2.75 + 9.8) / 2, 2)

    pending, _ = service.list_submissions(approved=False)
    assert [s.order_id for s in pending] == [second.id]

    stats = service.stats()
    assert stats["by_quality_grade"] == {"A": 2}
