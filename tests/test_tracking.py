import pytest

from goldworks.exceptions import (
    AlreadyStartedError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    NotStartedError,
    ValidationError,
)
from goldworks.models.department import DepartmentStatus
from goldworks.models.order import OrderStatus
from goldworks.repository import WorkflowRepository
from goldworks.services.assignment import AssignmentResolver
from goldworks.services.tracking import DepartmentWorkflow


@pytest.fixture()
def workflow(repo):
    return DepartmentWorkflow(repo)


@pytest.fixture()
def assigned_order(make_order, users):
    """Order with CAD and PRINT workers assigned up front."""
    return make_order(assignments={"CAD": users["CAD"].id, "PRINT": users["PRINT"].id})


def test_start_records_weight_and_moves_order_into_factory(workflow, assigned_order, users):
    tracking = workflow.start(assigned_order.id, "CAD", 25.5, estimated_hours=4, actor=users["CAD"])

    assert tracking.status == DepartmentStatus.IN_PROGRESS.value
    assert tracking.gold_weight_in == 25.5
    assert tracking.estimated_hours == 4
    assert tracking.started_at is not None
    assert tracking.version == 2
    assert workflow.repo.get_order(assigned_order.id).status == OrderStatus.IN_FACTORY.value


def test_start_requires_an_assigned_worker(workflow, make_order):
    order = make_order()
    with pytest.raises(AlreadyStartedError):
        workflow.start(order.id, "CAD", 25.5)


def test_start_twice_fails(workflow, assigned_order):
    workflow.start(assigned_order.id, "CAD", 25.5)
    with pytest.raises(AlreadyStartedError):
        workflow.start(assigned_order.id, "CAD", 25.5)


def test_start_rejects_negative_or_missing_weight(workflow, assigned_order):
    with pytest.raises(ValidationError):
        workflow.start(assigned_order.id, "CAD", -1)
    with pytest.raises(ValidationError):
        workflow.start(assigned_order.id, "CAD", None)


def test_start_waits_for_earlier_departments(workflow, assigned_order):
    with pytest.raises(InvalidTransitionError) as excinfo:
        workflow.start(assigned_order.id, "PRINT", 25.5)
    assert excinfo.value.details["blocking_department"] == "CAD"


def test_complete_records_loss(workflow, assigned_order):
    workflow.start(assigned_order.id, "CAD", 25.5)
    tracking = workflow.complete(assigned_order.id, "CAD", 25.25, notes="clean")

    assert tracking.status == DepartmentStatus.COMPLETED.value
    assert tracking.gold_weight_out == 25.25
    assert tracking.gold_loss == 0.25
    assert tracking.completed_at is not None
    assert tracking.notes == "clean"


def test_weight_gain_is_allowed(workflow, assigned_order):
    workflow.start(assigned_order.id, "CAD", 25.5)
    tracking = workflow.complete(assigned_order.id, "CAD", 26.0)
    assert tracking.gold_loss == -0.5


def test_complete_before_start_fails(workflow, assigned_order):
    with pytest.raises(NotStartedError):
        workflow.complete(assigned_order.id, "CAD", 25.0)


def test_hold_and_resume(workflow, assigned_order):
    started = workflow.start(assigned_order.id, "CAD", 25.5)
    started_at = started.started_at

    with pytest.raises(ValidationError):
        workflow.hold(assigned_order.id, "CAD", "   ")

    held = workflow.hold(assigned_order.id, "CAD", "Waiting for customer sketch")
    assert held.status == DepartmentStatus.ON_HOLD.value
    assert held.issues == "Waiting for customer sketch"
    assert held.started_at == started_at

    with pytest.raises(NotStartedError):
        workflow.complete(assigned_order.id, "CAD", 25.0)

    resumed = workflow.resume(assigned_order.id, "CAD")
    assert resumed.status == DepartmentStatus.IN_PROGRESS.value
    assert resumed.issues is None
    assert resumed.started_at == started_at


def test_resume_requires_hold(workflow, assigned_order):
    workflow.start(assigned_order.id, "CAD", 25.5)
    with pytest.raises(InvalidTransitionError):
        workflow.resume(assigned_order.id, "CAD")


def test_completed_is_terminal(workflow, assigned_order):
    workflow.start(assigned_order.id, "CAD", 25.5)
    workflow.complete(assigned_order.id, "CAD", 25.4)

    with pytest.raises(AlreadyStartedError):
        workflow.start(assigned_order.id, "CAD", 25.4)
    with pytest.raises(InvalidTransitionError):
        workflow.hold(assigned_order.id, "CAD", "late")
    with pytest.raises(InvalidTransitionError):
        workflow.resume(assigned_order.id, "CAD")
    with pytest.raises(InvalidTransitionError):
        workflow.unassign(assigned_order.id, "CAD")
    with pytest.raises(InvalidTransitionError):
        workflow.record_work(assigned_order.id, "CAD", form_data={"x": 1})


def test_unassign_returns_row_to_pending(workflow, assigned_order):
    tracking = workflow.unassign(assigned_order.id, "CAD")
    assert tracking.status == DepartmentStatus.PENDING_ASSIGNMENT.value
    assert tracking.assigned_to_id is None


def test_unassign_after_start_fails(workflow, assigned_order):
    workflow.start(assigned_order.id, "CAD", 25.5)
    with pytest.raises(InvalidTransitionError):
        workflow.unassign(assigned_order.id, "CAD")


def test_record_work_merges(workflow, assigned_order):
    workflow.record_work(assigned_order.id, "CAD", form_data={"design": "v1"}, photos=["p1.jpg"])
    tracking = workflow.record_work(
        assigned_order.id, "CAD", form_data={"rings": 2}, photos=["p2.jpg"], files=["model.stl"],
    )

    assert tracking.work_data["form_data"] == {"design": "v1", "rings": 2}
    assert tracking.work_data["uploaded_photos"] == ["p1.jpg", "p2.jpg"]
    assert tracking.work_data["uploaded_files"] == ["model.stl"]
    assert tracking.photos == ["p1.jpg", "p2.jpg"]


def test_worker_may_only_touch_own_rows(workflow, assigned_order, users):
    with pytest.raises(ForbiddenError):
        workflow.start(assigned_order.id, "CAD", 25.5, actor=users["PRINT"])
    # Managers act on any row
    workflow.start(assigned_order.id, "CAD", 25.5, actor=users["manager"])


def test_unknown_department(workflow, assigned_order):
    with pytest.raises(NotFoundError):
        workflow.start(assigned_order.id, "ENGRAVING", 1.0)


def test_stale_reader_gets_conflict(app, assigned_order):
    stale_repo = WorkflowRepository(app.state.session_factory())
    fresh_repo = WorkflowRepository(app.state.session_factory())
    try:
        # Load the row into the stale session before the other writer moves it
        stale_repo.get_tracking(assigned_order.id, "CAD")
        DepartmentWorkflow(fresh_repo).start(assigned_order.id, "CAD", 25.5)

        with pytest.raises(ConflictError):
            DepartmentWorkflow(stale_repo).start(assigned_order.id, "CAD", 25.5)
    finally:
        stale_repo.db.close()
        fresh_repo.db.close()

    check = WorkflowRepository(app.state.session_factory())
    try:
        tracking = check.get_tracking(assigned_order.id, "CAD")
        assert tracking.status == DepartmentStatus.IN_PROGRESS.value
        assert tracking.version == 2
    finally:
        check.db.close()


def test_conditional_update_checks_version(repo, assigned_order):
    tracking = repo.get_tracking(assigned_order.id, "CAD")
    with pytest.raises(ConflictError):
        repo.transition_tracking(
            tracking.id, DepartmentStatus.NOT_STARTED, tracking.version + 5,
            {"status": DepartmentStatus.IN_PROGRESS.value},
        )


def test_never_completed_without_passing_in_progress(workflow, repo, make_order, users):
    order = make_order()
    AssignmentResolver(repo).assign(order.id, "CAD", users["CAD"].id)
    with pytest.raises(NotStartedError):
        workflow.complete(order.id, "CAD", 10.0)
    assert repo.get_tracking(order.id, "CAD").status == DepartmentStatus.NOT_STARTED.value
