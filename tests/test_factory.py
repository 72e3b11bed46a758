import pytest

from goldworks.exceptions import NotFoundError
from goldworks.schemas.submission import SubmissionCreate
from goldworks.services.factory import FactoryReport
from goldworks.services.orders import OrderService
from goldworks.services.submissions import SubmissionService
from goldworks.services.tracking import DepartmentWorkflow


@pytest.fixture()
def report(repo):
    return FactoryReport(repo)


def test_stats_track_gold_in_production(report, repo, make_order, finish_departments, users):
    in_cad = make_order(assignments={"CAD": users["CAD"].id})
    DepartmentWorkflow(repo).start(in_cad.id, "CAD", 25.5)
    waiting = make_order(details={"gold_weight_initial": 10.0, "purity": 18})
    OrderService(repo).send_to_factory(waiting.id)
    done = make_order()
    finish_departments(done.id)
    SubmissionService(repo).submit(done.id, SubmissionCreate(final_gold_weight=25.0, final_purity=22))
    make_order()  # drafts hold no factory gold

    stats = report.stats()

    assert stats["orders_in_factory"] == 2
    assert stats["total_gold_in_factory"] == 35.5
    assert stats["orders_by_department"] == [
        {"department": "CAD", "display_name": "CAD Design", "count": 2, "total_weight": 35.5}
    ]
    assert stats["completed_today"] == 1
    assert stats["average_production_days"] == 0.0


def test_empty_factory(report):
    stats = report.stats()
    assert stats["orders_in_factory"] == 0
    assert stats["total_gold_in_factory"] == 0
    assert stats["orders_by_department"] == []
    assert stats["average_production_days"] == 0.0


def test_gold_movements_follow_each_department(report, make_order, finish_departments):
    order = make_order()
    finish_departments(order.id)
    make_order()  # never started, so no movements

    movements, total = report.gold_movements(order_id=order.id, limit=50)

    assert total == 9
    assert movements[0]["department"] == "ADDITIONAL"
    cad = movements[-1]
    assert cad["department"] == "CAD"
    assert cad["order_number"] == order.order_number
    assert cad["gold_weight_in"] == 25.5
    assert cad["gold_weight_out"] == 25.45
    assert cad["gold_loss"] == 0.05
    assert cad["worker_name"] == "Cad Worker"
    assert cad["is_weight_gain"] is False

    _, everything = report.gold_movements()
    assert everything == 9


def test_movement_flags_weight_gain(report, repo, make_order, users):
    order = make_order(assignments={"CAD": users["CAD"].id})
    workflow = DepartmentWorkflow(repo)
    workflow.start(order.id, "CAD", 25.5)

    movements, _ = report.gold_movements(order_id=order.id)
    assert movements[0]["gold_weight_out"] is None
    assert movements[0]["gold_loss"] is None

    workflow.complete(order.id, "CAD", 25.8)
    movements, _ = report.gold_movements(order_id=order.id)
    assert movements[0]["gold_loss"] == -0.3
    assert movements[0]["is_weight_gain"] is True


def test_movements_for_unknown_order(report):
    with pytest.raises(NotFoundError):
        report.gold_movements(order_id="missing")
