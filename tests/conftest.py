import pytest
from fastapi.testclient import TestClient

from goldworks.config import Settings
from goldworks.main import create_app
from goldworks.models.department import DEPARTMENT_ORDER
from goldworks.models.user import User, UserRole
from goldworks.repository import WorkflowRepository
from goldworks.schemas.order import OrderCreate
from goldworks.services.assignment import AssignmentResolver
from goldworks.services.orders import OrderService
from goldworks.services.tracking import DepartmentWorkflow


@pytest.fixture()
def app():
    return create_app(Settings(DATABASE_URL="sqlite://", LOG_LEVEL="WARNING", NOTIFICATION_WEBHOOK_URL=None))


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def session(app):
    db = app.state.session_factory()
    yield db
    db.close()


@pytest.fixture()
def repo(session):
    return WorkflowRepository(session)


@pytest.fixture()
def notifier(app):
    return app.state.notifier


@pytest.fixture()
def users(session):
    """Admin, office, manager and one worker per department, keyed by a short name."""
    people = {
        "admin": User(name="Asha Admin", email="admin@example.com", role=UserRole.ADMIN),
        "office": User(name="Omar Office", email="office@example.com", role=UserRole.OFFICE_STAFF),
        "manager": User(name="Meera Manager", email="manager@example.com", role=UserRole.FACTORY_MANAGER),
        "inactive": User(name="Ivan Idle", email="idle@example.com", role=UserRole.DEPARTMENT_WORKER,
                         department="CAD", is_active=False),
    }
    for department in DEPARTMENT_ORDER:
        people[department.value] = User(
            name=f"{department.value.title()} Worker",
            email=f"{department.value.lower()}@example.com",
            role=UserRole.DEPARTMENT_WORKER,
            department=department.value,
        )
    for user in people.values():
        session.add(user)
    session.commit()
    return people


def order_payload(**overrides):
    data = {
        "customer_name": "Priya Sharma",
        "customer_phone": "+91 98765 43210",
        "customer_email": "priya@example.com",
        "priority": 5,
        "details": {"gold_weight_initial": 25.5, "purity": 22, "product_type": "Ring"},
        "stones": [{"stone_type": "Diamond", "weight": 0.5, "quantity": 2}],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def make_order(repo, users):
    service = OrderService(repo)

    def _make(**overrides):
        return service.create_order(OrderCreate(**order_payload(**overrides)), users["office"])

    return _make


@pytest.fixture()
def finish_departments(repo, users):
    """Drive an order through every department with a small loss in each."""

    def _finish(order_id, weight=25.5, loss=0.05):
        resolver = AssignmentResolver(repo)
        workflow = DepartmentWorkflow(repo)
        for department in DEPARTMENT_ORDER:
            worker = users[department.value]
            resolver.assign(order_id, department.value, worker.id, users["manager"].id)
            workflow.start(order_id, department.value, weight, actor=worker)
            weight = round(weight - loss, 3)
            workflow.complete(order_id, department.value, weight, actor=worker)
        return weight

    return _finish


@pytest.fixture()
def order_data():
    return order_payload
