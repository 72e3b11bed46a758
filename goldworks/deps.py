"""FastAPI providers for the repository and the workflow services."""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from goldworks.config import Settings
from goldworks.database import get_db
from goldworks.repository import WorkflowRepository
from goldworks.services.assignment import AssignmentResolver
from goldworks.services.factory import FactoryReport
from goldworks.services.orders import OrderService
from goldworks.services.submissions import SubmissionService
from goldworks.services.tracking import DepartmentWorkflow


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(db: Session = Depends(get_db)) -> WorkflowRepository:
    return WorkflowRepository(db)


def get_order_service(request: Request, repo: WorkflowRepository = Depends(get_repository)) -> OrderService:
    return OrderService(repo, request.app.state.order_numbers)


def get_factory_report(repo: WorkflowRepository = Depends(get_repository)) -> FactoryReport:
    return FactoryReport(repo)


def get_workflow(repo: WorkflowRepository = Depends(get_repository)) -> DepartmentWorkflow:
    return DepartmentWorkflow(repo)


def get_assignment_resolver(
    request: Request,
    repo: WorkflowRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> AssignmentResolver:
    return AssignmentResolver(repo, request.app.state.notifier, settings.URGENT_PRIORITY)


def get_submission_service(
    request: Request,
    repo: WorkflowRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
) -> SubmissionService:
    return SubmissionService(repo, request.app.state.notifier, settings.WEIGHT_VARIANCE_THRESHOLD)
