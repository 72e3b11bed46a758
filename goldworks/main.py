"""FastAPI application entry point."""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from goldworks.config import Settings, get_settings
from goldworks.database import build_engine, build_session_factory, init_db
from goldworks.exceptions import WorkflowError
from goldworks.routes import departments, factory, notifications, orders, submissions, users, workers
from goldworks.services.notifications import NotificationDispatcher
from goldworks.services.order_numbers import OrderNumberGenerator

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application and its database wiring from ``settings``."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    # Create database tables
    engine = build_engine(settings.DATABASE_URL)
    init_db(engine)
    session_factory = build_session_factory(engine)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Gold jewellery factory order workflow with department tracking",
        debug=settings.DEBUG,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.notifier = NotificationDispatcher(
        session_factory,
        webhook_url=settings.NOTIFICATION_WEBHOOK_URL,
        timeout=settings.NOTIFICATION_TIMEOUT,
    )
    app.state.order_numbers = OrderNumberGenerator(prefix=settings.ORDER_NUMBER_PREFIX)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Include routers
    app.include_router(users.router, prefix="/api")
    app.include_router(orders.router, prefix="/api")
    app.include_router(departments.router, prefix="/api")
    app.include_router(workers.router, prefix="/api")
    app.include_router(submissions.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")
    app.include_router(factory.router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    logger.info("%s %s started with database %s", settings.APP_NAME, settings.APP_VERSION, engine.url)
    return app


app = create_app()
