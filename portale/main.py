from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from portale.db import filters as _filters  # noqa: F401  (register SQLAlchemy filters)
from portale.db.init_db import init_db
from portale.db.session import SessionLocal
from portale.errors import register_exception_handlers
from portale.logging_config import configure_app_logging
from portale.routers import (
    approvals,
    auth,
    conto,
    dashboard,
    entities,
    health,
    messages,
    notifications,
    projects,
    users,
)
from portale.security.config import load_security_config
from portale.security.dependencies import enforce_security
from portale.services.notifications import cleanup_older_than
from portale.settings import get_settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        app.state.security_config = load_security_config(settings.resolved_security_config_path())
        logger.info("Loaded security config: %s", settings.resolved_security_config_path())
        init_db()
        logger.info("Database initialized")

        with SessionLocal() as db:
            cleanup_older_than(db, settings.notification_retention_days)

        yield

    # Global dependency: applies security with zero changes to route handlers.
    app = FastAPI(title="portale", dependencies=[Depends(enforce_security)], lifespan=lifespan)
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(projects.router)
    for router in entities.routers:
        app.include_router(router)
    app.include_router(approvals.router)
    app.include_router(notifications.router)
    app.include_router(dashboard.router)
    app.include_router(conto.router)
    app.include_router(messages.router)

    return app


app = create_app()
