"""FastAPI application: main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from labsite.config import get_settings, validate_runtime_config
from labsite.infrastructure.database import engine, Base
from labsite.core.logging import configure_logging
from labsite.core.middleware import setup_middleware
from labsite.core.exceptions import register_exception_handlers

# Import all models so SQLAlchemy knows about them
from labsite.domain.models.user import User  # noqa: F401

from labsite.interfaces.api.auth import router as auth_router
from labsite.interfaces.api.users import router as users_router

settings = get_settings()

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    validate_runtime_config(settings)
    logger.info("Starting Labsite API...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only; production schemas are managed outside the app)
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")
    except SQLAlchemyError:
        logger.exception("Database initialization failed. Check DATABASE_URL and credentials.")

    if settings.SCHEDULER_ENABLED:
        from labsite.scheduler.jobs import start_scheduler
        start_scheduler()

    yield

    if settings.SCHEDULER_ENABLED:
        from labsite.scheduler.jobs import stop_scheduler
        stop_scheduler()
    logger.info("Labsite API stopped")


app = FastAPI(
    title="Labsite: research laboratory website API",
    description="Authentication, member accounts and profiles",
    version="1.0.0",
    lifespan=lifespan,
)

setup_middleware(app)
register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(users_router)


@app.get("/")
def root():
    return {
        "name": "Labsite API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
