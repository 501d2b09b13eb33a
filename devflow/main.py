"""FastAPI application: main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devflow.config import get_settings
from devflow.infrastructure.database import engine, Base, SessionLocal
from devflow.core.logging import configure_logging
from devflow.core.middleware import setup_middleware
from devflow.core.exceptions import AppError, global_exception_handler
from devflow.application.services.auth_service import ensure_default_admin
from devflow.application.services.composer_service import detect_capabilities
from devflow.application.services.view_registry import ViewRegistry
from devflow.infrastructure.repositories.rest_gateway import RestGateway
from devflow.infrastructure.repositories.sql_gateway import SQLAlchemyGateway

# Import all models so SQLAlchemy knows about them
from devflow.domain.models.user import User  # noqa: F401
from devflow.domain.models.project import Project  # noqa: F401
from devflow.domain.models.message import Message  # noqa: F401

# Import routers
from devflow.interfaces.api.auth import router as auth_router
from devflow.interfaces.api.pipeline import router as pipeline_router
from devflow.interfaces.api.dashboard import router as dashboard_router
from devflow.interfaces.api.messages import router as messages_router, compose_router
from devflow.interfaces.api.users import router as users_router
from devflow.interfaces.api.navigation import router as navigation_router
from devflow.interfaces.pages import router as pages_router

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)


def build_gateway():
    if settings.DATA_BACKEND == "rest":
        return RestGateway()
    return SQLAlchemyGateway(SessionLocal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("Starting DevFlow Portal...", env=settings.ENVIRONMENT, backend=settings.DATA_BACKEND)

    if settings.DATA_BACKEND == "sql":
        # Create DB tables (dev only; the hosted service owns its schema)
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")

    gateway = build_gateway()
    app.state.gateway = gateway
    app.state.registry = ViewRegistry()
    app.state.capabilities = detect_capabilities(gateway)

    ensure_default_admin(gateway, settings)

    yield

    if isinstance(gateway, RestGateway):
        gateway.close()
    logger.info("DevFlow Portal stopped")


app = FastAPI(
    title="DevFlow Employee Portal",
    description="DevFlow Employee Management System: pipeline, dashboard, messaging and employee admin",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup Middleware (Route guard, Logging, Correlation ID)
setup_middleware(app)

# Global Exception Handling
app.add_exception_handler(AppError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Starlette runs the last added middleware first, so CORS wraps everything
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(pipeline_router)
app.include_router(dashboard_router)
app.include_router(messages_router)
app.include_router(compose_router)
app.include_router(users_router)
app.include_router(navigation_router)


@app.get("/")
def root():
    return {
        "name": "DevFlow Employee Portal",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}


# Pages last: the placeholder route matches any single path segment
app.include_router(pages_router)
