"""FastAPI application."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tenantscope.api.auth import TokenIdentityResolver
from tenantscope.api.routes.health import router as health_router
from tenantscope.api.routes.metrics import router as metrics_router
from tenantscope.api.routes.projects import router as projects_router
from tenantscope.api.routes.tasks import router as tasks_router
from tenantscope.config import Settings, get_settings
from tenantscope.db.builder import ContextBuilder
from tenantscope.db.engine import create_storage_from_settings
from tenantscope.db.seed_dev import seed_dev_data
from tenantscope.db.storage import Storage
from tenantscope.errors import (
    ContextBuildError,
    NotFound,
    UnboundContextError,
    UnknownEntityError,
)
from tenantscope.utils.logging import configure_logging

logger = logging.getLogger(__name__)


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    """Absent and foreign-tenant records get the same response."""
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Not found"})


async def context_build_error_handler(request: Request, exc: ContextBuildError) -> JSONResponse:
    logger.error(f"[{request.method} {request.url.path}] context build failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Request context could not be built"},
    )


async def defect_handler(request: Request, exc: Exception) -> JSONResponse:
    """Programming defects: unbound handles, unknown entity names."""
    logger.error(
        f"[{request.method} {request.url.path}] {type(exc).__name__}: {exc}", exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(settings: Settings | None = None, storage: Storage | None = None) -> FastAPI:
    """Create the application.

    Args:
        settings: Settings to use (defaults to environment settings)
        storage: Storage collaborator (defaults to the configured backend)

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if storage is None:
        storage = create_storage_from_settings(settings)

    app = FastAPI(title="Tenantscope API", version="0.1.0")
    app.state.settings = settings
    app.state.identity_resolver = TokenIdentityResolver(
        settings.api_tokens, allow_dev_tokens=settings.allow_dev_tokens
    )
    app.state.context_builder = ContextBuilder(
        storage, tenant_id_pattern=settings.tenant_id_pattern
    )

    if settings.seed_dev_data:
        seed_dev_data(app.state.context_builder)

    # Register error mapping
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(ContextBuildError, context_build_error_handler)
    app.add_exception_handler(UnboundContextError, defect_handler)
    app.add_exception_handler(UnknownEntityError, defect_handler)

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(projects_router)
    app.include_router(tasks_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Tenantscope API", "version": "0.1.0"}

    logger.info(f"Application created with {settings.storage_backend} storage")
    return app


app = create_app()
