"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Each app instance owns its own client repository

For local development:
    uvicorn coaching_app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import accounts, clients, health, plans
from .config.settings import Settings, get_settings
from .core.clients.accounts import ClientAccountService
from .core.clients.repository import ClientRepository
from .infrastructure.documents.store import create_document_store
from .infrastructure.identity.provider import IdentityConfig, create_identity_provider

# Configure logging; create_app applies the configured level
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


def load_snapshot(repository: ClientRepository, path: str) -> bool:
    """Load clients from a snapshot file, if there is one."""
    snapshot = Path(path)
    if not snapshot.exists():
        logger.info("No client snapshot found, starting empty", extra={"path": path})
        return False

    if not repository.import_all(snapshot.read_text(encoding="utf-8")):
        logger.error("Client snapshot is invalid, starting empty", extra={"path": path})
        return False

    logger.info("Client snapshot loaded", extra={"path": path, "client_count": len(repository)})
    return True


def save_snapshot(repository: ClientRepository, path: str) -> None:
    """Write every client to the snapshot file."""
    snapshot = Path(path)
    snapshot.parent.mkdir(parents=True, exist_ok=True)
    snapshot.write_text(repository.export_all(), encoding="utf-8")
    logger.info("Client snapshot saved", extra={"path": path, "client_count": len(repository)})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Restores the client snapshot on startup and writes it back on
    shutdown, when a snapshot path is configured.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Coaching API starting",
        extra={"version": settings.api_version, "snapshot_path": settings.snapshot_path}
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Invalid configuration",
            extra={"missing_fields": missing_fields}
        )

    if settings.snapshot_path:
        load_snapshot(app.state.client_repository, settings.snapshot_path)

    yield

    if settings.snapshot_path:
        try:
            save_snapshot(app.state.client_repository, settings.snapshot_path)
        except OSError as e:
            logger.error(
                "Failed to save client snapshot",
                extra={"path": settings.snapshot_path, "error": str(e)}
            )

    logger.info("Coaching API shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Builds the client repository and its collaborators once and attaches
    them to ``app.state``, where the route dependencies find them.
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.effective_log_level)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Client management for personal trainers.

        ## Features

        - Register clients and keep their profiles and memberships current
        - Log measurements, workouts, assessments and notes
        - Assign workout plans
        - Find expiring memberships and see client statistics

        ## Authentication

        All client endpoints require an API key provided in the `X-API-Key` header.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    repository = ClientRepository()
    identity = create_identity_provider(IdentityConfig(
        password_min_length=settings.password_min_length,
        hash_rounds=settings.password_hash_rounds,
    ))
    store = create_document_store()

    app.state.settings = settings
    app.state.client_repository = repository
    app.state.account_service = ClientAccountService(repository, identity, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        clients.router,
        prefix="/api/v1/clients",
        tags=["Clients"],
    )

    app.include_router(
        plans.router,
        prefix="/api/v1/clients",
        tags=["Workout Plans"],
    )

    app.include_router(
        accounts.router,
        prefix="/api/v1/accounts",
        tags=["Accounts"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - point at the docs."""
        return {
            "message": settings.api_title,
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Logs the full error server-side but returns a generic message, so
        stack traces never reach clients.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "coaching_app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
