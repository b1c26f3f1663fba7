"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Storage and repository — built once and kept on app.state
  2. Lifespan manager — opens and closes the storage backend
  3. CORS middleware — allows frontend origins to make cross-origin requests
  4. Exception handlers — maps domain errors to HTTP responses
  5. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn kvbank.main:app --reload

Tests call create_app() with a MemoryStorage of their own, so every test
gets an isolated application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kvbank.config import Settings, get_settings
from kvbank.exceptions import register_exception_handlers
from kvbank.logging_config import setup_logging
from kvbank.routers import accounts, admin, auth, credits, loans, statistics, transfers
from kvbank.services.account_repository import AccountRepository
from kvbank.services.activity_log import ActivityLog
from kvbank.storage import build_storage
from kvbank.storage.base import StorageAdapter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Opens the storage backend (creates tables for SQL, pings Redis).

    Shutdown:
      Closes the backend's connections cleanly.
    """
    storage: StorageAdapter = app.state.storage
    await storage.initialize()
    logger.info("Storage backend %s ready", type(storage).__name__)
    yield
    await storage.close()


def create_app(settings: Settings | None = None, storage: StorageAdapter | None = None) -> FastAPI:
    """
    Build a configured application.

    Args:
        settings: Defaults to the process settings from the environment.
        storage: Defaults to the adapter named by settings.STORAGE_BACKEND.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Online banking REST API: accounts, movements, loans and credit lines",
        lifespan=lifespan,
    )

    storage = storage or build_storage(settings)
    app.state.settings = settings
    app.state.storage = storage
    app.state.repository = AccountRepository(
        storage, ActivityLog(storage, capacity=settings.ACTIVITY_LOG_CAPACITY)
    )

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------

    # In production, lock this down to your actual frontend domain(s).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(auth.router, prefix="/auth", tags=["Auth"])
    app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transfers.router, prefix="/transfers", tags=["Transfers"])
    app.include_router(loans.router, prefix="/loans", tags=["Loans"])
    app.include_router(credits.router, prefix="/credits", tags=["Credits"])
    app.include_router(statistics.router, prefix="/statistics", tags=["Statistics"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint for deployment probes.

        Returns a simple JSON response indicating the service is running.
        """
        return {"status": "ok", "version": settings.APP_VERSION}

    return app


app = create_app()
