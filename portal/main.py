"""
Acclaim Portal
FastAPI Application Entry Point
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from portal.admin.router import router as admin_router
from portal.auth.azure import router as azure_router
from portal.auth.azure import status_router as azure_status_router
from portal.auth.rate_limit import limiter
from portal.auth.rate_limiter import build_rate_limiter
from portal.auth.router import router as auth_router
from portal.config import settings
from portal.core.errors import PortalError, global_exception_handler, portal_error_handler
from portal.database import close_db
from portal.notifications import NotificationDispatcher, build_transport
from portal.organisations.router import router as org_owner_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.
    Starts the lockout sweep and the notification worker, and stops them on shutdown.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}, debug: {settings.debug}")
    logger.info(f"Login lockout store: {settings.rate_limit_backend}")

    app.state.login_rate_limiter.start()
    app.state.notifications.start()

    yield

    logger.info("Stopping background workers...")
    await app.state.notifications.stop()
    await app.state.login_rate_limiter.stop()

    logger.info("Closing database connections...")
    await close_db()
    logger.info(f"{settings.app_name} shutdown complete")


def create_application() -> FastAPI:
    """
    Application factory.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Client portal for Acclaim debt recovery",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Shared services; background tasks are started by the lifespan handler
    app.state.login_rate_limiter = build_rate_limiter()
    app.state.notifications = NotificationDispatcher(
        build_transport(),
        max_queue_size=settings.notification_queue_size,
    )

    # Configure rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Error responses
    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    register_routers(app)

    return app


def register_routers(app: FastAPI) -> None:
    """
    Register all API routers.
    """
    # Health check endpoint (always available)
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment
        }

    @app.get("/api", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "message": f"Welcome to {settings.app_name} API",
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else "Disabled in production",
        }

    # Authentication
    app.include_router(auth_router)
    app.include_router(azure_status_router)
    app.include_router(azure_router)

    # Organisation owners
    app.include_router(org_owner_router)

    # Administration
    app.include_router(admin_router)


# Create the application instance
app = create_application()


if __name__ == "__main__":
    uvicorn.run(
        "portal.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
