"""HRMS Portal — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from hrms.attendance.router import router as attendance_router
from hrms.auth.router import router as auth_router
from hrms.branches.router import router as branches_router
from hrms.common.exceptions import register_exception_handlers
from hrms.common.logging import configure_logging
from hrms.common.rate_limit import limiter
from hrms.config import settings
from hrms.dashboard.router import router as dashboard_router
from hrms.database import engine
from hrms.documents.router import router as documents_router
from hrms.holidays.router import router as holidays_router
from hrms.leave.router import router as leave_router
from hrms.navigation.router import router as navigation_router
from hrms.notes.router import router as notes_router
from hrms.notifications.router import router as notifications_router
from hrms.teams.router import router as teams_router
from hrms.users.router import router as users_router
from hrms.work_updates.router import router as work_updates_router

API_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    configure_logging(settings.LOG_LEVEL)
    logger.info("HRMS API starting (environment=%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("HRMS API stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="HRMS Portal",
        description="Attendance, leave, teams, notifications and work updates",
        version=API_VERSION,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": API_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(holidays_router, prefix="/api/v1/holidays", tags=["holidays"])
    app.include_router(teams_router, prefix="/api/v1/teams", tags=["teams"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(work_updates_router, prefix="/api/v1/work-updates", tags=["work-updates"])
    app.include_router(dashboard_router, prefix="/api/v1/dashboard", tags=["dashboard"])
    app.include_router(notes_router, prefix="/api/v1/notes", tags=["notes"])
    app.include_router(documents_router, prefix="/api/v1/documents", tags=["documents"])
    app.include_router(navigation_router, prefix="/api/v1/navigation", tags=["navigation"])
    app.include_router(branches_router, prefix="/api/v1/branches", tags=["branches"])

    return app


app = create_app()
