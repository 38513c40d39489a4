"""HRMS — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from hrms.assignments.router import router as assignments_router
from hrms.attendance.router import router as attendance_router
from hrms.auth.router import router as auth_router
from hrms.common.exceptions import register_exception_handlers
from hrms.common.rate_limit import limiter
from hrms.company.router import router as company_router
from hrms.config import settings
from hrms.core_hr.router import (
    departments_router,
    designations_router,
    employees_router,
)
from hrms.countries.router import router as countries_router
from hrms.database import engine
from hrms.eod_reports.router import router as eod_reports_router
from hrms.holidays.router import router as holidays_router
from hrms.leave.router import router as leave_router
from hrms.menus.router import router as menus_router
from hrms.notices.router import router as notices_router
from hrms.payroll.router import router as payroll_router
from hrms.payroll.router import rules_router as deduction_rules_router
from hrms.performance.router import router as performance_router
from hrms.roles.router import router as roles_router
from hrms.rosters.router import router as rosters_router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("HRMS starting (%s)", settings.ENVIRONMENT)
    yield
    await engine.dispose()
    logger.info("HRMS stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="HRMS",
        description="Employees, attendance, leave, payroll and workforce planning",
        version=VERSION,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (uniform error envelope)
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
            "version": VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(roles_router, prefix="/api/v1/roles", tags=["roles"])
    app.include_router(menus_router, prefix="/api/v1/menus", tags=["menus"])
    app.include_router(employees_router, prefix="/api/v1/employees", tags=["employees"])
    app.include_router(departments_router, prefix="/api/v1/departments", tags=["departments"])
    app.include_router(designations_router, prefix="/api/v1/designations", tags=["designations"])
    app.include_router(assignments_router, prefix="/api/v1/assignments", tags=["assignments"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(payroll_router, prefix="/api/v1/payroll", tags=["payroll"])
    app.include_router(
        deduction_rules_router,
        prefix="/api/v1/salary-deduction-rules",
        tags=["salary-deduction-rules"],
    )
    app.include_router(company_router, prefix="/api/v1/company", tags=["company"])
    app.include_router(countries_router, prefix="/api/v1/countries", tags=["countries"])
    app.include_router(notices_router, prefix="/api/v1/notices", tags=["notices"])
    app.include_router(rosters_router, prefix="/api/v1/rosters", tags=["rosters"])
    app.include_router(eod_reports_router, prefix="/api/v1/eod-reports", tags=["eod-reports"])
    app.include_router(holidays_router, prefix="/api/v1/holidays", tags=["holidays"])
    app.include_router(performance_router, prefix="/api/v1/performance", tags=["performance"])

    # Uploaded files (profile pictures, employee documents)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

    return app


app = create_app()
