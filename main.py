import os
import sys
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Ensure local imports resolve
sys.path.append(os.path.dirname(__file__))

# Core
from core.config import settings
from core.config_validator import validate_config_on_startup
from core.errors import MissingCompanyScope
from core.logging_config import logger
from core.scheduler import start_scheduler, stop_scheduler

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.auth import router as auth_router
from routers.admin import router as admin_router

from routers.companies import router as companies_router
from routers.company_cars import router as company_cars_router
from routers.bookings import router as bookings_router
from routers.contracts import router as contracts_router
from routers.payments import router as payments_router
from routers.managers import router as managers_router
from routers.users import router as users_router
from routers.clients import router as clients_router
from routers.references import router as references_router

from routers.health import router as health_router


def wants_html(request: Request) -> bool:
    """Browser navigation rather than an API call."""
    accept = request.headers.get("accept", "")
    return "text/html" in accept and "application/json" not in accept


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Fleet Rental API: multi-tenant car rental management on Supabase",
    )

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup / shutdown
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENV})")
        validate_config_on_startup()

        if settings.ENABLE_SCHEDULER:
            start_scheduler()

    @app.on_event("shutdown")
    async def on_shutdown():
        stop_scheduler()

    # -------------------------------------------------
    # Error handling
    # -------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url.path} - {exc.detail}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(MissingCompanyScope)
    async def handle_missing_scope(request: Request, exc: MissingCompanyScope):
        logger.warning(f"No company scope at {request.url.path} - {exc.message}")
        if wants_html(request):
            return RedirectResponse(exc.redirect_url, status_code=303)
        return JSONResponse(
            status_code=403,
            content={"detail": exc.message, "redirectUrl": exc.redirect_url},
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url.path, exc_info=exc)
        content = {"detail": "Internal server error"}
        if not settings.is_production:
            content["type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------

    # Auth
    app.include_router(auth_router)

    # Admin
    app.include_router(admin_router)

    # Core Data Routers
    app.include_router(companies_router)
    app.include_router(company_cars_router)
    app.include_router(bookings_router)
    app.include_router(contracts_router)
    app.include_router(payments_router)
    app.include_router(managers_router)

    # Accounts
    app.include_router(users_router)
    app.include_router(clients_router)

    # Reference data
    app.include_router(references_router)

    # Health
    app.include_router(health_router)

    return app


# Create the global FastAPI instance
app = create_app()
