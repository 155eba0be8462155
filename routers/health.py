# routers/health.py

from fastapi import APIRouter

from core import rate_limiter
from core.cache import get_cache
from core.config import settings
from core.supabase_client import ping_supabase

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Supabase connection + table queries, no auth required
# -----------------------------------------------------
@router.get("/db", summary="Supabase / DB health check")
def health_db():
    """
    One single-row select per core table (companies, company_cars,
    contracts, locations). Never touches auth tables.
    """
    try:
        status = ping_supabase()
        return {
            "service": "Supabase",
            "status": status.get("status", "unknown"),
            "details": status,
        }

    except Exception as e:
        return {
            "service": "Supabase",
            "status": "error",
            "error": type(e).__name__,
        }


# -----------------------------------------------------
# GET /health/app
# Process-local state sizes, for uptime monitors
# -----------------------------------------------------
@router.get("/app", summary="App health check")
def health_app():
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
        "env": settings.ENV,
        "cache_entries": get_cache().size(),
        "rate_limit_windows": rate_limiter.active_windows(),
    }
