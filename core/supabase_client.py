# core/supabase_client.py

from typing import Optional

from fastapi import HTTPException
from supabase import create_client, Client
from core.config import settings
from core.logging_config import logger


# Process-wide client, created on first use
_client: Optional[Client] = None


# ============================================================
# Supabase Client Factory (ALWAYS service role)
# ============================================================

def get_supabase_client() -> Optional[Client]:
    """
    Returns the shared Supabase client built with the SERVICE ROLE KEY.

    Row-level security is bypassed, so every caller is responsible for
    the scope checks in core.scope before reading or writing company data.
    Returns None when credentials are missing.
    """
    global _client

    if _client is not None:
        return _client

    supabase_url = settings.SUPABASE_URL
    supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY

    if not supabase_url or not supabase_key:
        logger.error("Missing Supabase credentials")
        logger.error(f"   URL: {supabase_url}")
        logger.error(f"   SERVICE ROLE KEY: {'SET' if supabase_key else 'MISSING'}")
        return None

    try:
        _client = create_client(supabase_url, supabase_key)
    except Exception as e:
        logger.error(f"Supabase Init Error: {e}", exc_info=True)
        return None

    return _client


def require_supabase_client() -> Client:
    """Like get_supabase_client, but raises a 500 when the database is not configured."""
    client = get_supabase_client()
    if client is None:
        raise HTTPException(500, "Supabase client not configured")
    return client


# ============================================================
# Ping Supabase for health checks
# ============================================================

HEALTH_TABLES = ["companies", "company_cars", "contracts", "locations"]


def ping_supabase() -> dict:
    """
    Simple connectivity check against a few core tables.
    Does NOT query auth tables.
    """
    client = get_supabase_client()
    if client is None:
        return {"service": "Supabase", "status": "not_configured"}

    results = {}
    status = "ok"

    for t in HEALTH_TABLES:
        try:
            res = client.table(t).select("id").limit(1).execute()
            results[t] = {
                "status": "ok",
                "rows_found": len(res.data or []),
            }
        except Exception as err:
            status = "degraded"
            logger.warning(f"Health ping failed on {t}: {err}")
            results[t] = {"status": "error", "error": type(err).__name__}

    return {
        "service": "Supabase",
        "status": status,
        "tables": results,
    }
