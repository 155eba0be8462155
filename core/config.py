from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Fleet Rental API"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------
    # Frontend Domains
    # -------------------------------------------------
    FRONTEND_DOMAINS: List[str] = [
        "http://localhost:3000",
    ]

    # -------------------------------------------------
    # CORS (auto-built below)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_JWT_SECRET: Optional[str] = None

    # Cookie that carries the Supabase access token
    SESSION_COOKIE_NAME: str = "sb-access-token"

    # -------------------------------------------------
    # Pagination
    # -------------------------------------------------
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # -------------------------------------------------
    # Reference data cache (seconds)
    # -------------------------------------------------
    REFERENCE_CACHE_TTL: int = 300

    # -------------------------------------------------
    # Rate limits (login paths only)
    # -------------------------------------------------
    LOGIN_RATE_LIMIT: int = 10
    LOGIN_RATE_WINDOW: int = 60
    LOGIN_FAILED_RATE_LIMIT: int = 20
    LOGIN_FAILED_RATE_WINDOW: int = 300

    # -------------------------------------------------
    # Background cleanup
    # -------------------------------------------------
    ENABLE_SCHEDULER: bool = True
    CLEANUP_INTERVAL_MINUTES: int = 10

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


# Instantiate settings
settings = Settings()

# -------------------------------------------------
# Build CORS list dynamically after loading settings
# -------------------------------------------------
cors_origins = []

for domain in settings.FRONTEND_DOMAINS:
    if not domain.startswith("http"):
        domain = f"https://{domain}"
    cors_origins.append(domain.rstrip("/"))

settings.BACKEND_CORS_ORIGINS = sorted(list(set(cors_origins)))
