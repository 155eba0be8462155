from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Request, Response

from core.audit import log_failed_login, log_user_login, log_user_logout
from core.config import settings
from core.logging_config import logger
from core.rate_limiter import get_client_ip, require_rate_limit
from dependencies.auth import (
    build_auth_context,
    get_auth_context,
    get_current_user,
    get_db,
    get_optional_user,
    get_session_token,
)
from models.auth import AuthContext, CurrentUser, FailedLoginRequest, MeResponse


router = APIRouter(
    prefix="/api/auth",
    tags=["Auth"],
)


# ============================================================
# RATE LIMITS (run before session resolution)
# ============================================================
def login_rate_limit(request: Request):
    require_rate_limit(
        request,
        identifier=get_client_ip(request),
        max_requests=settings.LOGIN_RATE_LIMIT,
        window_seconds=settings.LOGIN_RATE_WINDOW,
    )


def login_failed_rate_limit(request: Request):
    require_rate_limit(
        request,
        identifier=f"login-failed:{get_client_ip(request)}",
        max_requests=settings.LOGIN_FAILED_RATE_LIMIT,
        window_seconds=settings.LOGIN_FAILED_RATE_WINDOW,
        message="Too many failed login attempts. Please try again later.",
    )


# ============================================================
# LOGIN (called by the frontend after Supabase sign-in)
# ============================================================
@router.post(
    "/login",
    summary="Record a successful sign-in",
    dependencies=[Depends(login_rate_limit)],
    responses={
        401: {"description": "No valid session"},
        429: {"description": "Rate limit exceeded"},
    },
)
def login(request: Request, user: CurrentUser = Depends(get_current_user)):
    """
    The frontend signs in against Supabase directly, then calls this
    endpoint with the new session cookie so the sign-in is audited.

    Rate limited per client IP (default 10 per minute).
    """
    ctx = build_auth_context(request, get_db(), user)
    log_user_login(ctx)
    logger.info(f"User {user.id} signed in (role={user.role}, ip={ctx.ip})")

    return {"success": True}


# ============================================================
# FAILED LOGIN (no session)
# ============================================================
@router.post(
    "/login-failed",
    summary="Record a failed sign-in attempt",
    dependencies=[Depends(login_failed_rate_limit)],
    responses={429: {"description": "Rate limit exceeded"}},
)
def login_failed(payload: FailedLoginRequest, request: Request):
    """
    Always answers success so the endpoint cannot be used to discover
    which emails are registered.
    """
    email = payload.email.strip().lower() if payload.email else None
    user_id: Optional[str] = None
    role: Optional[str] = None

    if email:
        try:
            rows = (
                get_db().table("users")
                .select("id, role")
                .eq("email", email)
                .limit(1)
                .execute()
            ).data
        except HTTPException:
            raise
        except Exception as e:
            # Still record the attempt, just without an actor
            logger.warning(f"User lookup for failed login failed: {type(e).__name__}")
            rows = []

        if rows:
            user_id = rows[0]["id"]
            role = rows[0].get("role")

    logger.info(f"Failed login: email={email or 'unknown'}, ip={get_client_ip(request)}")
    log_failed_login(request, email, payload.error, user_id=user_id, role=role)

    return {"success": True}


# ============================================================
# LOGOUT
# ============================================================
@router.post("/logout", summary="Sign out and record the logout")
def logout(
    request: Request,
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    user: Optional[CurrentUser] = Depends(get_optional_user),
):
    if user is not None:
        client = get_db()
        log_user_logout(build_auth_context(request, client, user))

        try:
            client.auth.admin.sign_out(token)
        except Exception as e:
            logger.warning(f"Supabase sign-out failed for {user.id}: {type(e).__name__}")

    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}


# ============================================================
# CURRENT USER + SCOPE
# ============================================================
@router.get("/me", response_model=MeResponse, summary="Current user and scope")
def read_me(ctx: AuthContext = Depends(get_auth_context)):
    return MeResponse(
        user=ctx.user,
        scope=ctx.scope,
        admin_company_id=ctx.admin_company_id,
    )
