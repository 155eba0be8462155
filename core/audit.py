# core/audit.py

"""
Audit logger.

Writes one immutable audit_logs row per significant action. Logging is
best-effort and at-most-once: any failure is logged and swallowed so it
can never abort the business operation it accompanies.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder

from core.logging_config import logger
from core.rate_limiter import get_client_ip
from core.supabase_client import get_supabase_client
from models.audit_log import AuditLogEntry
from models.auth import AuthContext
from models.enums import AuditAction


AUDIT_TABLE = "audit_logs"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "unknown"


def _snapshot(state) -> Optional[Dict[str, Any]]:
    if state is None:
        return None
    return jsonable_encoder(state)


def write_audit_entry(entry: AuditLogEntry) -> bool:
    """
    Insert one audit row. Returns False (never raises) on failure.
    """
    try:
        client = get_supabase_client()
        if client is None:
            logger.warning(
                f"Audit log skipped (no database): {entry.action} {entry.entity_type}/{entry.entity_id}"
            )
            return False

        client.table(AUDIT_TABLE).insert(entry.model_dump(mode="json")).execute()
        return True

    except Exception as e:
        logger.warning(
            f"Failed to write audit log {entry.action} {entry.entity_type}/{entry.entity_id}: "
            f"{type(e).__name__}: {e}"
        )
        return False


def log_audit_action(
    ctx: AuthContext,
    entity_type: str,
    entity_id,
    action: AuditAction,
    before_state=None,
    after_state=None,
    company_id: Optional[int] = None,
) -> bool:
    """
    Record `action` on `entity_type/entity_id` by the caller in `ctx`.

    company_id defaults to the admin-mode company, then the caller's
    scope company. Snapshots are JSON-encoded as given.
    """
    if company_id is None:
        company_id = ctx.admin_company_id or ctx.scope.company_id

    try:
        entry = AuditLogEntry(
            user_id=ctx.user.id,
            role=str(ctx.scope.role),
            company_id=company_id,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            before_state=_snapshot(before_state),
            after_state=_snapshot(after_state),
            ip=ctx.ip,
            user_agent=ctx.user_agent,
        )
    except Exception as e:
        logger.warning(f"Invalid audit entry for {entity_type}/{entity_id}: {e}")
        return False

    return write_audit_entry(entry)


# ============================================================
# Auth events
# ============================================================
def log_user_login(ctx: AuthContext) -> bool:
    return log_audit_action(
        ctx,
        entity_type="user",
        entity_id=ctx.user.id,
        action=AuditAction.login,
        after_state={"email": ctx.user.email, "login_time": _utc_now_iso()},
    )


def log_user_logout(ctx: AuthContext) -> bool:
    return log_audit_action(
        ctx,
        entity_type="user",
        entity_id=ctx.user.id,
        action=AuditAction.logout,
        after_state={"logout_time": _utc_now_iso()},
    )


def log_failed_login(
    request: Request,
    email: Optional[str],
    error_message: Optional[str],
    user_id: Optional[str] = None,
    role: Optional[str] = None,
) -> bool:
    """Failed sign-in; there is no session, so the actor comes from the email lookup."""
    try:
        entry = AuditLogEntry(
            user_id=user_id,
            role=role or "unknown",
            company_id=None,
            entity_type="user",
            entity_id=user_id or email or "unknown",
            action=AuditAction.login_failed,
            after_state={
                "email": email or "unknown",
                "error": error_message or "Authentication failed",
                "login_time": _utc_now_iso(),
            },
            ip=get_client_ip(request),
            user_agent=get_user_agent(request),
        )
    except Exception as e:
        logger.warning(f"Invalid failed-login audit entry: {e}")
        return False

    return write_audit_entry(entry)


# ============================================================
# Admin-mode events
# ============================================================
def log_admin_company_access(ctx: AuthContext, company: dict, entering: bool = True) -> bool:
    """Admin entering (login) or leaving (logout) a company's admin-mode."""
    company_id = int(company["id"])

    if entering:
        action = AuditAction.login
        state = {
            "admin_entered_company": True,
            "company_name": company.get("name"),
            "location_id": company.get("location_id"),
            "access_time": _utc_now_iso(),
        }
    else:
        action = AuditAction.logout
        state = {"admin_exited_company": True, "exit_time": _utc_now_iso()}

    return log_audit_action(
        ctx,
        entity_type="company",
        entity_id=company_id,
        action=action,
        after_state=state,
        company_id=company_id,
    )
