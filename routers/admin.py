# routers/admin.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from dependencies.auth import requires_role, get_db
from core.audit import AUDIT_TABLE, log_admin_company_access, log_audit_action
from core.cache import NO_STORE
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.pagination import ListParams, list_params, apply_sorting, apply_pagination, paginated
from core.supabase_helpers import fetch_by_id, get_or_404
from core.utils import search_term
from models.auth import AuthContext, EnterCompanyRequest
from models.enums import AuditAction, Role


router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
)


AUDIT_SORT_COLUMNS = ["created_at", "action", "entity_type", "user_id", "company_id"]


def admin_mode_url(company_id: int) -> str:
    return f"/dashboard/companies/{company_id}?admin_mode=true&company_id={company_id}"


# ============================================================
# ENTER ADMIN-MODE
# ============================================================
@router.post(
    "/enter-company",
    summary="Enter a company in admin-mode",
    responses={404: {"description": "Company not found"}},
)
def enter_company(
    payload: EnterCompanyRequest,
    ctx: AuthContext = Depends(requires_role([Role.admin])),
):
    """
    Admin-mode is not stored on the server. The returned redirectUrl
    carries `admin_mode=true&company_id=N`, and every following request
    must carry the same parameters to act inside that company.
    """
    client = get_db()
    company = get_or_404(client, "companies", payload.companyId, "Company", "id, name, location_id")

    log_admin_company_access(ctx, company, entering=True)
    logger.info(f"Admin {ctx.user.id} entered company {company['id']}")

    return {
        "success": True,
        "redirectUrl": admin_mode_url(company["id"]),
    }


# ============================================================
# EXIT ADMIN-MODE
# ============================================================
@router.delete("/enter-company", summary="Leave a company's admin-mode")
def exit_company(
    company_id: int = Query(..., description="Company being left"),
    ctx: AuthContext = Depends(requires_role([Role.admin])),
):
    client = get_db()

    # The company may have been deleted while the admin was inside it
    company = fetch_by_id(client, "companies", company_id, "id, name, location_id") or {"id": company_id}

    log_admin_company_access(ctx, company, entering=False)
    logger.info(f"Admin {ctx.user.id} left company {company_id}")

    return {"success": True, "redirectUrl": "/dashboard"}


# ============================================================
# LIST AUDIT LOGS
# ============================================================
@router.get("/audit-logs", summary="List audit logs")
def list_audit_logs(
    response: Response,
    entity_type: Optional[str] = None,
    action: Optional[AuditAction] = None,
    user_id: Optional[str] = None,
    q: Optional[str] = Query(None, description="Search entity type or entity id"),
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role([Role.admin])),
):
    client = get_db()
    response.headers["Cache-Control"] = NO_STORE

    try:
        query = client.table(AUDIT_TABLE).select("*", count="exact")

        if ctx.is_admin_mode:
            query = query.eq("company_id", ctx.admin_company_id)
        if entity_type:
            query = query.eq("entity_type", entity_type)
        if action:
            query = query.eq("action", str(action))
        if user_id:
            query = query.eq("user_id", user_id)
        term = search_term(q)
        if term:
            query = query.or_(f"entity_type.ilike.%{term}%,entity_id.ilike.%{term}%")

        query = apply_sorting(query, params, "created_at", AUDIT_SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch audit logs")

    return paginated(result, params)


# ============================================================
# CLEAR AUDIT LOGS
# ============================================================
@router.delete("/audit-logs", summary="Delete all audit logs")
def clear_audit_logs(ctx: AuthContext = Depends(requires_role([Role.admin]))):
    """
    Bulk clear. The clear itself is written as the first row of the
    new log.
    """
    client = get_db()

    try:
        # PostgREST refuses an unfiltered delete
        result = client.table(AUDIT_TABLE).delete().neq("id", 0).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to clear audit logs")

    deleted = len(result.data or [])
    logger.warning(f"Admin {ctx.user.id} cleared {deleted} audit log rows")

    log_audit_action(
        ctx,
        entity_type="audit_log",
        entity_id="all",
        action=AuditAction.delete,
        before_state={"deleted_count": deleted},
    )

    return {"success": True, "deleted": deleted}
