# routers/managers.py

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Response

from dependencies.auth import requires_role, get_db
from core.audit import log_audit_action
from core.cache import USER_DATA
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.pagination import ListParams, list_params, apply_sorting, apply_pagination, paginated
from core.scope import ensure_company_access, list_company_filter, require_target_company_id
from core.supabase_helpers import get_or_404, insert_row, update_row, delete_row
from models.auth import AuthContext
from models.enums import AuditAction, Role, STAFF_ROLES
from models.manager import ManagerCreate, ManagerUpdate


router = APIRouter(
    prefix="/api/managers",
    tags=["Managers"],
)


SORT_COLUMNS = ["id", "created_at", "company_id", "is_active"]


# ============================================================
# LIST MANAGERS
# ============================================================
@router.get("", summary="List Managers")
def list_managers(
    response: Response,
    is_active: Optional[bool] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    target = list_company_filter(ctx, company_id)

    try:
        query = client.table("managers").select("*", count="exact")

        if target is not None:
            query = query.eq("company_id", target)
        if is_active is not None:
            query = query.eq("is_active", is_active)

        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch managers")

    response.headers["Cache-Control"] = USER_DATA
    return paginated(result, params)


# ============================================================
# ADD MANAGER
# ============================================================
@router.post("", status_code=201, summary="Add Manager")
def create_manager(
    payload: ManagerCreate,
    ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner])),
):
    """
    Links an existing user with the manager role to a company.
    Owners always add to their own company.
    """
    client = get_db()

    company_id = require_target_company_id(ctx, payload.company_id)
    if company_id is None:
        raise HTTPException(400, "company_id is required")

    user = get_or_404(client, "users", payload.user_id, "User", "id, role")
    if user.get("role") != str(Role.manager):
        raise HTTPException(400, "User does not have the manager role")

    manager = insert_row(
        client,
        "managers",
        {
            "user_id": payload.user_id,
            "company_id": company_id,
            "is_active": payload.is_active,
        },
        "Failed to add manager",
    )
    logger.info(f"User {payload.user_id} added as manager of company {company_id}")

    log_audit_action(
        ctx,
        entity_type="manager",
        entity_id=manager["id"],
        action=AuditAction.create,
        after_state=manager,
        company_id=company_id,
    )
    return manager


# ============================================================
# UPDATE MANAGER
# ============================================================
@router.put("/{manager_id}", summary="Activate or Deactivate Manager")
def update_manager(
    manager_id: int,
    payload: ManagerUpdate,
    ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner])),
):
    """An inactive manager keeps the account but loses the company scope."""
    client = get_db()
    before = get_or_404(client, "managers", manager_id, "Manager")
    ensure_company_access(ctx, before["company_id"], payload.company_id)

    if payload.is_active is None:
        raise HTTPException(400, "No fields to update")

    manager = update_row(
        client, "managers", manager_id, {"is_active": payload.is_active}, "Failed to update manager"
    )
    logger.info(f"Manager {manager_id} is_active={payload.is_active} set by {ctx.user.id}")

    log_audit_action(
        ctx,
        entity_type="manager",
        entity_id=manager_id,
        action=AuditAction.update,
        before_state=before,
        after_state=manager,
        company_id=before["company_id"],
    )
    return manager


# ============================================================
# REMOVE MANAGER
# ============================================================
@router.delete("/{manager_id}", summary="Remove Manager")
def delete_manager(
    manager_id: int,
    ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner])),
):
    client = get_db()
    before = get_or_404(client, "managers", manager_id, "Manager")
    ensure_company_access(ctx, before["company_id"])

    delete_row(client, "managers", manager_id, "Failed to remove manager")

    log_audit_action(
        ctx,
        entity_type="manager",
        entity_id=manager_id,
        action=AuditAction.delete,
        before_state=before,
        company_id=before["company_id"],
    )
    return {"success": True, "deleted_id": manager_id}
