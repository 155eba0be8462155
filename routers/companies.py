# routers/companies.py

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response

from dependencies.auth import requires_role, get_db
from core.audit import log_audit_action
from core.cache import USER_DATA
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.pagination import (
    ListParams,
    list_params,
    apply_filters,
    apply_sorting,
    apply_pagination,
    paginated,
)
from core.scope import ensure_company_access, list_company_filter
from core.supabase_helpers import get_or_404, insert_row, update_row, delete_row
from core.utils import sanitize
from models.auth import AuthContext
from models.company import CompanyCreate, CompanyUpdate
from models.enums import AuditAction, Role, STAFF_ROLES


router = APIRouter(
    prefix="/api/companies",
    tags=["Companies"],
)


SORT_COLUMNS = ["id", "name", "created_at", "location_id"]
FILTER_COLUMNS = ["location_id", "owner_id"]


# ============================================================
# LIST COMPANIES
# ============================================================
@router.get(
    "",
    summary="List Companies",
    description="""
    Admins see every company (optionally narrowed with `company_id`);
    owners and managers only see their own.

    **Query Parameters:** `page`, `pageSize`, `sortBy`, `sortOrder`,
    `filters` (JSON), `q` (name search).
    """,
)
def list_companies(
    response: Response,
    q: Optional[str] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    target = list_company_filter(ctx, company_id)

    try:
        query = client.table("companies").select("*", count="exact")

        if target is not None:
            query = query.eq("id", target)
        if q:
            query = query.ilike("name", f"%{q.strip()}%")

        query = apply_filters(query, params.filters, FILTER_COLUMNS)
        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch companies")

    response.headers["Cache-Control"] = USER_DATA
    return paginated(result, params)


# ============================================================
# GET COMPANY
# ============================================================
@router.get("/{company_id}", summary="Get Company")
def get_company(
    company_id: int,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    company = get_or_404(get_db(), "companies", company_id, "Company")
    ensure_company_access(ctx, company["id"])
    return company


# ============================================================
# CREATE COMPANY
# ============================================================
@router.post("", status_code=201, summary="Create Company")
def create_company(
    payload: CompanyCreate,
    ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner])),
):
    """
    Owners always create their own company (owner_id is forced to the
    caller) and may own only one. Admins may assign any owner.
    """
    client = get_db()
    data = sanitize(payload.model_dump())

    if ctx.scope.role == Role.owner:
        if ctx.scope.company_id is not None:
            raise HTTPException(409, "Owner already has a company")
        data["owner_id"] = ctx.user.id

    company = insert_row(client, "companies", data, "Failed to create company")
    logger.info(f"Company {company['id']} created by {ctx.user.id}")

    log_audit_action(
        ctx,
        entity_type="company",
        entity_id=company["id"],
        action=AuditAction.create,
        after_state=company,
        company_id=company["id"],
    )
    return company


# ============================================================
# UPDATE COMPANY
# ============================================================
@router.put("/{company_id}", summary="Update Company")
def update_company(
    company_id: int,
    payload: CompanyUpdate,
    ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner])),
):
    client = get_db()
    before = get_or_404(client, "companies", company_id, "Company")
    ensure_company_access(ctx, before["id"])

    update_data = sanitize(payload.model_dump(exclude_unset=True))
    if not update_data:
        raise HTTPException(400, "No fields to update")

    company = update_row(client, "companies", company_id, update_data, "Failed to update company")

    log_audit_action(
        ctx,
        entity_type="company",
        entity_id=company_id,
        action=AuditAction.update,
        before_state=before,
        after_state=company,
        company_id=company_id,
    )
    return company


# ============================================================
# DELETE COMPANY
# ============================================================
@router.delete("/{company_id}", summary="Delete Company")
def delete_company(
    company_id: int,
    ctx: AuthContext = Depends(requires_role([Role.admin])),
):
    client = get_db()
    before = get_or_404(client, "companies", company_id, "Company")
    ensure_company_access(ctx, before["id"])

    delete_row(client, "companies", company_id, "Failed to delete company")
    logger.info(f"Company {company_id} deleted by {ctx.user.id}")

    log_audit_action(
        ctx,
        entity_type="company",
        entity_id=company_id,
        action=AuditAction.delete,
        before_state=before,
        company_id=company_id,
    )
    return {"success": True, "deleted_id": company_id}
