# routers/users.py

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Response

from dependencies.auth import requires_role, get_db
from core.audit import log_audit_action
from core.cache import USER_DATA
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.pagination import (
    ListParams,
    list_params,
    apply_sorting,
    apply_pagination,
    empty_page,
    paginated,
)
from core.scope import list_company_filter
from core.supabase_helpers import create_account
from core.utils import sanitize, search_term
from models.auth import AuthContext
from models.enums import AuditAction, Role, STAFF_ROLES
from models.user import UserCreate


router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
)


USER_COLUMNS = "id, email, role, name, surname, phone, second_phone, telegram, created_at"
SORT_COLUMNS = ["created_at", "email", "name", "surname", "role"]

# Roles an owner may hand out
OWNER_GRANTABLE_ROLES = (Role.manager, Role.client)


# ============================================================
# LIST USERS
# ============================================================
@router.get(
    "",
    summary="List Users",
    description="""
    Admins outside admin-mode see every account. Inside a company
    (owner, manager, admin-mode) the list is the company's managers;
    admin accounts are never listed there.

    **Query Parameters:** `page`, `pageSize`, `sortBy`, `sortOrder`,
    `q` (name / surname / email search), `role`.
    """,
)
def list_users(
    response: Response,
    q: Optional[str] = None,
    role: Optional[Role] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    response.headers["Cache-Control"] = USER_DATA
    target = list_company_filter(ctx, company_id)

    try:
        query = client.table("users").select(USER_COLUMNS, count="exact")

        if target is not None:
            links = (
                client.table("managers").select("user_id").eq("company_id", target).execute()
            ).data or []
            user_ids = [row["user_id"] for row in links]
            if not user_ids:
                return empty_page(params)
            query = query.in_("id", user_ids).neq("role", str(Role.admin))

        term = search_term(q)
        if term:
            query = query.or_(f"name.ilike.%{term}%,surname.ilike.%{term}%,email.ilike.%{term}%")
        if role:
            query = query.eq("role", str(role))

        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch users")

    return paginated(result, params)


# ============================================================
# CREATE USER
# ============================================================
@router.post("", status_code=201, summary="Create User")
def create_user(
    payload: UserCreate,
    ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner])),
):
    if ctx.scope.role == Role.owner and payload.role not in OWNER_GRANTABLE_ROLES:
        raise HTTPException(403, f"Owners cannot create {payload.role} accounts")

    client = get_db()
    profile = sanitize(payload.model_dump(mode="json", exclude={"email", "password"}))

    user = create_account(client, payload.email, payload.password, profile)
    logger.info(f"User {user['id']} ({payload.role}) created by {ctx.user.id}")

    log_audit_action(
        ctx,
        entity_type="user",
        entity_id=user["id"],
        action=AuditAction.create,
        after_state={k: user.get(k) for k in ("id", "email", "name", "surname", "role")},
    )
    return {"message": "User created successfully", "user": user}
