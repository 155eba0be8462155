# core/scope.py

"""
Role scope, admin-mode and company access checks.

Every check takes the explicit AuthContext built by
dependencies.auth.requires_role; nothing here reads ambient request state
except get_admin_mode_company_id, which is called once per request while
that context is being built.
"""

from typing import List, Optional

from fastapi import HTTPException, Request
from supabase import Client

from core.errors import MissingCompanyScope, handle_supabase_error
from core.logging_config import logger
from core.supabase_helpers import fetch_by_id
from core.utils import parse_int
from models.auth import AuthContext, Scope
from models.enums import Role


# ============================================================
# SCOPE RESOLVER
# ============================================================
def resolve_scope(client: Client, user_id: str, role: Role) -> Scope:
    """
    Map a user to {role, company_id}.

    owner   → company whose owner_id is the user
    manager → active managers row for the user
    admin / client → no company (admin gets one only through admin-mode)
    """
    if role == Role.owner:
        rows = _select_company_link(client, "companies", "id", "owner_id", user_id)
        company_id = rows[0]["id"] if rows else None
    elif role == Role.manager:
        rows = _select_company_link(
            client, "managers", "company_id", "user_id", user_id, only_active=True
        )
        company_id = rows[0]["company_id"] if rows else None
    else:
        company_id = None

    if role in (Role.owner, Role.manager) and company_id is None:
        logger.warning(f"{role} {user_id} has no company")

    return Scope(role=role, company_id=company_id)


def _select_company_link(client: Client, table: str, column: str, user_column: str, user_id: str, only_active: bool = False):
    try:
        query = client.table(table).select(column).eq(user_column, user_id)
        if only_active:
            query = query.eq("is_active", True)
        return query.limit(1).execute().data or []
    except Exception as e:
        raise handle_supabase_error(e, "Failed to resolve user scope")


# ============================================================
# ADMIN-MODE RESOLVER
# ============================================================
def get_admin_mode_company_id(request: Request, role: Role) -> Optional[int]:
    """
    Company an admin is impersonating for this request only.

    Requires ?admin_mode=true&company_id=N. The parameters are ignored
    for every other role so they can never widen a non-admin's scope.
    """
    admin_mode = request.query_params.get("admin_mode", "").lower() == "true"
    raw_company_id = request.query_params.get("company_id")

    if not admin_mode or raw_company_id is None:
        return None

    if role != Role.admin:
        logger.debug(f"Ignoring admin_mode parameters from role={role}")
        return None

    company_id = parse_int(raw_company_id)
    if company_id is None:
        raise HTTPException(400, "company_id must be an integer")

    return company_id


# ============================================================
# ENTITY ACCESS CHECKS
# ============================================================
def resolve_target_company_id(ctx: AuthContext, body_company_id=None) -> Optional[int]:
    """
    Company the caller is acting in:
      1. admin-mode company
      2. the caller's own scope company
      3. for admins only, a company id supplied in the request body

    None means an admin acting system-wide, or a non-admin without a company.
    """
    if ctx.admin_company_id is not None:
        return ctx.admin_company_id

    if ctx.scope.company_id is not None:
        return ctx.scope.company_id

    if ctx.scope.is_admin:
        return parse_int(body_company_id)

    return None


def require_target_company_id(ctx: AuthContext, body_company_id=None) -> Optional[int]:
    """
    Same as resolve_target_company_id, but a non-admin without any
    company raises MissingCompanyScope instead of getting None back.
    """
    target = resolve_target_company_id(ctx, body_company_id)
    if target is None and not ctx.scope.is_admin:
        raise MissingCompanyScope()
    return target


def ensure_company_access(ctx: AuthContext, entity_company_id, body_company_id=None):
    """
    Reject (403) acting on an entity that belongs to another company.
    Must run before any mutation.
    """
    target = require_target_company_id(ctx, body_company_id)
    if target is None:
        # Admin in system scope
        return

    if parse_int(entity_company_id) != target:
        logger.warning(
            f"Company scope violation: user={ctx.user.id} role={ctx.scope.role} "
            f"target={target} entity_company={entity_company_id}"
        )
        raise HTTPException(403, "Forbidden: this record belongs to another company")


def list_company_filter(ctx: AuthContext, requested_company_id=None) -> Optional[int]:
    """
    Company id to filter a list by. None means no filter (admin, system-wide).

    Admins outside admin-mode may narrow the list with ?company_id=N;
    for everyone else that parameter is ignored, whatever its value.
    """
    target = require_target_company_id(ctx)
    if target is not None or not ctx.scope.is_admin:
        return target

    if requested_company_id is None or requested_company_id == "":
        return None

    company_id = parse_int(requested_company_id)
    if company_id is None:
        raise HTTPException(400, "company_id must be an integer")
    return company_id


# ============================================================
# CAR-OWNED ENTITIES (bookings, contracts)
# ============================================================
def car_company_id(client: Client, car_id) -> Optional[int]:
    """Company of a car; bookings and contracts are scoped through it."""
    car = fetch_by_id(client, "company_cars", car_id, "id, company_id")
    if car is None:
        raise HTTPException(404, "Car not found")
    return car.get("company_id")


def company_car_ids(client: Client, company_id: int) -> List[int]:
    try:
        rows = (
            client.table("company_cars")
            .select("id")
            .eq("company_id", company_id)
            .execute()
        ).data or []
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch company cars")
    return [row["id"] for row in rows]
