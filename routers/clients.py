# routers/clients.py

from collections import defaultdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Response

from dependencies.auth import requires_role, get_db
from core.audit import log_audit_action
from core.cache import USER_DATA
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.pagination import ListParams, list_params, apply_sorting, apply_pagination, paginated
from core.scope import company_car_ids, list_company_filter, require_target_company_id
from core.supabase_helpers import create_account, delete_auth_user
from core.utils import sanitize, search_term
from models.auth import AuthContext
from models.enums import AuditAction, ContractStatus, Role, STAFF_ROLES
from models.user import ClientCreate


router = APIRouter(
    prefix="/api/clients",
    tags=["Clients"],
)


CLIENT_COLUMNS = (
    "id, name, surname, email, phone, second_phone, telegram, "
    "passport_number, citizenship, gender, role, created_at"
)
SORT_COLUMNS = ["created_at", "name", "surname", "email"]


# ============================================================
# LIST CLIENTS
# ============================================================
@router.get("", summary="List Clients")
def list_clients(
    response: Response,
    q: Optional[str] = None,
    passport: Optional[str] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    """
    Clients are shared by every company. Their contract figures
    (count, active contract, total spent) only include contracts on
    cars of the company the caller acts in.
    """
    client = get_db()
    response.headers["Cache-Control"] = USER_DATA
    target = list_company_filter(ctx, company_id)

    try:
        query = (
            client.table("users")
            .select(CLIENT_COLUMNS, count="exact")
            .eq("role", str(Role.client))
        )

        term = search_term(q)
        if term:
            query = query.or_(f"name.ilike.%{term}%,surname.ilike.%{term}%,email.ilike.%{term}%")
        if passport:
            query = query.eq("passport_number", passport.strip()).limit(1)

        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

        body = paginated(result, params)
        body["data"] = _with_contract_summary(client, body["data"], target)

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch clients")

    return body


def _with_contract_summary(client, clients: list, company_id: Optional[int]) -> list:
    ids = [c["id"] for c in clients]
    if not ids:
        return clients

    profiles = {
        row["user_id"]: row
        for row in (
            client.table("client_profiles")
            .select("user_id, phone, address, passport_number")
            .in_("user_id", ids)
            .execute()
        ).data or []
    }

    contracts = defaultdict(list)
    car_ids = company_car_ids(client, company_id) if company_id is not None else None
    if car_ids != []:
        query = (
            client.table("contracts")
            .select("id, client_id, status, total_amount")
            .in_("client_id", ids)
        )
        if car_ids is not None:
            query = query.in_("company_car_id", car_ids)
        for row in query.execute().data or []:
            contracts[row["client_id"]].append(row)

    summary = []
    for c in clients:
        own = contracts[c["id"]]
        summary.append({
            **c,
            "profile": profiles.get(c["id"]),
            "contracts_count": len(own),
            "has_active_contract": any(r.get("status") == str(ContractStatus.active) for r in own),
            "total_spent": sum(r.get("total_amount") or 0 for r in own),
        })
    return summary


# ============================================================
# CREATE CLIENT
# ============================================================
@router.post("", status_code=201, summary="Create Client")
def create_client(
    payload: ClientCreate,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    """
    Creates the client's account, users row and client profile.
    A failure at any step removes what was already created.
    """
    company_id = require_target_company_id(ctx, payload.company_id)
    if company_id is None:
        raise HTTPException(400, "company_id is required")

    client = get_db()
    profile = sanitize(
        payload.model_dump(exclude={"email", "password", "address", "company_id"})
    )
    profile["role"] = str(Role.client)

    user = create_account(client, payload.email, payload.password, profile, "Failed to create client")

    try:
        client_profile = (
            client.table("client_profiles")
            .insert(sanitize({
                "user_id": user["id"],
                "phone": payload.phone,
                "address": payload.address,
                "passport_number": payload.passport_number,
            }))
            .execute()
        ).data[0]
    except Exception as e:
        _remove_client(client, user["id"])
        raise handle_supabase_error(e, "Failed to create client")

    logger.info(f"Client {user['id']} created by {ctx.user.id} for company {company_id}")

    log_audit_action(
        ctx,
        entity_type="client",
        entity_id=user["id"],
        action=AuditAction.create,
        after_state={k: user.get(k) for k in ("id", "email", "name", "surname")},
        company_id=company_id,
    )
    return {**user, "profile": client_profile}


def _remove_client(client, user_id: str):
    try:
        client.table("users").delete().eq("id", user_id).execute()
    except Exception as e:
        logger.error(f"Could not remove users row {user_id} after a failed create: {e}")
    delete_auth_user(client, user_id)
