# routers/contracts.py

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
    apply_filters,
    apply_sorting,
    apply_pagination,
    empty_page,
    paginated,
)
from core.scope import car_company_id, company_car_ids, ensure_company_access, list_company_filter
from core.supabase_helpers import get_or_404, insert_row, update_row
from core.utils import sanitize
from models.auth import AuthContext
from models.contract import ContractClose, ContractCreate, ContractUpdate
from models.enums import AuditAction, CarStatus, ContractStatus, Role, STAFF_ROLES


router = APIRouter(
    prefix="/api/contracts",
    tags=["Contracts"],
)


SORT_COLUMNS = ["id", "created_at", "start_date", "end_date", "total_amount", "status"]
FILTER_COLUMNS = ["status", "client_id", "company_car_id", "manager_id", "booking_id"]


# ============================================================
# LIST CONTRACTS
# ============================================================
@router.get("", summary="List Contracts")
def list_contracts(
    response: Response,
    status: Optional[ContractStatus] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    response.headers["Cache-Control"] = USER_DATA
    target = list_company_filter(ctx, company_id)

    try:
        query = client.table("contracts").select("*", count="exact")

        if target is not None:
            car_ids = company_car_ids(client, target)
            if not car_ids:
                return empty_page(params)
            query = query.in_("company_car_id", car_ids)

        if status:
            query = query.eq("status", str(status))

        query = apply_filters(query, params.filters, FILTER_COLUMNS)
        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch contracts")

    return paginated(result, params)


# ============================================================
# GET CONTRACT
# ============================================================
@router.get("/{contract_id}", summary="Get Contract")
def get_contract(
    contract_id: int,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    contract = get_or_404(client, "contracts", contract_id, "Contract")
    ensure_company_access(ctx, car_company_id(client, contract["company_car_id"]))
    return contract


# ============================================================
# CREATE CONTRACT
# ============================================================
@router.post("", status_code=201, summary="Create Contract")
def create_contract(
    payload: ContractCreate,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    """
    The car decides the company. A manager creating a contract is
    recorded as its manager unless one is given.
    """
    client = get_db()
    company_id = car_company_id(client, payload.company_car_id)
    ensure_company_access(ctx, company_id)

    data = sanitize(payload.model_dump(mode="json"))
    data["status"] = str(ContractStatus.active)
    if not data.get("manager_id") and ctx.scope.role == Role.manager:
        data["manager_id"] = ctx.user.id

    contract = insert_row(client, "contracts", data, "Failed to create contract")
    logger.info(f"Contract {contract['id']} created for car {payload.company_car_id}")

    log_audit_action(
        ctx,
        entity_type="contract",
        entity_id=contract["id"],
        action=AuditAction.create,
        after_state=contract,
        company_id=company_id,
    )
    return contract


# ============================================================
# UPDATE CONTRACT
# ============================================================
@router.put("/{contract_id}", summary="Update Contract")
def update_contract(
    contract_id: int,
    payload: ContractUpdate,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    before = get_or_404(client, "contracts", contract_id, "Contract")
    company_id = car_company_id(client, before["company_car_id"])
    ensure_company_access(ctx, company_id)

    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if not update_data:
        raise HTTPException(400, "No fields to update")

    start = update_data.get("start_date") or before.get("start_date")
    end = update_data.get("end_date") or before.get("end_date")
    if start and end and str(end) < str(start):
        raise HTTPException(400, "end_date must be on or after start_date")

    contract = update_row(client, "contracts", contract_id, update_data, "Failed to update contract")

    log_audit_action(
        ctx,
        entity_type="contract",
        entity_id=contract_id,
        action=AuditAction.update,
        before_state=before,
        after_state=contract,
        company_id=company_id,
    )
    return contract


# ============================================================
# CLOSE CONTRACT
# ============================================================
PENDING_STATUS_NAME = "Pending"
PENDING_STATUS_VALUE = 2
FALLBACK_TYPE_PATTERN = "%Other%"


@router.post("/{contract_id}/close", summary="Close Contract")
def close_contract(
    contract_id: int,
    payload: ContractClose,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    """
    Completes the contract, returns its car to the available pool and
    raises a pending payment for every closing fee.

    Fees are secondary: if they cannot be recorded the contract still
    closes, and the response lists what was written.
    """
    client = get_db()
    before = get_or_404(client, "contracts", contract_id, "Contract")
    company_id = car_company_id(client, before["company_car_id"])
    ensure_company_access(ctx, company_id)

    if before.get("status") in (str(ContractStatus.completed), str(ContractStatus.cancelled)):
        raise HTTPException(400, "Contract is already closed")

    contract = update_row(
        client,
        "contracts",
        contract_id,
        {"status": str(ContractStatus.completed)},
        "Failed to close contract",
    )
    update_row(
        client,
        "company_cars",
        before["company_car_id"],
        {"status": str(CarStatus.available)},
        "Failed to release car",
    )
    logger.info(f"Contract {contract_id} closed by {ctx.user.id}")

    payments = _record_closing_fees(client, ctx, contract_id, company_id, payload.fees)

    log_audit_action(
        ctx,
        entity_type="contract",
        entity_id=contract_id,
        action=AuditAction.update,
        before_state=before,
        after_state=contract,
        company_id=company_id,
    )
    return {"success": True, "contract": contract, "payments": payments}


def _record_closing_fees(client, ctx: AuthContext, contract_id: int, company_id, fees) -> list:
    if not fees:
        return []

    try:
        status_id = _pending_status_id(client)
        if status_id is None:
            logger.warning(f"No pending payment status, {len(fees)} closing fees skipped for contract {contract_id}")
            return []

        fallback_type_id = None
        rows = []
        for fee in fees:
            type_id = fee.payment_type_id
            notes = fee.notes or "Fee added at closing"

            if type_id is None:
                if fallback_type_id is None:
                    fallback_type_id = _fallback_payment_type_id(client)
                type_id = fallback_type_id
                if fee.custom_name:
                    notes = f"{fee.custom_name}: {notes}"

            if type_id is None:
                logger.warning(f"No payment type for closing fee on contract {contract_id}")
                continue

            rows.append({
                "contract_id": contract_id,
                "company_id": company_id,
                "payment_type_id": type_id,
                "payment_status_id": status_id,
                "amount": fee.amount,
                "notes": notes,
                "created_by": ctx.user.id,
            })

        if not rows:
            return []
        return client.table("payments").insert(rows).execute().data or []

    except Exception as e:
        logger.error(f"Closing fees for contract {contract_id} not recorded: {e}")
        return []


def _pending_status_id(client):
    rows = (
        client.table("payment_statuses").select("id").eq("name", PENDING_STATUS_NAME).limit(1).execute()
    ).data
    if not rows:
        rows = (
            client.table("payment_statuses").select("id").eq("value", PENDING_STATUS_VALUE).limit(1).execute()
        ).data
    return rows[0]["id"] if rows else None


def _fallback_payment_type_id(client):
    rows = (
        client.table("payment_types").select("id").ilike("name", FALLBACK_TYPE_PATTERN).limit(1).execute()
    ).data
    if not rows:
        rows = client.table("payment_types").select("id").limit(1).execute().data
    return rows[0]["id"] if rows else None
