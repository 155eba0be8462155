# routers/payments.py

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
    paginated,
)
from core.scope import car_company_id, ensure_company_access, list_company_filter
from core.supabase_helpers import get_or_404, insert_row
from core.utils import sanitize
from models.auth import AuthContext
from models.enums import AuditAction, STAFF_ROLES
from models.payment import PaymentCreate


router = APIRouter(
    prefix="/api/payments",
    tags=["Payments"],
)


SORT_COLUMNS = ["id", "created_at", "amount", "payment_status_id"]
FILTER_COLUMNS = ["contract_id", "payment_status_id", "payment_type_id", "payment_method"]


# ============================================================
# LIST PAYMENTS
# ============================================================
@router.get("", summary="List Payments")
def list_payments(
    response: Response,
    contract_id: Optional[int] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    target = list_company_filter(ctx, company_id)

    try:
        query = client.table("payments").select("*", count="exact")

        if target is not None:
            query = query.eq("company_id", target)
        if contract_id is not None:
            query = query.eq("contract_id", contract_id)

        query = apply_filters(query, params.filters, FILTER_COLUMNS)
        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch payments")

    response.headers["Cache-Control"] = USER_DATA
    return paginated(result, params)


# ============================================================
# GET PAYMENT
# ============================================================
@router.get("/{payment_id}", summary="Get Payment")
def get_payment(
    payment_id: int,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    payment = get_or_404(get_db(), "payments", payment_id, "Payment")
    ensure_company_access(ctx, payment.get("company_id"))
    return payment


# ============================================================
# CREATE PAYMENT
# ============================================================
@router.post("", status_code=201, summary="Record Payment")
def create_payment(
    payload: PaymentCreate,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    """
    A payment belongs to the company of its contract's car; the caller
    must be acting in that company.
    """
    client = get_db()
    contract = get_or_404(client, "contracts", payload.contract_id, "Contract")
    company_id = car_company_id(client, contract["company_car_id"])
    ensure_company_access(ctx, company_id)

    data = sanitize(payload.model_dump(mode="json"))
    data["company_id"] = company_id
    data["created_by"] = ctx.user.id

    payment = insert_row(client, "payments", data, "Failed to record payment")
    logger.info(f"Payment {payment['id']} recorded for contract {payload.contract_id}")

    log_audit_action(
        ctx,
        entity_type="payment",
        entity_id=payment["id"],
        action=AuditAction.create,
        after_state=payment,
        company_id=company_id,
    )
    return payment
