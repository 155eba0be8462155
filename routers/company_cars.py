# routers/company_cars.py

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
from core.scope import ensure_company_access, list_company_filter, require_target_company_id
from core.supabase_helpers import get_or_404, insert_row, update_row, delete_row
from core.utils import sanitize, search_term
from models.auth import AuthContext
from models.company_car import CompanyCarCreate, CompanyCarUpdate
from models.enums import AuditAction, Role, CarStatus, STAFF_ROLES


router = APIRouter(
    prefix="/api/company-cars",
    tags=["Company Cars"],
)


SORT_COLUMNS = ["id", "created_at", "license_plate", "year", "mileage", "price_per_day", "status"]
FILTER_COLUMNS = ["status", "template_id", "color_id", "year"]


# ============================================================
# LIST CARS
# ============================================================
@router.get(
    "",
    summary="List Company Cars",
    description="""
    Cars of the caller's company (or the admin-mode company). Admins
    outside admin-mode see the whole fleet, optionally narrowed with
    `company_id`.

    **Query Parameters:** `page`, `pageSize`, `sortBy`, `sortOrder`,
    `filters` (JSON), `status`, `q` (license plate / VIN search).
    """,
)
def list_company_cars(
    response: Response,
    status: Optional[CarStatus] = None,
    q: Optional[str] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    target = list_company_filter(ctx, company_id)

    try:
        query = client.table("company_cars").select("*", count="exact")

        if target is not None:
            query = query.eq("company_id", target)
        if status:
            query = query.eq("status", str(status))
        term = search_term(q)
        if term:
            query = query.or_(f"license_plate.ilike.%{term}%,vin.ilike.%{term}%")

        query = apply_filters(query, params.filters, FILTER_COLUMNS)
        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch cars")

    response.headers["Cache-Control"] = USER_DATA
    return paginated(result, params)


# ============================================================
# GET CAR
# ============================================================
@router.get("/{car_id}", summary="Get Company Car")
def get_company_car(
    car_id: int,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    car = get_or_404(get_db(), "company_cars", car_id, "Car")
    ensure_company_access(ctx, car["company_id"])
    return car


# ============================================================
# CREATE CAR
# ============================================================
@router.post("", status_code=201, summary="Create Company Car")
def create_company_car(
    payload: CompanyCarCreate,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()

    company_id = require_target_company_id(ctx, payload.company_id)
    if company_id is None:
        raise HTTPException(400, "company_id is required")

    data = sanitize(payload.model_dump(mode="json"))
    data["company_id"] = company_id

    car = insert_row(client, "company_cars", data, "Failed to create car")
    logger.info(f"Car {car['id']} created in company {company_id} by {ctx.user.id}")

    log_audit_action(
        ctx,
        entity_type="company_car",
        entity_id=car["id"],
        action=AuditAction.create,
        after_state=car,
        company_id=company_id,
    )
    return car


# ============================================================
# UPDATE CAR
# ============================================================
@router.put("/{car_id}", summary="Update Company Car")
def update_company_car(
    car_id: int,
    payload: CompanyCarUpdate,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    before = get_or_404(client, "company_cars", car_id, "Car")

    # A body company_id only counts for admins, and must still match the car
    ensure_company_access(ctx, before["company_id"], payload.company_id)

    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    update_data.pop("company_id", None)
    if not update_data:
        raise HTTPException(400, "No fields to update")

    car = update_row(client, "company_cars", car_id, update_data, "Failed to update car")

    log_audit_action(
        ctx,
        entity_type="company_car",
        entity_id=car_id,
        action=AuditAction.update,
        before_state=before,
        after_state=car,
        company_id=before["company_id"],
    )
    return car


# ============================================================
# DELETE CAR
# ============================================================
@router.delete("/{car_id}", summary="Delete Company Car")
def delete_company_car(
    car_id: int,
    ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner])),
):
    client = get_db()
    before = get_or_404(client, "company_cars", car_id, "Car")
    ensure_company_access(ctx, before["company_id"])

    delete_row(client, "company_cars", car_id, "Failed to delete car")

    log_audit_action(
        ctx,
        entity_type="company_car",
        entity_id=car_id,
        action=AuditAction.delete,
        before_state=before,
        company_id=before["company_id"],
    )
    return {"success": True, "deleted_id": car_id}
