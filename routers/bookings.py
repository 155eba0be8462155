# routers/bookings.py

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
from core.supabase_helpers import get_or_404, insert_row
from core.utils import sanitize
from models.auth import AuthContext
from models.booking import BookingCreate
from models.enums import AuditAction, Role, STAFF_ROLES


router = APIRouter(
    prefix="/api/bookings",
    tags=["Bookings"],
)


SORT_COLUMNS = ["id", "created_at", "start_date", "end_date", "status"]
FILTER_COLUMNS = ["status", "client_id", "company_car_id"]


# ============================================================
# LIST BOOKINGS
# ============================================================
@router.get("", summary="List Bookings")
def list_bookings(
    response: Response,
    status: Optional[str] = None,
    company_id: Optional[str] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    """
    Bookings carry no company of their own; they are scoped through
    the company that owns the booked car.
    """
    client = get_db()
    response.headers["Cache-Control"] = USER_DATA
    target = list_company_filter(ctx, company_id)

    try:
        query = client.table("bookings").select("*", count="exact")

        if target is not None:
            car_ids = company_car_ids(client, target)
            if not car_ids:
                return empty_page(params)
            query = query.in_("company_car_id", car_ids)

        # Managers work the queue of requests still waiting for an answer
        if ctx.scope.role == Role.manager:
            query = query.eq("status", "pending")
        elif status:
            query = query.eq("status", status)

        query = apply_filters(query, params.filters, FILTER_COLUMNS)
        query = apply_sorting(query, params, "created_at", SORT_COLUMNS)
        result = apply_pagination(query, params).execute()

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch bookings")

    return paginated(result, params)


# ============================================================
# GET BOOKING
# ============================================================
@router.get("/{booking_id}", summary="Get Booking")
def get_booking(
    booking_id: int,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    client = get_db()
    booking = get_or_404(client, "bookings", booking_id, "Booking")
    ensure_company_access(ctx, car_company_id(client, booking["company_car_id"]))
    return booking


# ============================================================
# CREATE BOOKING
# ============================================================
@router.post("", status_code=201, summary="Create Booking")
def create_booking(
    payload: BookingCreate,
    ctx: AuthContext = Depends(requires_role([Role.client, *STAFF_ROLES])),
):
    """
    Clients request any car for themselves. Staff book on behalf of a
    client, but only cars of the company they act in.

    total_amount = rental days × the car's price_per_day.
    """
    client = get_db()
    car = get_or_404(client, "company_cars", payload.company_car_id, "Car", "id, company_id, price_per_day")

    if ctx.scope.role == Role.client:
        client_id = ctx.user.id
    else:
        ensure_company_access(ctx, car["company_id"])
        if not payload.client_id:
            raise HTTPException(400, "client_id is required")
        client_id = payload.client_id

    data = sanitize(payload.model_dump(mode="json", exclude={"client_id"}))
    data["client_id"] = client_id
    data["total_amount"] = payload.days * float(car.get("price_per_day") or 0)
    data["status"] = "pending"

    booking = insert_row(client, "bookings", data, "Failed to create booking")
    logger.info(f"Booking {booking['id']} for car {payload.company_car_id} by {ctx.user.id}")

    log_audit_action(
        ctx,
        entity_type="booking",
        entity_id=booking["id"],
        action=AuditAction.create,
        after_state=booking,
        company_id=car["company_id"],
    )
    return booking
