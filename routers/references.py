# routers/references.py

"""
Read-mostly lookup tables: locations, car brands, currencies, hotels.

Lists are cached in-process for REFERENCE_CACHE_TTL seconds and sent
with a long shared Cache-Control. Creating a row through this API drops
that table's cached pages.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Response

from dependencies.auth import requires_role, get_db
from core.audit import log_audit_action
from core.cache import REFERENCE_DATA, cached_call, invalidate
from core.config import settings
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.pagination import ListParams, list_params, apply_sorting, apply_pagination, paginated
from core.supabase_helpers import insert_row
from core.utils import sanitize
from models.auth import AuthContext
from models.enums import AuditAction, Role, STAFF_ROLES
from models.reference import HotelCreate, LocationCreate


router = APIRouter(
    prefix="/api",
    tags=["Reference Data"],
)


ANY_ROLE = list(Role)
NAME_SORT = ["id", "name", "created_at"]


def _load_page(table: str, params: ListParams, default_sort: str, allowed_sort, extra_eq: Optional[dict] = None) -> dict:
    client = get_db()
    try:
        query = client.table(table).select("*", count="exact")
        for column, value in (extra_eq or {}).items():
            query = query.eq(column, value)
        query = apply_sorting(query, params, default_sort, allowed_sort)
        result = apply_pagination(query, params).execute()
    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, f"Failed to fetch {table}")
    return paginated(result, params)


def _cached_list(response: Response, table: str, params: ListParams, key_suffix: str = "", **kwargs) -> dict:
    response.headers["Cache-Control"] = REFERENCE_DATA
    key = f"{table}:{params.cache_key()}{key_suffix}"
    return cached_call(
        key,
        lambda: _load_page(table, params, **kwargs),
        ttl_seconds=settings.REFERENCE_CACHE_TTL,
    )


# ============================================================
# LOCATIONS
# ============================================================
@router.get("/locations", summary="List Locations")
def list_locations(
    response: Response,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(ANY_ROLE)),
):
    return _cached_list(
        response, "locations", params,
        default_sort="name", allowed_sort=NAME_SORT,
    )


@router.post("/locations", status_code=201, summary="Create Location")
def create_location(
    payload: LocationCreate,
    ctx: AuthContext = Depends(requires_role([Role.admin])),
):
    location = insert_row(get_db(), "locations", sanitize(payload.model_dump()), "Failed to create location")
    invalidate("locations:")
    logger.info(f"Location {location['id']} created by {ctx.user.id}")

    log_audit_action(
        ctx,
        entity_type="location",
        entity_id=location["id"],
        action=AuditAction.create,
        after_state=location,
    )
    return location


# ============================================================
# BRANDS / CURRENCIES
# ============================================================
@router.get("/brands", summary="List Car Brands")
def list_brands(
    response: Response,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(ANY_ROLE)),
):
    return _cached_list(
        response, "car_brands", params,
        default_sort="name", allowed_sort=NAME_SORT,
    )


@router.get("/currencies", summary="List Currencies")
def list_currencies(
    response: Response,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(ANY_ROLE)),
):
    return _cached_list(
        response, "currencies", params,
        default_sort="code", allowed_sort=["id", "code", "name"],
    )


# ============================================================
# HOTELS
# ============================================================
@router.get("/hotels", summary="List Hotels")
def list_hotels(
    response: Response,
    location_id: Optional[int] = None,
    params: ListParams = Depends(list_params),
    ctx: AuthContext = Depends(requires_role(ANY_ROLE)),
):
    extra = {"location_id": location_id} if location_id is not None else None
    return _cached_list(
        response, "hotels", params,
        key_suffix=f":loc={location_id}",
        default_sort="name", allowed_sort=NAME_SORT + ["location_id"],
        extra_eq=extra,
    )


@router.post("/hotels", status_code=201, summary="Create Hotel")
def create_hotel(
    payload: HotelCreate,
    ctx: AuthContext = Depends(requires_role(STAFF_ROLES)),
):
    hotel = insert_row(get_db(), "hotels", sanitize(payload.model_dump()), "Failed to create hotel")
    invalidate("hotels:")

    log_audit_action(
        ctx,
        entity_type="hotel",
        entity_id=hotel["id"],
        action=AuditAction.create,
        after_state=hotel,
    )
    return hotel
