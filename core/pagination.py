# core/pagination.py

import json
from typing import Any, Dict, List, Optional

from fastapi import Query
from pydantic import BaseModel

from core.config import settings
from core.logging_config import logger
from models.enums import SortOrder


class ListParams(BaseModel):
    page: int = 1
    page_size: int = 20
    sort_by: Optional[str] = None
    sort_order: SortOrder = SortOrder.desc
    filters: Dict[str, Any] = {}

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def range_end(self) -> int:
        """Inclusive end index for PostgREST .range()."""
        return self.offset + self.page_size - 1

    def cache_key(self) -> str:
        filters = json.dumps(self.filters, sort_keys=True, default=str)
        return f"{self.page}:{self.page_size}:{self.sort_by}:{self.sort_order}:{filters}"


def parse_filters(raw: Optional[str]) -> Dict[str, Any]:
    """Decode the `filters` JSON blob. Anything but a JSON object is ignored."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning(f"Invalid filters JSON ignored: {raw!r}")
        return {}
    if not isinstance(value, dict):
        logger.warning(f"Filters must be a JSON object, ignored: {raw!r}")
        return {}
    return value


def list_params(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        alias="pageSize",
        description=f"Items per page (capped at {settings.MAX_PAGE_SIZE})",
    ),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.desc, alias="sortOrder"),
    filters: Optional[str] = Query(None, description="JSON object of column filters"),
) -> ListParams:
    """
    FastAPI dependency for list endpoints.

    Usage:
        params: ListParams = Depends(list_params)
    """
    return ListParams(
        page=page,
        page_size=min(page_size, settings.MAX_PAGE_SIZE),
        sort_by=sort_by,
        sort_order=sort_order,
        filters=parse_filters(filters),
    )


def apply_sorting(query, params: ListParams, default_sort: str, allowed: Optional[List[str]] = None):
    """
    Order by `params.sort_by` when it is an allowed column, else `default_sort`.
    """
    sort_by = params.sort_by or default_sort
    if allowed is not None and sort_by not in allowed:
        logger.warning(f"Ignoring sortBy={sort_by!r}; allowed: {allowed}")
        sort_by = default_sort
    return query.order(sort_by, desc=params.sort_order == SortOrder.desc)


def apply_pagination(query, params: ListParams):
    return query.range(params.offset, params.range_end)


def paginated(result, params: ListParams) -> dict:
    """Shape a PostgREST result into the list response body."""
    data = result.data or []
    total = result.count if result.count is not None else len(data)
    return {
        "data": data,
        "totalCount": total,
        "page": params.page,
        "pageSize": params.page_size,
    }


def empty_page(params: ListParams) -> dict:
    return {"data": [], "totalCount": 0, "page": params.page, "pageSize": params.page_size}


def apply_filters(query, filters: Dict[str, Any], allowed: List[str]):
    """
    Equality filters from the `filters` JSON. Lists become IN filters;
    unknown columns are ignored.
    """
    for column, value in filters.items():
        if column not in allowed:
            logger.debug(f"Ignoring filter on {column!r}")
            continue
        if value is None or value == "":
            continue
        if isinstance(value, list):
            query = query.in_(column, value)
        else:
            query = query.eq(column, value)
    return query
