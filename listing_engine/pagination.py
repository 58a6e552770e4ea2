# listing_engine/pagination.py
"""Count + page queries over one predicate set.

The two statements are not run in a shared snapshot: a write landing
between them can make ``total`` disagree with the page by a few rows.
"""
from typing import Any, Dict, Optional, Tuple

from . import config
from .coerce import clamp, to_int
from .db import ListingStore
from .filters import BuiltQuery

SELECT_FIELDS = """
    id,
    title,
    vehicle_type,
    transmission,
    fuel_type,
    make,
    model,
    trim,
    body_type,
    seats,
    year,
    currency,
    price_per_day,
    rating,
    reviews,
    rating_avg,
    rating_count,
    status,
    country_code,
    city,
    area,
    full_address,
    pickup_lat,
    pickup_lng,
    pickup_address,
    pickup_city,
    pickup_state,
    pickup_country,
    pickup_postal_code,
    image_path,
    image_gallery,
    has_image,
    image_public,
    is_popular,
    is_featured,
    created_at,
    updated_at
"""


def clamp_limit(raw: Any, limits: Tuple[int, int]) -> int:
    default, ceiling = limits
    n = to_int(raw)
    if n is None:
        return default
    return clamp(n, 1, ceiling)


def clamp_offset(raw: Any) -> int:
    n = to_int(raw)
    return clamp(n or 0, 0, config.MAX_OFFSET)


def select_sql(where_sql: str, order_by: str, extra_select: str = "") -> str:
    sql = f"SELECT {SELECT_FIELDS}{extra_select} FROM {config.LISTING_TABLE}"
    if where_sql:
        sql += f" WHERE {where_sql}"
    return sql + f" ORDER BY {order_by}"


def fetch_rows(store: ListingStore, built: BuiltQuery, order_by: str, limit: int,
               offset: Optional[int] = None, extra_select: str = ""):
    params = list(built.params)
    sql = select_sql(built.where_sql, order_by, extra_select)
    params.append(limit)
    sql += f" LIMIT :p{len(params)}"
    if offset is not None:
        params.append(offset)
        sql += f" OFFSET :p{len(params)}"
    return store.query(sql, params)


def paginate(store: ListingStore, built: BuiltQuery, order_by: str, limit: int,
             offset: int) -> Tuple[list, Dict[str, int]]:
    total = store.count(built.where_sql, built.params)
    rows = fetch_rows(store, built, order_by, limit, offset)
    return rows, {"limit": limit, "offset": offset, "total": total}
