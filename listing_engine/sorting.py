# listing_engine/sorting.py
"""ORDER BY policy for listing reads.

Every order ends in a created-time tiebreak so pages are stable; the rating
measure prefers the aggregate column over the legacy scalar one.
"""
from typing import Optional

from .schemas import DEFAULT_SORT

RATING_SQL = "COALESCE(rating_avg, rating)"
POPULAR_ORDER = f"is_popular DESC, {RATING_SQL} DESC NULLS LAST, created_at DESC, id DESC"

ORDER_BY = {
    "newest": "created_at DESC, id DESC",
    "price_asc": "price_per_day ASC NULLS LAST, created_at DESC, id DESC",
    "price_desc": "price_per_day DESC NULLS LAST, created_at DESC, id DESC",
    "rating_desc": f"{RATING_SQL} DESC NULLS LAST, created_at DESC, id DESC",
    "popular": POPULAR_ORDER,
}

FEATURED_ORDER = f"is_featured DESC, {POPULAR_ORDER}"
DISTANCE_ORDER = "distance_km ASC NULLS LAST"


def build_order(sort: Optional[str], by_distance: bool = False) -> str:
    order = ORDER_BY.get(sort or DEFAULT_SORT, ORDER_BY[DEFAULT_SORT])
    if by_distance:
        # nearest first, then the requested order
        return f"{DISTANCE_ORDER}, {order}"
    return order
