# listing_engine/services.py
"""Search and write operations exposed to route handlers.

Each call takes the raw query mapping and a `ListingStore`, and returns
plain dicts ready to serialize. Nothing is retained between calls.
"""
from typing import Any, Dict, List, Mapping, Optional

from . import config
from .coerce import normalize_str
from .db import ListingStore
from .filters import ACTIVE_STATUS, PredicateBuilder, TERM_CLAUSE, apply_filter, build_where, contains, parse_filter
from .geo import BoundingBox, RadiusQuery, apply_bounds, apply_radius
from .pagination import clamp_limit, clamp_offset, fetch_rows, paginate
from .projector import to_public
from .sorting import FEATURED_ORDER, POPULAR_ORDER, build_order
from . import crud
from .crud import get_listing
from .reconcile import PUBLIC_CREATE, CreateContract, reconcile_for_create, reconcile_for_update


def search(store: ListingStore, raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    f = parse_filter(raw)
    built = build_where(f)
    limit = clamp_limit(f.limit, config.LIST_LIMITS)
    offset = clamp_offset(f.offset)
    rows, page = paginate(store, built, build_order(f.sort), limit, offset)
    return {"items": [to_public(r) for r in rows], "page": page}


def search_in_bounds(store: ListingStore, raw: Optional[Mapping[str, Any]], bbox: BoundingBox,
                     radius: Optional[RadiusQuery] = None) -> Dict[str, Any]:
    f = parse_filter(raw)
    builder = apply_bounds(apply_filter(PredicateBuilder(), f), bbox)
    distance_select = apply_radius(builder, store, radius) if radius else ""
    limit = clamp_limit(f.limit, config.MAP_LIMITS)
    rows = fetch_rows(store, builder.build(), build_order(f.sort, by_distance=bool(radius)), limit,
                      extra_select=distance_select)
    return {"items": [to_public(r) for r in rows]}


def get_public(store: ListingStore, listing_id) -> Dict[str, Any]:
    return {"item": to_public(get_listing(store, listing_id))}


def _country_scope(raw: Mapping[str, Any]) -> PredicateBuilder:
    builder = PredicateBuilder().add("deleted_at IS NULL")
    country = normalize_str(raw.get("country"))
    if country:
        builder.add("country_code = {}", country)
    return builder


def _values(rows: List[Dict[str, Any]]) -> List[Any]:
    return [r["value"] for r in rows if r["value"] not in (None, "")]


def filter_options(store: ListingStore, raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Distinct values and ranges a search UI can offer for active listings."""
    raw = raw or {}
    built = _country_scope(raw).add("status = {}", ACTIVE_STATUS).build()
    where, params = built.where_sql, built.params
    table = config.LISTING_TABLE

    def distinct(column: str, extra: str = "") -> List[Any]:
        return _values(store.query(
            f"SELECT DISTINCT {column} AS value FROM {table} WHERE {where}{extra} ORDER BY value ASC",
            params,
        ))

    def bounds(column: str) -> Dict[str, Any]:
        rows = store.query(f"SELECT MIN({column}) AS min, MAX({column}) AS max FROM {table} WHERE {where}", params)
        row = rows[0] if rows else {}
        return {"min": row.get("min"), "max": row.get("max")}

    return {
        "country": normalize_str(raw.get("country")),
        "vehicleTypes": distinct("vehicle_type"),
        "transmissions": distinct("transmission"),
        "fuelTypes": distinct("fuel_type"),
        "seats": [int(v) for v in distinct("seats")],
        "year": bounds("year"),
        "pricePerDay": bounds("price_per_day"),
        "cities": distinct("city"),
        "areas": distinct("area", " AND area IS NOT NULL AND TRIM(area) <> ''"),
    }


def suggest(store: ListingStore, raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    raw = raw or {}
    term = normalize_str(raw.get("q"))
    if not term:
        return {"items": []}
    limit = clamp_limit(raw.get("limit"), config.SUGGEST_LIMITS)

    builder = _country_scope(raw).add("status = {}", ACTIVE_STATUS).add(TERM_CLAUSE, contains(term))
    built = builder.build()
    params = built.params + [limit]
    rows = store.query(
        f"SELECT id, title, country_code, city, area FROM {config.LISTING_TABLE} "
        f"WHERE {built.where_sql} ORDER BY {POPULAR_ORDER} LIMIT :p{len(params)}",
        params,
    )
    items = []
    for r in rows:
        area = normalize_str(r.get("area"))
        items.append({
            "id": str(r["id"]),
            "title": r.get("title"),
            "countryCode": r.get("country_code"),
            "city": r.get("city"),
            "area": area,
            "label": " • ".join(p for p in (r.get("title"), area, r.get("city")) if p),
        })
    return {"items": items}


def _rail(store: ListingStore, raw: Optional[Mapping[str, Any]], order_by: str, limits) -> Dict[str, Any]:
    raw = raw or {}
    built = PredicateBuilder().add("deleted_at IS NULL").add("status = {}", ACTIVE_STATUS).build()
    rows = fetch_rows(store, built, order_by, clamp_limit(raw.get("limit"), limits))
    return {"items": [to_public(r) for r in rows]}


def featured(store: ListingStore, raw: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return _rail(store, raw, FEATURED_ORDER, config.FEATURED_LIMITS)


def popular(store: ListingStore, raw: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return _rail(store, raw, POPULAR_ORDER, config.POPULAR_LIMITS)


def stats(store: ListingStore, raw: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    raw = raw or {}
    builder = _country_scope(raw)
    city = normalize_str(raw.get("city"))
    if city:
        builder.add("LOWER(city) LIKE LOWER({})", contains(city))
    active = builder.bind(ACTIVE_STATUS)
    public = builder.bind(True)
    built = builder.build()
    rows = store.query(
        f"""
        SELECT
          COUNT(*) AS total,
          SUM(CASE WHEN status = {active} THEN 1 ELSE 0 END) AS active,
          SUM(CASE WHEN pickup_lat IS NOT NULL AND pickup_lng IS NOT NULL THEN 1 ELSE 0 END) AS with_coords,
          SUM(CASE WHEN has_image = {public} AND COALESCE(image_public, {public}) = {public} THEN 1 ELSE 0 END)
            AS with_public_image,
          MIN(price_per_day) AS min_price_per_day,
          MAX(price_per_day) AS max_price_per_day
        FROM {config.LISTING_TABLE}
        WHERE {built.where_sql}
        """,
        built.params,
    )
    row = rows[0] if rows else {}
    counts = ("total", "active", "with_coords", "with_public_image")
    return {"stats": {k: (int(v or 0) if k in counts else v) for k, v in row.items()}}


def similar(store: ListingStore, listing_id, raw: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Same country and vehicle type; same country alone when that finds nothing."""
    raw = raw or {}
    base = get_listing(store, listing_id)
    limit = clamp_limit(raw.get("limit"), config.SIMILAR_LIMITS)

    def candidates(with_type: bool):
        builder = (
            PredicateBuilder()
            .add("deleted_at IS NULL")
            .add("status = {}", ACTIVE_STATUS)
            .add("id <> {}", base["id"])
            .add("country_code = {}", base.get("country_code"))
        )
        if with_type:
            builder.add("vehicle_type = {}", base.get("vehicle_type"))
        return fetch_rows(store, builder.build(), POPULAR_ORDER, limit)

    rows = candidates(True) or candidates(False)
    return {"items": [to_public(r) for r in rows]}


def owner_listings(store: ListingStore, owner_id: str, raw: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    raw = raw or {}
    limit = clamp_limit(raw.get("limit"), config.OWNER_LIMITS)
    offset = clamp_offset(raw.get("offset"))
    built = PredicateBuilder().add("deleted_at IS NULL").add("owner_id = {}", owner_id).build()
    rows, page = paginate(store, built, "updated_at DESC, id DESC", limit, offset)
    return {"items": [to_public(r) for r in rows], "page": page}


def create_listing(store: ListingStore, raw: Optional[Mapping[str, Any]], owner_id: Optional[str] = None,
                   contract: CreateContract = PUBLIC_CREATE) -> Dict[str, Any]:
    columns = reconcile_for_create(raw, contract)
    return {"item": to_public(crud.insert_listing(store, columns, owner_id))}


def update_listing(store: ListingStore, listing_id, raw: Optional[Mapping[str, Any]],
                   owner_id: Optional[str] = None) -> Dict[str, Any]:
    columns = reconcile_for_update(raw)
    return {"item": to_public(crud.update_listing(store, listing_id, columns, owner_id))}


def publish_listing(store: ListingStore, listing_id, raw: Optional[Mapping[str, Any]] = None,
                    owner_id: Optional[str] = None) -> Dict[str, Any]:
    return {"item": to_public(crud.publish_listing(store, listing_id, raw, owner_id))}
