# listing_engine/projector.py
"""Stored row -> public listing shape.

Pure functions: nothing here writes back to storage. Numeric columns are
re-coerced because some drivers hand them back as strings or Decimals.
"""
from datetime import date, datetime
from typing import Any, Mapping, Optional

from . import config
from .coerce import normalize_str, safe_json_parse, to_float, to_int
from .schemas import AddressOut, ListingOut, PickupOut


def _is_absolute_url(path: str) -> bool:
    return path.startswith("http://") or path.startswith("https://")


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    return bool(value)


def _timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def compute_image_url(row: Mapping[str, Any], media_base: Optional[str] = None,
                      placeholder: Optional[str] = None) -> Optional[str]:
    has_image = _flag(row.get("has_image"), False)
    is_public = _flag(row.get("image_public"), True)
    path = normalize_str(row.get("image_path")) or ""

    if has_image and is_public and path:
        if _is_absolute_url(path):
            return path
        if media_base:
            return f"{media_base.rstrip('/')}/{path.lstrip('/')}"
    return placeholder or None


def _first_number(row: Mapping[str, Any], *columns: str, parse=to_float):
    for column in columns:
        value = parse(row.get(column))
        if value is not None:
            return value
    return None


def project(row: Mapping[str, Any], media_base: Optional[str] = None,
            placeholder: Optional[str] = None) -> ListingOut:
    if media_base is None:
        media_base = config.media_base()
    if placeholder is None:
        placeholder = config.placeholder_url()

    gallery = safe_json_parse(row.get("image_gallery"), None)
    distance = row.get("distance_km")

    return ListingOut(
        id=str(row["id"]),
        title=row.get("title"),
        vehicle_type=row.get("vehicle_type"),
        transmission=row.get("transmission"),
        fuel_type=row.get("fuel_type"),
        make=normalize_str(row.get("make")),
        model=normalize_str(row.get("model")),
        trim=normalize_str(row.get("trim")),
        body_type=normalize_str(row.get("body_type")),
        seats=to_int(row.get("seats")),
        year=to_int(row.get("year")),
        currency=row.get("currency"),
        price_per_day=to_float(row.get("price_per_day")),
        rating=_first_number(row, "rating_avg", "rating"),
        reviews=_first_number(row, "rating_count", "reviews", parse=to_int),
        status=row.get("status"),
        address=AddressOut(
            country_code=row.get("country_code"),
            city=row.get("city"),
            area=normalize_str(row.get("area")),
            full_address=row.get("full_address"),
        ),
        pickup=PickupOut(
            lat=to_float(row.get("pickup_lat")),
            lng=to_float(row.get("pickup_lng")),
            address=normalize_str(row.get("pickup_address")),
            city=normalize_str(row.get("pickup_city")),
            state=normalize_str(row.get("pickup_state")),
            country=normalize_str(row.get("pickup_country")),
            postal_code=normalize_str(row.get("pickup_postal_code")),
        ),
        has_image=_flag(row.get("has_image"), False),
        image_public=_flag(row.get("image_public"), True),
        image_path=row.get("image_path"),
        image_url=compute_image_url(row, media_base, placeholder),
        gallery=gallery if isinstance(gallery, list) else None,
        is_popular=_flag(row.get("is_popular"), False),
        is_featured=_flag(row.get("is_featured"), False),
        created_at=_timestamp(row.get("created_at")),
        updated_at=_timestamp(row.get("updated_at")),
        distance_km=to_float(distance),
    )


def to_public(row: Mapping[str, Any]) -> dict:
    return project(row).model_dump(by_alias=True)
