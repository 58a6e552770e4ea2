# listing_engine/geo.py
"""Map viewport search: bounding box plus an optional radius refinement.

Unlike ordinary filters, the bounding box is required; a missing or
inverted box is a `ValidationError`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from . import config
from .coerce import clamp, to_float
from .db import ListingStore
from .errors import ValidationError
from .filters import PredicateBuilder

BBOX_KEYS = ("minLat", "maxLat", "minLng", "maxLng")


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


@dataclass(frozen=True)
class RadiusQuery:
    lat: float
    lng: float
    radius_km: float


def parse_bounds(raw: Optional[Mapping[str, Any]]) -> BoundingBox:
    raw = raw or {}
    values = {key: to_float(raw.get(key)) for key in BBOX_KEYS}
    missing = [key for key, value in values.items() if value is None]
    if missing:
        raise ValidationError("minLat,maxLat,minLng,maxLng are required", missing)
    bbox = BoundingBox(values["minLat"], values["maxLat"], values["minLng"], values["maxLng"])
    if bbox.min_lat > bbox.max_lat or bbox.min_lng > bbox.max_lng:
        raise ValidationError("minLat <= maxLat and minLng <= maxLng", list(BBOX_KEYS))
    return bbox


def parse_radius(raw: Optional[Mapping[str, Any]]) -> Optional[RadiusQuery]:
    """All of lat, lng and radiusKm, or no radius at all."""
    raw = raw or {}
    lat = to_float(raw.get("lat"))
    lng = to_float(raw.get("lng"))
    radius = to_float(raw.get("radiusKm"))
    if lat is None or lng is None or radius is None:
        return None
    return RadiusQuery(lat, lng, clamp(radius, config.RADIUS_KM_MIN, config.RADIUS_KM_MAX))


def apply_bounds(builder: PredicateBuilder, bbox: BoundingBox) -> PredicateBuilder:
    builder.add("pickup_lat IS NOT NULL AND pickup_lng IS NOT NULL")
    builder.add("pickup_lat BETWEEN {} AND {}", bbox.min_lat, bbox.max_lat)
    builder.add("pickup_lng BETWEEN {} AND {}", bbox.min_lng, bbox.max_lng)
    return builder


def apply_radius(builder: PredicateBuilder, store: ListingStore, radius: RadiusQuery) -> str:
    """Add the radius predicate and return the `distance_km` select fragment."""
    lat_ph = builder.bind(radius.lat)
    lng_ph = builder.bind(radius.lng)
    radius_ph = builder.bind(radius.radius_km)
    builder.clauses.append(store.within_radius_sql(lat_ph, lng_ph, radius_ph))
    distance = store.distance_km_sql(lat_ph, lng_ph)
    return f", ROUND(CAST({distance} AS NUMERIC), 1) AS distance_km"
