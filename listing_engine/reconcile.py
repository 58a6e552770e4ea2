# listing_engine/reconcile.py
"""Write payload -> canonical column map.

Clients have sent the same logical field in several shapes over time: as a
top-level scalar, or nested in ``features.vehicle`` / ``features.address`` /
``features.pickup``. Each column has an ordered tuple of sources; the first
source whose value survives parsing wins, and a column no source can supply
is left out of the map.

Writes validate hard (missing required fields raise `ValidationError`),
but an individual malformed value only drops that field.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .coerce import (
    PRICE_RANGE, SEATS_RANGE, clamp, clean_text, clean_text_keep_empty, parse_bool,
    parse_lat, parse_lng, safe_json_parse, to_int, year_range,
)
from .errors import ValidationError
from .models import LISTING_STATUSES


class Payload:
    """Read-only view over a raw write body with its feature bag decoded."""

    def __init__(self, raw: Optional[Mapping[str, Any]]):
        self.raw: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
        features = safe_json_parse(self.raw.get("features"), {})
        self.features: Dict[str, Any] = features if isinstance(features, dict) else {}

    def group(self, name: str) -> Mapping[str, Any]:
        bag = safe_json_parse(self.features.get(name), {})
        return bag if isinstance(bag, dict) else {}


@dataclass(frozen=True)
class Top:
    key: str

    def __call__(self, payload: Payload) -> Any:
        return payload.raw.get(self.key)


@dataclass(frozen=True)
class Nested:
    group: str
    key: str

    def __call__(self, payload: Payload) -> Any:
        return payload.group(self.group).get(self.key)


@dataclass(frozen=True)
class Decoded:
    """Top-level JSON bag, decoded when sent as text."""
    key: str

    def __call__(self, payload: Payload) -> Any:
        return safe_json_parse(payload.raw.get(self.key), None)


# blank-string policies for update payloads
BLANK_ABSENT = "absent"
BLANK_KEEP = "keep"
BLANK_NULL = "null"


@dataclass(frozen=True)
class FieldRule:
    column: str
    parse: Callable[[Any], Any]
    sources: Tuple[Callable[[Payload], Any], ...]
    blank: str = BLANK_ABSENT


def text(v: Any) -> Optional[str]:
    return clean_text(v)


def upper_text(v: Any) -> Optional[str]:
    s = clean_text(v)
    return s.upper() if s else None


def int_between(lo: int, hi: int) -> Callable[[Any], Optional[int]]:
    def parse(v: Any) -> Optional[int]:
        if isinstance(v, bool):
            return None
        n = to_int(v)
        return None if n is None else clamp(n, lo, hi)
    return parse


def year(v: Any) -> Optional[int]:
    return int_between(*year_range())(v)


def status(v: Any) -> Optional[str]:
    s = clean_text(v)
    return s if s in LISTING_STATUSES else None


def json_object(v: Any) -> Optional[dict]:
    return v if isinstance(v, dict) else None


def dedupe_gallery(items: Iterable[Any]) -> List[dict]:
    """Keep one descriptor per photo id; later entries replace earlier ones in place."""
    by_id: Dict[str, dict] = {}
    for item in items:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        by_id[str(item["id"])] = item
    return list(by_id.values())


def gallery(v: Any) -> Optional[List[dict]]:
    return dedupe_gallery(v) if isinstance(v, list) else None


def _vehicle(column: str, parse=text) -> FieldRule:
    return FieldRule(column, parse, (Top(column), Nested("vehicle", column)))


def _address(column: str, parse=text, blank=BLANK_ABSENT) -> FieldRule:
    return FieldRule(column, parse, (Top(column), Nested("address", column)), blank)


def _pickup(column: str, parse=text, *fallbacks) -> FieldRule:
    return FieldRule(column, parse, (Top(column), Nested("pickup", column)) + tuple(fallbacks))


def _top(column: str, parse=text, blank=BLANK_ABSENT) -> FieldRule:
    return FieldRule(column, parse, (Top(column),), blank)


FIELD_RULES: Tuple[FieldRule, ...] = (
    _top("title", blank=BLANK_KEEP),
    _top("vehicle_type", blank=BLANK_KEEP),
    _top("transmission", blank=BLANK_KEEP),
    _vehicle("fuel_type"),
    _vehicle("make"),
    _vehicle("model"),
    _vehicle("trim"),
    _vehicle("body_type"),
    _vehicle("year", year),
    _top("seats", int_between(*SEATS_RANGE)),
    _top("currency", upper_text),
    _top("price_per_day", int_between(*PRICE_RANGE)),

    _address("country_code", upper_text),
    _address("city"),
    _address("area", blank=BLANK_NULL),
    _address("full_address"),

    _pickup("pickup_lat", parse_lat),
    _pickup("pickup_lng", parse_lng),
    _pickup("pickup_address"),
    _pickup("pickup_city", text, Nested("address", "city"), Top("city")),
    _pickup("pickup_state", text, Nested("address", "province"), Top("area"), Top("province")),
    _pickup("pickup_country", text, Nested("address", "country_code"), Top("country_code")),
    _pickup("pickup_postal_code", text, Nested("address", "postal_code")),

    _top("image_path"),
    _top("image_public", parse_bool),
    _top("has_image", parse_bool),
    _top("image_gallery", gallery),
    _top("is_popular", parse_bool),
    _top("is_featured", parse_bool),
    _top("status", status),

    FieldRule("features", json_object, (Decoded("features"),)),
    FieldRule("requirements", json_object, (Decoded("requirements"),)),
    FieldRule("pricing_rules", json_object, (Decoded("pricing_rules"),)),
)

RULES_BY_COLUMN: Dict[str, FieldRule] = {rule.column: rule for rule in FIELD_RULES}


def resolve(rule: FieldRule, payload: Payload, update: bool = False) -> Tuple[bool, Any]:
    """Return ``(found, value)`` for one column."""
    if rule.blank != BLANK_ABSENT:
        raw = clean_text_keep_empty(payload.raw.get(rule.column))
        if raw == "":
            if rule.blank == BLANK_NULL:
                return True, None
            if update:
                return True, ""
    for source in rule.sources:
        value = rule.parse(source(payload))
        if value is not None:
            return True, value
    return False, None


def reconcile(raw: Optional[Mapping[str, Any]], update: bool = False) -> Dict[str, Any]:
    payload = Payload(raw)
    columns: Dict[str, Any] = {}
    for rule in FIELD_RULES:
        found, value = resolve(rule, payload, update)
        if found:
            columns[rule.column] = value
    return columns


@dataclass(frozen=True)
class CreateContract:
    name: str
    required: Tuple[str, ...]


PUBLIC_CREATE = CreateContract("public", ("title", "vehicle_type", "country_code", "city"))
HOST_CREATE = CreateContract("host", ("title", "vehicle_type", "transmission"))

CREATE_DEFAULTS = {
    "image_public": True,
    "has_image": False,
    "is_popular": False,
    "is_featured": False,
    "status": "draft",
}


def reconcile_for_create(raw: Optional[Mapping[str, Any]],
                         contract: CreateContract = PUBLIC_CREATE) -> Dict[str, Any]:
    columns = reconcile(raw)
    missing = [column for column in contract.required if not columns.get(column)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)
    for column, default in CREATE_DEFAULTS.items():
        columns.setdefault(column, default)
    return columns


def reconcile_for_update(raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    columns = reconcile(raw, update=True)
    if not columns:
        raise ValidationError("No valid updates provided.")
    return columns


def merge_features(incoming: Any, existing: Any) -> Dict[str, Any]:
    """Overlay an incoming feature bag on the stored one, one group deep."""
    base = safe_json_parse(existing, {})
    merged = dict(base) if isinstance(base, dict) else {}
    patch = safe_json_parse(incoming, None)
    if not isinstance(patch, dict):
        return merged
    for key, value in patch.items():
        current = safe_json_parse(merged.get(key), None)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = {**current, **value}
        else:
            merged[key] = value
    return merged


def reconcile_for_publish(raw: Optional[Mapping[str, Any]], existing_features: Any) -> Dict[str, Any]:
    """Canonical columns for a publish, read against stored + incoming features.

    Reconciling the raw body alone would lose nested values saved by earlier
    drafts whenever the publish call carries only a status.
    """
    body = dict(raw) if isinstance(raw, Mapping) else {}
    merged = merge_features(body.get("features"), existing_features)
    body["features"] = merged
    columns = reconcile(body, update=True)
    columns["features"] = merged
    columns["status"] = status(body.get("status")) or "active"
    return columns
