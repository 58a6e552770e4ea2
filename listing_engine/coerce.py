# listing_engine/coerce.py
"""Scalar parsing and clamping.

All helpers return ``None`` for input they cannot make sense of; deciding
whether ``None`` means "ignore" or "reject" is left to the caller.
"""
import json
import math
from datetime import date
from decimal import Decimal
from typing import Any, Optional

LAT_RANGE = (-90.0, 90.0)
LNG_RANGE = (-180.0, 180.0)
SEATS_RANGE = (1, 99)
PRICE_RANGE = (0, 1_000_000)
MIN_YEAR = 1950


def clamp(n, lo, hi):
    return max(lo, min(hi, n))


def year_range():
    return (MIN_YEAR, date.today().year + 1)


def to_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float, Decimal)):
        try:
            n = float(v)
        except OverflowError:
            return None
    elif isinstance(v, str):
        s = v.strip().replace(",", "")
        if not s:
            return None
        try:
            n = float(s)
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def to_int(v: Any) -> Optional[int]:
    n = to_float(v)
    return None if n is None else int(n)


def normalize_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def clean_text(v: Any) -> Optional[str]:
    # unlike normalize_str, only real strings count
    if not isinstance(v, str):
        return None
    return v.strip() or None


def clean_text_keep_empty(v: Any) -> Optional[str]:
    if not isinstance(v, str):
        return None
    return v.strip()


def parse_bool(v: Any) -> Optional[bool]:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s == "true":
            return True
        if s == "false":
            return False
    return None


def parse_lat(v: Any) -> Optional[float]:
    n = to_float(v)
    if n is None or not LAT_RANGE[0] <= n <= LAT_RANGE[1]:
        return None
    return n


def parse_lng(v: Any) -> Optional[float]:
    n = to_float(v)
    if n is None or not LNG_RANGE[0] <= n <= LNG_RANGE[1]:
        return None
    return n


def safe_json_parse(v: Any, fallback: Any) -> Any:
    """Return ``v`` as a decoded JSON value, or ``fallback``.

    Storage drivers hand JSON columns back either decoded or as text
    depending on dialect and query style; both shapes end up here.
    """
    if v is None:
        return fallback
    if isinstance(v, (dict, list)):
        return v
    if isinstance(v, (str, bytes)):
        s = v.strip()
        if not s:
            return fallback
        try:
            return json.loads(s)
        except ValueError:
            return fallback
    return fallback
